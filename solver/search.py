import time
from concurrent.futures import FIRST_COMPLETED, Executor, wait
from typing import Any, Callable, Optional

from rules.rules import BLACK, COMPLETED, FINISHED_INVALID, FINISHED_VALID, INTERRUPTED, WHITE

from .propagation import propagate_hypothesis_worker, run_to_fixed_point
from .state import clone_with_cell, unknown_positions
from .types import Grid, ProgressState, RunSequence, Status, TraceLog, TraceStep
from .utils import color_name, indent, record_step, trace


Hypothesis = tuple[Grid, Status]


def choose_branch(black_status: Status, white_status: Status) -> Optional[int]:
    """Return the only color whose hypothesis survived, or None when the two
    outcomes give nothing to go on."""
    if black_status == FINISHED_VALID and white_status == FINISHED_INVALID:
        return BLACK
    if black_status == FINISHED_INVALID and white_status == FINISHED_VALID:
        return WHITE
    return None


def search_first_solution(
    grid: Grid,
    row_runs: list[RunSequence],
    col_runs: list[RunSequence],
    deadline: Optional[float],
    stop_requested: Optional[Callable[[], bool]],
    progress_callback: Optional[Callable[[ProgressState], None]],
    progress_state: ProgressState,
    executor: Optional[Executor],
    cancel_event: Optional[Any],
    trace_enabled: bool,
    trace_log: Optional[TraceLog],
    trace_steps: Optional[list[TraceStep]],
    trace_meta: Optional[dict[str, bool]],
    trace_max_steps: int,
    depth: int,
) -> tuple[Optional[Grid], bool]:
    def should_stop() -> bool:
        if stop_requested is not None and stop_requested():
            return True
        return deadline is not None and time.monotonic() >= deadline

    def log(event: str, message: str, step_grid: Grid, row: int, col: int, value: Optional[int] = None) -> None:
        trace(trace_enabled, trace_log, message)
        record_step(trace_steps, trace_meta, trace_max_steps, event, message, depth, step_grid, row=row, col=col, value=value)

    for r, c in unknown_positions(grid):
        if should_stop():
            return None, True

        progress_state["branches_explored"] = progress_state.get("branches_explored", 0) + 1
        if progress_callback is not None:
            progress_callback(dict(progress_state))

        def announce(color: int) -> None:
            log(f"try_{color_name(color)}", f"{indent(depth)}Trying {color_name(color)} at ({r}, {c})", grid, r, c, color)

        if executor is None:
            hypotheses, interrupted = _propagate_sequentially(
                grid,
                r,
                c,
                announce,
                row_runs,
                col_runs,
                should_stop,
                progress_state,
                trace_enabled,
                trace_log,
                trace_steps,
                trace_meta,
                trace_max_steps,
                depth + 1,
            )
        else:
            announce(BLACK)
            announce(WHITE)
            hypotheses, interrupted = _propagate_in_pool(
                executor,
                cancel_event,
                grid,
                r,
                c,
                row_runs,
                col_runs,
                should_stop,
                progress_state,
            )

        for color, (hypothesis_grid, status) in hypotheses.items():
            if status == COMPLETED:
                log("solution_found", f"{indent(depth)}Solution found with {color_name(color)} at ({r}, {c})", hypothesis_grid, r, c, color)
                return hypothesis_grid, False

        if interrupted:
            return None, True

        black_grid, black_status = hypotheses[BLACK]
        white_grid, white_status = hypotheses[WHITE]
        branch = choose_branch(black_status, white_status)
        if branch is None:
            log(
                "no_inference",
                f"{indent(depth)}No inference at ({r}, {c}): black {black_status}, white {white_status}",
                grid,
                r,
                c,
            )
            continue

        branch_grid = black_grid if branch == BLACK else white_grid
        log(f"fill_{color_name(branch)}", f"{indent(depth)}Filling in {color_name(branch)} at ({r}, {c})", branch_grid, r, c, branch)

        solution, interrupted = search_first_solution(
            grid=branch_grid,
            row_runs=row_runs,
            col_runs=col_runs,
            deadline=deadline,
            stop_requested=stop_requested,
            progress_callback=progress_callback,
            progress_state=progress_state,
            executor=executor,
            cancel_event=cancel_event,
            trace_enabled=trace_enabled,
            trace_log=trace_log,
            trace_steps=trace_steps,
            trace_meta=trace_meta,
            trace_max_steps=trace_max_steps,
            depth=depth + 1,
        )
        if solution is not None or interrupted:
            return solution, interrupted

    message = f"{indent(depth)}No cell left to infer at depth {depth}"
    trace(trace_enabled, trace_log, message)
    record_step(trace_steps, trace_meta, trace_max_steps, "search_exhausted", message, depth, grid)
    return None, False


def _propagate_sequentially(
    grid: Grid,
    r: int,
    c: int,
    announce: Callable[[int], None],
    row_runs: list[RunSequence],
    col_runs: list[RunSequence],
    should_stop: Callable[[], bool],
    progress_state: ProgressState,
    trace_enabled: bool,
    trace_log: Optional[TraceLog],
    trace_steps: Optional[list[TraceStep]],
    trace_meta: Optional[dict[str, bool]],
    trace_max_steps: int,
    depth: int,
) -> tuple[dict[int, Hypothesis], bool]:
    hypotheses: dict[int, Hypothesis] = {}
    for color in (BLACK, WHITE):
        announce(color)
        hypothesis_grid = clone_with_cell(grid, r, c, color)
        status = run_to_fixed_point(
            hypothesis_grid,
            row_runs,
            col_runs,
            stop_requested=should_stop,
            progress_state=progress_state,
            trace_enabled=trace_enabled,
            trace_log=trace_log,
            trace_steps=trace_steps,
            trace_meta=trace_meta,
            trace_max_steps=trace_max_steps,
            depth=depth,
        )
        hypotheses[color] = (hypothesis_grid, status)
        if status == COMPLETED:
            return hypotheses, False
        if status == INTERRUPTED:
            return hypotheses, True
    return hypotheses, False


def _propagate_in_pool(
    executor: Executor,
    cancel_event: Optional[Any],
    grid: Grid,
    r: int,
    c: int,
    row_runs: list[RunSequence],
    col_runs: list[RunSequence],
    should_stop: Callable[[], bool],
    progress_state: ProgressState,
) -> tuple[dict[int, Hypothesis], bool]:
    futures = {
        executor.submit(
            propagate_hypothesis_worker,
            clone_with_cell(grid, r, c, color),
            row_runs,
            col_runs,
            cancel_event,
        ): color
        for color in (BLACK, WHITE)
    }

    hypotheses: dict[int, Hypothesis] = {}
    interrupted = False
    while futures:
        if should_stop():
            interrupted = True
            break

        done, _ = wait(set(futures.keys()), timeout=0.1, return_when=FIRST_COMPLETED)
        for future in done:
            color = futures.pop(future)
            hypothesis_grid, status, passes, contradictions = future.result()
            progress_state["passes"] = progress_state.get("passes", 0) + passes
            progress_state["contradictions"] = progress_state.get("contradictions", 0) + contradictions
            hypotheses[color] = (hypothesis_grid, status)
            if status == COMPLETED:
                break
            if status == INTERRUPTED:
                interrupted = True

        if interrupted or any(status == COMPLETED for _, status in hypotheses.values()):
            break

    if futures:
        # Siblings still running poll the event between passes and give up.
        if cancel_event is not None:
            cancel_event.set()
        for future in futures:
            future.cancel()

    return hypotheses, interrupted
