import os
import time
from concurrent.futures import ProcessPoolExecutor
from multiprocessing import Manager
from typing import Callable, Optional, Sequence

from rules.rules import COMPLETED, FINISHED_INVALID, INTERRUPTED, NO_SOLUTION_FOUND

from .errors import UnsolvableInitialStateError
from .propagation import run_to_fixed_point
from .search import search_first_solution
from .state import build_initial_state, count_unknown
from .types import Grid, PassReport, ProgressState, RunsInput, SolveResult, TraceLog, TraceStep
from .utils import trace as _trace
from .validation import validate_solve_options


def solve_nonogram(
    row_runs: Sequence[RunsInput],
    col_runs: Sequence[RunsInput],
    known_grid: Optional[Grid] = None,
    max_seconds: Optional[float] = None,
    stop_requested: Optional[Callable[[], bool]] = None,
    progress_callback: Optional[Callable[[ProgressState], None]] = None,
    use_multiprocessing: bool = False,
    workers: Optional[int] = None,
    trace: bool = False,
    trace_log: Optional[TraceLog] = None,
    trace_steps: Optional[list[TraceStep]] = None,
    trace_meta: Optional[dict[str, bool]] = None,
    trace_max_steps: int = 1000,
) -> SolveResult:
    """Propagate to a fixed point, then fall back to one-level lookahead search.

    Raises UnsolvableInitialStateError when the puzzle is contradictory before
    any guessing. Running out of inferences is not an error: the result status
    is ``no_solution_found`` and the grid holds what propagation could prove.
    """
    validate_solve_options(max_seconds=max_seconds, workers=workers, trace_max_steps=trace_max_steps)
    grid, rows, cols = build_initial_state(row_runs=row_runs, col_runs=col_runs, known_grid=known_grid)
    start_time = time.monotonic()
    progress_state: ProgressState = {"passes": 0, "branches_explored": 0, "contradictions": 0}

    _trace(
        trace,
        trace_log,
        f"Initialized solver: rows={len(rows)}, cols={len(cols)}, unknown_cells={count_unknown(grid)}",
    )

    status = run_to_fixed_point(
        grid,
        rows,
        cols,
        stop_requested=stop_requested,
        progress_state=progress_state,
        trace_enabled=trace,
        trace_log=trace_log,
        trace_steps=trace_steps,
        trace_meta=trace_meta,
        trace_max_steps=trace_max_steps,
    )
    if status == FINISHED_INVALID:
        raise UnsolvableInitialStateError("The puzzle has no solution: propagation found an unsatisfiable row or column")
    if status == COMPLETED:
        return _build_result(COMPLETED, grid, progress_state, start_time, "Solved by propagation alone.")
    if status == INTERRUPTED:
        return _build_result(INTERRUPTED, grid, progress_state, start_time, "Solve canceled during propagation.")

    deadline = None if max_seconds is None else time.monotonic() + max_seconds
    search_kwargs = dict(
        row_runs=rows,
        col_runs=cols,
        deadline=deadline,
        stop_requested=stop_requested,
        progress_callback=progress_callback,
        progress_state=progress_state,
        trace_enabled=trace,
        trace_log=trace_log,
        trace_steps=trace_steps,
        trace_meta=trace_meta,
        trace_max_steps=trace_max_steps,
        depth=0,
    )

    executor: Optional[ProcessPoolExecutor] = None
    if use_multiprocessing:
        worker_count = workers or max(1, (os.cpu_count() or 1) - 1)
        try:
            executor = ProcessPoolExecutor(max_workers=worker_count)
        except (PermissionError, OSError):
            executor = None

    if executor is None:
        solution, interrupted = search_first_solution(grid=grid, executor=None, cancel_event=None, **search_kwargs)
    else:
        with executor, Manager() as manager:
            solution, interrupted = search_first_solution(
                grid=grid,
                executor=executor,
                cancel_event=manager.Event(),
                **search_kwargs,
            )

    if solution is not None:
        return _build_result(COMPLETED, solution, progress_state, start_time, "Solved with lookahead search.")
    if interrupted:
        return _build_result(INTERRUPTED, grid, progress_state, start_time, "Search stopped before a solution was found.")
    return _build_result(
        NO_SOLUTION_FOUND,
        grid,
        progress_state,
        start_time,
        "No solution found: no remaining cell could be inferred with one-level lookahead.",
    )


def propagate_nonogram(
    row_runs: Sequence[RunsInput],
    col_runs: Sequence[RunsInput],
    known_grid: Optional[Grid] = None,
    on_pass: Optional[Callable[[PassReport], None]] = None,
    trace: bool = False,
    trace_log: Optional[TraceLog] = None,
    trace_steps: Optional[list[TraceStep]] = None,
    trace_meta: Optional[dict[str, bool]] = None,
    trace_max_steps: int = 1000,
) -> dict[str, object]:
    validate_solve_options(max_seconds=None, workers=None, trace_max_steps=trace_max_steps)
    grid, rows, cols = build_initial_state(row_runs=row_runs, col_runs=col_runs, known_grid=known_grid)
    progress_state: ProgressState = {"passes": 0, "contradictions": 0}
    pass_reports: list[PassReport] = []

    def collect(report: PassReport) -> None:
        pass_reports.append(report)
        if on_pass is not None:
            on_pass(report)

    status = run_to_fixed_point(
        grid,
        rows,
        cols,
        on_pass=collect,
        progress_state=progress_state,
        trace_enabled=trace,
        trace_log=trace_log,
        trace_steps=trace_steps,
        trace_meta=trace_meta,
        trace_max_steps=trace_max_steps,
    )
    return {
        "status": status,
        "grid": grid,
        "unknown_cells": count_unknown(grid),
        "passes": progress_state["passes"],
        "contradictions": progress_state["contradictions"],
        "pass_reports": pass_reports,
    }


def _build_result(
    status: str,
    grid: Grid,
    progress_state: ProgressState,
    start_time: float,
    message: str,
) -> SolveResult:
    return {
        "status": status,
        "solved": status == COMPLETED,
        "grid": grid,
        "unknown_cells": count_unknown(grid),
        "passes": progress_state.get("passes", 0),
        "branches_explored": progress_state.get("branches_explored", 0),
        "contradictions": progress_state.get("contradictions", 0),
        "elapsed_seconds": time.monotonic() - start_time,
        "message": message,
    }
