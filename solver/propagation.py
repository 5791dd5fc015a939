from typing import Any, Callable, Optional

from rules.rules import COMPLETED, FINISHED_INVALID, FINISHED_VALID, INTERRUPTED, NOT_FINISHED, UNKNOWN

from .constraints import line_verdicts
from .state import column_line, count_unknown, row_line
from .types import Contradiction, Grid, LineVerdicts, PassReport, ProgressState, RunSequence, Status, TraceLog, TraceStep
from .utils import color_name, indent, record_step, trace


def run_one_pass(
    grid: Grid,
    row_runs: list[RunSequence],
    col_runs: list[RunSequence],
) -> PassReport:
    """Run the line propagator over every row and column and merge the forced
    cells into ``grid`` in place.

    All lines read the grid as it was when the pass started; verdicts are
    merged only once every line has been swept.
    """
    rows = len(row_runs)
    cols = len(col_runs)
    tasks = [(row_runs[r], row_line(grid, r)) for r in range(rows)]
    tasks += [(col_runs[c], column_line(grid, c)) for c in range(cols)]

    results = [line_verdicts(runs, line) for runs, line in tasks]

    row_results = results[:rows]
    col_results = results[rows:]

    resolved = 0
    contradictions: list[Contradiction] = []

    for r, (verdicts, _) in enumerate(row_results):
        resolved += _merge_verdicts(grid, "row", r, verdicts, contradictions)
    for c, (verdicts, _) in enumerate(col_results):
        resolved += _merge_verdicts(grid, "column", c, verdicts, contradictions)

    invalid_rows = [r for r, (_, placements) in enumerate(row_results) if placements == 0]
    invalid_columns = [c for c, (_, placements) in enumerate(col_results) if placements == 0]
    unresolved = count_unknown(grid)

    if resolved > 0:
        status = NOT_FINISHED
    elif invalid_rows or invalid_columns:
        status = FINISHED_INVALID
    elif unresolved == 0:
        status = COMPLETED
    else:
        status = FINISHED_VALID

    return {
        "status": status,
        "resolved": resolved,
        "unresolved": unresolved,
        "valid_rows": rows - len(invalid_rows),
        "valid_columns": cols - len(invalid_columns),
        "invalid_rows": invalid_rows,
        "invalid_columns": invalid_columns,
        "contradictions": contradictions,
    }


def run_to_fixed_point(
    grid: Grid,
    row_runs: list[RunSequence],
    col_runs: list[RunSequence],
    stop_requested: Optional[Callable[[], bool]] = None,
    on_pass: Optional[Callable[[PassReport], None]] = None,
    progress_state: Optional[ProgressState] = None,
    trace_enabled: bool = False,
    trace_log: Optional[TraceLog] = None,
    trace_steps: Optional[list[TraceStep]] = None,
    trace_meta: Optional[dict[str, bool]] = None,
    trace_max_steps: int = 1000,
    depth: int = 0,
) -> Status:
    status = NOT_FINISHED
    pass_index = 0
    while status == NOT_FINISHED:
        if stop_requested is not None and stop_requested():
            return INTERRUPTED

        report = run_one_pass(grid, row_runs, col_runs)
        status = report["status"]
        report["pass_index"] = pass_index

        if progress_state is not None:
            progress_state["passes"] = progress_state.get("passes", 0) + 1
            progress_state["contradictions"] = progress_state.get("contradictions", 0) + len(report["contradictions"])

        for contradiction in report["contradictions"]:
            message = (
                f"{indent(depth)}{contradiction['axis'].capitalize()} {contradiction['index']}: "
                f"definite {color_name(contradiction['verdict'])}; conflict in position {contradiction['position']}"
            )
            trace(trace_enabled, trace_log, message)
            record_step(trace_steps, trace_meta, trace_max_steps, "contradiction", message, depth, grid)

        message = (
            f"{indent(depth)}Pass {pass_index}: {report['resolved']} resolved; {report['unresolved']} unresolved; "
            f"valid rows {report['valid_rows']}/{len(row_runs)}; valid columns {report['valid_columns']}/{len(col_runs)}"
        )
        trace(trace_enabled, trace_log, message)
        record_step(trace_steps, trace_meta, trace_max_steps, "pass", message, depth, grid)

        if on_pass is not None:
            report["grid"] = [row[:] for row in grid]
            on_pass(report)
        pass_index += 1

    return status


def propagate_hypothesis_worker(
    grid: Grid,
    row_runs: list[RunSequence],
    col_runs: list[RunSequence],
    cancel_event: Optional[Any] = None,
) -> tuple[Grid, Status, int, int]:
    progress_state: ProgressState = {"passes": 0, "contradictions": 0}
    stop_requested = None if cancel_event is None else cancel_event.is_set
    status = run_to_fixed_point(
        grid,
        row_runs,
        col_runs,
        stop_requested=stop_requested,
        progress_state=progress_state,
    )
    return grid, status, progress_state["passes"], progress_state["contradictions"]


def _merge_verdicts(
    grid: Grid,
    axis: str,
    index: int,
    verdicts: LineVerdicts,
    contradictions: list[Contradiction],
) -> int:
    resolved = 0
    for position, verdict in enumerate(verdicts):
        if verdict is None:
            continue
        r, c = (index, position) if axis == "row" else (position, index)
        current = grid[r][c]
        if current is UNKNOWN:
            grid[r][c] = verdict
            resolved += 1
        elif current != verdict:
            # Soft signal only: the first value stays and line validity decides.
            contradictions.append(
                {"axis": axis, "index": index, "position": position, "existing": current, "verdict": verdict}
            )
    return resolved
