from typing import Optional

from rules.rules import BLACK, CELL_SYMBOLS

from .types import Grid, TraceLog, TraceStep


def trace(enabled: bool, trace_log: Optional[TraceLog], message: str) -> None:
    if not enabled:
        return
    if trace_log is not None:
        trace_log.append(message)
    else:
        print(message)


def indent(depth: int) -> str:
    return "  " * depth


def record_step(
    trace_steps: Optional[list[TraceStep]],
    trace_meta: Optional[dict[str, bool]],
    trace_max_steps: int,
    event: str,
    message: str,
    depth: int,
    grid: Grid,
    row: Optional[int] = None,
    col: Optional[int] = None,
    value: Optional[int] = None,
) -> None:
    if trace_steps is None:
        return
    if len(trace_steps) >= trace_max_steps:
        if trace_meta is not None:
            trace_meta["truncated"] = True
        return
    trace_steps.append(
        {
            "event": event,
            "message": message,
            "depth": depth,
            "row": row,
            "col": col,
            "value": value,
            "grid": [grid_row[:] for grid_row in grid],
        }
    )


def format_grid_rows(grid: Grid) -> list[str]:
    return ["".join(CELL_SYMBOLS[value] for value in row) for row in grid]


def color_name(value: Optional[int]) -> str:
    if value is None:
        return "unknown"
    return "black" if value == BLACK else "white"
