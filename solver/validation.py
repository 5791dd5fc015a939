from typing import Optional, Sequence

from rules.rules import CELL_VALUES

from .errors import DimensionMismatchError
from .runs import normalize_runs
from .types import Grid, RunSequence, RunsInput


def validate_and_normalize_runs(row_runs: Sequence[RunsInput], col_runs: Sequence[RunsInput]) -> tuple[list[RunSequence], list[RunSequence]]:
    if not isinstance(row_runs, (list, tuple)) or not isinstance(col_runs, (list, tuple)):
        raise ValueError("row_runs and col_runs must be lists")
    if len(row_runs) == 0 or len(col_runs) == 0:
        raise DimensionMismatchError("a puzzle needs at least one row and one column")

    normalized_rows = [normalize_runs(runs) for runs in row_runs]
    normalized_cols = [normalize_runs(runs) for runs in col_runs]
    return normalized_rows, normalized_cols


def validate_and_normalize_known_grid(rows: int, cols: int, known_grid: Optional[Grid]) -> Grid:
    if known_grid is None:
        return [[None for _ in range(cols)] for _ in range(rows)]

    if not isinstance(known_grid, list) or len(known_grid) != rows:
        raise DimensionMismatchError(f"known_grid must have {rows} rows to match row_runs")

    normalized_grid: Grid = []
    for row in known_grid:
        if not isinstance(row, list) or len(row) != cols:
            raise DimensionMismatchError(f"every known_grid row must have {cols} cells to match col_runs")

        normalized_row = []
        for value in row:
            if value is None:
                normalized_row.append(None)
                continue
            if isinstance(value, bool) or not isinstance(value, int) or value not in CELL_VALUES:
                raise ValueError("known_grid entries must be 1 (black), 0 (white) or None (unknown)")
            normalized_row.append(value)

        normalized_grid.append(normalized_row)

    return normalized_grid


def validate_solve_options(
    max_seconds: Optional[float],
    workers: Optional[int],
    trace_max_steps: int,
) -> None:
    if max_seconds is not None and max_seconds < 0:
        raise ValueError("max_seconds must be >= 0")
    if workers is not None and workers < 1:
        raise ValueError("workers must be >= 1")
    if trace_max_steps < 1:
        raise ValueError("trace_max_steps must be >= 1")
