from typing import Optional, Sequence

from rules.rules import UNKNOWN

from .types import Grid, Line, RunSequence, RunsInput
from .validation import validate_and_normalize_known_grid, validate_and_normalize_runs


InitialState = tuple[Grid, list[RunSequence], list[RunSequence]]


def build_initial_state(
    row_runs: Sequence[RunsInput],
    col_runs: Sequence[RunsInput],
    known_grid: Optional[Grid],
) -> InitialState:
    rows, cols = validate_and_normalize_runs(row_runs, col_runs)
    grid = validate_and_normalize_known_grid(rows=len(rows), cols=len(cols), known_grid=known_grid)
    return grid, rows, cols


def clone_grid(grid: Grid) -> Grid:
    return [row[:] for row in grid]


def clone_with_cell(grid: Grid, r: int, c: int, value: int) -> Grid:
    clone = clone_grid(grid)
    clone[r][c] = value
    return clone


def row_line(grid: Grid, r: int) -> Line:
    return grid[r][:]


def column_line(grid: Grid, c: int) -> Line:
    return [row[c] for row in grid]


def count_unknown(grid: Grid) -> int:
    return sum(1 for row in grid for value in row if value is UNKNOWN)


def unknown_positions(grid: Grid) -> list[tuple[int, int]]:
    return [(r, c) for r, row in enumerate(grid) for c, value in enumerate(row) if value is UNKNOWN]
