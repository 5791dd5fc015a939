import argparse
import json
import xml.etree.ElementTree as ElementTree
from pathlib import Path
from solver.errors import InvalidRunError
from solver.solver import propagate_nonogram, solve_nonogram
from solver.utils import format_grid_rows
from typing import Any, Optional


Puzzle = tuple[list[Any], list[Any], Optional[list[list[Optional[int]]]]]


def run(
    row_runs: list[Any],
    col_runs: list[Any],
    known_grid: Optional[list[list[Optional[int]]]] = None,
    max_seconds: Optional[float] = None,
    workers: Optional[int] = None,
) -> dict[str, object]:
    # boundary validation
    if not isinstance(row_runs, list) or not row_runs:
        raise ValueError("row_runs must be a non-empty list")
    if not isinstance(col_runs, list) or not col_runs:
        raise ValueError("col_runs must be a non-empty list")
    if max_seconds is not None and max_seconds < 0:
        raise ValueError("max_seconds must be >= 0")

    return solve_nonogram(
        row_runs=row_runs,
        col_runs=col_runs,
        known_grid=known_grid,
        max_seconds=max_seconds,
        use_multiprocessing=workers is not None,
        workers=workers,
    )


def run_with_trace(
    row_runs: list[Any],
    col_runs: list[Any],
    known_grid: Optional[list[list[Optional[int]]]] = None,
    max_seconds: Optional[float] = None,
    workers: Optional[int] = None,
) -> tuple[dict[str, object], list[str]]:
    trace_log: list[str] = []
    result = solve_nonogram(
        row_runs=row_runs,
        col_runs=col_runs,
        known_grid=known_grid,
        max_seconds=max_seconds,
        use_multiprocessing=workers is not None,
        workers=workers,
        trace=True,
        trace_log=trace_log,
    )
    return result, trace_log


def load_puzzle_from_file(input_path: str) -> Puzzle:
    path = Path(input_path)
    try:
        payload: Any = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise ValueError(f"input file not found: {input_path}") from exc
    except json.JSONDecodeError as exc:
        raise ValueError(f"input file is not valid JSON: {input_path}") from exc

    if not isinstance(payload, dict):
        raise ValueError("JSON root must be an object")

    row_runs = payload.get("row_runs")
    col_runs = payload.get("col_runs")
    known_grid = payload.get("known_grid")
    if row_runs is None:
        raise ValueError("JSON must include 'row_runs'")
    if col_runs is None:
        raise ValueError("JSON must include 'col_runs'")

    return row_runs, col_runs, known_grid


def load_webpbn_puzzle(input_path: str) -> Puzzle:
    """Read a puzzle saved from webpbn.com's XML export.

    Only the column and row clue blocks are used; every cell starts unknown.
    """
    path = Path(input_path)
    try:
        root = ElementTree.fromstring(path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise ValueError(f"input file not found: {input_path}") from exc
    except ElementTree.ParseError as exc:
        raise ValueError(f"input file is not valid XML: {input_path}") from exc

    runs_by_type: dict[str, list[list[int]]] = {"rows": [], "columns": []}
    for clues in root.iter("clues"):
        clue_type = (clues.get("type") or "").lower()
        if clue_type not in runs_by_type:
            continue
        for line in clues.iter("line"):
            counts: list[int] = []
            for count in line.iter("count"):
                try:
                    length = int((count.text or "").strip())
                except ValueError as exc:
                    raise ValueError(f"webpbn count is not an integer: {count.text!r}") from exc
                if length <= 0:
                    raise InvalidRunError("Run length is zero or negative")
                counts.append(length)
            runs_by_type[clue_type].append(counts)

    if not runs_by_type["rows"] or not runs_by_type["columns"]:
        raise ValueError("webpbn puzzle must contain both row and column clues")

    return runs_by_type["rows"], runs_by_type["columns"], None


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Solve a nonogram (picross) puzzle")
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--input", help="Path to a JSON file with row_runs, col_runs and optional known_grid")
    source.add_argument("--webpbn", help="Path to a puzzle in webpbn.com XML format")
    parser.add_argument("--trace", action="store_true", help="Include solver trace output")
    parser.add_argument("--propagate-only", action="store_true", help="Stop at the propagation fixed point")
    parser.add_argument("--max-seconds", type=float, default=None, help="Time budget for the lookahead search")
    parser.add_argument("--workers", type=int, default=None, help="Explore search branches in this many worker processes")
    return parser


if __name__ == "__main__":
    args = _build_parser().parse_args()

    try:
        if args.input:
            row_runs, col_runs, known_grid = load_puzzle_from_file(args.input)
        else:
            row_runs, col_runs, known_grid = load_webpbn_puzzle(args.webpbn)

        trace_log: Optional[list[str]] = None
        if args.propagate_only:
            trace_log = [] if args.trace else None
            result = propagate_nonogram(row_runs, col_runs, known_grid, trace=args.trace, trace_log=trace_log)
            result.pop("pass_reports")
        elif args.trace:
            result, trace_log = run_with_trace(
                row_runs, col_runs, known_grid, max_seconds=args.max_seconds, workers=args.workers
            )
        else:
            result = run(row_runs, col_runs, known_grid, max_seconds=args.max_seconds, workers=args.workers)

        output = dict(result)
        output["grid_rows"] = format_grid_rows(result["grid"])
        if trace_log is not None:
            output["trace"] = trace_log
        print(json.dumps(output, indent=2))
    except ValueError as exc:
        raise SystemExit(f"Error: {exc}")
