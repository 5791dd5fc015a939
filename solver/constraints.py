from typing import Optional

from rules.rules import BLACK, WHITE

from .runs import min_line_length
from .types import Line, LineVerdicts, RunSequence


BLACK_SEEN = 1
WHITE_SEEN = 2

# A trace group is [trace_count, path]. Each path entry is a bitmask of the
# colors the merged traces gave that cell.
TraceGroup = list
TraceTable = dict[int, TraceGroup]


def sweep_line(runs: RunSequence, line: Line) -> Optional[TraceGroup]:
    """Walk the line left to right, extending every live trace by a white cell
    or by the next run, and return the group of complete traces.

    Live traces are bucketed by the position they occupy and by the index of
    the next run they still have to place. Traces that agree on both can only
    be extended the same way, so they are merged: their counts add up and their
    per-cell color masks are OR-ed. The verdicts computed from a merged group
    match the ones from the individual traces.

    Returns None when no placement of the runs fits the known cells.
    """
    length = len(line)
    if min_line_length(runs) > length:
        return None

    run_total = len(runs)
    live: list[TraceTable] = [{} for _ in range(length + 1)]
    live[0][0] = [1, []]

    for position in range(length):
        cell = line[position]
        for run_index, (count, path) in live[position].items():
            if cell != BLACK:
                _merge_trace(live[position + 1], run_index, count, path + [WHITE_SEEN])

            if cell == WHITE or run_index >= run_total:
                continue

            run_end = position + runs[run_index]
            if not _run_fits(line, position, run_end):
                continue

            if run_index + 1 < run_total:
                # More runs follow, so the cell after this one is a mandatory gap.
                if run_end >= length:
                    continue
                successor = path + [BLACK_SEEN] * runs[run_index] + [WHITE_SEEN]
                _merge_trace(live[run_end + 1], run_index + 1, count, successor)
            else:
                successor = path + [BLACK_SEEN] * runs[run_index]
                _merge_trace(live[run_end], run_index + 1, count, successor)

    return live[length].get(run_total)


def line_verdicts(runs: RunSequence, line: Line) -> tuple[LineVerdicts, int]:
    complete = sweep_line(runs, line)
    if complete is None:
        return [None] * len(line), 0

    count, path = complete
    verdicts: LineVerdicts = []
    for seen in path:
        if seen == BLACK_SEEN:
            verdicts.append(BLACK)
        elif seen == WHITE_SEEN:
            verdicts.append(WHITE)
        else:
            verdicts.append(None)
    return verdicts, count


def _run_fits(line: Line, start: int, end: int) -> bool:
    length = len(line)
    if end > length:
        return False
    if start > 0 and line[start - 1] == BLACK:
        return False
    if end < length and line[end] == BLACK:
        return False
    return all(line[i] != WHITE for i in range(start, end))


def _merge_trace(traces: TraceTable, run_index: int, count: int, path: list[int]) -> None:
    existing = traces.get(run_index)
    if existing is None:
        traces[run_index] = [count, path]
        return
    existing[0] += count
    existing[1] = [left | right for left, right in zip(existing[1], path)]
