from typing import Optional, Union


Cell = Optional[int]
Line = list[Optional[int]]
Grid = list[list[Optional[int]]]
RunSequence = tuple[int, ...]
RunsInput = Union[str, list[int], tuple[int, ...]]
LineVerdicts = list[Optional[int]]
TraceLog = list[str]
TraceStep = dict[str, object]
Contradiction = dict[str, object]
PassReport = dict[str, object]
SolveResult = dict[str, object]
ProgressState = dict[str, int]
Status = str
