from typing import Sequence

from rules.rules import (
    EXTENDED_RUN_BASE,
    EXTENDED_RUN_LAST,
    LOWERCASE_RUN_BASE,
    LOWERCASE_RUN_LAST,
    MAX_DIGIT_RUN,
)

from .errors import InvalidRunError
from .types import RunSequence, RunsInput


MAX_ENCODED_RUN = ord(EXTENDED_RUN_LAST) - ord(EXTENDED_RUN_BASE) + MAX_DIGIT_RUN + 1


def parse_runs(encoded: str) -> RunSequence:
    """Decode the compact one-symbol-per-run form, e.g. "73117" or "1313A2".

    "1313a2" decodes the same as "1313A2".
    """
    runs: list[int] = []
    for position, symbol in enumerate(encoded):
        if "0" <= symbol <= "9":
            length = int(symbol)
        elif EXTENDED_RUN_BASE <= symbol <= EXTENDED_RUN_LAST:
            length = ord(symbol) - ord(EXTENDED_RUN_BASE) + MAX_DIGIT_RUN + 1
        elif LOWERCASE_RUN_BASE <= symbol <= LOWERCASE_RUN_LAST:
            length = ord(symbol) - ord(LOWERCASE_RUN_BASE) + MAX_DIGIT_RUN + 1
        else:
            raise InvalidRunError(f"run symbol {symbol!r} at position {position} is not a run length")
        if length <= 0:
            raise InvalidRunError(f"run symbol {symbol!r} at position {position} does not encode a positive length")
        runs.append(length)
    return tuple(runs)


def encode_runs(runs: Sequence[int]) -> str:
    symbols: list[str] = []
    for length in runs:
        if length <= 0:
            raise InvalidRunError(f"run length must be positive, got {length}")
        if length > MAX_ENCODED_RUN:
            raise InvalidRunError(f"run length {length} is too long for the compact form (max {MAX_ENCODED_RUN})")
        if length <= MAX_DIGIT_RUN:
            symbols.append(str(length))
        else:
            symbols.append(chr(ord(EXTENDED_RUN_BASE) + length - MAX_DIGIT_RUN - 1))
    return "".join(symbols)


def normalize_runs(value: RunsInput) -> RunSequence:
    if isinstance(value, str):
        return parse_runs(value)
    if not isinstance(value, (list, tuple)):
        raise ValueError("run sequences must be a string or a list of integers")

    runs: list[int] = []
    for length in value:
        if isinstance(length, bool) or not isinstance(length, int):
            raise ValueError("run lengths must be integers")
        if length <= 0:
            raise InvalidRunError(f"run length must be positive, got {length}")
        runs.append(length)
    return tuple(runs)


def run_count(runs: RunSequence) -> int:
    return len(runs)


def head_length(runs: RunSequence) -> int:
    return runs[0] if runs else 0


def tail(runs: RunSequence) -> RunSequence:
    return runs[1:]


def min_line_length(runs: RunSequence) -> int:
    if not runs:
        return 0
    return sum(runs) + len(runs) - 1
