BLACK = 1
WHITE = 0
UNKNOWN = None

CELL_VALUES = (BLACK, WHITE, UNKNOWN)
CELL_SYMBOLS = {UNKNOWN: "?", BLACK: "#", WHITE: "."}

# Run lengths up to 9 are digits. 10 to 41 map to "A" through "`".
# Lowercase letters also decode, with "a" as 10.
MAX_DIGIT_RUN = 9
EXTENDED_RUN_BASE = "A"
EXTENDED_RUN_LAST = "`"
LOWERCASE_RUN_BASE = "a"
LOWERCASE_RUN_LAST = "z"

NOT_FINISHED = "not_finished"
COMPLETED = "completed"
FINISHED_VALID = "finished_valid"
FINISHED_INVALID = "finished_invalid"
INTERRUPTED = "interrupted"
NO_SOLUTION_FOUND = "no_solution_found"
