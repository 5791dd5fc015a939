class InvalidRunError(ValueError):
    """A run length is zero or negative."""


class DimensionMismatchError(ValueError):
    """Run sequence counts disagree with the grid they describe."""


class UnsolvableInitialStateError(ValueError):
    """Propagation proves the puzzle as given has no solution."""
