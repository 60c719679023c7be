class MalformedClause(ValueError):
    """Raised when a clause mentions literal 0 or a variable outside 1..N."""


class Tautology(MalformedClause):
    """Raised when a clause contains both a literal and its negation."""


class Inconsistent(AssertionError):
    """
    Raised when the trail is asked to assign a variable the opposite of its current value.

    Propagation and conflict analysis never do this, so seeing it means a bug in the solver.
    """
