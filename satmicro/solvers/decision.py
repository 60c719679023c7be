from typing import List, Optional

from .cnf import Formula, Literal
from .trail import Trail


class Decider:
    """
    Deterministic branching heuristics.

    Strategies:
      - "ordered":  lowest-numbered unassigned variable, tried true first
      - "jeroslow": highest Jeroslow-Wang score over the input clauses, ties broken by the lower
                    variable; the polarity is the literal with the larger score
    """

    STRATEGIES = ["ordered", "jeroslow"]

    def __init__(self, formula: Formula, strategy: str = "ordered"):
        if strategy not in self.STRATEGIES:
            raise ValueError(f"Strategy must be one of {self.STRATEGIES}")
        self.strategy = strategy
        self._num_vars = formula.num_vars

        if strategy == "jeroslow":
            self._pos_scores: List[float] = [0.0] * (self._num_vars + 1)
            self._neg_scores: List[float] = [0.0] * (self._num_vars + 1)
            for clause in formula.clauses:
                weight = 2.0 ** (-len(clause))
                for lit in clause:
                    if lit.negated:
                        self._neg_scores[lit.var] += weight
                    else:
                        self._pos_scores[lit.var] += weight
            # Static scores, so the preference order can be computed once.
            self._order = sorted(
                range(1, self._num_vars + 1),
                key=lambda v: (-max(self._pos_scores[v], self._neg_scores[v]), v))

    def pick(self, trail: Trail) -> Optional[Literal]:
        """
        Choose the next decision literal.

        Return:
            the literal to assume, or None if every variable is assigned
        """
        if self.strategy == "ordered":
            for var in range(1, self._num_vars + 1):
                if not trail.is_assigned(var):
                    return Literal(var, False)
            return None

        for var in self._order:
            if not trail.is_assigned(var):
                return Literal(var, self._neg_scores[var] > self._pos_scores[var])
        return None
