import logging
from enum import Enum, auto
from typing import Dict, Iterable, Iterator, List, NamedTuple, Optional, Sequence, Tuple

from .errors import MalformedClause, Tautology

logger = logging.getLogger(__name__)

Assignment = Dict[int, bool]


class Literal(NamedTuple):
    """A variable together with a polarity."""

    var: int
    negated: bool = False

    @staticmethod
    def from_int(lit: int) -> "Literal":
        """Build a literal from its signed DIMACS form, e.g. -3 is the negation of x3."""
        if lit == 0:
            raise MalformedClause("0 is not a literal")
        return Literal(abs(lit), lit < 0)

    def to_int(self) -> int:
        return -self.var if self.negated else self.var

    def negate(self) -> "Literal":
        return Literal(self.var, not self.negated)

    def __neg__(self) -> "Literal":
        return self.negate()

    def value(self, assignment: Assignment) -> Optional[bool]:
        """True if satisfied, False if falsified, None if the variable is unassigned."""
        val = assignment.get(self.var)
        if val is None:
            return None
        return val != self.negated

    def is_true(self, assignment: Assignment) -> bool:
        return self.value(assignment) is True

    def is_false(self, assignment: Assignment) -> bool:
        return self.value(assignment) is False

    def is_unassigned(self, assignment: Assignment) -> bool:
        return self.var not in assignment

    def __str__(self):
        return str(self.to_int())


class ClauseStatus(Enum):
    SATISFIED = auto()
    FALSIFIED = auto()
    UNIT = auto()
    UNRESOLVED = auto()


class Clause:
    """
    A disjunction of distinct literals.

    Attributes:
        literals: tuple of literals, duplicates removed, in first-seen order
        learnt: whether the clause was derived by conflict analysis
    """
    __slots__ = ['literals', 'learnt']

    def __init__(self, literals: Iterable[Literal], learnt: bool = False):
        lits = tuple(dict.fromkeys(literals))
        seen = set(lits)
        for lit in lits:
            if lit.negate() in seen:
                raise Tautology(f"clause contains both {lit} and {lit.negate()}")
        self.literals = lits
        self.learnt = learnt

    @classmethod
    def from_ints(cls, lits: Iterable[int], learnt: bool = False) -> "Clause":
        return cls((Literal.from_int(lit) for lit in lits), learnt)

    def to_ints(self) -> List[int]:
        return [lit.to_int() for lit in self.literals]

    def __len__(self):
        return len(self.literals)

    def __iter__(self) -> Iterator[Literal]:
        return iter(self.literals)

    def __contains__(self, lit):
        return lit in self.literals

    def __repr__(self):
        return f"Clause({self.to_ints()}{', learnt' if self.learnt else ''})"

    def __str__(self):
        return "(" + " ".join(str(lit) for lit in self.literals) + ")"

    def status(self, assignment: Assignment) -> Tuple[ClauseStatus, Optional[Literal]]:
        """
        Classify the clause under a partial assignment.

        Return:
            (status, literal) where literal is the single unassigned literal when the status is
            UNIT, and None otherwise
        """
        unassigned = None
        count = 0
        for lit in self.literals:
            val = lit.value(assignment)
            if val is True:
                return ClauseStatus.SATISFIED, None
            if val is None:
                count += 1
                unassigned = lit
        if count == 0:
            return ClauseStatus.FALSIFIED, None
        if count == 1:
            return ClauseStatus.UNIT, unassigned
        return ClauseStatus.UNRESOLVED, None

    def is_satisfied(self, assignment: Assignment) -> bool:
        return any(lit.is_true(assignment) for lit in self.literals)

    def is_falsified(self, assignment: Assignment) -> bool:
        return all(lit.is_false(assignment) for lit in self.literals)

    def is_unit(self, assignment: Assignment) -> bool:
        return self.status(assignment)[0] is ClauseStatus.UNIT


class Formula:
    """
    A CNF formula over the variables 1..num_vars.

    Input clauses are fixed once the formula is built; learned clauses are appended by CDCL and
    never removed.
    """

    def __init__(self, clauses: Iterable[Clause], num_vars: int):
        if num_vars < 0:
            raise ValueError(f"variable count must be >= 0, got {num_vars}")
        self.num_vars = num_vars
        self.clauses: List[Clause] = []
        self.learned: List[Clause] = []
        for clause in clauses:
            self._check_range(clause)
            self.clauses.append(clause)

    @classmethod
    def from_dimacs(cls, clauses: Iterable[Sequence[int]], num_vars: int) -> "Formula":
        """
        Build a formula from DIMACS-style integer clauses.

        Duplicate literals are merged and tautological clauses are dropped.

        Parameters:
            clauses: iterable of integer sequences, the sign giving the polarity
            num_vars: the variable count N

        Return:
            the formula

        Raises:
            MalformedClause: on literal 0 or a variable outside 1..N
        """
        built = []
        for idx, ints in enumerate(clauses):
            lits = [Literal.from_int(lit) for lit in ints]
            for lit in lits:
                if lit.var > num_vars:
                    raise MalformedClause(
                        f"clause {idx + 1} mentions variable {lit.var}, expected 1..{num_vars}")
            try:
                built.append(Clause(lits))
            except Tautology:
                logger.debug("dropping tautological clause %d: %s", idx + 1, list(ints))
        return cls(built, num_vars)

    def _check_range(self, clause: Clause):
        for lit in clause:
            if not 1 <= lit.var <= self.num_vars:
                raise MalformedClause(
                    f"{clause} mentions variable {lit.var}, expected 1..{self.num_vars}")

    def add_learned(self, clause: Clause):
        self._check_range(clause)
        clause.learnt = True
        self.learned.append(clause)

    def all_clauses(self) -> Iterator[Clause]:
        yield from self.clauses
        yield from self.learned

    def __iter__(self) -> Iterator[Clause]:
        return self.all_clauses()

    def __len__(self):
        return len(self.clauses) + len(self.learned)

    def to_dimacs(self) -> List[List[int]]:
        """The input clauses as integer lists, learned clauses excluded."""
        return [clause.to_ints() for clause in self.clauses]
