import logging
from typing import Dict, List, Optional

from .cnf import Clause, ClauseStatus, Formula, Literal
from .trail import Trail

logger = logging.getLogger(__name__)


class Propagator:
    """
    Boolean constraint propagation over a formula.

    `propagate` pushes every literal forced by a unit clause onto the trail, with that clause as
    antecedent, until no clause is unit (returns None) or some clause is falsified (returns the
    clause). Which clause is reported when several are falsified is unspecified.
    """

    def __init__(self, formula: Formula):
        self.formula = formula
        self.propagations = 0

    def propagate(self, trail: Trail) -> Optional[Clause]:
        raise NotImplementedError

    def attach(self, clause: Clause, trail: Trail):
        """Start tracking a clause learned after the formula was handed to the propagator."""

    def backtracked(self, trail: Trail):
        """Called after the trail was undone to a lower level."""


class NaivePropagator(Propagator):
    """Rescans every clause until a full pass forces nothing new."""

    def propagate(self, trail: Trail) -> Optional[Clause]:
        changed = True
        while changed:
            changed = False
            for clause in self.formula:
                status, lit = clause.status(trail.assignment)
                if status is ClauseStatus.FALSIFIED:
                    return clause
                if status is ClauseStatus.UNIT:
                    trail.push(lit, clause)
                    self.propagations += 1
                    changed = True
        return None


class Watcher:
    """
    A clause seen through its two watched literals.

    Attributes:
        clause: the watched clause
        lits: mutable copy of the clause literals, lits[0] and lits[1] being watched
    """
    __slots__ = ['clause', 'lits']

    def __init__(self, clause: Clause, lits: List[Literal]):
        self.clause = clause
        self.lits = lits


class WatchedPropagator(Propagator):
    """
    Two-watched-literal propagation.

    A clause is only visited when one of its watched literals becomes false. Watches survive
    backtracking untouched; only the queue head into the trail is rewound. Clauses with fewer
    than two literals cannot be watched and are checked on every call instead.
    """

    def __init__(self, formula: Formula):
        super().__init__(formula)
        self._watches: Dict[Literal, List[Watcher]] = {}
        self._short: List[Clause] = []
        self._qhead = 0
        for clause in formula:
            self._watch(clause, list(clause.literals))

    def _watch(self, clause: Clause, lits: List[Literal]):
        if len(lits) < 2:
            self._short.append(clause)
            return
        watcher = Watcher(clause, lits)
        self._watches.setdefault(lits[0], []).append(watcher)
        self._watches.setdefault(lits[1], []).append(watcher)

    def attach(self, clause: Clause, trail: Trail):
        """
        Watch a learned clause.

        The clause is expected to have exactly one unassigned literal (the asserting one) and
        all others false; the asserting literal and the deepest false literal get the watches.
        """
        lits = list(clause.literals)
        if len(lits) >= 2:
            lits.sort(key=lambda lit: (trail.value_of(lit) is not None,
                                       -trail.level_of(lit.var) if trail.is_assigned(lit.var) else 0))
        self._watch(clause, lits)

    def backtracked(self, trail: Trail):
        self._qhead = min(self._qhead, len(trail))

    def propagate(self, trail: Trail) -> Optional[Clause]:
        for clause in self._short:
            if not clause.literals:
                return clause
            lit = clause.literals[0]
            val = trail.value_of(lit)
            if val is False:
                return clause
            if val is None:
                trail.push(lit, clause)
                self.propagations += 1

        while self._qhead < len(trail):
            false_lit = trail[self._qhead].literal.negate()
            self._qhead += 1
            watchers = self._watches.get(false_lit)
            if not watchers:
                continue

            i = 0
            while i < len(watchers):
                watcher = watchers[i]
                lits = watcher.lits
                if lits[0] == false_lit:
                    lits[0], lits[1] = lits[1], lits[0]
                other = lits[0]
                if trail.value_of(other) is True:
                    i += 1
                    continue

                moved = False
                for j in range(2, len(lits)):
                    if trail.value_of(lits[j]) is not False:
                        lits[1], lits[j] = lits[j], lits[1]
                        self._watches.setdefault(lits[1], []).append(watcher)
                        watchers[i] = watchers[-1]
                        watchers.pop()
                        moved = True
                        break
                if moved:
                    continue

                if trail.value_of(other) is False:
                    self._qhead = len(trail)
                    return watcher.clause
                trail.push(other, watcher.clause)
                self.propagations += 1
                i += 1
        return None


PROPAGATORS = {
    "naive": NaivePropagator,
    "watched": WatchedPropagator,
}


def make_propagator(name: str, formula: Formula) -> Propagator:
    if name not in PROPAGATORS:
        raise ValueError(f"Propagation must be one of {list(PROPAGATORS)}")
    return PROPAGATORS[name](formula)
