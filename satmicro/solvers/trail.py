from typing import Dict, Iterator, List, Optional

from .cnf import Assignment, Clause, Literal
from .errors import Inconsistent


class TrailEntry:
    """
    Class used to store the information about an assigned literal.

    Attributes:
        literal: the literal made true
        level: decision level at which the literal was assigned
        antecedent: the clause that forced the literal, None for a decision
        index: position of the entry on the trail
    """
    __slots__ = ['literal', 'level', 'antecedent', 'index']

    def __init__(self, literal: Literal, level: int, antecedent: Optional[Clause], index: int):
        self.literal = literal
        self.level = level
        self.antecedent = antecedent
        self.index = index

    @property
    def is_decision(self) -> bool:
        return self.antecedent is None

    def __repr__(self):
        reason = "decision" if self.antecedent is None else str(self.antecedent)
        return f"TrailEntry({self.literal}@{self.level}, {reason})"


class Trail:
    """
    Ordered record of assigned literals.

    Every literal is stored with its decision level and antecedent, in the order it was
    assigned, so the trail is a topological order of the implication graph. The trail owns the
    assignment: `assignment` is a read-only view for clause queries.
    """

    def __init__(self):
        self._entries: List[TrailEntry] = []
        self._by_var: Dict[int, TrailEntry] = {}
        self._level_starts: List[int] = []
        self.assignment: Assignment = {}

    @property
    def level(self) -> int:
        """The current decision level."""
        return len(self._level_starts)

    def __len__(self):
        return len(self._entries)

    def __iter__(self) -> Iterator[TrailEntry]:
        return iter(self._entries)

    def __getitem__(self, idx) -> TrailEntry:
        return self._entries[idx]

    def new_decision_level(self):
        self._level_starts.append(len(self._entries))

    def push(self, literal: Literal, antecedent: Optional[Clause]) -> TrailEntry:
        """
        Assign a literal at the current decision level.

        Pushing a literal that already holds is a no-op returning the existing entry.

        Raises:
            Inconsistent: if the variable currently holds the opposite value
        """
        existing = self._by_var.get(literal.var)
        if existing is not None:
            if existing.literal != literal:
                raise Inconsistent(
                    f"cannot assign {literal}, trail already holds {existing.literal}")
            return existing
        entry = TrailEntry(literal, self.level, antecedent, len(self._entries))
        self._entries.append(entry)
        self._by_var[literal.var] = entry
        self.assignment[literal.var] = not literal.negated
        return entry

    def undo_to(self, level: int) -> List[TrailEntry]:
        """
        Pop every entry assigned above `level`.

        Return:
            the popped entries, most recent first
        """
        if level < 0:
            raise ValueError(f"cannot undo to negative level {level}")
        if level >= self.level:
            return []
        start = self._level_starts[level]
        popped = self._entries[start:]
        popped.reverse()
        for entry in popped:
            del self._by_var[entry.literal.var]
            del self.assignment[entry.literal.var]
        del self._entries[start:]
        del self._level_starts[level:]
        return popped

    def entry_of(self, var: int) -> Optional[TrailEntry]:
        return self._by_var.get(var)

    def level_of(self, var: int) -> int:
        """Decision level of an assigned variable; KeyError if unassigned."""
        return self._by_var[var].level

    def antecedent_of(self, var: int) -> Optional[Clause]:
        """Antecedent of an assigned variable, None for decisions; KeyError if unassigned."""
        return self._by_var[var].antecedent

    def value_of(self, literal: Literal) -> Optional[bool]:
        return literal.value(self.assignment)

    def is_assigned(self, var: int) -> bool:
        return var in self._by_var

    def decisions(self) -> List[TrailEntry]:
        """Decision entries, one per level above 0, in level order."""
        return [self._entries[start] for start in self._level_starts]

    def model(self, num_vars: int) -> Dict[int, bool]:
        """
        Total model over 1..num_vars.

        Variables that are still unassigned (unconstrained) get False.
        """
        return {var: self.assignment.get(var, False) for var in range(1, num_vars + 1)}

    def __repr__(self):
        return "Trail(" + ", ".join(
            f"{entry.literal}@{entry.level}{'d' if entry.is_decision else ''}"
            for entry in self._entries) + ")"
