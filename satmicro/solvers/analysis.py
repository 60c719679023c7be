import logging
from typing import List, NamedTuple, Optional

from .cnf import Clause, Literal
from .errors import Inconsistent
from .trail import Trail, TrailEntry

logger = logging.getLogger(__name__)


class Analysis(NamedTuple):
    """
    Result of analysing a conflict.

    Attributes:
        clause: clause implied by the formula that becomes unit after the backjump, None when
                the conflict is at level 0
        backjump_level: level to undo to, -1 when the formula is unsatisfiable
        asserting: the literal `clause` forces once the trail is undone to `backjump_level`
        learn: whether `clause` is added to the formula or only justifies the asserting literal
    """
    clause: Optional[Clause]
    backjump_level: int
    asserting: Optional[Literal]
    learn: bool

    @property
    def is_unsat(self) -> bool:
        return self.backjump_level < 0


UNSAT = Analysis(None, -1, None, False)


class Analyser:
    def analyze(self, conflict: Clause, trail: Trail) -> Analysis:
        raise NotImplementedError


class ChronologicalAnalyser(Analyser):
    """
    Plain DPLL: undo the most recent decision and flip it.

    The flipped literal is justified by the clause made of the negations of every decision on
    the trail, which the exhausted branch proves.
    """

    def analyze(self, conflict: Clause, trail: Trail) -> Analysis:
        level = trail.level
        if level == 0:
            return UNSAT
        decisions = trail.decisions()
        clause = Clause(entry.literal.negate() for entry in decisions)
        return Analysis(clause, level - 1, decisions[-1].literal.negate(), False)


def relevant_decisions(conflict: Clause, trail: Trail) -> List[TrailEntry]:
    """
    Decisions the conflict depends on, found by walking the implication graph backward.

    Level 0 literals are facts and are not followed.

    Return:
        the decision entries, sorted by level
    """
    seen = set()
    stack = list(conflict.literals)
    decisions = []
    while stack:
        var = stack.pop().var
        if var in seen:
            continue
        seen.add(var)
        entry = trail.entry_of(var)
        if entry is None:
            raise Inconsistent(f"conflict depends on unassigned variable {var}")
        if entry.level == 0:
            continue
        if entry.is_decision:
            decisions.append(entry)
        else:
            stack.extend(lit for lit in entry.antecedent if lit.var != var)
    decisions.sort(key=lambda entry: entry.level)
    return decisions


class BackjumpAnalyser(Analyser):
    """
    Backjumping without learning.

    Only the decisions actually reached from the conflict in the implication graph matter. The
    deepest of them is flipped at the level of the next deepest one, skipping every decision in
    between. The justifying clause is kept on the trail as antecedent only.
    """

    def analyze(self, conflict: Clause, trail: Trail) -> Analysis:
        if trail.level == 0:
            return UNSAT
        decisions = relevant_decisions(conflict, trail)
        if not decisions:
            return UNSAT
        clause = Clause(entry.literal.negate() for entry in decisions)
        backjump_level = decisions[-2].level if len(decisions) > 1 else 0
        if trail.level - backjump_level > 1:
            logger.debug("backjump skips %d level(s)", trail.level - backjump_level - 1)
        return Analysis(clause, backjump_level, decisions[-1].literal.negate(), False)


class FirstUipAnalyser(Analyser):
    """
    CDCL: resolve the conflict clause backward along the trail until a single literal of the
    conflict level remains (the first unique implication point).

    Literals assigned at level 0 are dropped from the learned clause since their negations are
    consequences of the formula.
    """

    def analyze(self, conflict: Clause, trail: Trail) -> Analysis:
        level = trail.level
        if level == 0:
            return UNSAT

        seen = set()
        lower: List[Literal] = []
        counter = 0
        idx = len(trail) - 1
        reason = conflict
        while True:
            for lit in reason:
                var = lit.var
                if var in seen:
                    continue
                seen.add(var)
                lit_level = trail.level_of(var)
                if lit_level == level:
                    counter += 1
                elif lit_level > 0:
                    lower.append(lit)

            if counter == 0:
                raise Inconsistent(f"conflict {conflict} has no literal at level {level}")

            # Next literal to resolve on: the latest seen one on the trail.
            while trail[idx].literal.var not in seen:
                idx -= 1
            entry = trail[idx]
            idx -= 1
            counter -= 1
            if counter == 0:
                break
            reason = entry.antecedent

        asserting = entry.literal.negate()
        learned = Clause([asserting] + lower)
        backjump_level = max((trail.level_of(lit.var) for lit in lower), default=0)
        return Analysis(learned, backjump_level, asserting, True)


ANALYSERS = {
    "plain": ChronologicalAnalyser,
    "backjump": BackjumpAnalyser,
    "cdcl": FirstUipAnalyser,
}
