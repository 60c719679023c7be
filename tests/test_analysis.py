import pytest

from satmicro.solvers.analysis import (BackjumpAnalyser, ChronologicalAnalyser,
                                       FirstUipAnalyser, relevant_decisions)
from satmicro.solvers.cnf import Formula, Literal
from satmicro.solvers.propagation import NaivePropagator
from satmicro.solvers.trail import Trail


def run_to_conflict(clauses, num_vars, decisions):
    """Decide the given literals in order, propagating after each, and return the conflict."""
    formula = Formula.from_dimacs(clauses, num_vars)
    trail = Trail()
    propagator = NaivePropagator(formula)
    conflict = propagator.propagate(trail)
    for lit in decisions:
        assert conflict is None
        trail.new_decision_level()
        trail.push(Literal.from_int(lit), None)
        conflict = propagator.propagate(trail)
    assert conflict is not None
    return conflict, trail


def lits(clause):
    return set(clause.to_ints())


# x2 is irrelevant to the conflict reached by deciding x1, x2, x3.
IRRELEVANT_MIDDLE = ([[-1, -3, 4], [-1, -3, -4]], 4, [1, 2, 3])
# Deciding x5 then x1 forces x2, x3, x4 and falsifies the last clause; x2 is the first UIP.
UIP_BELOW_DECISION = ([[-1, 2], [-2, 3], [-2, 4], [-3, -4, -5]], 5, [5, 1])


class TestChronologicalAnalyser:

    def test_flips_last_decision(self):
        conflict, trail = run_to_conflict(*IRRELEVANT_MIDDLE)
        analysis = ChronologicalAnalyser().analyze(conflict, trail)
        assert analysis.backjump_level == 2
        assert analysis.asserting == Literal(3, True)
        assert lits(analysis.clause) == {-1, -2, -3}
        assert not analysis.learn

    def test_level_zero_conflict(self):
        conflict, trail = run_to_conflict([[1], [-1]], 1, [])
        assert ChronologicalAnalyser().analyze(conflict, trail).is_unsat


class TestBackjumpAnalyser:

    def test_skips_irrelevant_decision(self):
        conflict, trail = run_to_conflict(*IRRELEVANT_MIDDLE)
        analysis = BackjumpAnalyser().analyze(conflict, trail)
        assert analysis.backjump_level == 1
        assert analysis.asserting == Literal(3, True)
        assert lits(analysis.clause) == {-1, -3}
        assert not analysis.learn

    def test_flips_deepest_relevant_decision(self):
        conflict, trail = run_to_conflict(*UIP_BELOW_DECISION)
        analysis = BackjumpAnalyser().analyze(conflict, trail)
        assert analysis.backjump_level == 1
        assert analysis.asserting == Literal(1, True)
        assert lits(analysis.clause) == {-5, -1}

    def test_level_zero_facts_are_not_decisions(self):
        clauses = [[1], [-1, -2, 3], [-1, -2, -3]]
        conflict, trail = run_to_conflict(clauses, 4, [4, 2])
        assert [entry.literal for entry in relevant_decisions(conflict, trail)] == [Literal(2)]
        analysis = BackjumpAnalyser().analyze(conflict, trail)
        assert analysis.backjump_level == 0
        assert analysis.asserting == Literal(2, True)
        assert lits(analysis.clause) == {-2}

    def test_asserting_clause_is_unit_after_backjump(self):
        conflict, trail = run_to_conflict(*IRRELEVANT_MIDDLE)
        analysis = BackjumpAnalyser().analyze(conflict, trail)
        trail.undo_to(analysis.backjump_level)
        status, lit = analysis.clause.status(trail.assignment)
        assert lit == analysis.asserting

    def test_level_zero_conflict(self):
        conflict, trail = run_to_conflict([[1], [-1, 2], [-2, -1]], 2, [])
        assert BackjumpAnalyser().analyze(conflict, trail).is_unsat


class TestFirstUipAnalyser:

    def test_decision_is_uip(self):
        conflict, trail = run_to_conflict(*IRRELEVANT_MIDDLE)
        analysis = FirstUipAnalyser().analyze(conflict, trail)
        assert analysis.learn
        assert analysis.backjump_level == 1
        assert analysis.asserting == Literal(3, True)
        assert lits(analysis.clause) == {-1, -3}

    def test_implied_literal_is_uip(self):
        conflict, trail = run_to_conflict(*UIP_BELOW_DECISION)
        analysis = FirstUipAnalyser().analyze(conflict, trail)
        assert analysis.asserting == Literal(2, True)
        assert lits(analysis.clause) == {-2, -5}
        assert analysis.backjump_level == 1

    def test_unit_learned_clause_jumps_to_level_zero(self):
        conflict, trail = run_to_conflict([[-1, 2], [-1, -2]], 3, [3, 1])
        analysis = FirstUipAnalyser().analyze(conflict, trail)
        assert lits(analysis.clause) == {-1}
        assert analysis.backjump_level == 0

    def test_learned_clause_has_one_literal_at_conflict_level(self):
        conflict, trail = run_to_conflict(*UIP_BELOW_DECISION)
        level = trail.level
        analysis = FirstUipAnalyser().analyze(conflict, trail)
        at_level = [lit for lit in analysis.clause if trail.level_of(lit.var) == level]
        assert at_level == [analysis.asserting]
        assert analysis.clause.is_falsified(trail.assignment)

    @pytest.mark.parametrize("analyser", [ChronologicalAnalyser, BackjumpAnalyser,
                                          FirstUipAnalyser])
    def test_empty_clause_is_unsat(self, analyser):
        conflict, trail = run_to_conflict([[]], 0, [])
        assert analyser().analyze(conflict, trail).is_unsat
