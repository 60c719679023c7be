import logging
import time
from dataclasses import asdict, dataclass, field
from enum import Enum, auto
from typing import Dict, Iterable, List, Optional, Sequence, Union

from .analysis import ANALYSERS, Analysis
from .cnf import Clause, Formula
from .decision import Decider
from .propagation import make_propagator
from .trail import Trail

logger = logging.getLogger(__name__)


class Variant(Enum):
    """DPLL variations, each one extending the previous."""
    PLAIN = "plain"
    BACKJUMP = "backjump"
    CDCL = "cdcl"

    @classmethod
    def names(cls) -> List[str]:
        return [variant.value for variant in cls]

    @classmethod
    def from_name(cls, name: str) -> "Variant":
        try:
            return cls(name)
        except ValueError:
            raise ValueError(f"Variant must be one of {cls.names()}") from None

    @property
    def description(self) -> str:
        return DESCRIPTIONS[self]


DESCRIPTIONS = {
    Variant.PLAIN: "Plain DPLL with chronological backtracking",
    Variant.BACKJUMP: "DPLL with non-chronological backjumping",
    Variant.CDCL: "DPLL with backjumping and clause learning",
}


class State(Enum):
    SEARCH = auto()
    CONFLICT = auto()
    SAT = auto()
    UNSAT = auto()


@dataclass(frozen=True)
class Satisfiable:
    """Total model over 1..N. The model is compared but not hashed."""
    model: Dict[int, bool] = field(hash=False)
    verdict = "SAT"

    @property
    def is_sat(self) -> bool:
        return True

    def to_dimacs(self) -> List[int]:
        return [var if value else -var for var, value in sorted(self.model.items())]


@dataclass(frozen=True)
class Unsatisfiable:
    verdict = "UNSAT"

    @property
    def is_sat(self) -> bool:
        return False


@dataclass(frozen=True)
class Unknown:
    """Only produced by budgeted drivers such as `solve_within`."""
    reason: str = ""
    verdict = "UNKNOWN"

    @property
    def is_sat(self) -> Optional[bool]:
        return None


Outcome = Union[Satisfiable, Unsatisfiable, Unknown]


@dataclass
class Stats:
    decisions: int = 0
    conflicts: int = 0
    propagations: int = 0
    learned: int = 0
    backjumps: int = 0
    skipped_levels: int = 0
    max_level: int = 0

    def as_dict(self) -> Dict[str, int]:
        return asdict(self)


class DpllSolver:
    """
    DPLL search as an explicit state machine over a single trail.

    The three variants share propagation and decisions and only differ in how a conflict is
    analysed:
      - "plain":    chronological backtracking on the last decision
      - "backjump": jump back to the deepest decision the conflict depends on, no learning
      - "cdcl":     first-UIP clause learning, the learned clause is added to the formula

    Public Methods:
        step(): performs one state transition and returns the new state
        solve(): runs to completion and returns Satisfiable(model) or Unsatisfiable()
    """

    def __init__(self, formula: Formula, variant: str = "cdcl", strategy: str = "ordered",
                 propagation: str = "watched"):
        '''
        Parameters:
            formula: the formula to decide; CDCL appends its learned clauses to it
            variant: "plain", "backjump" or "cdcl"
            strategy: decision heuristic, "ordered" or "jeroslow"
            propagation: "naive" full rescans or "watched" two-watched-literal scheme
        '''
        self.variant = Variant.from_name(variant)
        self.formula = formula
        self.trail = Trail()
        self.propagator = make_propagator(propagation, formula)
        self.decider = Decider(formula, strategy)
        self.analyser = ANALYSERS[self.variant.value]()
        self.state = State.SEARCH
        self.stats = Stats()
        self._conflict: Optional[Clause] = None

    @property
    def is_done(self) -> bool:
        return self.state in (State.SAT, State.UNSAT)

    def step(self) -> State:
        """Perform a single transition of the state machine."""
        if self.state is State.SEARCH:
            self._search()
        elif self.state is State.CONFLICT:
            self._resolve_conflict()
        return self.state

    def _search(self):
        conflict = self.propagator.propagate(self.trail)
        self.stats.propagations = self.propagator.propagations
        if conflict is not None:
            self.stats.conflicts += 1
            self._conflict = conflict
            self.state = State.CONFLICT
            logger.debug("conflict on %s at level %d", conflict, self.trail.level)
            return

        if len(self.trail) == self.formula.num_vars:
            self.state = State.SAT
            return

        lit = self.decider.pick(self.trail)
        if lit is None:
            self.state = State.SAT
            return
        self.trail.new_decision_level()
        self.trail.push(lit, None)
        self.stats.decisions += 1
        self.stats.max_level = max(self.stats.max_level, self.trail.level)
        logger.debug("decide %s at level %d", lit, self.trail.level)

    def _resolve_conflict(self):
        analysis: Analysis = self.analyser.analyze(self._conflict, self.trail)
        self._conflict = None
        if analysis.is_unsat:
            self.state = State.UNSAT
            logger.debug("conflict at level 0, formula is unsatisfiable")
            return

        skipped = self.trail.level - analysis.backjump_level - 1
        if skipped > 0:
            self.stats.backjumps += 1
            self.stats.skipped_levels += skipped

        self.trail.undo_to(analysis.backjump_level)
        self.propagator.backtracked(self.trail)
        if analysis.learn:
            self.formula.add_learned(analysis.clause)
            self.propagator.attach(analysis.clause, self.trail)
            self.stats.learned += 1
            logger.debug("learned %s", analysis.clause)
        self.trail.push(analysis.asserting, analysis.clause)
        logger.debug("backjump to level %d, asserting %s", analysis.backjump_level,
                     analysis.asserting)
        self.state = State.SEARCH

    def outcome(self) -> Outcome:
        if self.state is State.SAT:
            return Satisfiable(self.trail.model(self.formula.num_vars))
        if self.state is State.UNSAT:
            return Unsatisfiable()
        return Unknown("search not finished")

    def solve(self) -> Outcome:
        """
        Run the state machine until it reaches Sat or Unsat.

        Return:
            Satisfiable(model) or Unsatisfiable()
        """
        while not self.is_done:
            self.step()
        logger.info("%s: %s after %d decision(s), %d conflict(s)", self.variant.value,
                    self.state.name, self.stats.decisions, self.stats.conflicts)
        return self.outcome()


def solve(clauses: Iterable[Sequence[int]], num_vars: int, variant: str = "cdcl",
          strategy: str = "ordered", propagation: str = "watched") -> Outcome:
    """
    Decide a formula given as DIMACS integer clauses.

    Raises:
        MalformedClause: on literal 0 or a variable outside 1..num_vars
    """
    formula = Formula.from_dimacs(clauses, num_vars)
    return DpllSolver(formula, variant, strategy, propagation).solve()


def solve_within(solver: DpllSolver, timeout: Optional[float] = None,
                 max_conflicts: Optional[int] = None) -> Outcome:
    """
    Drive a solver under a budget, stopping between transitions.

    Parameters:
        solver: the solver to run, possibly already partly run
        timeout: wall-clock budget in seconds, None for no limit
        max_conflicts: conflict budget, None for no limit

    Return:
        the solver outcome, or Unknown if a budget ran out first
    """
    deadline = None if timeout is None else time.perf_counter() + timeout
    while not solver.is_done:
        if max_conflicts is not None and solver.stats.conflicts >= max_conflicts:
            return Unknown(f"conflict limit {max_conflicts} reached")
        if deadline is not None and time.perf_counter() >= deadline:
            return Unknown(f"timeout after {timeout}s")
        solver.step()
    return solver.outcome()
