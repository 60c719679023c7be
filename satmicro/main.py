import argparse
import logging
import sys

from satmicro.solvers.cnf import Formula
from satmicro.solvers.decision import Decider
from satmicro.solvers.dpll import DpllSolver, Variant, solve_within
from satmicro.solvers.errors import MalformedClause
from satmicro.solvers.propagation import PROPAGATORS
from satmicro.utils.check import check_model
from satmicro.utils.parser import ParseError, read_cnf
from satmicro.utils.timer import Timer

logger = logging.getLogger("satmicro")

EXIT_OK = 0
EXIT_MISMATCH = 1
EXIT_ERROR = 2


def on_off(value):
    if value in ("on", "true", "On", "True"):
        return True
    if value in ("off", "false", "Off", "False"):
        return False
    raise argparse.ArgumentTypeError(f"expected boolean `on|true|off|false`, got `{value}`")


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        prog="satmicro",
        description="DPLL, backjumping and CDCL SAT solving on DIMACS CNF files")
    parser.add_argument("file", metavar="FILE", help="input file (DIMACS CNF, optionally .xz)")
    parser.add_argument("-v", "--verbose", action="count", default=0,
                        help="increases verbosity, repeat for debug output")
    parser.add_argument("--variant", choices=Variant.names() + ["all"], default="cdcl",
                        help="DPLL variant to run, `all` runs each of them")
    parser.add_argument("--strategy", choices=Decider.STRATEGIES, default="ordered",
                        help="decision heuristic")
    parser.add_argument("--propagation", choices=list(PROPAGATORS), default="watched",
                        help="unit propagation scheme")
    parser.add_argument("--expect", choices=["sat", "unsat"],
                        help="the result expected, a different verdict is reported as an error")
    parser.add_argument("--check", type=on_off, default=False, metavar="on|off",
                        help="(de)activates model checking")
    parser.add_argument("-t", "--timeout", type=int, metavar="MS",
                        help="timeout in milliseconds for each variant")
    parser.add_argument("--model", action="store_true", help="print the model on SAT")
    args = parser.parse_args(argv)
    if args.timeout is not None and args.timeout < 0:
        parser.error("timeout must be >= 0")
    return args


def setup_logging(verbosity):
    level = {0: logging.WARNING, 1: logging.INFO}.get(verbosity, logging.DEBUG)
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def run_variant(clauses, num_vars, variant, args):
    """Solve with one variant and report; returns an exit status."""
    formula = Formula.from_dimacs(clauses, num_vars)
    solver = DpllSolver(formula, variant, args.strategy, args.propagation)
    timeout = None if args.timeout is None else args.timeout / 1000
    with Timer() as timer:
        outcome = solve_within(solver, timeout=timeout)

    label = Variant(variant).description
    print(f"c {label}: {timer.elapsed:.6f}s, {solver.stats.decisions} decision(s), "
          f"{solver.stats.conflicts} conflict(s), {solver.stats.learned} learned")
    if outcome.is_sat is None:
        print("s UNKNOWN")
        return EXIT_OK
    print("s SATISFIABLE" if outcome.is_sat else "s UNSATISFIABLE")

    status = EXIT_OK
    if outcome.is_sat:
        if args.model:
            print("v " + " ".join(str(lit) for lit in outcome.to_dimacs()) + " 0")
        if args.check:
            violated = check_model(clauses, outcome.model)
            if violated:
                logger.error("model falsifies %d clause(s), first one: %s", len(violated), violated[0])
                status = EXIT_MISMATCH
            else:
                logger.info("model checked against %d clause(s)", len(clauses))
    if args.expect is not None and args.expect != ("sat" if outcome.is_sat else "unsat"):
        logger.error("expected %s, got %s", args.expect, outcome.verdict.lower())
        status = EXIT_MISMATCH
    return status


def main(argv=None):
    args = parse_args(argv)
    setup_logging(args.verbose)

    try:
        logger.debug("parsing %s", args.file)
        clauses, num_vars = read_cnf(args.file)
        logger.debug("done parsing %d clause(s) over %d variable(s)", len(clauses), num_vars)
        variants = Variant.names() if args.variant == "all" else [args.variant]
        status = EXIT_OK
        for variant in variants:
            status = max(status, run_variant(clauses, num_vars, variant, args))
        return status
    except (OSError, ParseError, MalformedClause) as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_ERROR


if __name__ == "__main__":
    sys.exit(main())
