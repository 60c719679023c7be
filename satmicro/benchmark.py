import os
import re
import csv
import json
import atexit
import concurrent.futures
from pathlib import Path
from statistics import mean

from satmicro.utils.parser import read_cnf
from satmicro.utils.timer import Timer
from satmicro.utils.memory import MemoryTracker
from satmicro.utils.check import is_model

from satmicro.solvers.cnf import Formula
from satmicro.solvers.dpll import DpllSolver, solve_within

TIMEOUT = 300
# Extra time the parent waits for a worker that overran its own budget.
GRACE = 5
CNF_ROOT = "benchmarks"
RESULTS_DIR = "results"
PROPAGATION = "watched"

SOLVERS = {
    "plain": ["ordered"],
    "backjump": ["ordered"],
    "cdcl": ["ordered", "jeroslow"],
}

CSV_HEADER = [
    "solver", "folder", "avg_time", "min_time", "max_time",
    "avg_mem", "min_mem", "max_mem", "inconclusive", "failed", "decisions", "conflicts"
]

stats = {}
backup_path = os.path.join(RESULTS_DIR, "backup.tmp")


def save_backup():
    if not os.path.isdir(os.path.dirname(backup_path)):
        return
    with open(backup_path, "w") as f:
        json.dump(stats, f, indent=2)


def load_backup():
    global stats
    if os.path.exists(backup_path):
        print(">> Resuming from previous backup...")
        try:
            with open(backup_path, "r") as f:
                stats = json.load(f)
        except json.JSONDecodeError:
            print(">> Error loading backup file, starting fresh")
            stats = {}


def _run_instance(variant, clauses, num_vars, strategy, propagation=PROPAGATION, timeout=None):
    """
    Solve one instance inside a worker process.

    Return:
        (verdict, model_ok, decisions, conflicts, elapsed, min_mem, avg_mem, max_mem) where
        verdict is True, False or None (budget exhausted)
    """
    with MemoryTracker() as mem, Timer() as timer:
        formula = Formula.from_dimacs(clauses, num_vars)
        solver = DpllSolver(formula, variant, strategy, propagation)
        outcome = solve_within(solver, timeout=timeout)

    model_ok = is_model(clauses, outcome.model) if outcome.is_sat else True
    return (outcome.is_sat, model_ok, solver.stats.decisions, solver.stats.conflicts,
            timer.elapsed, mem.min_usage, mem.avg_usage, mem.max_usage)


def group_by_folder(paths):
    groups = {}
    for p in sorted(paths):
        folder = p.parent.name
        groups.setdefault(folder, []).append(p)
    return groups


def expected_verdict(folder):
    """
    Expected satisfiability of a benchmark folder, from SATLIB naming.

    The name is split into tokens on `-`, `_`, `.` and spaces. A `uf*` token or a trailing `sat`
    token (`pret60_sat`) marks a satisfiable set, a `uuf*` token or a trailing `unsat` token an
    unsatisfiable one. Leading `sat` (`sat-comp-2023`) says nothing. None when unknown.
    """
    tokens = [token for token in re.split(r"[-_. ]+", folder.lower()) if token]
    if not tokens:
        return None
    if any(token.startswith("uuf") for token in tokens) or tokens[-1] == "unsat":
        return False
    if any(token.startswith("uf") for token in tokens) or tokens[-1] == "sat":
        return True
    return None


def get_next_csv_path(base_path):
    if not os.path.exists(base_path):
        return base_path
    index = 1
    while True:
        new_path = base_path.replace(".csv", f" ({index}).csv")
        if not os.path.exists(new_path):
            return new_path
        index += 1


def _new_folder_stats():
    return {
        "times": [],
        "mems": [],
        "mem_min": float('inf'),
        "mem_max": float('-inf'),
        "inconclusive": 0,
        "failed": 0,
        "completed": False,
        "completed_tests": 0,
        "csv_ready_data": [],
        "consecutive_timeouts": 0,
        "decisions": 0,
        "conflicts": 0
    }


def benchmark_all(cnf_root=CNF_ROOT, results_dir=RESULTS_DIR, solvers=None, timeout=TIMEOUT,
                  propagation=PROPAGATION):
    """
    Run every (variant, strategy) pair on every instance under `cnf_root`.

    Return:
        (stats, csv_path)
    """
    global stats, backup_path
    solvers = SOLVERS if solvers is None else solvers
    os.makedirs(results_dir, exist_ok=True)
    backup_path = os.path.join(results_dir, "backup.tmp")
    stats = {}
    folder_groups = group_by_folder(Path(cnf_root).rglob("*.cnf"))
    folders = list(folder_groups.keys())

    load_backup()

    csv_path = get_next_csv_path(os.path.join(results_dir, "benchmark.csv"))
    print(f">> Results will be written to: {csv_path}")

    with open(csv_path, "w", newline="") as csvfile:
        writer = csv.writer(csvfile)
        writer.writerow(CSV_HEADER)

        for solver_name, strat_data in stats.items():
            for strat, folder_data in strat_data.items():
                for folder, data in folder_data.items():
                    for row in data.get("csv_ready_data", []):
                        writer.writerow(row)
                        csvfile.flush()

        with concurrent.futures.ProcessPoolExecutor(max_workers=1) as executor:
            for solver_name, strategies in solvers.items():
                for strat in strategies:
                    label = f"{solver_name}-{strat}"
                    print(f"\n=== {label.upper()} ===")

                    strat_stats = stats.setdefault(solver_name, {}).setdefault(strat, {})

                    for folder in folders:
                        folder_stats = strat_stats.setdefault(folder, _new_folder_stats())

                        if folder_stats["completed"]:
                            print(f">> Skipping completed: {label} - {folder}")
                            continue

                        expected = expected_verdict(folder)
                        test_files = folder_groups[folder]
                        total_tests = len(test_files)
                        start_idx = len(folder_stats["times"]) + folder_stats["inconclusive"] + \
                            folder_stats["failed"]
                        if start_idx != folder_stats["completed_tests"]:
                            print(f">> Adjusting start index from {folder_stats['completed_tests']} "
                                  f"to {start_idx} based on actual data")
                            folder_stats["completed_tests"] = start_idx

                        for idx in range(start_idx, total_tests):
                            path = test_files[idx]
                            if folder_stats["consecutive_timeouts"] >= 10:
                                print(f">> 10+ consecutive timeouts in {folder}, skipping remaining")
                                folder_stats["inconclusive"] += total_tests - idx
                                folder_stats["completed_tests"] = total_tests
                                break

                            t_elapsed = 0.0
                            mem_used = 0.0
                            decs = 0
                            try:
                                clauses, num_vars = read_cnf(path)
                                future = executor.submit(_run_instance, solver_name, clauses,
                                                         num_vars, strat, propagation, timeout)
                                (sat, model_ok, decs, confs, t_elapsed, min_mem, mem_used,
                                 max_mem) = future.result(timeout=timeout + GRACE)
                            except concurrent.futures.TimeoutError:
                                sat = None
                                model_ok = True
                                confs = 0
                            except Exception as e:
                                folder_stats["failed"] += 1
                                folder_stats["completed_tests"] = idx + 1
                                folder_stats["consecutive_timeouts"] = 0
                                print(f"{folder:10} {path.name:25} {'ERROR: ' + str(e):<12}")
                                save_backup()
                                continue

                            folder_stats["completed_tests"] = idx + 1
                            if sat is None:
                                folder_stats["inconclusive"] += 1
                                folder_stats["consecutive_timeouts"] += 1
                                status = "TIMEOUT"
                            elif not model_ok or (expected is not None and sat != expected):
                                folder_stats["failed"] += 1
                                folder_stats["consecutive_timeouts"] = 0
                                status = "WRONG MODEL" if not model_ok else f"WRONG: SAT? {sat}"
                            else:
                                folder_stats["times"].append(t_elapsed)
                                folder_stats["mems"].append(mem_used)
                                folder_stats["mem_min"] = min(folder_stats["mem_min"], min_mem)
                                folder_stats["mem_max"] = max(folder_stats["mem_max"], max_mem)
                                folder_stats["decisions"] += decs
                                folder_stats["conflicts"] += confs
                                folder_stats["consecutive_timeouts"] = 0
                                status = f"SAT? {sat}"

                            print(f"{folder:10} {path.name:25} {status:<12} "
                                  f"Time: {t_elapsed:9.6f}s Mem(avg): {mem_used:9.2f}KB "
                                  f"Decisions: {decs:<5} (Consecutive TOs: "
                                  f"{folder_stats['consecutive_timeouts']})")

                            save_backup()

                        if folder_stats["completed_tests"] == total_tests:
                            folder_stats["completed"] = True
                            if folder_stats["times"]:
                                solved = len(folder_stats["times"])
                                csv_row = [
                                    label,
                                    folder,
                                    f"{mean(folder_stats['times']):.6f}",
                                    f"{min(folder_stats['times']):.6f}",
                                    f"{max(folder_stats['times']):.6f}",
                                    f"{mean(folder_stats['mems']):.2f}",
                                    f"{folder_stats['mem_min']:.2f}",
                                    f"{folder_stats['mem_max']:.2f}",
                                    folder_stats["inconclusive"],
                                    folder_stats["failed"],
                                    f"{folder_stats['decisions'] / solved:.2f}",
                                    f"{folder_stats['conflicts'] / solved:.2f}"
                                ]

                                writer.writerow(csv_row)
                                csvfile.flush()
                                folder_stats["csv_ready_data"].append(csv_row)

                            save_backup()

    return stats, csv_path


def print_summary(stats):
    for solver_name, strat_data in stats.items():
        for strat, folder_data in strat_data.items():
            label = f"{solver_name}-{strat}"
            print(f"\n--- Summary for {label.upper()} ---")
            print(f"{'Folder':15} {'AVG(s)':>10} {'MIN(s)':>10} {'MAX(s)':>10} "
                  f"{'AVG(KB)':>10} {'MIN(KB)':>10} {'MAX(KB)':>10} "
                  f"{'INC':>4} {'FAIL':>5} {'AVG DEC':>8} {'AVG CONF':>9}")

            for folder, data in folder_data.items():
                if data.get("csv_ready_data"):
                    row = data["csv_ready_data"][0]
                    print(f"{folder:15} {row[2]:>10} {row[3]:>10} {row[4]:>10} "
                          f"{row[5]:>10} {row[6]:>10} {row[7]:>10} "
                          f"{row[8]:>4} {row[9]:>5} {row[10]:>8} {row[11]:>9}")
                else:
                    print(f"{folder:15} {'-':>10} {'-':>10} {'-':>10} "
                          f"{'-':>10} {'-':>10} {'-':>10} "
                          f"{data.get('inconclusive', 0):4d} {data.get('failed', 0):5d} "
                          f"{'-':>8} {'-':>9}")


def main():
    atexit.register(save_backup)
    try:
        result, _ = benchmark_all()
    finally:
        save_backup()
    print_summary(result)


if __name__ == "__main__":
    main()
