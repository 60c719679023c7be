import itertools
import random


def models(clauses, num_vars):
    """Every total model of the clauses, by enumeration."""
    for values in itertools.product([False, True], repeat=num_vars):
        model = {var: values[var - 1] for var in range(1, num_vars + 1)}
        if all(any(model[abs(lit)] == (lit > 0) for lit in clause) for clause in clauses):
            yield model


def brute_force_sat(clauses, num_vars):
    return next(models(clauses, num_vars), None) is not None


def random_cnf(rng, num_vars, num_clauses, width=3):
    clauses = []
    for _ in range(num_clauses):
        chosen = rng.sample(range(1, num_vars + 1), min(width, num_vars))
        clauses.append([var if rng.random() < 0.5 else -var for var in chosen])
    return clauses


def random_instances(seed, count):
    """Small random 3-CNF instances around the satisfiability threshold."""
    rng = random.Random(seed)
    instances = []
    for _ in range(count):
        num_vars = rng.randint(3, 8)
        num_clauses = rng.randint(num_vars, int(5 * num_vars))
        instances.append((random_cnf(rng, num_vars, num_clauses), num_vars))
    return instances
