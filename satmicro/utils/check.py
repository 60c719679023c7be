from typing import Dict, List, Sequence


def check_model(clauses: Sequence[Sequence[int]], model: Dict[int, bool]) -> List[Sequence[int]]:
    """
    Check a model against DIMACS integer clauses.

    Return:
        the clauses not satisfied by the model, empty when the model is valid
    """
    violated = []
    for clause in clauses:
        if not any(model.get(abs(lit)) == (lit > 0) for lit in clause):
            violated.append(clause)
    return violated


def is_model(clauses, model) -> bool:
    return not check_model(clauses, model)
