from satmicro.utils.check import check_model, is_model

CLAUSES = [[1, -2], [2, 3], [-1, -3]]


class TestCheckModel:

    def test_valid_model(self):
        model = {1: True, 2: True, 3: False}
        assert check_model(CLAUSES, model) == []
        assert is_model(CLAUSES, model)

    def test_violated_clauses_are_returned(self):
        model = {1: True, 2: False, 3: True}
        assert check_model(CLAUSES, model) == [[-1, -3]]
        assert not is_model(CLAUSES, model)

    def test_missing_variable_satisfies_nothing(self):
        assert check_model([[1], [-1]], {}) == [[1], [-1]]

    def test_empty_clause_is_never_satisfied(self):
        assert check_model([[]], {1: True}) == [[]]

    def test_no_clauses(self):
        assert is_model([], {})
