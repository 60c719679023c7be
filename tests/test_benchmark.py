import csv
from pathlib import Path

import pytest

from satmicro import benchmark
from satmicro.benchmark import (benchmark_all, expected_verdict, get_next_csv_path,
                                group_by_folder, _run_instance)

SAT_CNF = "p cnf 3 3\n1 2 0\n-1 3 0\n-2 -3 0\n"
UNSAT_CNF = "p cnf 2 4\n1 2 0\n-1 2 0\n1 -2 0\n-1 -2 0\n"


@pytest.fixture
def cnf_root(tmp_path):
    root = tmp_path / "benchmarks"
    for folder, text in (("uf3", SAT_CNF), ("uuf3", UNSAT_CNF)):
        (root / folder).mkdir(parents=True)
        for idx in (1, 2):
            (root / folder / f"{folder}-0{idx}.cnf").write_text(text)
    return root


class TestHelpers:

    @pytest.mark.parametrize("folder,expected", [
        ("uf50", True), ("UF20", True), ("uuf50", False), ("sat", True), ("unsat", False),
        ("pigeons", None), ("satlib-uuf50", False), ("sat-comp-2023", None),
        ("pret60_unsat", False), ("flat50_sat", True), ("uf50-218", True),
    ])
    def test_expected_verdict(self, folder, expected):
        assert expected_verdict(folder) is expected

    def test_group_by_folder(self):
        paths = [Path("b/uuf/2.cnf"), Path("b/uf/1.cnf"), Path("b/uuf/1.cnf")]
        assert group_by_folder(paths) == {
            "uf": [Path("b/uf/1.cnf")],
            "uuf": [Path("b/uuf/1.cnf"), Path("b/uuf/2.cnf")],
        }

    def test_next_csv_path(self, tmp_path):
        base = str(tmp_path / "benchmark.csv")
        assert get_next_csv_path(base) == base
        Path(base).write_text("")
        assert get_next_csv_path(base) == str(tmp_path / "benchmark (1).csv")
        (tmp_path / "benchmark (1).csv").write_text("")
        assert get_next_csv_path(base) == str(tmp_path / "benchmark (2).csv")


class TestRunInstance:

    def test_sat(self):
        sat, model_ok, decisions, conflicts, elapsed, min_mem, avg_mem, max_mem = _run_instance(
            "cdcl", [[1, 2], [-1, 3], [-2, -3]], 3, "ordered")
        assert sat is True
        assert model_ok
        assert elapsed >= 0
        assert min_mem <= avg_mem <= max_mem

    @pytest.mark.parametrize("variant", ["plain", "backjump", "cdcl"])
    def test_unsat(self, variant):
        result = _run_instance(variant, [[1, 2], [-1, 2], [1, -2], [-1, -2]], 2, "jeroslow",
                               "naive")
        assert result[0] is False
        assert result[3] > 0

    def test_budget_exhausted(self):
        result = _run_instance("plain", [[1, 2], [-1, 2], [1, -2], [-1, -2]], 2, "ordered",
                               timeout=0)
        assert result[0] is None


class TestBenchmarkAll:

    def test_small_run(self, cnf_root, tmp_path, capsys):
        results = tmp_path / "results"
        stats, csv_path = benchmark_all(str(cnf_root), str(results), solvers={"cdcl": ["ordered"]},
                                        timeout=30)

        folders = stats["cdcl"]["ordered"]
        assert set(folders) == {"uf3", "uuf3"}
        for data in folders.values():
            assert data["completed"]
            assert len(data["times"]) == 2
            assert data["failed"] == 0
            assert data["inconclusive"] == 0

        with open(csv_path, newline="") as f:
            rows = list(csv.reader(f))
        assert rows[0] == benchmark.CSV_HEADER
        assert [row[:2] for row in rows[1:]] == [["cdcl-ordered", "uf3"],
                                                 ["cdcl-ordered", "uuf3"]]
        assert (results / "backup.tmp").exists()

        benchmark.print_summary(stats)
        out = capsys.readouterr().out
        assert "Summary for CDCL-ORDERED" in out

    def test_wrong_verdict_counts_as_failed(self, tmp_path):
        root = tmp_path / "benchmarks"
        (root / "uuf2").mkdir(parents=True)
        (root / "uuf2" / "mislabelled.cnf").write_text(SAT_CNF)
        stats, _ = benchmark_all(str(root), str(tmp_path / "results"),
                                 solvers={"plain": ["ordered"]}, timeout=30)
        data = stats["plain"]["ordered"]["uuf2"]
        assert data["failed"] == 1
        assert data["times"] == []

    def test_unreadable_instance_counts_as_failed(self, tmp_path):
        root = tmp_path / "benchmarks"
        (root / "uf1").mkdir(parents=True)
        (root / "uf1" / "broken.cnf").write_text("p cnf 1 1\n1 2 0\n")
        stats, _ = benchmark_all(str(root), str(tmp_path / "results"),
                                 solvers={"backjump": ["ordered"]}, timeout=30)
        assert stats["backjump"]["ordered"]["uf1"]["failed"] == 1
