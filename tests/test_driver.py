"""Tests for the benchmark runner: equivalence checks, demo and CLI."""

from __future__ import annotations

import re

import numpy as np
import pytest

from numba_vj import driver
from numba_vj.config import BenchConfig
from numba_vj.driver import (CSV_HEADER, EquivalenceError, check_equivalence, demo, get_run_time,
                             main)

TIMING_LINE = re.compile(r"^(.+) run time: (\d+) ms$")


def test_check_equivalence_exact():
    a = np.arange(9.0).reshape(3, 3)
    assert check_equivalence(a, a.copy(), "sequential", "row-parallel") == 0.0

    b = a.copy()
    b[2, 1] = np.nextafter(b[2, 1], np.inf)
    with pytest.raises(EquivalenceError) as excinfo:
        check_equivalence(a, b, "sequential", "row-parallel")
    err = excinfo.value
    assert err.reference == "sequential"
    assert err.candidate == "row-parallel"
    assert err.index == (2, 1)
    assert "row-parallel diverged from sequential" in str(err)
    assert isinstance(err, AssertionError)


def test_check_equivalence_tolerance():
    a = np.zeros((4, 4))
    b = a.copy()
    b[1, 3] = 0.5
    assert check_equivalence(a, b, "sequential", "atomic-parallel", tolerance=1.0) == 0.5

    b[0, 2] = 1.5
    with pytest.raises(EquivalenceError) as excinfo:
        check_equivalence(a, b, "sequential", "atomic-parallel", tolerance=1.0)
    assert excinfo.value.max_diff == 1.5
    assert excinfo.value.index == (0, 2)
    assert "1.5" in str(excinfo.value)


def test_get_run_time_is_whole_milliseconds():
    ms = get_run_time(lambda: None)
    assert isinstance(ms, int)
    assert ms >= 0


def test_demo_small_problem():
    result = demo(BenchConfig(length=12, iteration=5, seed=3))
    assert set(result.timings_ms) == {"sequential kernel", "row-parallel kernel",
                                      "atomic-parallel kernel"}
    assert result.max_diffs["row-parallel"] == 0.0
    assert result.max_diffs["atomic-parallel"] < 1.0


def test_demo_reports_divergence(monkeypatch):
    def broken_rows(matrix_vj, matrix_dm, reduce_ij, iteration):
        matrix_vj[0, 0] += 1.0
        return matrix_vj

    monkeypatch.setattr(driver, "parallel_calculate_rows", broken_rows)
    with pytest.raises(EquivalenceError, match="row-parallel diverged from sequential"):
        demo(BenchConfig(length=6, iteration=2, seed=1))


def test_config_rejects_iteration_above_length():
    with pytest.raises(ValueError):
        BenchConfig(length=4, iteration=5)
    assert BenchConfig(length=4, iteration=4).effective_fill_reps == 4
    assert BenchConfig(length=4, iteration=4, fill_reps=0).effective_fill_reps == 0


def test_main_single_run_prints_timings(capsys):
    assert main(["--length", "8", "--iteration", "3", "--seed", "9", "--fill-reps", "1"]) == 0
    lines = capsys.readouterr().out.strip().splitlines()
    labels = [TIMING_LINE.match(line).group(1) for line in lines]
    assert labels == [
        "sequential fill",
        "parallel fill",
        "sequential kernel",
        "row-parallel kernel",
        "atomic-parallel kernel",
        "total demo",
    ]


def test_main_timing_mode_prints_csv(capsys, restore_threads):
    assert main(["--length", "6", "--iteration", "2", "--mode", "multi_run_timing",
                 "--reps", "2", "--threads", "1"]) == 0
    lines = capsys.readouterr().out.strip().splitlines()
    assert lines[0] == CSV_HEADER
    rows = [line.split(",") for line in lines[1:]]
    assert len(rows) == 6
    assert [r[0] for r in rows[:3]] == ["sequential", "row_parallel", "atomic_parallel"]
    assert {r[4] for r in rows} == {"1", "2"}
    assert all(r[1:4] == ["6", "2", "1"] for r in rows)


def test_main_invalid_config_exits_with_usage_error():
    with pytest.raises(SystemExit) as excinfo:
        main(["--length", "4", "--iteration", "5"])
    assert excinfo.value.code == 2


def test_main_equivalence_failure_exits_nonzero(monkeypatch, capsys):
    def broken_atomic(matrix_vj, matrix_dm, reduce_ij, iteration):
        matrix_vj.fetch_add(1, 1, 50.0)
        return matrix_vj

    monkeypatch.setattr(driver, "warm_up", lambda: None)
    monkeypatch.setattr(driver, "parallel_calculate_atomic", broken_atomic)
    with pytest.raises(SystemExit) as excinfo:
        main(["--length", "4", "--iteration", "2", "--fill-reps", "0"])
    assert excinfo.value.code == 1
    assert "atomic-parallel diverged from sequential" in capsys.readouterr().err
