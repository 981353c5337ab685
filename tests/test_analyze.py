"""Tests for the timing CSV analysis."""

from __future__ import annotations

import os

import pandas as pd
import pytest

from numba_vj.analyze import load_dataframe, main, plot_summary, summarize
from numba_vj.driver import CSV_HEADER

ROWS = [
    "sequential,64,8,1,1,4.0",
    "row_parallel,64,8,1,1,4.0",
    "atomic_parallel,64,8,1,1,8.0",
    "sequential,64,8,4,1,4.0",
    "sequential,64,8,4,2,4.0",
    "row_parallel,64,8,4,1,1.0",
    "row_parallel,64,8,4,2,1.0",
    "atomic_parallel,64,8,4,1,2.0",
]


@pytest.fixture
def timing_csv(tmp_path):
    path = tmp_path / "timings.csv"
    path.write_text("\n".join([CSV_HEADER] + ROWS) + "\n")
    return str(path)


def test_summarize_computes_speedup(timing_csv):
    summary = summarize(load_dataframe(timing_csv))
    row = summary[(summary["strategy"] == "row_parallel") & (summary["threads"] == 4)].iloc[0]
    assert row["avg_time_sec"] == pytest.approx(1.0)
    assert row["speedup"] == pytest.approx(4.0)

    atomic = summary[(summary["strategy"] == "atomic_parallel") & (summary["threads"] == 1)].iloc[0]
    assert atomic["speedup"] == pytest.approx(0.5)

    baseline = summary[summary["strategy"] == "sequential"]
    assert (baseline["speedup"] == 1.0).all()


def test_load_dataframe_missing_columns(tmp_path):
    path = tmp_path / "bad.csv"
    path.write_text("strategy,N\nsequential,4\n")
    with pytest.raises(ValueError, match="missing columns"):
        load_dataframe(str(path))


def test_plot_summary_writes_files(timing_csv, tmp_path):
    summary = summarize(load_dataframe(timing_csv))
    saved = plot_summary(summary, str(tmp_path / "plots"))
    assert len(saved) == 2
    assert all(os.path.exists(p) for p in saved)


def test_main_prints_best_configuration(timing_csv, capsys):
    assert main([timing_csv]) == 0
    out = capsys.readouterr().out
    assert "Loaded 8 rows" in out
    assert "Best speedup: row_parallel at threads=4, 4.00x" in out


def test_main_missing_file(tmp_path):
    with pytest.raises(SystemExit) as excinfo:
        main([str(tmp_path / "absent.csv")])
    assert excinfo.value.code == 1


def test_summary_is_dataframe(timing_csv):
    assert isinstance(summarize(load_dataframe(timing_csv)), pd.DataFrame)
