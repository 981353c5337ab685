"""Summarise and plot CSV output from ``--mode multi_run_timing`` runs."""

from __future__ import annotations

import argparse
import os
import sys
from typing import Optional, Sequence

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt  # noqa: E402
import numpy as np  # noqa: E402
import pandas as pd  # noqa: E402
import seaborn as sns  # noqa: E402

BASELINE = "sequential"
NUMERIC_COLS = ["N", "K", "threads", "rep", "time_sec"]
RUNTIME_PLOT = "strategy_runtime.png"
SPEEDUP_PLOT = "strategy_speedup.png"


def load_dataframe(path: str) -> pd.DataFrame:
    df = pd.read_csv(path, na_values=["NA", "nan"])

    missing = [col for col in ["strategy"] + NUMERIC_COLS if col not in df.columns]
    if missing:
        raise ValueError(f"CSV is missing columns: {', '.join(missing)}")

    for col in NUMERIC_COLS:
        df[col] = pd.to_numeric(df[col], errors="coerce")

    return df.dropna(subset=["threads", "time_sec"])


def summarize(df: pd.DataFrame) -> pd.DataFrame:
    """Mean time per (strategy, N, K, threads) with speedup over the sequential run."""
    summary = (
        df.groupby(["strategy", "N", "K", "threads"], as_index=False)["time_sec"]
        .mean()
        .rename(columns={"time_sec": "avg_time_sec"})
    )

    baseline = summary[summary["strategy"] == BASELINE][["N", "K", "threads", "avg_time_sec"]]
    baseline = baseline.rename(columns={"avg_time_sec": "baseline_sec"})
    summary = summary.merge(baseline, on=["N", "K", "threads"], how="left")
    summary["speedup"] = (
        summary["baseline_sec"]
        .div(summary["avg_time_sec"])
        .replace([np.inf, -np.inf], np.nan)
    )
    return summary.drop(columns=["baseline_sec"]).sort_values(["N", "K", "threads", "strategy"])


def _ensure_plot_dir(path: str) -> None:
    if not os.path.exists(path):
        os.makedirs(path, exist_ok=True)


def plot_summary(summary: pd.DataFrame, plot_dir: str) -> list[str]:
    _ensure_plot_dir(plot_dir)
    saved = []

    for metric, title, ylabel, filename in [
        ("avg_time_sec", "Runtime vs. Thread Count", "Seconds (lower is better)", RUNTIME_PLOT),
        ("speedup", "Speedup over Sequential", "Sequential / Strategy", SPEEDUP_PLOT),
    ]:
        fig, ax = plt.subplots(figsize=(10, 6))
        sns.lineplot(data=summary, x="threads", y=metric, hue="strategy", marker="o", ax=ax)
        ax.set_title(title)
        ax.set_xlabel("NUMBA_NUM_THREADS")
        ax.set_ylabel(ylabel)
        ax.grid(True, linestyle="--", linewidth=0.5, alpha=0.6)

        plt.tight_layout()
        output_path = os.path.join(plot_dir, filename)
        fig.savefig(output_path, dpi=200, bbox_inches="tight")
        plt.close(fig)
        print(f"Saved plot: {output_path}")
        saved.append(output_path)

    return saved


def print_best_configuration(summary: pd.DataFrame) -> None:
    data = summary[summary["strategy"] != BASELINE].dropna(subset=["speedup"])
    if data.empty:
        return

    best_row = data.loc[data["speedup"].idxmax()]
    print(
        f"Best speedup: {best_row['strategy']} at threads={int(best_row['threads'])}, "
        f"{best_row['speedup']:.2f}x"
    )


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Analyse VJ benchmark timing CSV")
    parser.add_argument("csv", help="CSV written by --mode multi_run_timing")
    parser.add_argument("--plot-dir", default=None, help="Directory to save plots into")
    args = parser.parse_args(argv)

    try:
        df = load_dataframe(args.csv)
    except FileNotFoundError:
        print(f"Error: '{args.csv}' not found.", file=sys.stderr)
        sys.exit(1)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    if df.empty:
        print("No valid benchmark rows found in the CSV.", file=sys.stderr)
        sys.exit(1)

    print(f"Loaded {len(df)} rows from '{args.csv}'.")
    summary = summarize(df)
    print(summary.to_string(index=False))
    print_best_configuration(summary)

    if args.plot_dir:
        plot_summary(summary, args.plot_dir)
    return 0


if __name__ == "__main__":
    sys.exit(main())
