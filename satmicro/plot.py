import os
import sys

import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
from matplotlib.ticker import LogLocator, ScalarFormatter

NUMERIC_COLUMNS = ["avg_time", "min_time", "max_time", "avg_mem", "min_mem", "max_mem",
                   "decisions", "conflicts"]


def _log_axis(ax, numticks=12):
    ax.set_yscale('log')
    ax.yaxis.set_major_locator(LogLocator(base=10, numticks=numticks))
    ax.yaxis.set_minor_locator(LogLocator(base=10, subs=np.arange(2, 10) * 0.1, numticks=numticks))
    ax.yaxis.set_major_formatter(ScalarFormatter())
    ax.yaxis.grid(True, which='both', linestyle='--', alpha=0.3)


def _save(fig, ax, path):
    plt.setp(ax.get_xticklabels(), rotation=45, ha='right')
    fig.tight_layout()
    ax.legend(loc='upper left')
    fig.savefig(path)
    plt.close(fig)


def _range_bars(labels, avg, low, high, color, label, ylabel, title, path, numticks=12):
    """Bar chart of averages with min/max error bars on a log scale."""
    fig, ax = plt.subplots(figsize=(12, 7))
    yerr = [avg - low, high - avg]
    ax.bar(labels, avg, color=color, label=label)
    ax.errorbar(labels, avg, yerr=yerr, fmt='none', ecolor='black', capsize=5, linewidth=1,
                label="Min/Max Range")
    ax.set_ylabel(ylabel)
    ax.set_title(title)
    _log_axis(ax, numticks)
    _save(fig, ax, path)


def _plain_bars(labels, values, color, label, ylabel, title, path):
    fig, ax = plt.subplots(figsize=(12, 7))
    ax.bar(labels, values, color=color, label=label)
    ax.set_ylabel(ylabel)
    ax.set_title(title)
    _log_axis(ax)
    _save(fig, ax, path)


def load_results(csv_path, max_inconclusive=25):
    """Load the benchmark CSV, dropping rows with too many inconclusive runs."""
    df = pd.read_csv(csv_path)
    df = df[df["inconclusive"] <= max_inconclusive].copy()
    for column in NUMERIC_COLUMNS:
        df[column] = pd.to_numeric(df[column], errors='coerce')
    return df


def plot_results(csv_path, out_dir="results"):
    """
    Plot time, memory, decisions and conflicts per solver, overall and per benchmark folder.

    Return:
        list of written image paths
    """
    df = load_results(csv_path)
    os.makedirs(out_dir, exist_ok=True)
    written = []

    def out(name):
        path = os.path.join(out_dir, name)
        written.append(path)
        return path

    time_data = df.groupby("solver").agg(
        {"avg_time": "mean", "min_time": "min", "max_time": "max"}).sort_values("avg_time")
    _range_bars(time_data.index, time_data["avg_time"], time_data["min_time"],
                time_data["max_time"], "skyblue", "Average Time", "Average Time (s)",
                "Average Execution Time per Solver", out("avg_time_log.png"), numticks=15)

    mem_data = df.groupby("solver").agg(
        {"avg_mem": "mean", "min_mem": "min", "max_mem": "max"}).sort_values("avg_mem")
    _range_bars(mem_data.index, mem_data["avg_mem"], mem_data["min_mem"], mem_data["max_mem"],
                "salmon", "Average Memory", "Average Memory (KB)",
                "Average Memory Usage per Solver", out("avg_memory_log.png"))

    for column, color, title in (("decisions", "lightgreen", "Decisions"),
                                 ("conflicts", "khaki", "Conflicts")):
        counts = df.groupby("solver")[column].agg(["mean", "min", "max"]).sort_values("mean")
        _range_bars(counts.index, counts["mean"], counts["min"], counts["max"], color,
                    f"Average {title}", f"Average {title}",
                    f"Average Number of {title} per Solver", out(f"avg_{column}_log.png"))

    for folder in df["folder"].unique():
        sub_df = df[df["folder"] == folder].sort_values("avg_time")
        _range_bars(sub_df["solver"], sub_df["avg_time"], sub_df["min_time"], sub_df["max_time"],
                    "mediumseagreen", "Average Time", "Average Time (s)",
                    f"Avg Time - Folder: {folder}", out(f"avg_time_{folder}_log.png"))

        sub_df = sub_df.sort_values("avg_mem")
        _range_bars(sub_df["solver"], sub_df["avg_mem"], sub_df["min_mem"], sub_df["max_mem"],
                    "cornflowerblue", "Average Memory", "Average Memory (KB)",
                    f"Avg Memory Usage - Folder: {folder}", out(f"avg_memory_{folder}_log.png"))

        sub_df = sub_df.sort_values("decisions")
        _plain_bars(sub_df["solver"], sub_df["decisions"], "orchid", "Decisions",
                    "Average Decisions", f"Avg Decisions - Folder: {folder}",
                    out(f"avg_decisions_{folder}_log.png"))

    solver_order = df.groupby("solver")["avg_time"].mean().sort_values().index
    pivot_df = df.pivot_table(index='solver', columns='folder', values='avg_time', aggfunc='mean')
    pivot_df = pivot_df.reindex(solver_order)

    ax = pivot_df.plot(kind='bar', figsize=(14, 8), logy=True)
    ax.set_ylabel('Average Time (s) - Log Scale')
    ax.set_title('Solver Performance Comparison by Benchmark Folder')
    _log_axis(ax, numticks=15)
    _save(ax.get_figure(), ax, out("solver_comparison_log.png"))

    return written


if __name__ == "__main__":
    plot_results(sys.argv[1] if len(sys.argv) > 1 else "results/benchmark.csv")
