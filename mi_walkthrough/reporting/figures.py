from __future__ import annotations

from pathlib import Path

import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
from matplotlib.colors import ListedColormap

OBSERVED_COLOR = "#1f77b4"
MISSING_COLOR = "#d62728"


def save_figure(fig, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(path, dpi=300, bbox_inches="tight")
    plt.close(fig)


def plot_missingness_heatmap(df: pd.DataFrame, title: str = "Missing cells by row and column"):
    """Rows x columns image; missing cells are drawn in red."""

    missing = df.isna().to_numpy(dtype=int)
    fig, ax = plt.subplots(figsize=(max(4.0, 0.9 * df.shape[1] + 2.0), max(4.0, 0.18 * df.shape[0] + 1.5)))
    ax.imshow(
        missing,
        aspect="auto",
        interpolation="nearest",
        cmap=ListedColormap([OBSERVED_COLOR, MISSING_COLOR]),
        vmin=0,
        vmax=1,
    )
    ax.set_xticks(np.arange(df.shape[1]))
    ax.set_xticklabels(df.columns.astype(str).tolist())
    ax.set_ylabel("Row")
    ax.set_xlabel("Column")
    ax.set_title(title)
    fig.tight_layout()
    return fig


def plot_missing_pattern(pattern: pd.DataFrame, title: str = "Missing data pattern"):
    """Draw a `missing_pattern` table as a grid.

    Left axis: number of rows per pattern. Right axis: number of missing
    variables per pattern. Top axis: missing cells per variable.
    """

    if "total" not in pattern.index:
        raise ValueError("Expected the pattern table returned by missing_pattern() (no 'total' row).")
    variables = [c for c in pattern.columns if c not in {"count", "n_missing"}]
    body = pattern.drop(index="total")
    total = pattern.loc["total"]
    grid = body[variables].to_numpy(dtype=int)

    fig, ax = plt.subplots(figsize=(max(4.0, 1.0 * len(variables) + 2.5), max(2.5, 0.5 * len(body) + 1.5)))
    ax.imshow(
        grid,
        aspect="auto",
        interpolation="nearest",
        cmap=ListedColormap([MISSING_COLOR, OBSERVED_COLOR]),
        vmin=0,
        vmax=1,
    )
    ax.set_xticks(np.arange(len(variables)))
    ax.set_xticklabels([f"{v}\n({int(total[v])})" for v in variables])
    ax.set_yticks(np.arange(len(body)))
    ax.set_yticklabels(body["count"].astype(int).astype(str).tolist())
    ax.set_ylabel("Rows with pattern")
    ax.set_xticks(np.arange(len(variables) + 1) - 0.5, minor=True)
    ax.set_yticks(np.arange(len(body) + 1) - 0.5, minor=True)
    ax.grid(which="minor", color="white", linewidth=1.5)
    ax.tick_params(which="minor", length=0)

    right = ax.twinx()
    right.set_ylim(ax.get_ylim())
    right.set_yticks(np.arange(len(body)))
    right.set_yticklabels(body["n_missing"].astype(int).astype(str).tolist())
    right.set_ylabel("Missing variables")

    ax.set_title(f"{title} ({int(total['n_missing'])} missing cells)")
    fig.tight_layout()
    return fig


def plot_chain_means(result, title: str = "Mean of imputed values per iteration"):
    chain = result.chain_means
    if chain.empty:
        raise ValueError("No chain statistics recorded (dry run or nothing to impute).")
    variables = list(dict.fromkeys(chain["variable"].tolist()))

    fig, axes = plt.subplots(len(variables), 1, figsize=(7, 2.4 * len(variables)), sharex=True, squeeze=False)
    for ax, var in zip(axes[:, 0], variables):
        sub = chain.loc[chain["variable"] == var]
        for imp, g in sub.groupby("imputation", sort=True):
            ax.plot(g["iteration"], g["mean"], marker="o", markersize=3, label=f"imp {imp}")
        ax.set_ylabel(var)
    axes[-1, 0].set_xlabel("Iteration")
    axes[0, 0].set_title(title)
    axes[0, 0].legend(loc="best", fontsize=8, ncol=min(5, result.m))
    fig.tight_layout()
    return fig


def plot_imputed_vs_observed(result, column: str, bins: int = 10):
    if result.is_dry_run:
        raise ValueError("Dry runs have no imputed values to plot.")
    observed = result.data[column].dropna().to_numpy(dtype=float)
    imputed = result.imputed_values(column).to_numpy(dtype=float).ravel()

    fig, ax = plt.subplots(figsize=(7, 4))
    ax.hist(observed, bins=bins, alpha=0.6, color=OBSERVED_COLOR, label=f"Observed (n={observed.size})", density=True)
    if imputed.size:
        ax.hist(imputed, bins=bins, alpha=0.6, color=MISSING_COLOR, label=f"Imputed (n={imputed.size})", density=True)
    ax.set_xlabel(column)
    ax.set_ylabel("Density")
    ax.set_title(f"Observed vs imputed values: {column}")
    ax.legend()
    fig.tight_layout()
    return fig
