from __future__ import annotations

from typing import Dict

import numpy as np
import pandas as pd


def summarize_missingness(df: pd.DataFrame) -> pd.DataFrame:
    """Return per-column missingness summary in stable column order."""

    rows = []
    n = len(df)
    for col in df.columns:
        s = df[col]
        n_missing = int(s.isna().sum())
        pct_missing = round((n_missing / n) * 100.0, 6) if n else np.nan
        rows.append(
            {
                "column": str(col),
                "dtype": str(s.dtype),
                "n": n,
                "n_missing": n_missing,
                "pct_missing": pct_missing,
                "n_unique": int(s.nunique(dropna=True)),
            }
        )
    return pd.DataFrame(rows, columns=["column", "dtype", "n", "n_missing", "pct_missing", "n_unique"])


def describe_columns(df: pd.DataFrame) -> pd.DataFrame:
    """Min/quartiles/mean/max per numeric column plus the number of missing cells."""

    desc = df.describe(percentiles=[0.25, 0.5, 0.75]).T
    desc = desc.rename(columns={"count": "n_observed", "25%": "q1", "50%": "median", "75%": "q3"})
    desc["n_missing"] = df[desc.index].isna().sum().astype(int)
    desc.index.name = "column"
    return desc[["n_observed", "n_missing", "min", "q1", "median", "mean", "q3", "max", "std"]].reset_index()


def missing_pattern(df: pd.DataFrame) -> pd.DataFrame:
    """Tabulate the distinct observed (1) / missing (0) row patterns.

    Variable columns are ordered by increasing number of missing cells. Each
    pattern row carries `count` (rows showing the pattern) and `n_missing`
    (variables missing in the pattern). The last row, labelled "total", holds
    the missing count per variable, the number of rows in `count` and the total
    number of missing cells in `n_missing`.
    """

    observed = df.notna().astype(int)
    col_missing = (1 - observed).sum(axis=0)
    order = col_missing.sort_values(kind="mergesort").index.tolist()
    observed = observed[order]

    if len(observed) == 0:
        patterns = pd.DataFrame(columns=["count"] + order + ["n_missing"], dtype=int)
    else:
        patterns = observed.groupby(order, sort=False).size().reset_index(name="count")
        patterns["n_missing"] = len(order) - patterns[order].sum(axis=1)
        patterns = patterns.sort_values(["n_missing", "count"], ascending=[True, False], kind="mergesort")
        patterns = patterns[["count"] + order + ["n_missing"]].reset_index(drop=True)
        patterns.index = [f"pattern_{i + 1}" for i in range(len(patterns))]

    total = {"count": len(df), **{c: int(col_missing[c]) for c in order}, "n_missing": int(col_missing.sum())}
    total_row = pd.DataFrame([total], index=["total"])
    return pd.concat([patterns, total_row]).astype(int)


def missing_pairs(df: pd.DataFrame) -> Dict[str, pd.DataFrame]:
    """Pairwise observed/missing counts.

    rr: both observed, rm: row observed and column missing,
    mr: row missing and column observed, mm: both missing.
    """

    r = df.notna().to_numpy(dtype=int)
    m = 1 - r
    cols = df.columns
    return {
        "rr": pd.DataFrame(r.T @ r, index=cols, columns=cols),
        "rm": pd.DataFrame(r.T @ m, index=cols, columns=cols),
        "mr": pd.DataFrame(m.T @ r, index=cols, columns=cols),
        "mm": pd.DataFrame(m.T @ m, index=cols, columns=cols),
    }


def proportion_usable_cases(df: pd.DataFrame) -> pd.DataFrame:
    """Share of rows with the row variable missing in which the column variable is observed.

    Rows of fully observed variables are NaN.
    """

    pairs = missing_pairs(df)
    mr = pairs["mr"].to_numpy(dtype=float)
    mm = pairs["mm"].to_numpy(dtype=float)
    denom = mr + mm
    with np.errstate(invalid="ignore", divide="ignore"):
        puc = np.where(denom > 0, mr / np.where(denom > 0, denom, 1.0), np.nan)
    return pd.DataFrame(puc, index=df.columns, columns=df.columns)


def complete_case_summary(df: pd.DataFrame) -> dict:
    n = len(df)
    n_complete = int(df.notna().all(axis=1).sum())
    return {
        "n_rows": n,
        "n_complete": n_complete,
        "n_incomplete": n - n_complete,
        "pct_complete": round(n_complete / n * 100.0, 6) if n else np.nan,
        "n_missing_cells": int(df.isna().sum().sum()),
    }
