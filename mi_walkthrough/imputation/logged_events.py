from __future__ import annotations

from typing import List, Tuple

import numpy as np
import pandas as pd

from mi_walkthrough.config import COLLINEARITY_THRESHOLD, CONSTANT_THRESHOLD

LOGGED_EVENT_COLUMNS = ["it", "im", "dep", "meth", "out"]


def empty_logged_events() -> pd.DataFrame:
    return pd.DataFrame(
        {
            "it": pd.Series(dtype=int),
            "im": pd.Series(dtype=int),
            "dep": pd.Series(dtype=object),
            "meth": pd.Series(dtype=object),
            "out": pd.Series(dtype=object),
        }
    )


def find_constant(df: pd.DataFrame, threshold: float = CONSTANT_THRESHOLD) -> List[str]:
    """Columns with fewer than two distinct observed values, or whose modal value
    covers more than `threshold` of the observed cells."""

    out = []
    for col in df.columns:
        obs = df[col].dropna()
        if obs.nunique() < 2:
            out.append(col)
            continue
        if float(obs.value_counts(normalize=True).iloc[0]) > threshold:
            out.append(col)
    return out


def find_collinear(df: pd.DataFrame, threshold: float = COLLINEARITY_THRESHOLD) -> List[str]:
    """Columns nearly collinear with a better-observed column.

    Columns are ranked by number of observed cells (descending, ties kept in
    data order). A column is flagged when its absolute pairwise-complete
    correlation with any column ranked before it reaches `threshold`.
    """

    n_obs = df.notna().sum(axis=0)
    order = n_obs.sort_values(ascending=False, kind="mergesort").index.tolist()
    corr = df[order].corr().abs().to_numpy()
    flagged = []
    for j in range(1, len(order)):
        earlier = corr[:j, j]
        if np.any(np.nan_to_num(earlier, nan=0.0) >= threshold):
            flagged.append(order[j])
    return [c for c in df.columns if c in flagged]


def check_data(
    df: pd.DataFrame,
    predictor_matrix: pd.DataFrame,
    method: pd.Series,
    remove_constant: bool = True,
    remove_collinear: bool = True,
    constant_threshold: float = CONSTANT_THRESHOLD,
    collinearity_threshold: float = COLLINEARITY_THRESHOLD,
) -> Tuple[pd.DataFrame, pd.Series, pd.DataFrame]:
    """Drop constant and collinear columns from the imputation model.

    Returns edited copies of the predictor matrix and method vector plus the
    logged events (one row per removed column). Removed columns are neither
    imputed nor used as predictors.
    """

    pred = predictor_matrix.copy()
    meth = method.copy()
    events = []

    constant = find_constant(df, constant_threshold) if remove_constant else []
    for col in constant:
        events.append({"it": 0, "im": 0, "dep": "", "meth": "constant", "out": col})

    if remove_collinear:
        remaining = [c for c in df.columns if c not in constant]
        for col in find_collinear(df[remaining], collinearity_threshold):
            events.append({"it": 0, "im": 0, "dep": "", "meth": "collinear", "out": col})

    for event in events:
        col = event["out"]
        pred.loc[:, col] = 0
        pred.loc[col, :] = 0
        meth[col] = ""

    logged = pd.DataFrame(events, columns=LOGGED_EVENT_COLUMNS) if events else empty_logged_events()
    return pred, meth, logged
