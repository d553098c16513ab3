from __future__ import annotations

from typing import Iterable, Optional, Sequence

import numpy as np
import pandas as pd

from mi_walkthrough.config import QUICKPRED_MINCOR, QUICKPRED_MINPUC
from mi_walkthrough.exploration.missingness import proportion_usable_cases


def make_predictor_matrix(df: pd.DataFrame) -> pd.DataFrame:
    """Every variable predicts every other variable; rows are imputation targets."""

    cols = list(df.columns)
    arr = np.ones((len(cols), len(cols)), dtype=int)
    np.fill_diagonal(arr, 0)
    return pd.DataFrame(arr, index=cols, columns=cols)


def _check_names(df: pd.DataFrame, names: Iterable[str], label: str) -> list[str]:
    names = list(names)
    unknown = [n for n in names if n not in df.columns]
    if unknown:
        raise ValueError(f"Unknown column(s) in {label}: {unknown}")
    return names


def quickpred(
    df: pd.DataFrame,
    mincor: float = QUICKPRED_MINCOR,
    minpuc: float = QUICKPRED_MINPUC,
    include: Optional[Sequence[str]] = None,
    exclude: Optional[Sequence[str]] = None,
) -> pd.DataFrame:
    """Build a predictor matrix from simple correlation screening.

    A column predicts a target when its absolute correlation with the target,
    or with the target's missingness indicator, exceeds `mincor`, and when the
    proportion of usable cases is at least `minpuc`. Correlations use all
    pairwise complete rows. Columns in `include` always predict and columns in
    `exclude` never do. Rows of fully observed variables are all zero.
    """

    include = _check_names(df, include or [], "include")
    exclude = _check_names(df, exclude or [], "exclude")
    cols = list(df.columns)

    v = df.corr().abs().reindex(index=cols, columns=cols).fillna(0.0).to_numpy()

    indicators = df.notna().astype(float)
    indicators.columns = [f"__observed_{i}" for i in range(len(cols))]
    values = df.copy()
    values.columns = [f"__value_{i}" for i in range(len(cols))]
    joint = pd.concat([indicators, values], axis=1).corr()
    u = joint.loc[indicators.columns, values.columns].abs().fillna(0.0).to_numpy()

    pred = (np.maximum(v, u) > mincor).astype(int)

    puc = proportion_usable_cases(df).to_numpy(dtype=float)
    pred[np.nan_to_num(puc, nan=1.0) < minpuc] = 0

    idx = {c: i for i, c in enumerate(cols)}
    for c in include:
        pred[:, idx[c]] = 1
    for c in exclude:
        pred[:, idx[c]] = 0
    np.fill_diagonal(pred, 0)
    pred[df.notna().all(axis=0).to_numpy(), :] = 0

    return pd.DataFrame(pred, index=cols, columns=cols)


def set_predictor(matrix: pd.DataFrame, target: str, predictor: str, value: int) -> pd.DataFrame:
    if target not in matrix.index or predictor not in matrix.columns:
        raise ValueError(f"Unknown target/predictor pair: {target!r} / {predictor!r}")
    if value not in (0, 1):
        raise ValueError(f"Predictor matrix entries must be 0 or 1; got {value!r}")
    if target == predictor and value == 1:
        raise ValueError(f"A variable cannot predict itself: {target!r}")
    out = matrix.copy()
    out.loc[target, predictor] = int(value)
    return out


def exclude_predictor(matrix: pd.DataFrame, predictor: str) -> pd.DataFrame:
    """Stop using `predictor` for every target."""

    if predictor not in matrix.columns:
        raise ValueError(f"Unknown predictor: {predictor!r}")
    out = matrix.copy()
    out.loc[:, predictor] = 0
    return out


def validate_predictor_matrix(matrix: pd.DataFrame, columns: Sequence[str]) -> pd.DataFrame:
    columns = list(columns)
    if matrix.shape != (len(columns), len(columns)):
        raise ValueError(
            f"Predictor matrix must be {len(columns)}x{len(columns)} (one row and column per variable); "
            f"got {matrix.shape[0]}x{matrix.shape[1]}."
        )
    if list(matrix.index) != columns or list(matrix.columns) != columns:
        raise ValueError(
            "Predictor matrix labels must match the data columns in order. "
            f"Expected {columns}; got rows={list(matrix.index)}, columns={list(matrix.columns)}."
        )
    arr = matrix.to_numpy()
    if not np.isin(arr, (0, 1)).all():
        raise ValueError("Predictor matrix entries must be 0 or 1.")
    if np.diag(arr).any():
        bad = [c for c, d in zip(columns, np.diag(arr)) if d]
        raise ValueError(f"Predictor matrix diagonal must be zero; variables predicting themselves: {bad}")
    return matrix.astype(int)
