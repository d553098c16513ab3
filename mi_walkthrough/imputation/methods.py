from __future__ import annotations

import pandas as pd

from mi_walkthrough.config import SUPPORTED_METHODS


def make_method(df: pd.DataFrame) -> pd.Series:
    """Default method vector: "pmm" for numeric columns with missing cells, "" otherwise."""

    labels = []
    for col in df.columns:
        s = df[col]
        labels.append("pmm" if (s.isna().any() and pd.api.types.is_numeric_dtype(s)) else "")
    return pd.Series(labels, index=list(df.columns), dtype=object, name="method")


def _check_label(label: str) -> None:
    if label not in SUPPORTED_METHODS:
        raise ValueError(f"Unsupported imputation method {label!r}; choose from {list(SUPPORTED_METHODS)}")


def set_method(method: pd.Series, column: str, label: str) -> pd.Series:
    if column not in method.index:
        raise ValueError(f"Unknown column: {column!r}")
    _check_label(label)
    out = method.copy()
    out[column] = label
    return out


def validate_method(method: pd.Series, df: pd.DataFrame) -> pd.Series:
    """Check labels against the data and blank out methods on fully observed columns."""

    if list(method.index) != list(df.columns):
        raise ValueError(
            f"Method vector index must match the data columns in order. "
            f"Expected {list(df.columns)}; got {list(method.index)}."
        )
    out = method.astype(object).fillna("").copy()
    for col, label in out.items():
        _check_label(label)
        if label and not df[col].isna().any():
            out[col] = ""
    out.name = "method"
    return out
