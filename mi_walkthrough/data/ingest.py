from pathlib import Path
from typing import Optional

import pandas as pd

from mi_walkthrough.config import NHANES_COLUMNS, NHANES_FILE


def load_nhanes() -> pd.DataFrame:
    """Return the 25-row NHANES example (age, bmi, hyp, chl) with NaN for missing cells."""

    df = pd.read_csv(NHANES_FILE)
    return df[NHANES_COLUMNS].astype(float)


def load_table(path: Path, nrows: Optional[int] = None) -> pd.DataFrame:
    suffix = path.suffix.lower()
    if suffix == ".csv":
        return pd.read_csv(path, nrows=nrows)
    if suffix == ".parquet":
        df = pd.read_parquet(path)
    elif suffix == ".xlsx":
        df = pd.read_excel(path, nrows=nrows)
    else:
        raise ValueError(f"Unsupported input format: {path.suffix!r} (expected .csv, .parquet or .xlsx)")
    if nrows is not None:
        df = df.head(nrows).copy()
    return df


def add_problem_columns(df: pd.DataFrame, source: str = "bmi") -> pd.DataFrame:
    """Append a constant column and an exact multiple of `source`.

    Both columns carry no information for imputation and should show up as
    logged events in a dry run.
    """

    if source not in df.columns:
        raise ValueError(f"Column {source!r} not found; cannot derive a collinear copy.")
    out = df.copy()
    out["const"] = 1.0
    out[f"{source}2"] = out[source] * 2.0
    return out
