from __future__ import annotations

from typing import List, Sequence

import pandas as pd
import statsmodels.formula.api as smf


def fit_each(result, formula: str) -> list:
    """Fit the same OLS model to every completed dataset."""

    if result.is_dry_run:
        raise ValueError("Dry runs have no completed datasets; rerun mice() with maxit > 0.")
    return [smf.ols(formula, data=imp).fit() for imp in result.imputations]


def fit_complete_cases(df: pd.DataFrame, formula: str):
    # Listwise deletion baseline for comparison with the pooled fit.
    return smf.ols(formula, data=df, missing="drop").fit()


def estimates_table(fits: Sequence) -> pd.DataFrame:
    rows: List[dict] = []
    for i, res in enumerate(fits, start=1):
        for term in res.params.index:
            rows.append(
                {
                    "imputation": i,
                    "term": term,
                    "estimate": float(res.params[term]),
                    "std_error": float(res.bse[term]),
                    "df_resid": float(res.df_resid),
                }
            )
    return pd.DataFrame(rows, columns=["imputation", "term", "estimate", "std_error", "df_resid"])
