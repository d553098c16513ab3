from __future__ import annotations

from typing import Sequence

import numpy as np
import pandas as pd
from scipy import stats

from mi_walkthrough.config import CONF_LEVEL

POOLED_COLUMNS = [
    "term",
    "m",
    "estimate",
    "ubar",
    "b",
    "t",
    "dfcom",
    "df",
    "riv",
    "lambda",
    "fmi",
    "std_error",
    "statistic",
    "p_value",
    "conf_low",
    "conf_high",
]


def barnard_rubin_df(m: int, b: np.ndarray, t: np.ndarray, dfcom: float) -> np.ndarray:
    """Small-sample degrees of freedom (Barnard & Rubin, 1999)."""

    lam = (1.0 + 1.0 / m) * b / t
    lam = np.maximum(lam, 1e-4)
    dfold = (m - 1) / lam**2
    if np.isinf(dfcom):
        return dfold
    dfobs = (dfcom + 1.0) / (dfcom + 3.0) * dfcom * (1.0 - lam)
    return dfold * dfobs / (dfold + dfobs)


def pool(fits: Sequence, conf_level: float = CONF_LEVEL) -> pd.DataFrame:
    """Combine per-imputation estimates with Rubin's rules.

    `fits` are fitted statsmodels results sharing the same terms. The
    complete-data degrees of freedom are taken from the residual df of the
    first fit.
    """

    m = len(fits)
    if m < 2:
        raise ValueError(f"Pooling needs at least two fitted models; got {m}")
    terms = list(fits[0].params.index)
    for res in fits[1:]:
        if list(res.params.index) != terms:
            raise ValueError("All fitted models must share the same terms in the same order.")

    q = np.vstack([np.asarray(res.params, dtype=float) for res in fits])
    u = np.vstack([np.asarray(res.bse, dtype=float) ** 2 for res in fits])

    qbar = q.mean(axis=0)
    ubar = u.mean(axis=0)
    b = q.var(axis=0, ddof=1)
    t = ubar + (1.0 + 1.0 / m) * b
    dfcom = float(fits[0].df_resid)

    with np.errstate(divide="ignore", invalid="ignore"):
        riv = (1.0 + 1.0 / m) * b / ubar
        lam = (1.0 + 1.0 / m) * b / t
        df = barnard_rubin_df(m, b, t, dfcom)
        fmi = (riv + 2.0 / (df + 3.0)) / (riv + 1.0)
        se = np.sqrt(t)
        statistic = qbar / se

    p_value = 2.0 * stats.t.sf(np.abs(statistic), df)
    crit = stats.t.ppf(1.0 - (1.0 - conf_level) / 2.0, df)

    return pd.DataFrame(
        {
            "term": terms,
            "m": m,
            "estimate": qbar,
            "ubar": ubar,
            "b": b,
            "t": t,
            "dfcom": dfcom,
            "df": df,
            "riv": riv,
            "lambda": lam,
            "fmi": fmi,
            "std_error": se,
            "statistic": statistic,
            "p_value": p_value,
            "conf_low": qbar - crit * se,
            "conf_high": qbar + crit * se,
        },
        columns=POOLED_COLUMNS,
    )


def pool_r_squared(fits: Sequence, adjusted: bool = False, conf_level: float = CONF_LEVEL) -> dict:
    """Pool R^2 on the Fisher z scale (Harel, 2009)."""

    m = len(fits)
    if m < 2:
        raise ValueError(f"Pooling needs at least two fitted models; got {m}")
    r2 = np.array([res.rsquared_adj if adjusted else res.rsquared for res in fits], dtype=float)
    n = float(fits[0].nobs)
    if n <= 3:
        raise ValueError("R^2 pooling needs more than three observations per dataset.")

    z = np.arctanh(np.sqrt(np.clip(r2, 0.0, 1.0)))
    zbar = float(z.mean())
    ubar = 1.0 / (n - 3.0)
    b = float(z.var(ddof=1))
    t = ubar + (1.0 + 1.0 / m) * b
    crit = stats.norm.ppf(1.0 - (1.0 - conf_level) / 2.0)
    fmi = (1.0 + 1.0 / m) * b / t

    return {
        "r_squared": float(np.tanh(zbar) ** 2),
        "conf_low": float(np.tanh(max(zbar - crit * np.sqrt(t), 0.0)) ** 2),
        "conf_high": float(np.tanh(zbar + crit * np.sqrt(t)) ** 2),
        "fmi": float(fmi),
        "adjusted": adjusted,
    }
