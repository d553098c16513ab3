from types import SimpleNamespace

import numpy as np
import pandas as pd
import pytest
import statsmodels.formula.api as smf
from scipy import stats

from mi_walkthrough.analysis.fit import estimates_table, fit_each
from mi_walkthrough.analysis.pooling import POOLED_COLUMNS, barnard_rubin_df, pool, pool_r_squared
from mi_walkthrough.imputation.mice import mice


def _toy_fits(m=3, n=40, seed=0):
    rng = np.random.default_rng(seed)
    x = rng.normal(size=n)
    fits = []
    for _ in range(m):
        y = 1.0 + 2.0 * x + rng.normal(size=n)
        fits.append(smf.ols("y ~ x", data=pd.DataFrame({"x": x, "y": y})).fit())
    return fits


def test_rubin_rules_components():
    fits = _toy_fits()
    pooled = pool(fits).set_index("term")

    params = np.vstack([f.params.to_numpy() for f in fits])
    variances = np.vstack([f.bse.to_numpy() ** 2 for f in fits])
    ubar = variances.mean(axis=0)
    b = params.var(axis=0, ddof=1)

    assert pooled.index.tolist() == ["Intercept", "x"]
    assert np.allclose(pooled["estimate"], params.mean(axis=0))
    assert np.allclose(pooled["ubar"], ubar)
    assert np.allclose(pooled["b"], b)
    assert np.allclose(pooled["t"], ubar + (1 + 1 / 3) * b)
    assert np.allclose(pooled["std_error"], np.sqrt(pooled["t"]))
    assert (pooled["df"] > 0).all() and (pooled["df"] <= pooled["dfcom"]).all()
    assert ((pooled["fmi"] >= 0) & (pooled["fmi"] <= 1)).all()
    assert (pooled["conf_low"] < pooled["estimate"]).all()
    assert (pooled["estimate"] < pooled["conf_high"]).all()
    assert pooled.loc["x", "p_value"] < 0.05


def test_identical_fits_reduce_to_single_fit():
    fit = _toy_fits(m=1)[0]
    pooled = pool([fit, fit]).set_index("term")
    assert np.allclose(pooled["estimate"], fit.params)
    assert np.allclose(pooled["std_error"], fit.bse)
    assert np.allclose(pooled["b"], 0.0)
    assert np.allclose(pooled["riv"], 0.0)


def test_pool_needs_two_fits():
    with pytest.raises(ValueError):
        pool(_toy_fits(m=1))


def test_pool_r_squared_identical_fits():
    fit = _toy_fits(m=1)[0]
    r2 = pool_r_squared([fit, fit])
    assert r2["r_squared"] == pytest.approx(fit.rsquared)
    assert r2["conf_low"] <= r2["r_squared"] <= r2["conf_high"]


def test_walkthrough_model_on_nhanes(nhanes):
    imp = mice(nhanes, m=3, maxit=2, seed=2026)
    fits = fit_each(imp, "chl ~ age + bmi")

    table = estimates_table(fits)
    assert len(table) == 3 * 3
    assert table["df_resid"].eq(22).all()

    pooled = pool(fits)
    assert pooled.columns.tolist() == POOLED_COLUMNS
    assert pooled["term"].tolist() == ["Intercept", "age", "bmi"]
    assert pooled["m"].eq(3).all()


def test_fit_each_rejects_dry_run(nhanes):
    with pytest.raises(ValueError, match="Dry run"):
        fit_each(mice(nhanes, maxit=0), "chl ~ age")


def _fixed_fit(params, bse, df_resid):
    index = ["x", "flat"]
    return SimpleNamespace(
        params=pd.Series(params, index=index),
        bse=pd.Series(bse, index=index),
        df_resid=df_resid,
    )


def test_rubin_rules_hand_computed():
    # x:    q = 1, 2, 3 with se 1  -> qbar 2, ubar 1, b 1
    # flat: q = 5, 5, 5 with se 2  -> qbar 5, ubar 4, b 0
    fits = [
        _fixed_fit([1.0, 5.0], [1.0, 2.0], 10.0),
        _fixed_fit([2.0, 5.0], [1.0, 2.0], 10.0),
        _fixed_fit([3.0, 5.0], [1.0, 2.0], 10.0),
    ]
    pooled = pool(fits).set_index("term")

    x = pooled.loc["x"]
    assert x["estimate"] == pytest.approx(2.0)
    assert x["ubar"] == pytest.approx(1.0)
    assert x["b"] == pytest.approx(1.0)
    assert x["t"] == pytest.approx(7 / 3)
    assert x["riv"] == pytest.approx(4 / 3)
    assert x["lambda"] == pytest.approx(4 / 7)
    # dfold = (m-1)/lambda^2 = 49/8; dfobs = 11/13 * 10 * 3/7 = 330/91
    assert x["df"] == pytest.approx((49 / 8) * (330 / 91) / (49 / 8 + 330 / 91))
    assert x["df"] == pytest.approx(16170 / 7099)
    df_x = 16170 / 7099
    assert x["fmi"] == pytest.approx((4 / 3 + 2 / (df_x + 3)) / (4 / 3 + 1))
    assert x["std_error"] == pytest.approx(np.sqrt(7 / 3))
    half_width = stats.t.ppf(0.975, df_x) * np.sqrt(7 / 3)
    assert x["conf_low"] == pytest.approx(2.0 - half_width)
    assert x["conf_high"] == pytest.approx(2.0 + half_width)

    # No between-imputation variance: lambda is floored at 1e-4 for the df.
    flat = pooled.loc["flat"]
    assert flat["b"] == pytest.approx(0.0)
    assert flat["t"] == pytest.approx(4.0)
    assert flat["riv"] == pytest.approx(0.0)
    assert flat["lambda"] == pytest.approx(0.0)
    dfold = 2 / 1e-8
    dfobs = 11 / 13 * 10 * (1 - 1e-4)
    df_flat = dfold * dfobs / (dfold + dfobs)
    assert flat["df"] == pytest.approx(df_flat)
    assert flat["fmi"] == pytest.approx(2 / (df_flat + 3))
    assert flat["std_error"] == pytest.approx(2.0)


def test_barnard_rubin_df_infinite_dfcom():
    df = barnard_rubin_df(3, np.array([1.0]), np.array([7 / 3]), np.inf)
    assert df[0] == pytest.approx(49 / 8)
