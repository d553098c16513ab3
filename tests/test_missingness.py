import numpy as np
import pandas as pd
import pytest

from mi_walkthrough.data.ingest import load_table
from mi_walkthrough.exploration.missingness import (
    complete_case_summary,
    describe_columns,
    missing_pairs,
    missing_pattern,
    proportion_usable_cases,
    summarize_missingness,
)


def test_nhanes_shape_and_missing_counts(nhanes):
    assert nhanes.shape == (25, 4)
    summary = summarize_missingness(nhanes).set_index("column")
    assert summary["n_missing"].to_dict() == {"age": 0, "bmi": 9, "hyp": 8, "chl": 10}
    assert summary.loc["chl", "pct_missing"] == pytest.approx(40.0)


def test_describe_columns_reports_missing(nhanes):
    desc = describe_columns(nhanes).set_index("column")
    assert desc.loc["bmi", "n_missing"] == 9
    assert desc.loc["bmi", "n_observed"] == 16
    assert desc.loc["age", "min"] == 1
    assert desc.loc["age", "max"] == 3


def test_missing_pattern_counts_and_order(nhanes):
    pattern = missing_pattern(nhanes)

    assert pattern.columns.tolist() == ["count", "age", "hyp", "bmi", "chl", "n_missing"]
    body = pattern.drop(index="total")
    assert body["count"].tolist() == [13, 3, 1, 1, 7]
    assert body["n_missing"].tolist() == [0, 1, 1, 2, 3]
    assert body["count"].sum() == len(nhanes)

    total = pattern.loc["total"]
    assert total[["age", "hyp", "bmi", "chl"]].tolist() == [0, 8, 9, 10]
    assert total["n_missing"] == 27


def test_missing_pattern_complete_data():
    df = pd.DataFrame({"a": [1.0, 2.0], "b": [3.0, 4.0]})
    pattern = missing_pattern(df)
    assert pattern.loc["pattern_1", "count"] == 2
    assert pattern.loc["total", "n_missing"] == 0


def test_missing_pairs(nhanes):
    pairs = missing_pairs(nhanes)
    assert set(pairs) == {"rr", "rm", "mr", "mm"}
    assert np.diag(pairs["rr"]).tolist() == [25, 16, 17, 15]
    assert pairs["mm"].loc["bmi", "hyp"] == 8
    assert pairs["rm"].loc["age", "chl"] == 10
    # Every cell pair is counted exactly once across the four tables.
    total = pairs["rr"] + pairs["rm"] + pairs["mr"] + pairs["mm"]
    assert (total.to_numpy() == len(nhanes)).all()


def test_proportion_usable_cases(nhanes):
    puc = proportion_usable_cases(nhanes)
    assert puc.loc["age"].isna().all()
    assert puc.loc["bmi", "age"] == pytest.approx(1.0)
    assert puc.loc["chl", "bmi"] == pytest.approx(0.3)


def test_complete_case_summary(nhanes):
    cc = complete_case_summary(nhanes)
    assert cc["n_complete"] == 13
    assert cc["n_incomplete"] == 12
    assert cc["pct_complete"] == pytest.approx(52.0)
    assert cc["n_missing_cells"] == 27


def test_load_table_csv_roundtrip(tmp_path, nhanes):
    path = tmp_path / "nhanes.csv"
    nhanes.to_csv(path, index=False)
    df = load_table(path, nrows=10)
    assert df.shape == (10, 4)


def test_load_table_rejects_unknown_suffix(tmp_path):
    with pytest.raises(ValueError, match="Unsupported input format"):
        load_table(tmp_path / "data.json")


def test_summarize_missingness_non_string_labels():
    df = pd.DataFrame({0: [1.0, np.nan], 1: [np.nan, np.nan]})
    summary = summarize_missingness(df)
    assert summary["column"].tolist() == ["0", "1"]
    assert summary["n_missing"].tolist() == [1, 2]


def test_load_table_rejects_legacy_excel(tmp_path):
    with pytest.raises(ValueError, match="Unsupported input format"):
        load_table(tmp_path / "data.xls")
