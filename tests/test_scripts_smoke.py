import json
import subprocess
import sys
from pathlib import Path

import pandas as pd


REPO_ROOT = Path(__file__).resolve().parents[1]


def _run(script: str, *args: str) -> subprocess.CompletedProcess:
    cmd = [sys.executable, str(REPO_ROOT / "scripts" / script), *args]
    return subprocess.run(cmd, cwd=REPO_ROOT, check=True, capture_output=True, text=True)


def test_explore_missingness_smoke(tmp_path: Path):
    _run("01_explore_missingness.py", "--outdir", str(tmp_path))

    required_paths = [
        "tables/missingness_summary.csv",
        "tables/column_summary.csv",
        "tables/missing_pattern.csv",
        "tables/missing_pairs_rr.csv",
        "tables/missing_pairs_mm.csv",
        "tables/proportion_usable_cases.csv",
        "figures/missingness_heatmap.png",
        "figures/missing_pattern.png",
        "logs/explore_run_metadata.json",
    ]
    for rel in required_paths:
        assert (tmp_path / rel).exists(), f"Missing expected exploration artifact: {rel}"

    pattern = pd.read_csv(tmp_path / "tables" / "missing_pattern.csv", index_col="pattern")
    assert pattern.loc["total", "n_missing"] == 27

    meta = json.loads((tmp_path / "logs" / "explore_run_metadata.json").read_text(encoding="utf-8"))
    assert meta["complete_cases"]["n_complete"] == 13


def test_dry_run_smoke(tmp_path: Path):
    proc = _run("02_dry_run.py", "--outdir", str(tmp_path), "--with-problem-columns")
    assert "Logged events" in proc.stdout

    events = pd.read_csv(tmp_path / "tables" / "logged_events.csv", keep_default_na=False)
    assert events.columns.tolist() == ["it", "im", "dep", "meth", "out"]
    assert events["out"].tolist() == ["const", "bmi2"]
    assert events["meth"].tolist() == ["constant", "collinear"]

    pred = pd.read_csv(tmp_path / "tables" / "predictor_matrix_default.csv", index_col="variable")
    assert pred["const"].sum() == 0
    assert (tmp_path / "tables" / "method_default.csv").exists()


def test_impute_and_pool_smoke(tmp_path: Path):
    _run(
        "03_impute_and_pool.py",
        "--outdir",
        str(tmp_path),
        "--m",
        "3",
        "--maxit",
        "2",
        "--method",
        "hyp=mean",
        "--exclude-predictor",
        "hyp",
    )

    pooled = pd.read_csv(tmp_path / "tables" / "pooled_estimates.csv")
    assert pooled["term"].tolist() == ["Intercept", "age", "bmi"]
    assert pooled["m"].eq(3).all()

    method = pd.read_csv(tmp_path / "tables" / "method_used.csv", keep_default_na=False)
    assert dict(zip(method["variable"], method["method"]))["hyp"] == "mean"

    long = pd.read_parquet(tmp_path / "models" / "imputed_long.parquet")
    assert len(long) == 3 * 25
    assert long[["bmi", "hyp", "chl"]].notna().all().all()

    for rel in [
        "tables/estimates_per_imputation.csv",
        "tables/complete_case_estimates.csv",
        "tables/chain_means.csv",
        "figures/chain_means.png",
        "figures/imputed_vs_observed_chl.png",
        "models/imputation.joblib",
        "logs/impute_run_metadata.json",
    ]:
        assert (tmp_path / rel).exists(), f"Missing expected imputation artifact: {rel}"


def test_impute_rejects_unknown_method(tmp_path: Path):
    cmd = [
        sys.executable,
        str(REPO_ROOT / "scripts" / "03_impute_and_pool.py"),
        "--outdir",
        str(tmp_path),
        "--method",
        "chl=norm",
    ]
    proc = subprocess.run(cmd, cwd=REPO_ROOT, capture_output=True, text=True)
    assert proc.returncode != 0
    assert "Unsupported imputation method" in proc.stderr


def test_impute_rejects_formula_with_unknown_column(tmp_path: Path):
    cmd = [
        sys.executable,
        str(REPO_ROOT / "scripts" / "03_impute_and_pool.py"),
        "--outdir",
        str(tmp_path),
        "--m",
        "2",
        "--maxit",
        "1",
        "--formula",
        "chl ~ age + weight",
    ]
    proc = subprocess.run(cmd, cwd=REPO_ROOT, capture_output=True, text=True)
    assert proc.returncode != 0
    assert "Missing required columns: ['weight']" in proc.stderr
    assert "Traceback" not in proc.stderr
    assert not (tmp_path / "tables" / "pooled_estimates.csv").exists()
