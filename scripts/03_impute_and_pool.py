from __future__ import annotations

import argparse
import os
import sys
import tempfile
from pathlib import Path
from typing import List, Tuple

_mpl_cache_dir = Path(tempfile.gettempdir()) / "matplotlib"
_mpl_cache_dir.mkdir(parents=True, exist_ok=True)
os.environ.setdefault("MPLCONFIGDIR", str(_mpl_cache_dir))

import matplotlib

matplotlib.use("Agg")
import pandas as pd


PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from mi_walkthrough.analysis.fit import estimates_table, fit_complete_cases, fit_each  # noqa: E402
from mi_walkthrough.analysis.pooling import pool, pool_r_squared  # noqa: E402
from mi_walkthrough.config import (  # noqa: E402
    ANALYSIS_FORMULA,
    DONORS,
    MAXIT,
    N_IMPUTATIONS,
    QUICKPRED_MINCOR,
    RANDOM_SEED,
)
from mi_walkthrough.data.ingest import load_nhanes, load_table  # noqa: E402
from mi_walkthrough.data.validate import assert_required_columns, formula_variables  # noqa: E402
from mi_walkthrough.imputation.methods import make_method, set_method  # noqa: E402
from mi_walkthrough.imputation.mice import complete, mice, save_imputation  # noqa: E402
from mi_walkthrough.imputation.predictor_matrix import (  # noqa: E402
    exclude_predictor,
    make_predictor_matrix,
    quickpred,
)
from mi_walkthrough.reporting.figures import (  # noqa: E402
    plot_chain_means,
    plot_imputed_vs_observed,
    save_figure,
)
from mi_walkthrough.utils.logging import run_metadata, write_json  # noqa: E402


def _parse_method_edits(values: List[str]) -> List[Tuple[str, str]]:
    edits = []
    for raw in values:
        if "=" not in raw:
            raise SystemExit(f"--method expects COLUMN=LABEL (use an empty label to skip a column); got {raw!r}")
        col, label = raw.split("=", 1)
        edits.append((col.strip(), label.strip()))
    return edits


def main() -> None:
    parser = argparse.ArgumentParser(description="Multiple imputation, per-imputation OLS fits and Rubin pooling.")
    parser.add_argument("--input", type=Path, default=None, help="CSV/parquet/xlsx input (default: built-in NHANES).")
    parser.add_argument("--outdir", type=Path, default=Path("outputs"), help="Output directory (default: outputs/).")
    parser.add_argument("--m", type=int, default=N_IMPUTATIONS, help="Number of imputations.")
    parser.add_argument("--maxit", type=int, default=MAXIT, help="Iterations per chain.")
    parser.add_argument("--seed", type=int, default=RANDOM_SEED, help="Base random seed (imputation i uses seed+i).")
    parser.add_argument("--donors", type=int, default=DONORS, help="PMM donor pool size.")
    parser.add_argument("--formula", type=str, default=ANALYSIS_FORMULA, help="Analysis model (OLS formula).")
    parser.add_argument(
        "--quickpred",
        type=float,
        default=None,
        metavar="MINCOR",
        help=f"Build the predictor matrix by correlation screening (e.g. {QUICKPRED_MINCOR}).",
    )
    parser.add_argument(
        "--exclude-predictor",
        action="append",
        default=[],
        metavar="COLUMN",
        help="Never use COLUMN as a predictor (repeatable).",
    )
    parser.add_argument(
        "--method",
        action="append",
        default=[],
        metavar="COLUMN=LABEL",
        help="Override the method for COLUMN: pmm, mean, or empty to skip (repeatable).",
    )
    args = parser.parse_args()

    if args.input is not None and not args.input.exists():
        raise SystemExit(f"Input file not found: {args.input}")
    if args.m < 2:
        raise SystemExit("--m must be at least 2 for pooling.")
    if args.maxit < 1:
        raise SystemExit("--maxit must be >= 1; use scripts/02_dry_run.py for a dry run.")

    df = load_nhanes() if args.input is None else load_table(args.input)

    try:
        assert_required_columns(df, formula_variables(args.formula))
    except ValueError as exc:
        raise SystemExit(f"Analysis formula does not match the data: {exc}") from exc

    try:
        pred = make_predictor_matrix(df) if args.quickpred is None else quickpred(df, mincor=args.quickpred)
        for col in args.exclude_predictor:
            pred = exclude_predictor(pred, col)
        meth = make_method(df)
        for col, label in _parse_method_edits(args.method):
            meth = set_method(meth, col, label)

        imp = mice(
            df,
            m=args.m,
            maxit=args.maxit,
            method=meth,
            predictor_matrix=pred,
            seed=args.seed,
            donors=args.donors,
        )
        fits = fit_each(imp, args.formula)
    except ValueError as exc:
        raise SystemExit(f"Imputation failed: {exc}") from exc

    tables_dir = args.outdir / "tables"
    figures_dir = args.outdir / "figures"
    models_dir = args.outdir / "models"
    tables_dir.mkdir(parents=True, exist_ok=True)

    imp.predictor_matrix.to_csv(tables_dir / "predictor_matrix_used.csv", index_label="variable")
    imp.method.rename_axis("variable").reset_index().to_csv(tables_dir / "method_used.csv", index=False)
    imp.logged_events.to_csv(tables_dir / "logged_events_full_run.csv", index=False)
    imp.chain_means.to_csv(tables_dir / "chain_means.csv", index=False)

    estimates_table(fits).to_csv(tables_dir / "estimates_per_imputation.csv", index=False)
    pooled = pool(fits)
    pooled.to_csv(tables_dir / "pooled_estimates.csv", index=False)
    r2 = pool_r_squared(fits)

    cc = fit_complete_cases(df, args.formula)
    cc_table = pd.DataFrame(
        {"term": cc.params.index, "estimate": cc.params.to_numpy(), "std_error": cc.bse.to_numpy()}
    )
    cc_table.to_csv(tables_dir / "complete_case_estimates.csv", index=False)

    long = complete(imp, "long")
    models_dir.mkdir(parents=True, exist_ok=True)
    long.to_parquet(models_dir / "imputed_long.parquet", index=False)
    save_imputation(imp, models_dir / "imputation.joblib")

    if not imp.chain_means.empty:
        save_figure(plot_chain_means(imp), figures_dir / "chain_means.png")
    for col in imp.imputed_columns:
        save_figure(plot_imputed_vs_observed(imp, col), figures_dir / f"imputed_vs_observed_{col}.png")

    print(pooled[["term", "estimate", "std_error", "statistic", "df", "p_value", "fmi"]].to_string(index=False))
    print(f"Pooled R^2: {r2['r_squared']:.3f} [{r2['conf_low']:.3f}, {r2['conf_high']:.3f}]")

    write_json(
        args.outdir / "logs" / "impute_run_metadata.json",
        run_metadata(
            input=str(args.input) if args.input is not None else "builtin:nhanes",
            m=args.m,
            maxit=args.maxit,
            seed=args.seed,
            donors=args.donors,
            formula=args.formula,
            quickpred_mincor=args.quickpred,
            exclude_predictor=args.exclude_predictor,
            method=imp.method.to_dict(),
            pooled_r_squared=r2,
            n_logged_events=int(len(imp.logged_events)),
            outdir=str(args.outdir),
        ),
    )
    print(f"Wrote imputation artifacts to {args.outdir}/")


if __name__ == "__main__":
    main()
