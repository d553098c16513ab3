from __future__ import annotations

import argparse
import os
import sys
import tempfile
from pathlib import Path

_mpl_cache_dir = Path(tempfile.gettempdir()) / "matplotlib"
_mpl_cache_dir.mkdir(parents=True, exist_ok=True)
os.environ.setdefault("MPLCONFIGDIR", str(_mpl_cache_dir))

import matplotlib

matplotlib.use("Agg")


PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from mi_walkthrough.data.ingest import load_nhanes, load_table  # noqa: E402
from mi_walkthrough.exploration.missingness import (  # noqa: E402
    complete_case_summary,
    describe_columns,
    missing_pairs,
    missing_pattern,
    proportion_usable_cases,
    summarize_missingness,
)
from mi_walkthrough.reporting.figures import (  # noqa: E402
    plot_missing_pattern,
    plot_missingness_heatmap,
    save_figure,
)
from mi_walkthrough.utils.logging import run_metadata, write_json  # noqa: E402


def main() -> None:
    parser = argparse.ArgumentParser(description="Describe missingness: summaries, patterns, pairs and two figures.")
    parser.add_argument("--input", type=Path, default=None, help="CSV/parquet/xlsx input (default: built-in NHANES).")
    parser.add_argument("--nrows", type=int, default=None, help="Use only the first N rows (deterministic head).")
    parser.add_argument("--outdir", type=Path, default=Path("outputs"), help="Output directory (default: outputs/).")
    args = parser.parse_args()

    if args.input is not None and not args.input.exists():
        raise SystemExit(f"Input file not found: {args.input}")
    if args.nrows is not None and args.nrows <= 0:
        raise SystemExit("--nrows must be a positive integer.")

    df = load_nhanes() if args.input is None else load_table(args.input)
    if args.nrows is not None:
        df = df.head(args.nrows).copy()

    tables_dir = args.outdir / "tables"
    figures_dir = args.outdir / "figures"
    logs_dir = args.outdir / "logs"
    tables_dir.mkdir(parents=True, exist_ok=True)

    summarize_missingness(df).to_csv(tables_dir / "missingness_summary.csv", index=False)
    describe_columns(df).to_csv(tables_dir / "column_summary.csv", index=False)

    pattern = missing_pattern(df)
    pattern.to_csv(tables_dir / "missing_pattern.csv", index_label="pattern")

    for name, table in missing_pairs(df).items():
        table.to_csv(tables_dir / f"missing_pairs_{name}.csv", index_label="variable")
    proportion_usable_cases(df).to_csv(tables_dir / "proportion_usable_cases.csv", index_label="variable")

    cc = complete_case_summary(df)
    print(f"{cc['n_complete']} of {cc['n_rows']} rows are complete ({cc['pct_complete']:.1f}%).")
    print(pattern.to_string())

    save_figure(plot_missingness_heatmap(df), figures_dir / "missingness_heatmap.png")
    save_figure(plot_missing_pattern(pattern), figures_dir / "missing_pattern.png")

    write_json(
        logs_dir / "explore_run_metadata.json",
        run_metadata(
            input=str(args.input) if args.input is not None else "builtin:nhanes",
            nrows=args.nrows,
            outdir=str(args.outdir),
            complete_cases=cc,
        ),
    )
    print(f"Wrote exploration artifacts to {args.outdir}/")


if __name__ == "__main__":
    main()
