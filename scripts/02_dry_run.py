from __future__ import annotations

import argparse
import sys
from pathlib import Path


PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from mi_walkthrough.config import RANDOM_SEED  # noqa: E402
from mi_walkthrough.data.ingest import add_problem_columns, load_nhanes, load_table  # noqa: E402
from mi_walkthrough.imputation.mice import mice  # noqa: E402
from mi_walkthrough.utils.logging import run_metadata, write_json  # noqa: E402


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Dry imputation (maxit=0): inspect logged events, predictor matrix and method vector."
    )
    parser.add_argument("--input", type=Path, default=None, help="CSV/parquet/xlsx input (default: built-in NHANES).")
    parser.add_argument("--outdir", type=Path, default=Path("outputs"), help="Output directory (default: outputs/).")
    parser.add_argument(
        "--with-problem-columns",
        action="store_true",
        help="Append a constant and a collinear column to show how they are logged and removed.",
    )
    parser.add_argument("--keep-constant", action="store_true", help="Do not remove constant columns.")
    parser.add_argument("--keep-collinear", action="store_true", help="Do not remove collinear columns.")
    args = parser.parse_args()

    if args.input is not None and not args.input.exists():
        raise SystemExit(f"Input file not found: {args.input}")

    df = load_nhanes() if args.input is None else load_table(args.input)
    if args.with_problem_columns:
        df = add_problem_columns(df)

    try:
        ini = mice(
            df,
            maxit=0,
            seed=RANDOM_SEED,
            remove_constant=not args.keep_constant,
            remove_collinear=not args.keep_collinear,
        )
    except ValueError as exc:
        raise SystemExit(f"Dry run failed: {exc}") from exc

    tables_dir = args.outdir / "tables"
    tables_dir.mkdir(parents=True, exist_ok=True)
    ini.logged_events.to_csv(tables_dir / "logged_events.csv", index=False)
    ini.predictor_matrix.to_csv(tables_dir / "predictor_matrix_default.csv", index_label="variable")
    ini.method.rename_axis("variable").reset_index().to_csv(tables_dir / "method_default.csv", index=False)

    if ini.logged_events.empty:
        print("No logged events.")
    else:
        print("Logged events:")
        print(ini.logged_events.to_string(index=False))
    print("Method:")
    print(ini.method.to_string())
    print("Predictor matrix:")
    print(ini.predictor_matrix.to_string())

    write_json(
        args.outdir / "logs" / "dry_run_metadata.json",
        run_metadata(
            input=str(args.input) if args.input is not None else "builtin:nhanes",
            with_problem_columns=args.with_problem_columns,
            remove_constant=not args.keep_constant,
            remove_collinear=not args.keep_collinear,
            n_logged_events=int(len(ini.logged_events)),
            outdir=str(args.outdir),
        ),
    )
    print(f"Wrote dry-run artifacts to {args.outdir}/")


if __name__ == "__main__":
    main()
