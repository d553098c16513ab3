from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Union

import joblib
import numpy as np
import pandas as pd
from sklearn.impute import SimpleImputer
from statsmodels.imputation.mice import MICEData

from mi_walkthrough.config import DONORS, MAXIT, N_IMPUTATIONS, RANDOM_SEED
from mi_walkthrough.data.validate import assert_formula_safe_names, assert_numeric_columns
from mi_walkthrough.imputation.logged_events import check_data
from mi_walkthrough.imputation.methods import make_method, validate_method
from mi_walkthrough.imputation.predictor_matrix import make_predictor_matrix, validate_predictor_matrix

CHAIN_MEANS_COLUMNS = ["imputation", "iteration", "variable", "mean"]


def _empty_chain_means() -> pd.DataFrame:
    return pd.DataFrame(columns=CHAIN_MEANS_COLUMNS)


@dataclass
class MultipleImputation:
    """Setup and output of one `mice()` call.

    `imputations` holds the m completed datasets; it is empty for a dry run
    (maxit=0), in which case only the setup fields are meaningful.
    """

    data: pd.DataFrame
    m: int
    maxit: int
    seed: Optional[int]
    donors: int
    method: pd.Series
    predictor_matrix: pd.DataFrame
    logged_events: pd.DataFrame
    where: pd.DataFrame
    imputations: List[pd.DataFrame] = field(default_factory=list)
    chain_means: pd.DataFrame = field(default_factory=_empty_chain_means)

    @property
    def is_dry_run(self) -> bool:
        return not self.imputations

    @property
    def imputed_columns(self) -> List[str]:
        return [c for c in self.method.index if self.method[c]]

    def imputed_values(self, column: str) -> pd.DataFrame:
        """Values filled into the missing cells of `column`, one column per imputation."""

        if column not in self.data.columns:
            raise ValueError(f"Unknown column: {column!r}")
        rows = self.where.index[self.where[column].to_numpy()]
        return pd.DataFrame(
            {i + 1: imp.loc[rows, column] for i, imp in enumerate(self.imputations)},
            index=rows,
        )


def _chain_columns(data: pd.DataFrame, method: pd.Series) -> List[str]:
    # Columns left unimputed but still incomplete cannot enter the chain.
    return [c for c in data.columns if method[c] or not data[c].isna().any()]


def _conditional_formula(target: str, predictor_matrix: pd.DataFrame, chain_cols: List[str]) -> str:
    row = predictor_matrix.loc[target]
    predictors = [c for c in chain_cols if c != target and row[c] == 1]
    return " + ".join(predictors) if predictors else "1"


def _build_chain(frame: pd.DataFrame, method: pd.Series, predictor_matrix: pd.DataFrame, donors: int) -> MICEData:
    chain_cols = list(frame.columns)
    chain = MICEData(frame, k_pmm=donors)
    for col in chain_cols:
        if method[col] == "pmm" and frame[col].isna().any():
            chain.set_imputer(col, formula=_conditional_formula(col, predictor_matrix, chain_cols), k_pmm=donors)
    return chain


def mice(
    df: pd.DataFrame,
    m: int = N_IMPUTATIONS,
    maxit: int = MAXIT,
    method: Optional[pd.Series] = None,
    predictor_matrix: Optional[pd.DataFrame] = None,
    seed: Optional[int] = RANDOM_SEED,
    donors: int = DONORS,
    remove_constant: bool = True,
    remove_collinear: bool = True,
    verbose: bool = False,
) -> MultipleImputation:
    """Multiply impute `df` by chained equations with predictive mean matching.

    The chained-equation updates are performed by statsmodels' `MICEData`,
    one independent chain per imputation, seeded with `seed + i`. Each imputed
    variable is regressed on the variables flagged in its predictor-matrix row.

    `MICEData` draws from numpy's global generator, so a non-None `seed`
    reseeds `np.random` and leaves the caller's global RNG state changed.

    With `maxit=0` nothing is imputed: the returned object carries the
    checked method vector, predictor matrix and logged events for inspection
    and editing before the real run.
    """

    if m < 1:
        raise ValueError(f"m must be a positive integer; got {m}")
    if maxit < 0:
        raise ValueError(f"maxit must be >= 0; got {maxit}")
    if donors < 1:
        raise ValueError(f"donors must be a positive integer; got {donors}")

    assert_numeric_columns(df)
    assert_formula_safe_names(df.columns)
    data = df.astype(float)
    columns = list(data.columns)

    method = validate_method(method if method is not None else make_method(data), data)
    predictor_matrix = validate_predictor_matrix(
        predictor_matrix if predictor_matrix is not None else make_predictor_matrix(data), columns
    )
    predictor_matrix, method, logged_events = check_data(
        data,
        predictor_matrix,
        method,
        remove_constant=remove_constant,
        remove_collinear=remove_collinear,
    )

    no_donors = [c for c in columns if method[c] and data[c].notna().sum() == 0]
    if no_donors:
        raise ValueError(f"Cannot impute columns without any observed value: {no_donors}")

    result = MultipleImputation(
        data=data,
        m=m,
        maxit=maxit,
        seed=seed,
        donors=donors,
        method=method,
        predictor_matrix=predictor_matrix,
        logged_events=logged_events,
        where=data.isna(),
    )
    if maxit == 0:
        return result

    mean_cols = [c for c in columns if method[c] == "mean"]
    chain_cols = _chain_columns(data, method)
    cycle = [c for c in chain_cols if method[c] == "pmm"]

    base = data.copy()
    if mean_cols:
        base[mean_cols] = SimpleImputer(strategy="mean").fit_transform(base[mean_cols])

    frame = base[chain_cols].reset_index(drop=True)
    frame.columns = pd.Index([str(c) for c in chain_cols], dtype=object)
    if cycle:
        all_missing = frame.isna().all(axis=1)
        if all_missing.any():
            raise ValueError(
                f"{int(all_missing.sum())} row(s) have no observed value in the imputation model; "
                "drop them or add a fully observed column."
            )

    where = result.where.reset_index(drop=True)
    chain_rows = []
    for i in range(m):
        if seed is not None:
            # MICEData draws from numpy's global generator.
            np.random.seed(seed + i)
        completed = base.copy()
        if cycle:
            chain = _build_chain(frame, method, predictor_matrix, donors)
            for it in range(1, maxit + 1):
                chain.update_all(n_iter=1)
                if verbose:
                    print(f"iter {it} imp {i + 1}: {' '.join(cycle)}")
                for col in cycle:
                    mask = where[col].to_numpy()
                    chain_rows.append(
                        {
                            "imputation": i + 1,
                            "iteration": it,
                            "variable": col,
                            "mean": float(chain.data.loc[mask, col].mean()),
                        }
                    )
            completed[chain_cols] = chain.data[chain_cols].to_numpy()
        result.imputations.append(completed)

    if chain_rows:
        result.chain_means = pd.DataFrame(chain_rows, columns=CHAIN_MEANS_COLUMNS)
    return result


def complete(result: MultipleImputation, action: Union[int, str] = 1):
    """Extract completed data.

    action=i (1-based) returns dataset i; "long" stacks all datasets with
    `.imp` and `.id` columns; "all" returns the list of datasets. For a dry
    run an integer action returns the incomplete data.
    """

    if isinstance(action, (int, np.integer)) and not isinstance(action, bool):
        if not 1 <= action <= result.m:
            raise ValueError(f"Imputation index must be between 1 and {result.m}; got {action}")
        if result.is_dry_run:
            return result.data.copy()
        return result.imputations[action - 1].copy()
    if action == "all":
        return [imp.copy() for imp in result.imputations]
    if action == "long":
        frames = []
        for i, imp in enumerate(result.imputations, start=1):
            f = imp.copy()
            f.insert(0, ".id", imp.index)
            f.insert(0, ".imp", i)
            frames.append(f)
        if not frames:
            raise ValueError("Dry runs have no completed datasets to stack.")
        return pd.concat(frames, ignore_index=True)
    raise ValueError(f"Unknown action {action!r}; use an imputation number, 'long' or 'all'.")


def save_imputation(result: MultipleImputation, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    joblib.dump(result, path)


def load_imputation(path: Path) -> MultipleImputation:
    result = joblib.load(path)
    if not isinstance(result, MultipleImputation):
        raise ValueError(f"{path} does not contain a MultipleImputation result")
    return result
