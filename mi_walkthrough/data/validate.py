import ast
from typing import Iterable, List

import pandas as pd
from patsy import ModelDesc, PatsyError


def assert_required_columns(df, required: Iterable[str]) -> None:
    missing = [c for c in required if c not in df.columns]
    if missing:
        raise ValueError(f"Missing required columns: {missing}")


def assert_numeric_columns(df: pd.DataFrame) -> None:
    non_numeric = [c for c in df.columns if not pd.api.types.is_numeric_dtype(df[c])]
    if non_numeric:
        raise ValueError(f"Non-numeric columns are not supported: {non_numeric}")


def assert_formula_safe_names(columns: Iterable[str]) -> None:
    # Column names end up in model formulas.
    bad = [str(c) for c in columns if not str(c).isidentifier()]
    if bad:
        raise ValueError(f"Column names must be valid identifiers for formula use: {bad}")


def formula_variables(formula: str) -> List[str]:
    """Data variables referenced by a model formula, in order of appearance.

    Function and module names inside terms (e.g. `np` and `log` in
    `np.log(bmi)`) are not variables and are skipped.
    """

    try:
        desc = ModelDesc.from_formula(formula)
    except PatsyError as exc:
        raise ValueError(f"Invalid model formula {formula!r}: {exc}") from exc

    names: List[str] = []
    for term in desc.lhs_termlist + desc.rhs_termlist:
        for factor in term.factors:
            tree = ast.parse(factor.name(), mode="eval")
            not_data = set()
            for node in ast.walk(tree):
                if isinstance(node, ast.Call) and isinstance(node.func, ast.Name):
                    not_data.add(node.func.id)
                elif isinstance(node, ast.Attribute) and isinstance(node.value, ast.Name):
                    not_data.add(node.value.id)
            for node in ast.walk(tree):
                if isinstance(node, ast.Name) and node.id not in not_data and node.id not in names:
                    names.append(node.id)
    return names
