import matplotlib

matplotlib.use("Agg")

import pytest

from mi_walkthrough.data.ingest import add_problem_columns, load_nhanes


@pytest.fixture
def nhanes():
    return load_nhanes()


@pytest.fixture
def nhanes_with_problems():
    return add_problem_columns(load_nhanes())
