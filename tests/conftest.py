"""Shared fixtures for donorkey tests."""

import numpy as np
import pandas as pd
import pytest


def make_households(n: int, seed: int = 0) -> pd.DataFrame:
    """Random households covering every bucket of every feature."""
    rng = np.random.default_rng(seed)
    return pd.DataFrame({
        "sim_year": rng.integers(2015, 2040, size=n),
        "price_year": rng.integers(2015, 2030, size=n),
        "age": rng.integers(18, 95, size=n),
        "adults": rng.integers(1, 4, size=n),
        "children_under_5": rng.integers(0, 4, size=n),
        "children_5_to_9": rng.integers(0, 4, size=n),
        "children_10_to_17": rng.integers(0, 3, size=n),
        "hours_first_adult": rng.choice([0.0, 3.0, 10.0, 20.0, 45.0], size=n),
        "hours_second_adult": rng.choice([0.0, 5.0, 16.0, 37.5], size=n),
        "disabled_first_adult": rng.integers(0, 2, size=n),
        "disabled_second_adult": rng.integers(0, 2, size=n),
        "provides_care": rng.integers(0, 2, size=n),
        "original_income_weekly": rng.uniform(-600, 1500, size=n),
        "second_income_weekly": rng.choice([0.0, 0.005, 150.0], size=n),
        "childcare_cost_weekly": rng.choice([0.0, 0.01, 80.0], size=n),
    })


@pytest.fixture
def households() -> pd.DataFrame:
    return make_households(500, seed=42)
