"""Raw household attributes consumed by the bucketizer.

A household can be passed either as a ``HouseholdAttributes`` model or as
one row of a DataFrame whose columns carry the same names. Values are not
range-checked: negative counts, negative hours and non-finite incomes are
passed through to the bucket rules unchanged.
"""

from typing import Iterable, List

import pandas as pd
from pydantic import BaseModel, Field

from donorkey.errors import ConfigurationError


class HouseholdAttributes(BaseModel):
    """Characteristics of one simulated benefit unit for donor matching.

    The first and second adult are the reference person and partner;
    single-adult households leave the second adult's fields at zero.
    """

    sim_year: int = Field(..., description="Simulated year")
    price_year: int = Field(..., description="Year of prices for financial values")
    age: int = Field(..., description="Age of the reference person")

    adults: int = Field(default=1, description="Members aged 18+")
    children_under_5: int = 0
    children_5_to_9: int = 0
    children_10_to_17: int = 0

    hours_first_adult: float = Field(default=0.0, description="Weekly hours worked")
    hours_second_adult: float = Field(default=0.0, description="Weekly hours worked")
    disabled_first_adult: int = Field(default=0, description="Long-term sick or disabled flag")
    disabled_second_adult: int = 0
    provides_care: int = Field(default=0, description="Any member provides social care")

    original_income_weekly: float = Field(
        default=0.0, description="Original (pre tax-benefit) income per week, may be negative"
    )
    second_income_weekly: float = Field(default=0.0, description="Second earner's income per week")
    childcare_cost_weekly: float = 0.0

    model_config = {"frozen": True}


REQUIRED_COLUMNS = ["sim_year", "price_year", "age"]

# Defaults for optional columns, taken from the model so the two never drift
OPTIONAL_DEFAULTS = {
    name: field.default
    for name, field in HouseholdAttributes.model_fields.items()
    if name not in REQUIRED_COLUMNS
}

HOUSEHOLD_COLUMNS = REQUIRED_COLUMNS + list(OPTIONAL_DEFAULTS)


def households_to_frame(households: Iterable[HouseholdAttributes]) -> pd.DataFrame:
    """Stack household models into a DataFrame with one row each."""
    rows: List[dict] = [h.model_dump() for h in households]
    return pd.DataFrame(rows, columns=HOUSEHOLD_COLUMNS)


def prepare_frame(data: pd.DataFrame) -> pd.DataFrame:
    """
    Return the household columns of ``data``, filling optional ones.

    Args:
        data: DataFrame with at least the required columns.

    Returns:
        New DataFrame with exactly ``HOUSEHOLD_COLUMNS``, same index.

    Raises:
        ConfigurationError: If a required column is absent.
    """
    missing = [c for c in REQUIRED_COLUMNS if c not in data.columns]
    if missing:
        raise ConfigurationError(f"Missing required columns: {missing}")

    result = pd.DataFrame(index=data.index)
    for col in HOUSEHOLD_COLUMNS:
        if col in data.columns:
            result[col] = data[col]
        else:
            result[col] = OPTIONAL_DEFAULTS[col]
    return result
