"""
Bucket rules mapping raw household attributes to small integer categories.

Each rule yields one bucket per regime. Most rules are a pure classifier
that assigns each household a state, followed by a lookup in a state ->
buckets table (rows below are states, columns are regimes 0-4). Children
is the exception: its buckets are a formula over the three age-group
counts.

The tables and ``BUCKET_COUNTS`` are cross-checked by
``FeatureBucketizer.validate`` so the two cannot drift apart.

Example:
    >>> from donorkey.bucketing import FeatureBucketizer
    >>> from donorkey.features import MatchFeature
    >>> from donorkey.households import HouseholdAttributes
    >>> bucketizer = FeatureBucketizer()
    >>> hh = HouseholdAttributes(sim_year=2020, price_year=2017, age=70, adults=2)
    >>> bucketizer.bucketize(hh)[MatchFeature.AGE]
    (2, 2, 2, 1, 1)
"""

import itertools
import logging
from typing import Dict, Optional, Tuple

import numpy as np
import pandas as pd

from donorkey.config import MatchSettings
from donorkey.errors import ConfigurationError
from donorkey.features import ENCODED_FEATURES, REGIME_COUNT, MatchFeature
from donorkey.households import HouseholdAttributes, households_to_frame, prepare_frame
from donorkey.place_values import PlaceValueTable
from donorkey.uprating import (
    PriceIndex,
    PriceIndexSeries,
    StatePensionAge,
    StatePensionAgeSchedule,
)

logger = logging.getLogger(__name__)


def _table(*rows) -> np.ndarray:
    table = np.array(rows, dtype=np.int64)
    table.setflags(write=False)
    return table


# State -> bucket per regime
BUCKET_TABLES: Dict[MatchFeature, np.ndarray] = {
    # below mid age, mid age to pension age, pension age and over
    MatchFeature.AGE: _table(
        (0, 0, 0, 0, 0),
        (1, 1, 1, 0, 0),
        (2, 2, 2, 1, 1),
    ),
    # one adult, more than one adult
    MatchFeature.ADULTS: _table(
        (0, 0, 0, 0, 0),
        (1, 1, 1, 1, 1),
    ),
    # none, part-time only, one full-time, full-time + part-time, two full-time
    MatchFeature.EMPLOYMENT: _table(
        (0, 0, 0, 0, 0),
        (1, 1, 1, 1, 0),
        (2, 2, 2, 1, 0),
        (3, 3, 3, 2, 0),
        (4, 4, 4, 2, 0),
    ),
    MatchFeature.DISABILITY: _table(
        (0, 0, 0, 0, 0),
        (1, 1, 0, 0, 0),
    ),
    MatchFeature.CARE_PROVISION: _table(
        (0, 0, 0, 0, 0),
        (1, 1, 1, 0, 0),
    ),
    # substantial negative, low, mid, high
    MatchFeature.INCOME: _table(
        (0, 0, 0, 0, 0),
        (1, 1, 0, 0, 0),
        (2, 2, 1, 1, 1),
        (3, 3, 2, 1, 1),
    ),
    MatchFeature.DUAL_INCOME: _table(
        (0, 0, 0, 0, 0),
        (1, 0, 0, 0, 0),
    ),
    MatchFeature.CHILDCARE: _table(
        (0, 0, 0, 0, 0),
        (1, 0, 0, 0, 0),
    ),
}

# Second income and childcare below this count as absent
POSITIVE_AMOUNT_FLOOR = 0.01

# Child counts past which every children bucket saturates
_CHILD_COUNT_GRID = range(4)


def age_band(age, pension_age, mid_age: int = 45) -> np.ndarray:
    """0 below ``mid_age``, 1 up to pension age, 2 at or over pension age."""
    age = np.asarray(age)
    return np.where(age >= pension_age, 2, np.where(age >= mid_age, 1, 0))


def employment_state(
    hours_first,
    hours_second,
    full_time_hours: float,
    min_work_hours: float,
) -> np.ndarray:
    """Row index into the employment table for two adults' weekly hours."""
    full_time = np.zeros(np.shape(hours_first), dtype=np.int64)
    part_time = np.zeros(np.shape(hours_first), dtype=np.int64)
    for hours in (np.asarray(hours_first), np.asarray(hours_second)):
        is_full = hours >= full_time_hours
        full_time = full_time + is_full
        part_time = part_time + (~is_full & (hours > min_work_hours))

    return np.select(
        [
            full_time + part_time == 0,
            full_time == 0,
            full_time + part_time == 1,
            (part_time == 1) & (full_time == 1),
        ],
        [0, 1, 2, 3],
        default=4,
    )


def income_band(income, low: float = 225.0, high: float = 710.0) -> np.ndarray:
    """0 below -low, 1 below low, 2 below high, 3 otherwise."""
    income = np.asarray(income, dtype=float)
    return np.select(
        [income < -low, income < low, income < high],
        [0, 1, 2],
        default=3,
    )


def children_buckets(under_5, age_5_to_9, age_10_to_17) -> np.ndarray:
    """
    Children buckets per regime from counts by age group.

    Regimes 0-2 distinguish 0/1/2+ under 5, 0/1/2+ aged 5-9 and any aged
    10-17; regime 3 merges the two older groups; regime 4 only counts
    children up to 3.

    Returns:
        Integer array [n, 5]
    """
    u5 = np.atleast_1d(np.asarray(under_5, dtype=np.int64))
    c5 = np.atleast_1d(np.asarray(age_5_to_9, dtype=np.int64))
    c10 = np.atleast_1d(np.asarray(age_10_to_17, dtype=np.int64))

    fine = np.minimum(u5, 2) + 3 * np.minimum(c5, 2) + 9 * np.minimum(c10, 1)
    merged = np.minimum(u5, 2) + 3 * np.minimum(c5 + c10, 2)
    coarse = np.minimum(u5 + c5 + c10, 3)
    return np.column_stack([fine, fine, fine, merged, coarse])


def reachable_buckets() -> Dict[MatchFeature, np.ndarray]:
    """Every bucket vector each rule can emit, as [k, n_regimes] arrays."""
    reachable = dict(BUCKET_TABLES)
    grid = np.array(list(itertools.product(_CHILD_COUNT_GRID, repeat=3)))
    reachable[MatchFeature.CHILDREN] = np.unique(
        children_buckets(grid[:, 0], grid[:, 1], grid[:, 2]), axis=0
    )
    return reachable


class FeatureBucketizer:
    """
    Converts household attributes into per-regime buckets for each feature.

    Attributes:
        settings: Employment thresholds, income bands and global flags
        state_pension_age: Callable ``(sim_year, age) -> pension age``
        price_index: Callable ``(year) -> index`` used to deflate income
    """

    def __init__(
        self,
        settings: Optional[MatchSettings] = None,
        state_pension_age: Optional[StatePensionAge] = None,
        price_index: Optional[PriceIndex] = None,
    ):
        self.settings = settings or MatchSettings()
        self.state_pension_age = state_pension_age or StatePensionAgeSchedule()
        self.price_index = price_index or PriceIndexSeries.flat(
            self.settings.income_reference_year
        )

    @staticmethod
    def validate(table: PlaceValueTable) -> None:
        """
        Check every reachable bucket lies in [0, BucketCount) for its regime.

        Raises:
            ConfigurationError: On a regime-count mismatch or a bucket that
                                would overflow into the next digit.
        """
        if table.regime_count != REGIME_COUNT:
            raise ConfigurationError(
                f"Bucket rules cover {REGIME_COUNT} regimes, "
                f"place-value table has {table.regime_count}"
            )
        for feature, buckets in reachable_buckets().items():
            counts = np.asarray(table.bucket_counts[feature])
            lowest = buckets.min(axis=0)
            highest = buckets.max(axis=0)
            bad = np.flatnonzero((lowest < 0) | (highest >= counts))
            if bad.size:
                regime = int(bad[0])
                raise ConfigurationError(
                    f"{feature.name} emits buckets up to {int(highest[regime])} "
                    f"at regime {regime} but only {int(counts[regime])} are allowed"
                )

    def pension_ages(self, sim_year, age) -> np.ndarray:
        """State pension age per household, one lookup per distinct pair."""
        pairs = list(zip(np.asarray(sim_year).tolist(), np.asarray(age).tolist()))
        lookup = {
            pair: self.state_pension_age(int(pair[0]), int(pair[1]))
            for pair in set(pairs)
        }
        return np.array([lookup[p] for p in pairs], dtype=np.int64)

    def deflated_income(self, income, price_year) -> np.ndarray:
        """Weekly income expressed in reference-year prices."""
        ref_year = self.settings.income_reference_year
        years = np.asarray(price_year).tolist()
        ratios = {
            y: self.price_index(ref_year) / self.price_index(int(y)) for y in set(years)
        }
        factors = np.array([ratios[y] for y in years], dtype=float)
        return np.asarray(income, dtype=float) * factors

    def bucketize_frame(self, data: pd.DataFrame) -> Dict[MatchFeature, np.ndarray]:
        """
        Buckets for every household in a DataFrame.

        Args:
            data: One row per household, columns named as the fields of
                  ``HouseholdAttributes``; optional columns may be omitted.

        Returns:
            Dict mapping each encoded feature to an integer array
            [n_households, n_regimes].
        """
        frame = prepare_frame(data)
        s = self.settings
        logger.debug("Bucketizing %d households", len(frame))

        age = frame["age"].to_numpy()
        spa = self.pension_ages(frame["sim_year"].to_numpy(), age)
        below_pension = np.asarray(age < spa, dtype=bool)

        adults_state = (frame["adults"].to_numpy() > 1).astype(np.int64)

        children = children_buckets(
            frame["children_under_5"].to_numpy(),
            frame["children_5_to_9"].to_numpy(),
            frame["children_10_to_17"].to_numpy(),
        )
        children[~below_pension] = 0

        employment = employment_state(
            frame["hours_first_adult"].to_numpy(dtype=float),
            frame["hours_second_adult"].to_numpy(dtype=float),
            s.full_time_hours_weekly,
            s.min_work_hours_weekly,
        )

        care_allowed = not s.suppress_social_care_costs
        disabled = (
            (frame["disabled_first_adult"].to_numpy() > 0)
            | (frame["disabled_second_adult"].to_numpy() > 0)
        ) & care_allowed
        provides_care = (frame["provides_care"].to_numpy() > 0) & care_allowed

        income = self.deflated_income(
            frame["original_income_weekly"].to_numpy(),
            frame["price_year"].to_numpy(),
        )

        states = {
            MatchFeature.AGE: age_band(age, spa, s.mid_age),
            MatchFeature.ADULTS: adults_state,
            MatchFeature.EMPLOYMENT: employment,
            MatchFeature.DISABILITY: disabled.astype(np.int64),
            MatchFeature.CARE_PROVISION: provides_care.astype(np.int64),
            MatchFeature.INCOME: income_band(
                income, s.low_income_threshold, s.high_income_threshold
            ),
            MatchFeature.DUAL_INCOME: (
                frame["second_income_weekly"].to_numpy(dtype=float) > POSITIVE_AMOUNT_FLOOR
            ).astype(np.int64),
            MatchFeature.CHILDCARE: (
                frame["childcare_cost_weekly"].to_numpy(dtype=float) > POSITIVE_AMOUNT_FLOOR
            ).astype(np.int64),
        }

        buckets = {f: BUCKET_TABLES[f][state] for f, state in states.items()}
        buckets[MatchFeature.CHILDREN] = children
        return {f: buckets[f] for f in ENCODED_FEATURES}

    def bucketize(
        self, household: HouseholdAttributes
    ) -> Dict[MatchFeature, Tuple[int, ...]]:
        """Buckets per regime for a single household."""
        frame = households_to_frame([household])
        return {
            feature: tuple(int(b) for b in buckets[0])
            for feature, buckets in self.bucketize_frame(frame).items()
        }
