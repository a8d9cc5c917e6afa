"""
Default implementations of the collaborators the bucketizer consults.

The bucketizer accepts any callables with these signatures:

- state pension age: ``(sim_year, age) -> int``
- price index:       ``(year) -> float``

The simulation normally supplies its own; the classes here cover
standalone use and tests.
"""

import logging
from typing import Callable, Dict, Mapping, Optional, Tuple

import numpy as np

from donorkey.errors import ConfigurationError

logger = logging.getLogger(__name__)


StatePensionAge = Callable[[int, int], int]
PriceIndex = Callable[[int], float]


# UK state pension age by birth cohort: (first birth year, pension age).
# Cohort boundaries are rounded to whole years.
DEFAULT_PENSION_AGE_COHORTS: Tuple[Tuple[int, int], ...] = (
    (1954, 66),
    (1961, 67),
    (1977, 68),
)
EARLIEST_PENSION_AGE = 65


class StatePensionAgeSchedule:
    """
    State pension age as a step function of birth year.

    Example:
        >>> spa = StatePensionAgeSchedule()
        >>> spa(2020, 70)   # born 1950
        65
        >>> spa(2030, 40)   # born 1990
        68
    """

    def __init__(
        self,
        cohorts: Optional[Tuple[Tuple[int, int], ...]] = None,
        earliest_age: int = EARLIEST_PENSION_AGE,
    ):
        """
        Args:
            cohorts: ``(first_birth_year, pension_age)`` steps, any order.
            earliest_age: Pension age for cohorts before the first step.
        """
        self.cohorts = tuple(sorted(cohorts or DEFAULT_PENSION_AGE_COHORTS))
        self.earliest_age = earliest_age

    def __call__(self, sim_year: int, age: int) -> int:
        birth_year = sim_year - age
        pension_age = self.earliest_age
        for first_year, step_age in self.cohorts:
            if birth_year >= first_year:
                pension_age = step_age
        return pension_age


class PriceIndexSeries:
    """
    Price index by year, used to deflate incomes to a reference year.

    Years outside the series are clamped to the nearest available year,
    with a warning logged once per missing year. The flat series never
    warns, since every year shares the same index.

    Example:
        >>> prices = PriceIndexSeries({2017: 1.0, 2023: 1.25})
        >>> prices(2023)
        1.25
        >>> prices.ratio(2017, 2023)
        0.8
    """

    def __init__(self, values: Mapping[int, float], warn_on_clamp: bool = True):
        if not values:
            raise ConfigurationError("Price index series is empty")
        bad = {y: v for y, v in values.items() if not (np.isfinite(v) and v > 0)}
        if bad:
            raise ConfigurationError(
                f"Price index values must be positive and finite: {bad}"
            )
        self.values: Dict[int, float] = {int(y): float(v) for y, v in values.items()}
        self._years = np.array(sorted(self.values))
        self.warn_on_clamp = warn_on_clamp
        self._clamped: set = set()

    @classmethod
    def flat(cls, year: int = 2017) -> "PriceIndexSeries":
        """Series with index 1.0 at every year (no uprating)."""
        return cls({year: 1.0}, warn_on_clamp=False)

    def __call__(self, year: int) -> float:
        year = int(year)
        if year in self.values:
            return self.values[year]
        nearest = int(self._years[np.argmin(np.abs(self._years - year))])
        if year not in self._clamped and self.warn_on_clamp:
            logger.warning(
                "Price index has no entry for %d, using %d", year, nearest
            )
        self._clamped.add(year)
        return self.values[nearest]

    def ratio(self, reference_year: int, year: int) -> float:
        """Factor converting ``year`` prices to ``reference_year`` prices."""
        return self(reference_year) / self(year)

    def __len__(self) -> int:
        return len(self.values)

    def __repr__(self) -> str:
        return f"PriceIndexSeries(years={self._years.min()}-{self._years.max()})"
