"""
Catalogue of household characteristics used to build donor keys.

The order of ``MatchFeature`` members defines digit significance in the
mixed-radix key: ``AGE`` is the least significant digit and ``FINAL`` is
an aggregate marker whose place value equals the total key space.

Bucket counts per regime (0 = finest, 4 = coarsest):

    Feature         r0  r1  r2  r3  r4
    age              3   3   3   2   2
    adults           2   2   2   2   2
    children        18  18  18   9   4
    employment       5   5   5   3   1
    disability       2   2   1   1   1
    care_provision   2   2   2   1   1
    income           4   4   3   2   2
    dual_income      2   1   1   1   1
    childcare        2   1   1   1   1
"""

from enum import Enum
from typing import Dict, Tuple


# Number of matching regimes, from most fine (0) to most coarse
REGIME_COUNT = 5


class MatchFeature(Enum):
    """Household characteristics encoded in a donor key, in digit order."""

    AGE = "age"
    ADULTS = "adults"
    CHILDREN = "children"
    EMPLOYMENT = "employment"
    DISABILITY = "disability"
    CARE_PROVISION = "care_provision"
    INCOME = "income"
    DUAL_INCOME = "dual_income"
    CHILDCARE = "childcare"
    FINAL = "final"

    @property
    def position(self) -> int:
        """Digit position (0 = least significant)."""
        return CATALOGUE.index(self)

    @property
    def is_encoded(self) -> bool:
        """Whether the feature contributes a digit to the key."""
        return self is not MatchFeature.FINAL


CATALOGUE: Tuple[MatchFeature, ...] = tuple(MatchFeature)

# Features that carry a bucket (everything except the aggregate marker)
ENCODED_FEATURES: Tuple[MatchFeature, ...] = tuple(
    f for f in CATALOGUE if f.is_encoded
)

BUCKET_COUNTS: Dict[MatchFeature, Tuple[int, ...]] = {
    MatchFeature.AGE: (3, 3, 3, 2, 2),
    MatchFeature.ADULTS: (2, 2, 2, 2, 2),
    MatchFeature.CHILDREN: (18, 18, 18, 9, 4),
    MatchFeature.EMPLOYMENT: (5, 5, 5, 3, 1),
    MatchFeature.DISABILITY: (2, 2, 1, 1, 1),
    MatchFeature.CARE_PROVISION: (2, 2, 2, 1, 1),
    MatchFeature.INCOME: (4, 4, 3, 2, 2),
    MatchFeature.DUAL_INCOME: (2, 1, 1, 1, 1),
    MatchFeature.CHILDCARE: (2, 1, 1, 1, 1),
}

