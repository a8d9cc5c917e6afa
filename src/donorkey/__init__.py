"""
donorkey: Donor keys for imputing tax and benefit amounts in microsimulation.

A household's characteristics are bucketed at several matching regimes,
from fine (small donor pools, close matches) to coarse (large pools),
and packed into one integer key per regime with a mixed-radix scheme:
- Feature catalogue and bucket counts per regime
- Place-value table derived from the bucket counts
- Encoding households (singly or as DataFrames) to keys
- Decoding a single feature's bucket from a key
- Low-income classification of keys

Example:
    >>> from donorkey import HouseholdAttributes, KeyEncoder
    >>> encoder = KeyEncoder()
    >>> hh = HouseholdAttributes(sim_year=2020, price_year=2017, age=70, adults=2)
    >>> encoder.encode(hh)
    [2165, 2165, 5, 3, 3]
"""

from donorkey.errors import (
    DonorKeyError,
    ConfigurationError,
    MissingFeatureEntry,
    DecodeExhausted,
)
from donorkey.features import (
    MatchFeature,
    CATALOGUE,
    ENCODED_FEATURES,
    BUCKET_COUNTS,
    REGIME_COUNT,
)
from donorkey.place_values import PlaceValueTable, default_place_value_table
from donorkey.households import HouseholdAttributes, households_to_frame
from donorkey.uprating import PriceIndexSeries, StatePensionAgeSchedule
from donorkey.config import MatchSettings, load_price_index
from donorkey.bucketing import FeatureBucketizer, BUCKET_TABLES
from donorkey.keys import (
    KeyEncoder,
    KeyDecoder,
    LowIncomeClassifier,
    LOW_INCOME_BUCKETS,
)

__version__ = "0.1.0"

__all__ = [
    # Errors
    "DonorKeyError",
    "ConfigurationError",
    "MissingFeatureEntry",
    "DecodeExhausted",
    # Catalogue
    "MatchFeature",
    "CATALOGUE",
    "ENCODED_FEATURES",
    "BUCKET_COUNTS",
    "REGIME_COUNT",
    # Place values
    "PlaceValueTable",
    "default_place_value_table",
    # Inputs and collaborators
    "HouseholdAttributes",
    "households_to_frame",
    "PriceIndexSeries",
    "StatePensionAgeSchedule",
    "MatchSettings",
    "load_price_index",
    # Bucketing
    "FeatureBucketizer",
    "BUCKET_TABLES",
    # Keys
    "KeyEncoder",
    "KeyDecoder",
    "LowIncomeClassifier",
    "LOW_INCOME_BUCKETS",
]
