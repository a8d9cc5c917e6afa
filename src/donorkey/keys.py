"""
Donor key encoding, decoding and the low-income classifier.

A donor key packs one bucket per feature into a single integer per regime
using the place values of ``PlaceValueTable``:

    key[r] = sum(bucket[f][r] * place_value[f][r] for f in features)

Decoding reverses this most-significant digit first: walking the catalogue
from ``FINAL`` down to ``AGE``, each place value divides the remainder to
yield that feature's bucket.

Example:
    >>> encoder = KeyEncoder()
    >>> hh = HouseholdAttributes(sim_year=2020, price_year=2017, age=70, adults=2)
    >>> keys = encoder.encode(hh)
    >>> keys
    [2165, 2165, 5, 3, 3]
    >>> KeyDecoder().decode(keys[0], MatchFeature.AGE, 0)
    2
"""

import logging
from typing import Dict, List, Mapping, Optional, Sequence, Union

import numpy as np
import pandas as pd

from donorkey.bucketing import FeatureBucketizer
from donorkey.errors import DecodeExhausted, MissingFeatureEntry
from donorkey.features import CATALOGUE, ENCODED_FEATURES, MatchFeature
from donorkey.households import HouseholdAttributes
from donorkey.place_values import PlaceValueTable, default_place_value_table

logger = logging.getLogger(__name__)


# Income bucket that marks the low-income band at each regime. Regimes 0-1
# keep a separate band for substantial negative income; from regime 2 the
# two are merged into bucket 0.
LOW_INCOME_BUCKETS = (1, 1, 0, 0, 0)


def key_column(regime: int) -> str:
    return f"key_r{regime}"


def low_income_column(regime: int) -> str:
    return f"low_income_r{regime}"


class KeyEncoder:
    """
    Combines feature buckets with place values into one key per regime.

    The bucket rules are checked against the table when the encoder is
    constructed, so a bucket can never spill into a neighbouring digit.

    Attributes:
        table: Place values shared with decoders
        bucketizer: Rules turning household attributes into buckets
    """

    def __init__(
        self,
        table: Optional[PlaceValueTable] = None,
        bucketizer: Optional[FeatureBucketizer] = None,
    ):
        self.table = table or default_place_value_table()
        self.bucketizer = bucketizer or FeatureBucketizer()
        FeatureBucketizer.validate(self.table)

    @property
    def regime_count(self) -> int:
        return self.table.regime_count

    def combine(self, buckets: Mapping[MatchFeature, np.ndarray]) -> np.ndarray:
        """
        Keys from precomputed buckets.

        Args:
            buckets: Encoded feature -> integer array [n, n_regimes]
                     (a flat sequence is treated as one household).

        Returns:
            Integer array [n, n_regimes]

        Raises:
            MissingFeatureEntry: If a feature has no bucket for some regime.
        """
        keys = None
        for feature in ENCODED_FEATURES:
            if feature not in buckets:
                raise MissingFeatureEntry(feature, 0)
            values = np.atleast_2d(np.asarray(buckets[feature], dtype=np.int64))
            if values.shape[1] < self.regime_count:
                raise MissingFeatureEntry(feature, values.shape[1])
            place_values = self.table.values[feature.position]
            term = values[:, : self.regime_count] * place_values
            keys = term if keys is None else keys + term
        return keys

    def encode_buckets(self, buckets: Mapping[MatchFeature, Sequence[int]]) -> List[int]:
        """Keys for a single household's buckets."""
        return [int(k) for k in self.combine(buckets)[0]]

    def encode(self, household: HouseholdAttributes) -> List[int]:
        """Donor keys for one household, ordered from finest to coarsest regime."""
        return self.encode_buckets(self.bucketizer.bucketize(household))

    def encode_frame(self, data: pd.DataFrame) -> np.ndarray:
        """
        Donor keys for every household in a DataFrame.

        Returns:
            Integer array [n_households, n_regimes]
        """
        keys = self.combine(self.bucketizer.bucketize_frame(data))
        logger.debug("Encoded %d households", len(keys))
        return keys

    def assign_keys(self, data: pd.DataFrame) -> pd.DataFrame:
        """Copy of ``data`` with a ``key_r{regime}`` column per regime."""
        keys = self.encode_frame(data)
        result = data.copy()
        for regime in range(self.regime_count):
            result[key_column(regime)] = keys[:, regime]
        return result


class KeyDecoder:
    """Recovers a single feature's bucket from a donor key."""

    def __init__(self, table: Optional[PlaceValueTable] = None):
        self.table = table or default_place_value_table()

    def decode(
        self,
        key: Union[int, np.ndarray],
        feature: MatchFeature,
        regime: int,
    ) -> Union[int, np.ndarray]:
        """
        Bucket of ``feature`` encoded in ``key`` at ``regime``.

        Works on a single key or an array of keys for the same regime.

        Raises:
            ConfigurationError: If ``regime`` is outside the table.
            DecodeExhausted: If ``feature`` is not in the catalogue.
        """
        remainder = np.asarray(key, dtype=np.int64)
        for candidate in reversed(CATALOGUE):
            place_value = self.table.get(candidate, regime)
            digit = remainder // place_value
            if candidate is feature:
                return int(digit) if digit.ndim == 0 else digit
            remainder = remainder - digit * place_value
        raise DecodeExhausted(feature, regime)

    def decode_all(self, key: int, regime: int) -> Dict[MatchFeature, int]:
        """Bucket of every encoded feature in ``key``."""
        return {f: self.decode(key, f, regime) for f in ENCODED_FEATURES}


class LowIncomeClassifier:
    """Flags keys whose income digit falls in the low-income band."""

    def __init__(self, decoder: Optional[KeyDecoder] = None):
        self.decoder = decoder or KeyDecoder()

    def is_low_income(self, key: int, regime: int) -> bool:
        bucket = self.decoder.decode(key, MatchFeature.INCOME, regime)
        return bool(bucket == LOW_INCOME_BUCKETS[regime])

    def low_income_flags(self, keys: Sequence[int]) -> List[bool]:
        """One flag per regime for a household's key vector."""
        return [self.is_low_income(k, regime) for regime, k in enumerate(keys)]

    def low_income_matrix(self, keys: np.ndarray) -> np.ndarray:
        """Boolean [n, n_regimes] flags for a key matrix from ``encode_frame``."""
        keys = np.atleast_2d(np.asarray(keys, dtype=np.int64))
        flags = np.zeros(keys.shape, dtype=bool)
        for regime in range(keys.shape[1]):
            income = self.decoder.decode(keys[:, regime], MatchFeature.INCOME, regime)
            flags[:, regime] = income == LOW_INCOME_BUCKETS[regime]
        return flags
