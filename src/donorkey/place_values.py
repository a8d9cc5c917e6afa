"""
Place-value table for the mixed-radix donor key.

The place value of a feature at a regime is the product of the bucket
counts of every feature before it in the catalogue, so ``AGE`` always has
place value 1 and ``FINAL`` holds the total key space for the regime
(the size of the donor lookup array).

Example:
    >>> from donorkey.place_values import PlaceValueTable
    >>> from donorkey.features import MatchFeature
    >>> table = PlaceValueTable.build()
    >>> table.get(MatchFeature.INCOME, 0)
    2160
    >>> table.key_space(0)
    34560
"""

import logging
import threading
from typing import Dict, Mapping, Optional, Sequence

import numpy as np
import pandas as pd

from donorkey.errors import ConfigurationError
from donorkey.features import (
    BUCKET_COUNTS,
    CATALOGUE,
    ENCODED_FEATURES,
    MatchFeature,
)

logger = logging.getLogger(__name__)


class PlaceValueTable:
    """
    Immutable multipliers for every (feature, regime) pair.

    Built once from a bucket-count table and then shared by reference
    between encoders and decoders. The underlying array is read-only, so
    concurrent readers need no locking.

    Attributes:
        bucket_counts: Feature -> bucket count per regime
        regime_count: Number of regimes the table covers
    """

    def __init__(
        self,
        values: np.ndarray,
        bucket_counts: Mapping[MatchFeature, Sequence[int]],
    ):
        values = np.array(values, dtype=np.int64)
        if values.shape[0] != len(CATALOGUE):
            raise ConfigurationError(
                f"Place-value table has {values.shape[0]} rows, "
                f"expected {len(CATALOGUE)}"
            )
        values.setflags(write=False)
        self._values = values
        self.bucket_counts: Dict[MatchFeature, tuple] = {
            f: tuple(int(c) for c in counts) for f, counts in bucket_counts.items()
        }
        self.regime_count = int(values.shape[1])

    @classmethod
    def build(
        cls,
        bucket_counts: Optional[Mapping[MatchFeature, Sequence[int]]] = None,
    ) -> "PlaceValueTable":
        """
        Derive place values by cumulative product over the catalogue.

        Args:
            bucket_counts: Bucket count per regime for every encoded
                           feature. Defaults to ``BUCKET_COUNTS``.

        Returns:
            A new immutable table.

        Raises:
            ConfigurationError: If a feature is missing, regimes disagree in
                                number, or a count is not a positive integer.
        """
        if bucket_counts is None:
            bucket_counts = BUCKET_COUNTS

        missing = [f.name for f in ENCODED_FEATURES if f not in bucket_counts]
        if missing:
            raise ConfigurationError(f"Missing bucket counts for: {missing}")

        lengths = {len(bucket_counts[f]) for f in ENCODED_FEATURES}
        if len(lengths) != 1:
            raise ConfigurationError(
                f"Bucket counts disagree on the number of regimes: {sorted(lengths)}"
            )
        regime_count = lengths.pop()
        if regime_count == 0:
            raise ConfigurationError("Bucket counts cover no regimes")

        values = np.empty((len(CATALOGUE), regime_count), dtype=np.int64)
        running = np.ones(regime_count, dtype=np.int64)
        for feature in CATALOGUE:
            values[feature.position] = running
            if not feature.is_encoded:
                break
            counts = np.asarray(bucket_counts[feature])
            if not np.issubdtype(counts.dtype, np.integer) or np.any(counts < 1):
                raise ConfigurationError(
                    f"Bucket counts for {feature.name} must be positive integers, "
                    f"got {list(bucket_counts[feature])}"
                )
            running = running * counts

        logger.debug(
            "Built place-value table for %d regimes, key space %s",
            regime_count,
            values[MatchFeature.FINAL.position].tolist(),
        )
        return cls(values, bucket_counts)

    def get(self, feature: MatchFeature, regime: int) -> int:
        """Place value of ``feature`` at ``regime``."""
        if not isinstance(feature, MatchFeature):
            raise ConfigurationError(f"Unknown match feature: {feature!r}")
        if not 0 <= regime < self.regime_count:
            raise ConfigurationError(
                f"No place value for {feature.name} at regime {regime}"
            )
        return int(self._values[feature.position, regime])

    def column(self, regime: int) -> np.ndarray:
        """Place values of every catalogue feature at ``regime``."""
        if not 0 <= regime < self.regime_count:
            raise ConfigurationError(f"No place values for regime {regime}")
        return self._values[:, regime]

    def key_space(self, regime: int) -> int:
        """Number of distinct keys at ``regime``."""
        return self.get(MatchFeature.FINAL, regime)

    @property
    def values(self) -> np.ndarray:
        """Read-only [n_features, n_regimes] array in catalogue order."""
        return self._values

    def to_frame(self) -> pd.DataFrame:
        """Table as a DataFrame indexed by feature name."""
        return pd.DataFrame(
            self._values,
            index=[f.value for f in CATALOGUE],
            columns=[f"regime_{r}" for r in range(self.regime_count)],
        )

    def __eq__(self, other) -> bool:
        if not isinstance(other, PlaceValueTable):
            return NotImplemented
        return np.array_equal(self._values, other._values)

    def __hash__(self) -> int:
        return hash(self._values.tobytes())

    def __repr__(self) -> str:
        return (
            f"PlaceValueTable(regimes={self.regime_count}, "
            f"key_space={self._values[-1].tolist()})"
        )


_default_table: Optional[PlaceValueTable] = None
_default_lock = threading.Lock()


def default_place_value_table() -> PlaceValueTable:
    """
    Process-wide table for ``BUCKET_COUNTS``.

    Built on first use behind a lock so that threads racing on first
    access all receive the same instance.
    """
    global _default_table
    table = _default_table
    if table is None:
        with _default_lock:
            if _default_table is None:
                _default_table = PlaceValueTable.build()
            table = _default_table
    return table
