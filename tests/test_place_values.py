"""
Tests for the place-value table.

Regime-0 place values: age 1, adults 3, children 6, employment 108,
disability 540, care provision 1080, income 2160, dual income 8640,
childcare 17280, final 34560.
"""

from concurrent.futures import ThreadPoolExecutor

import numpy as np
import pandas as pd
import pytest

from donorkey import place_values
from donorkey.errors import ConfigurationError
from donorkey.features import (
    BUCKET_COUNTS,
    CATALOGUE,
    ENCODED_FEATURES,
    REGIME_COUNT,
    MatchFeature,
)
from donorkey.place_values import PlaceValueTable, default_place_value_table


# =============================================================================
# Catalogue
# =============================================================================

class TestCatalogue:
    """The feature order defines digit significance."""

    def test_order(self):
        """Should list features from least to most significant digit."""
        assert [f.name for f in CATALOGUE] == [
            "AGE", "ADULTS", "CHILDREN", "EMPLOYMENT", "DISABILITY",
            "CARE_PROVISION", "INCOME", "DUAL_INCOME", "CHILDCARE", "FINAL",
        ]

    def test_final_is_not_encoded(self):
        """Should leave the terminator out of the encoded features."""
        assert MatchFeature.FINAL not in ENCODED_FEATURES
        assert len(ENCODED_FEATURES) == len(CATALOGUE) - 1

    def test_positions(self):
        """Should number features by catalogue order."""
        assert MatchFeature.AGE.position == 0
        assert MatchFeature.FINAL.position == len(CATALOGUE) - 1

    def test_bucket_counts_cover_every_regime(self):
        """Should give every feature one count per regime."""
        for feature in ENCODED_FEATURES:
            assert len(BUCKET_COUNTS[feature]) == REGIME_COUNT


# =============================================================================
# Build
# =============================================================================

class TestBuild:
    """Place values are running products of preceding bucket counts."""

    @pytest.fixture
    def table(self):
        return PlaceValueTable.build()

    def test_regime_zero_values(self, table):
        """Should match the regime 0 place values."""
        expected = {
            MatchFeature.AGE: 1,
            MatchFeature.ADULTS: 3,
            MatchFeature.CHILDREN: 6,
            MatchFeature.EMPLOYMENT: 108,
            MatchFeature.DISABILITY: 540,
            MatchFeature.CARE_PROVISION: 1080,
            MatchFeature.INCOME: 2160,
            MatchFeature.DUAL_INCOME: 8640,
            MatchFeature.CHILDCARE: 17280,
            MatchFeature.FINAL: 34560,
        }
        for feature, value in expected.items():
            assert table.get(feature, 0) == value

    def test_key_space_per_regime(self, table):
        """Should give the key space of each regime."""
        assert [table.key_space(r) for r in range(REGIME_COUNT)] == [
            34560, 8640, 3240, 216, 32,
        ]

    def test_running_product(self, table):
        """Should equal the product of all earlier bucket counts."""
        for regime in range(REGIME_COUNT):
            running = 1
            for feature in CATALOGUE:
                assert table.get(feature, regime) == running
                if feature.is_encoded:
                    running *= BUCKET_COUNTS[feature][regime]

    def test_non_decreasing(self, table):
        """Should never decrease along the catalogue."""
        for regime in range(REGIME_COUNT):
            column = table.column(regime)
            assert np.all(np.diff(column) >= 0)

    def test_strictly_increasing_after_multi_bucket_feature(self, table):
        """Should grow after any feature with more than one bucket."""
        for regime in range(REGIME_COUNT):
            for prev, feature in zip(CATALOGUE, CATALOGUE[1:]):
                if BUCKET_COUNTS[prev][regime] > 1:
                    assert table.get(feature, regime) > table.get(prev, regime)

    def test_rebuild_is_equal(self, table):
        """Should compare equal to a fresh build."""
        assert PlaceValueTable.build() == table

    def test_values_are_read_only(self, table):
        """Should refuse writes to the value array."""
        with pytest.raises(ValueError):
            table.values[0, 0] = 99

    def test_to_frame(self, table):
        """Should render as a feature by regime DataFrame."""
        frame = table.to_frame()
        assert isinstance(frame, pd.DataFrame)
        assert frame.shape == (len(CATALOGUE), REGIME_COUNT)
        assert frame.loc["income", "regime_0"] == 2160

    def test_custom_counts(self):
        """Should build from injected bucket counts."""
        counts = {f: (2,) for f in ENCODED_FEATURES}
        table = PlaceValueTable.build(counts)
        assert table.regime_count == 1
        assert table.key_space(0) == 2 ** len(ENCODED_FEATURES)


# =============================================================================
# Errors
# =============================================================================

class TestErrors:
    """Misconfiguration surfaces as ConfigurationError."""

    def test_missing_feature(self):
        """Should name a feature with no counts."""
        counts = dict(BUCKET_COUNTS)
        del counts[MatchFeature.INCOME]
        with pytest.raises(ConfigurationError, match="INCOME"):
            PlaceValueTable.build(counts)

    def test_ragged_regimes(self):
        """Should reject counts with differing regime lengths."""
        counts = dict(BUCKET_COUNTS)
        counts[MatchFeature.AGE] = (3, 3)
        with pytest.raises(ConfigurationError, match="regimes"):
            PlaceValueTable.build(counts)

    def test_non_positive_count(self):
        """Should reject a zero bucket count."""
        counts = dict(BUCKET_COUNTS)
        counts[MatchFeature.ADULTS] = (2, 2, 0, 2, 2)
        with pytest.raises(ConfigurationError, match="ADULTS"):
            PlaceValueTable.build(counts)

    def test_get_unknown_regime(self):
        """Should reject regimes outside the table."""
        table = PlaceValueTable.build()
        with pytest.raises(ConfigurationError):
            table.get(MatchFeature.AGE, REGIME_COUNT)
        with pytest.raises(ConfigurationError):
            table.get(MatchFeature.AGE, -1)

    def test_get_unknown_feature(self):
        """Should reject a feature that is not in the catalogue."""
        table = PlaceValueTable.build()
        with pytest.raises(ConfigurationError):
            table.get("age", 0)


# =============================================================================
# Process-wide table
# =============================================================================

class TestDefaultTable:
    """The shared table is built exactly once, even under concurrent first use."""

    def test_same_instance(self):
        """Should return the same table on every call."""
        assert default_place_value_table() is default_place_value_table()

    def test_concurrent_first_use(self, monkeypatch):
        """Should build the table once under concurrent first use."""
        monkeypatch.setattr(place_values, "_default_table", None)
        builds = []
        original_build = PlaceValueTable.build.__func__

        def counting_build(cls, *args, **kwargs):
            builds.append(1)
            return original_build(cls, *args, **kwargs)

        monkeypatch.setattr(PlaceValueTable, "build", classmethod(counting_build))

        with ThreadPoolExecutor(max_workers=16) as pool:
            tables = list(pool.map(lambda _: default_place_value_table(), range(64)))

        assert len(builds) == 1
        assert all(t is tables[0] for t in tables)
