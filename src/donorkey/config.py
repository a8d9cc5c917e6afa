"""Settings for donor-key bucketing.

Settings can be built in code or loaded from YAML:

    full_time_hours_weekly: 20.0
    min_work_hours_weekly: 5.0
    suppress_social_care_costs: false
    price_index:
      2017: 1.0
      2023: 1.27

The ``price_index`` block is optional and is read by ``load_price_index``.
"""

from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

import yaml

from donorkey.errors import ConfigurationError
from donorkey.uprating import PriceIndexSeries


@dataclass(frozen=True)
class MatchSettings:
    """Simulation-wide constants used by the bucket rules."""

    # Employment: full-time at or above, part-time strictly between
    full_time_hours_weekly: float = 20.0
    min_work_hours_weekly: float = 5.0

    # Forces disability and care-provision buckets to zero
    suppress_social_care_costs: bool = False

    # Incomes are deflated to this year's prices before banding
    income_reference_year: int = 2017
    mid_age: int = 45
    low_income_threshold: float = 225.0
    high_income_threshold: float = 710.0

    def __post_init__(self):
        if self.min_work_hours_weekly > self.full_time_hours_weekly:
            raise ConfigurationError(
                "min_work_hours_weekly must not exceed full_time_hours_weekly"
            )
        if not 0 <= self.low_income_threshold < self.high_income_threshold:
            raise ConfigurationError(
                "Income thresholds must satisfy 0 <= low < high, got "
                f"{self.low_income_threshold} and {self.high_income_threshold}"
            )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "MatchSettings":
        """Build settings from a mapping, rejecting unknown keys."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigurationError(f"Unknown settings: {unknown}")
        return cls(**dict(data))

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "MatchSettings":
        """Load settings from a YAML file, ignoring any ``price_index`` block."""
        data = _read_yaml(path)
        data.pop("price_index", None)
        return cls.from_dict(data)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def load_price_index(path: Union[str, Path]) -> Optional[PriceIndexSeries]:
    """Price index series from the ``price_index`` block of a YAML file."""
    block = _read_yaml(path).get("price_index")
    if block is None:
        return None
    if not isinstance(block, dict):
        raise ConfigurationError("price_index must map years to index values")
    return PriceIndexSeries({int(y): float(v) for y, v in block.items()})


def _read_yaml(path: Union[str, Path]) -> Dict[str, Any]:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Settings file not found at {path}")
    with open(path) as f:
        data = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Settings file {path} must contain a mapping")
    return data
