"""Exceptions raised by donorkey.

Both fatal kinds signal a misconfigured catalogue or place-value table
rather than a transient failure, so neither is worth retrying.
"""


class DonorKeyError(Exception):
    """Base class for all donorkey errors."""


class ConfigurationError(DonorKeyError, ValueError):
    """Invalid bucket table, settings, lookup or collaborator."""


class MissingFeatureEntry(ConfigurationError, KeyError):
    """A (feature, regime) pair is absent while encoding."""

    def __init__(self, feature, regime: int):
        self.feature = feature
        self.regime = regime
        super().__init__(
            f"No bucket entry for feature {getattr(feature, 'name', feature)} "
            f"at regime {regime}"
        )

    def __str__(self) -> str:
        # KeyError would otherwise repr() the message
        return self.args[0]


class DecodeExhausted(DonorKeyError, RuntimeError):
    """Catalogue walked to the end without meeting the target feature."""

    def __init__(self, feature, regime: int):
        self.feature = feature
        self.regime = regime
        super().__init__(
            f"Failed to identify match feature {getattr(feature, 'name', feature)} "
            f"while decoding regime {regime}"
        )
