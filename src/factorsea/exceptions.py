"""
Error taxonomy for feature set enrichment analysis.

All fatal conditions are raised before any statistic is computed, so a
caller never receives a partially populated result.
"""

from __future__ import annotations

__all__ = [
    'FactorSEAError',
    'InvalidConfigurationError',
    'IncompatibleOptionsError',
    'InvalidInputError',
    'NoFeatureSetsError',
    'NoSignificantSetsError',
    'PermutationPrecisionWarning',
    'NoSignificantSetsWarning',
]


class FactorSEAError(Exception):
    """Base class for all factorsea errors."""
    pass


class InvalidConfigurationError(FactorSEAError, ValueError):
    """Raised when an enumerated option has an unrecognized value or a setting is out of range."""
    pass


class IncompatibleOptionsError(InvalidConfigurationError):
    """Raised when two individually valid options cannot be combined."""
    pass


class InvalidInputError(FactorSEAError, ValueError):
    """Raised when input data has the wrong shape, type, or content."""
    pass


class NoFeatureSetsError(FactorSEAError):
    """Raised when no feature set survives overlap and minimum-size filtering."""
    pass


class NoSignificantSetsError(FactorSEAError):
    """Raised by summaries that require at least one significant feature set."""
    pass


class PermutationPrecisionWarning(UserWarning):
    """Permutation p-values are only as precise as the number of permutations allows."""
    pass


class NoSignificantSetsWarning(UserWarning):
    """No feature set passed the requested significance threshold."""
    pass
