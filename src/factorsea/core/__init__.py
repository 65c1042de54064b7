"""Core data structures: the factor model container and feature set indexing."""

from factorsea.core.feature_sets import (
    FeatureSetIndex,
    build_feature_set_index,
    membership_from_mapping,
    membership_to_mapping,
    validate_membership,
)
from factorsea.core.model import FactorModel, FactorModelLike

__all__ = [
    "FactorModel",
    "FactorModelLike",
    "FeatureSetIndex",
    "build_feature_set_index",
    "membership_from_mapping",
    "membership_to_mapping",
    "validate_membership",
]
