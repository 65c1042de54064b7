"""
factorsea - Feature Set Enrichment Analysis on latent factors

Competitive feature set (gene set) enrichment of the loadings of a fitted
factor model: for every feature set and every factor, test whether member
features are more strongly associated with the factor than the rest.
"""

__version__ = "0.1.0"

from factorsea.core.model import FactorModel, FactorModelLike
from factorsea.enrichment import EnrichmentConfig, EnrichmentResult, run_enrichment_analysis
from factorsea.exceptions import (
    FactorSEAError,
    IncompatibleOptionsError,
    InvalidConfigurationError,
    InvalidInputError,
    NoFeatureSetsError,
    NoSignificantSetsError,
    NoSignificantSetsWarning,
    PermutationPrecisionWarning,
)
from factorsea.stats.types import (
    FeatureStatistic,
    PAdjustMethod,
    SetStatistic,
    StatisticalTest,
    Transformation,
)

__all__ = [
    "FactorModel",
    "FactorModelLike",
    "EnrichmentConfig",
    "EnrichmentResult",
    "run_enrichment_analysis",
    "FeatureStatistic",
    "SetStatistic",
    "StatisticalTest",
    "Transformation",
    "PAdjustMethod",
    "FactorSEAError",
    "InvalidConfigurationError",
    "IncompatibleOptionsError",
    "InvalidInputError",
    "NoFeatureSetsError",
    "NoSignificantSetsError",
    "NoSignificantSetsWarning",
    "PermutationPrecisionWarning",
]
