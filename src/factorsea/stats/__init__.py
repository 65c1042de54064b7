"""
Statistical engines for feature set enrichment.

Modules:
    types: Option enums (feature statistic, set statistic, test, ...)
    correlation: Pearson correlation helpers with missing-value handling
    feature_statistics: Per-feature association with each factor
    set_statistics: Competitive mean-difference and rank-sum tests
    permutation: Feature-permutation null distribution
    multiple_testing: Per-factor p-value adjustment
"""

from factorsea.stats.feature_statistics import (
    compute_feature_statistic_matrix,
    compute_feature_statistics,
    fisher_z_statistic,
)
from factorsea.stats.multiple_testing import adjust_pvalue_matrix, adjust_pvalues
from factorsea.stats.permutation import PermutationResult, run_permutation_test
from factorsea.stats.set_statistics import (
    SetStatisticResult,
    compute_set_statistics,
    mean_diff_test,
    rank_sum_test,
)
from factorsea.stats.types import (
    FeatureStatistic,
    PAdjustMethod,
    SetStatistic,
    StatisticalTest,
    Transformation,
)

__all__ = [
    # Options
    "FeatureStatistic",
    "SetStatistic",
    "StatisticalTest",
    "Transformation",
    "PAdjustMethod",
    # Feature statistics
    "fisher_z_statistic",
    "compute_feature_statistics",
    "compute_feature_statistic_matrix",
    # Set statistics
    "SetStatisticResult",
    "mean_diff_test",
    "rank_sum_test",
    "compute_set_statistics",
    # Permutation
    "PermutationResult",
    "run_permutation_test",
    # Multiple testing
    "adjust_pvalues",
    "adjust_pvalue_matrix",
]
