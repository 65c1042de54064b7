"""
Feature-level statistics: association between each feature and a factor.

Three statistics are supported (see ``FeatureStatistic``):

    loading  the factor loading itself; ignores the data matrix
    cor      Pearson correlation between feature values and factor scores
    z        Fisher Z of the correlation, sqrt(n - 3) * atanh(r)

followed by an optional absolute-value transformation, which discards the
sign when only the magnitude of the association matters.

References:
    Frost, Li & Moore (2015) "Principal component gene set enrichment
    (PCGSE)", BioData Mining 8:25.
"""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray

from .correlation import correlate_with_vector
from .types import FeatureStatistic, Transformation

__all__ = [
    'fisher_z_statistic',
    'compute_feature_statistics',
    'compute_feature_statistic_matrix',
]


def fisher_z_statistic(r: NDArray[np.float64], n_samples: int) -> NDArray[np.float64]:
    """
    Fisher's variance-stabilizing transform scaled to unit variance.

    z = sqrt(n - 3) * atanh(r) is approximately standard normal under
    r = 0. Correlations of exactly +/-1 map to +/-inf.
    """
    r = np.asarray(r, dtype=np.float64)
    with np.errstate(divide="ignore", invalid="ignore"):
        return np.sqrt(n_samples - 3) * np.arctanh(r)


def compute_feature_statistics(
    data: NDArray[np.float64],
    loadings: NDArray[np.float64],
    scores: NDArray[np.float64],
    method: FeatureStatistic | str = FeatureStatistic.LOADING,
    transformation: Transformation | str = Transformation.ABS_VALUE,
) -> NDArray[np.float64]:
    """
    Compute one statistic per feature for a single factor.

    Args:
        data: Training data (n_samples, n_features). Unused for ``loading``.
        loadings: Loadings of the factor (n_features,).
        scores: Factor scores (n_samples,).
        method: Which feature statistic to compute.
        transformation: Optional transformation of the statistic.

    Returns:
        Feature statistics of shape (n_features,).
    """
    method = FeatureStatistic.parse(method)
    transformation = Transformation.parse(transformation)

    if method is FeatureStatistic.LOADING:
        statistics = np.asarray(loadings, dtype=np.float64).copy()
    elif method is FeatureStatistic.COR:
        statistics = correlate_with_vector(data, scores)
    elif method is FeatureStatistic.Z:
        n_samples = np.asarray(data).shape[0]
        statistics = fisher_z_statistic(correlate_with_vector(data, scores), n_samples)
    else:
        raise AssertionError(f"Unhandled feature statistic: {method}")

    if transformation is Transformation.ABS_VALUE:
        statistics = np.abs(statistics)

    return statistics


def compute_feature_statistic_matrix(
    data: NDArray[np.float64],
    loadings: NDArray[np.float64],
    scores: NDArray[np.float64],
    method: FeatureStatistic | str = FeatureStatistic.LOADING,
    transformation: Transformation | str = Transformation.ABS_VALUE,
) -> NDArray[np.float64]:
    """
    Compute feature statistics for every factor.

    Args:
        data: Training data (n_samples, n_features).
        loadings: Loading matrix (n_features, n_factors).
        scores: Factor scores (n_samples, n_factors), same factor order.

    Returns:
        Feature statistics of shape (n_features, n_factors).
    """
    loadings = np.asarray(loadings, dtype=np.float64)
    scores = np.asarray(scores, dtype=np.float64)
    if loadings.shape[1] != scores.shape[1]:
        raise ValueError(
            f"loadings have {loadings.shape[1]} factors but scores have {scores.shape[1]}"
        )

    statistics = np.empty(loadings.shape, dtype=np.float64)
    for j in range(loadings.shape[1]):
        statistics[:, j] = compute_feature_statistics(
            data, loadings[:, j], scores[:, j], method, transformation
        )
    return statistics
