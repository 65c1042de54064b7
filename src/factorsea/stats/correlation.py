"""
Pearson correlation helpers with missing-value handling.

Both helpers work on ndarrays laid out samples x features (the orientation
of training data) and use the standardize-then-dot-product formulation, so
a full factor's worth of feature statistics is a single vectorized pass.
"""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray

__all__ = ['correlate_with_vector', 'correlation_matrix', 'mean_pairwise_correlation']


def correlate_with_vector(
    data: NDArray[np.float64],
    y: NDArray[np.float64],
) -> NDArray[np.float64]:
    """
    Pearson correlation of every column of ``data`` with ``y``.

    Missing values are handled complete-case: a sample missing in ``y`` or
    in any column of ``data`` is dropped for every column, so all
    correlations are computed over the same samples. Fewer than two
    complete samples, or zero variance over them, yield NaN.

    Args:
        data: Matrix of shape (n_samples, n_features).
        y: Vector of shape (n_samples,).

    Returns:
        Correlations of shape (n_features,).
    """
    data = np.asarray(data, dtype=np.float64)
    y = np.asarray(y, dtype=np.float64)
    if data.shape[0] != y.shape[0]:
        raise ValueError(f"data has {data.shape[0]} samples but y has {y.shape[0]}")

    complete = ~np.isnan(data).any(axis=1) & ~np.isnan(y)
    if complete.sum() < 2:
        return np.full(data.shape[1], np.nan)
    data = data[complete]
    y = y[complete]

    x_dev = data - data.mean(axis=0)
    y_dev = y - y.mean()
    with np.errstate(invalid="ignore", divide="ignore"):
        r = (x_dev.T @ y_dev) / np.sqrt((x_dev ** 2).sum(axis=0) * (y_dev ** 2).sum())
    return np.clip(r, -1.0, 1.0)


def correlation_matrix(data: NDArray[np.float64]) -> NDArray[np.float64]:
    """
    Pearson correlation matrix between the columns of ``data``.

    Samples with a missing value in any column are dropped first
    (complete-case), so every entry is computed over the same samples.
    """
    data = np.asarray(data, dtype=np.float64)
    complete = ~np.isnan(data).any(axis=1)
    with np.errstate(invalid="ignore", divide="ignore"):
        return np.atleast_2d(np.corrcoef(data[complete], rowvar=False))


def mean_pairwise_correlation(data: NDArray[np.float64]) -> float:
    """
    Mean off-diagonal Pearson correlation between the columns of ``data``.

    Computed as (sum of the k x k correlation matrix - k) / (k * (k - 1)).
    Unlike a Camera-style estimate this is not floored at zero; negative
    mean correlation is returned as is.

    Returns:
        Mean pairwise correlation, NaN if fewer than 2 columns.
    """
    k = np.asarray(data).shape[1]
    if k < 2:
        return float("nan")
    corr = correlation_matrix(data)
    return float((corr.sum() - k) / (k * (k - 1)))
