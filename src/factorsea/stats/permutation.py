"""
Permutation null for competitive set statistics.

Each trial draws a random permutation of the feature axis and applies it
to both the rows of the loading matrix and the columns of the training
data, while factor scores and feature set membership stay fixed. This
breaks the link between membership and feature statistics without
changing the distribution of the statistics themselves. The unadjusted
parametric engine is run on the permuted configuration and the absolute
statistic is kept.

Per-cell empirical p-value:

    p = #{trials with |null statistic| > |observed statistic|} / n_permutations

which is an estimate of the two-sided tail probability. It can be exactly
0 and its resolution is 1 / n_permutations, so many permutations are needed
for small p-values.

Trials are independent: every trial gets its own child of a
``numpy.random.SeedSequence`` and results are stored by trial index, so for
a given seed the null distribution is identical for any ``n_jobs``.
"""

from __future__ import annotations

import logging
import warnings
from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray

from ..core.feature_sets import FeatureSetIndex
from ..exceptions import PermutationPrecisionWarning
from .feature_statistics import compute_feature_statistic_matrix
from .set_statistics import compute_set_statistics
from .types import FeatureStatistic, SetStatistic, Transformation

__all__ = [
    'NullConfiguration',
    'PermutationResult',
    'permute_configuration',
    'set_statistic_matrix',
    'null_statistic',
    'empirical_pvalues',
    'run_permutation_test',
]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NullConfiguration:
    """
    Training data and loadings with the feature axis permuted.

    Attributes:
        data: Training data (n_samples, n_features), columns permuted
        loadings: Loadings (n_features, n_factors), rows permuted
        permutation: The feature permutation that was applied
    """

    data: NDArray[np.float64]
    loadings: NDArray[np.float64]
    permutation: NDArray[np.intp]


@dataclass(frozen=True)
class PermutationResult:
    """
    Result of the permutation test.

    Attributes:
        statistics: Observed (unpermuted) set statistics (n_sets, n_factors)
        pvalues: Empirical two-sided p-values (n_sets, n_factors)
        null_statistics: Absolute null statistics
            (n_permutations, n_sets, n_factors), indexed by trial
    """

    statistics: NDArray[np.float64]
    pvalues: NDArray[np.float64]
    null_statistics: NDArray[np.float64]

    @property
    def n_permutations(self) -> int:
        return self.null_statistics.shape[0]


def permute_configuration(
    data: NDArray[np.float64],
    loadings: NDArray[np.float64],
    permutation: NDArray[np.intp],
) -> NullConfiguration:
    """Apply one feature permutation to the data columns and loading rows."""
    permutation = np.asarray(permutation, dtype=np.intp)
    return NullConfiguration(
        data=np.asarray(data)[:, permutation],
        loadings=np.asarray(loadings)[permutation, :],
        permutation=permutation,
    )


def set_statistic_matrix(
    data: NDArray[np.float64],
    loadings: NDArray[np.float64],
    scores: NDArray[np.float64],
    index: FeatureSetIndex,
    feature_statistic: FeatureStatistic,
    transformation: Transformation,
    set_statistic: SetStatistic,
) -> NDArray[np.float64]:
    """Unadjusted parametric set statistics (n_sets, n_factors) for one configuration."""
    feature_stats = compute_feature_statistic_matrix(
        data, loadings, scores, feature_statistic, transformation
    )
    return compute_set_statistics(feature_stats, index, set_statistic, cor_adjustment=False).statistics


def null_statistic(
    configuration: NullConfiguration,
    scores: NDArray[np.float64],
    index: FeatureSetIndex,
    feature_statistic: FeatureStatistic,
    transformation: Transformation,
    set_statistic: SetStatistic,
) -> NDArray[np.float64]:
    """Absolute set statistics for one null configuration."""
    return np.abs(set_statistic_matrix(
        configuration.data,
        configuration.loadings,
        scores,
        index,
        feature_statistic,
        transformation,
        set_statistic,
    ))


def empirical_pvalues(
    observed: NDArray[np.float64],
    null_statistics: NDArray[np.float64],
) -> NDArray[np.float64]:
    """
    Fraction of trials whose absolute null statistic exceeds |observed|.

    Args:
        observed: Observed statistics (n_sets, n_factors).
        null_statistics: Null statistics (n_permutations, n_sets, n_factors).

    Returns:
        Empirical p-values (n_sets, n_factors), multiples of 1/n_permutations.
    """
    null_statistics = np.abs(np.asarray(null_statistics))
    exceed = null_statistics > np.abs(np.asarray(observed))[None, :, :]
    return exceed.sum(axis=0) / null_statistics.shape[0]


def _run_trial(
    trial: int,
    seed_seq: np.random.SeedSequence,
    data: NDArray[np.float64],
    loadings: NDArray[np.float64],
    scores: NDArray[np.float64],
    index: FeatureSetIndex,
    feature_statistic: FeatureStatistic,
    transformation: Transformation,
    set_statistic: SetStatistic,
) -> tuple[int, NDArray[np.float64]]:
    rng = np.random.default_rng(seed_seq)
    permutation = rng.permutation(loadings.shape[0])
    configuration = permute_configuration(data, loadings, permutation)
    return trial, null_statistic(
        configuration, scores, index, feature_statistic, transformation, set_statistic
    )


def run_permutation_test(
    data: NDArray[np.float64],
    loadings: NDArray[np.float64],
    scores: NDArray[np.float64],
    index: FeatureSetIndex,
    feature_statistic: FeatureStatistic | str = FeatureStatistic.Z,
    transformation: Transformation | str = Transformation.ABS_VALUE,
    set_statistic: SetStatistic | str = SetStatistic.MEAN_DIFF,
    n_permutations: int = 1000,
    n_jobs: int = 1,
    seed: int | None = None,
) -> PermutationResult:
    """
    Empirical p-values for every (feature set, factor) pair.

    Args:
        data: Training data (n_samples, n_features).
        loadings: Loadings (n_features, n_factors).
        scores: Factor scores (n_samples, n_factors).
        index: Member positions of every feature set.
        feature_statistic: Feature statistic; must not be ``loading``
            (enforced by the caller's configuration checks).
        transformation: Transformation of the feature statistics.
        set_statistic: Set statistic engine used under the null.
        n_permutations: Number of permutation trials.
        n_jobs: Number of parallel workers (joblib semantics, -1 = all CPUs).
        seed: Seed for the per-trial seed sequence. None gives results that
            vary from run to run.

    Returns:
        PermutationResult with observed statistics, empirical p-values and
        the null distribution.
    """
    from joblib import Parallel, delayed

    feature_statistic = FeatureStatistic.parse(feature_statistic)
    transformation = Transformation.parse(transformation)
    set_statistic = SetStatistic.parse(set_statistic)

    data = np.asarray(data, dtype=np.float64)
    loadings = np.asarray(loadings, dtype=np.float64)
    scores = np.asarray(scores, dtype=np.float64)

    warnings.warn(
        f"A large number of permutations is required for the permutation approach: "
        f"with {n_permutations} permutations the smallest non-zero p-value is "
        f"{1.0 / n_permutations:.2g}.",
        PermutationPrecisionWarning,
        stacklevel=2,
    )

    children = np.random.SeedSequence(seed).spawn(n_permutations)
    trial_args = (data, loadings, scores, index, feature_statistic, transformation, set_statistic)

    logger.info(f"Running {n_permutations} permutations on {n_jobs} worker(s)")
    if n_jobs == 1:
        results = []
        for trial, child in enumerate(children):
            results.append(_run_trial(trial, child, *trial_args))
            if (trial + 1) % 100 == 0:
                logger.debug(f"Completed {trial + 1}/{n_permutations} permutations")
    else:
        results = Parallel(n_jobs=n_jobs)(
            delayed(_run_trial)(trial, child, *trial_args)
            for trial, child in enumerate(children)
        )

    null_stats = np.empty((n_permutations, len(index), loadings.shape[1]), dtype=np.float64)
    for trial, statistic in results:
        null_stats[trial] = statistic

    observed = set_statistic_matrix(
        data, loadings, scores, index, feature_statistic, transformation, set_statistic
    )

    return PermutationResult(
        statistics=observed,
        pvalues=empirical_pvalues(observed, null_stats),
        null_statistics=null_stats,
    )
