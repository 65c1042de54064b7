"""
Feature set enrichment analysis on latent factors.

Entry point: ``run_enrichment_analysis``. Given a fitted factor model, a
view, and feature set membership, it tests for every feature set and every
selected factor whether member features are more strongly associated with
the factor than non-member features (a competitive null).

Pipeline:
    1. Validate configuration, factor selection and inputs (all fatal
       conditions surface here, before any statistic is computed)
    2. Restrict data, loadings and feature sets to the shared features and
       drop feature sets below the minimum size
    3. Compute feature statistics per factor
    4. Compute set statistics and p-values (parametric, correlation-adjusted
       parametric, or permutation)
    5. Adjust p-values per factor and list significant feature sets

Examples:
    >>> result = run_enrichment_analysis(
    ...     model, view="mRNA", feature_sets=reactome,
    ...     feature_statistic="z", statistical_test="cor.adj.parametric",
    ... )
    >>> result.significant_sets["Factor1"][:3]
    ['REACTOME_INTERFERON_SIGNALING', ...]
    >>> result.adjusted_pvalues.loc["REACTOME_INTERFERON_SIGNALING"]

References:
    Frost, Li & Moore (2015) "Principal component gene set enrichment
    (PCGSE)", BioData Mining 8:25.
    Argelaguet et al. (2018) "Multi-Omics Factor Analysis", Mol Syst Biol.
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Sequence, Union

import numpy as np
import pandas as pd

from .core.feature_sets import FeatureSetIndex, build_feature_set_index, validate_membership
from .core.model import FactorModelLike
from .exceptions import (
    IncompatibleOptionsError,
    InvalidConfigurationError,
    InvalidInputError,
    NoFeatureSetsError,
)
from .stats.feature_statistics import compute_feature_statistic_matrix
from .stats.multiple_testing import adjust_pvalue_matrix
from .stats.permutation import run_permutation_test
from .stats.set_statistics import compute_set_statistics
from .stats.types import (
    FeatureStatistic,
    PAdjustMethod,
    SetStatistic,
    StatisticalTest,
    Transformation,
)

__all__ = [
    'EnrichmentConfig',
    'EnrichmentResult',
    'resolve_factors',
    'run_enrichment_analysis',
]

logger = logging.getLogger(__name__)

FactorSelection = Union[str, int, Sequence[str], Sequence[int]]


@dataclass(frozen=True)
class EnrichmentConfig:
    """
    Options for ``run_enrichment_analysis``.

    String values are accepted for every enumerated option and coerced on
    construction, so ``EnrichmentConfig(statistical_test="cor.adj.parametric")``
    is equivalent to passing ``StatisticalTest.COR_ADJ_PARAMETRIC``.

    Attributes:
        feature_statistic: Per-feature association with a factor
        set_statistic: Competitive two-sample comparison
        statistical_test: How p-values are derived
        transformation: Transformation of the feature statistics
        min_size: Minimum number of overlapping features per feature set
        n_permutations: Permutation trials (permutation test only)
        n_jobs: Parallel workers for the permutation trials
        p_adjust_method: Per-factor multiple testing correction
        alpha: Adjusted p-value threshold for the significant set lists
        seed: Seed for the permutation trials (None = unseeded)
    """

    feature_statistic: FeatureStatistic = FeatureStatistic.LOADING
    set_statistic: SetStatistic = SetStatistic.MEAN_DIFF
    statistical_test: StatisticalTest = StatisticalTest.PARAMETRIC
    transformation: Transformation = Transformation.ABS_VALUE
    min_size: int = 10
    n_permutations: int = 1000
    n_jobs: int = 1
    p_adjust_method: PAdjustMethod = PAdjustMethod.BH
    alpha: float = 0.1
    seed: int | None = None

    def __post_init__(self):
        object.__setattr__(self, "feature_statistic", FeatureStatistic.parse(self.feature_statistic))
        object.__setattr__(self, "set_statistic", SetStatistic.parse(self.set_statistic))
        object.__setattr__(self, "statistical_test", StatisticalTest.parse(self.statistical_test))
        object.__setattr__(self, "transformation", Transformation.parse(self.transformation))
        object.__setattr__(self, "p_adjust_method", PAdjustMethod.parse(self.p_adjust_method))

        if not isinstance(self.min_size, (int, np.integer)) or self.min_size < 1:
            raise InvalidConfigurationError(f"min_size must be a positive integer, got {self.min_size!r}")
        if not isinstance(self.n_permutations, (int, np.integer)) or self.n_permutations < 1:
            raise InvalidConfigurationError(
                f"n_permutations must be a positive integer, got {self.n_permutations!r}"
            )
        if not isinstance(self.n_jobs, (int, np.integer)) or self.n_jobs == 0:
            raise InvalidConfigurationError(f"n_jobs must be a non-zero integer, got {self.n_jobs!r}")
        if not 0 < self.alpha < 1:
            raise InvalidConfigurationError(f"alpha must be in (0, 1), got {self.alpha!r}")

        if (
            self.statistical_test is StatisticalTest.PERMUTATION
            and self.feature_statistic is FeatureStatistic.LOADING
        ):
            raise IncompatibleOptionsError(
                "feature_statistic cannot be 'loading' if statistical_test is 'permutation'; "
                "use 'cor' or 'z'"
            )

    @classmethod
    def from_dict(cls, options: Mapping[str, Any]) -> "EnrichmentConfig":
        """
        Build a config from a plain mapping (e.g. a parsed YAML section).

        Keys may use dashes or dots in place of underscores.

        Raises:
            InvalidConfigurationError: On unknown keys or invalid values.
        """
        names = {f.name for f in dataclasses.fields(cls)}
        kwargs = {}
        for key, value in options.items():
            name = key.replace("-", "_").replace(".", "_")
            if name not in names:
                raise InvalidConfigurationError(
                    f"Unknown enrichment option '{key}'. Valid options: {sorted(names)}"
                )
            kwargs[name] = value
        return cls(**kwargs)

    def to_dict(self) -> dict[str, Any]:
        """JSON-compatible representation; enums are written as their values."""
        out = {}
        for f in dataclasses.fields(self):
            value = getattr(self, f.name)
            out[f.name] = value.value if hasattr(value, "value") else value
        return out

    def replace(self, **changes: Any) -> "EnrichmentConfig":
        return dataclasses.replace(self, **changes)


@dataclass(frozen=True, eq=False)
class EnrichmentResult:
    """
    Result bundle of one enrichment analysis; read-only once built.

    Attributes:
        feature_statistics: Feature statistics (features x factors)
        set_statistics: t or z statistics (feature sets x factors)
        pvalues: Raw p-values (feature sets x factors)
        adjusted_pvalues: Per-factor adjusted p-values (feature sets x factors)
        significant_sets: Factor -> feature sets with adjusted p <= alpha
        config: Options the analysis ran with
        view: View of the model that was analysed
        null_statistics: Absolute permutation null statistics
            (n_permutations, feature sets, factors); None unless the
            permutation test was used
    """

    feature_statistics: pd.DataFrame
    set_statistics: pd.DataFrame
    pvalues: pd.DataFrame
    adjusted_pvalues: pd.DataFrame
    significant_sets: dict[str, list[str]]
    config: EnrichmentConfig = field(default_factory=EnrichmentConfig)
    view: str | None = None
    null_statistics: np.ndarray | None = field(default=None, repr=False)

    @property
    def factors(self) -> list[str]:
        return list(self.pvalues.columns)

    @property
    def feature_sets(self) -> list[str]:
        return list(self.pvalues.index)

    @property
    def alpha(self) -> float:
        return self.config.alpha

    def summary(self) -> pd.DataFrame:
        """
        Long-format table with one row per (feature set, factor) pair.

        Columns: feature_set, factor, statistic, pvalue, adjusted_pvalue,
        significant. Sorted by factor, then adjusted p-value.
        """
        frames = {
            "statistic": self.set_statistics,
            "pvalue": self.pvalues,
            "adjusted_pvalue": self.adjusted_pvalues,
        }
        long = None
        for name, df in frames.items():
            melted = (
                df.rename_axis(index="feature_set", columns=None)
                .reset_index()
                .melt(id_vars="feature_set", var_name="factor", value_name=name)
            )
            long = melted if long is None else long.merge(melted, on=["feature_set", "factor"])

        long["significant"] = long["adjusted_pvalue"] <= self.alpha
        long["_factor_order"] = long["factor"].map({f: i for i, f in enumerate(self.factors)})
        long = long.sort_values(["_factor_order", "adjusted_pvalue"], kind="mergesort")
        return long.drop(columns="_factor_order").reset_index(drop=True)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dict (matrices as nested dicts)."""
        def _matrix(df: pd.DataFrame) -> dict:
            return {
                str(col): {str(k): (None if pd.isna(v) else float(v)) for k, v in df[col].items()}
                for col in df.columns
            }

        return {
            "view": self.view,
            "config": self.config.to_dict(),
            "factors": [str(f) for f in self.factors],
            "feature_sets": [str(s) for s in self.feature_sets],
            "set_statistics": _matrix(self.set_statistics),
            "pvalues": _matrix(self.pvalues),
            "adjusted_pvalues": _matrix(self.adjusted_pvalues),
            "significant_sets": {str(k): list(v) for k, v in self.significant_sets.items()},
        }


def resolve_factors(factors: FactorSelection, factor_names: Sequence[str]) -> list[str]:
    """
    Resolve a factor selection to factor names.

    Args:
        factors: "all", a factor name, a 0-based position, or a sequence of
            names or positions.
        factor_names: Ordered factor names of the model.

    Raises:
        InvalidInputError: If a name is unknown or a position out of range.
    """
    factor_names = list(factor_names)
    if isinstance(factors, str):
        if factors == "all":
            return factor_names
        factors = [factors]
    elif isinstance(factors, (int, np.integer)):
        factors = [factors]

    selected = list(factors)
    if not selected:
        raise InvalidInputError("No factors selected")

    resolved = []
    for factor in selected:
        if isinstance(factor, (bool, np.bool_)):
            raise InvalidInputError(f"Invalid factor selection {factor!r}")
        if isinstance(factor, (int, np.integer)):
            if not 0 <= factor < len(factor_names):
                raise InvalidInputError(
                    f"Factor position {factor} out of range for {len(factor_names)} factors"
                )
            resolved.append(factor_names[factor])
        elif factor in factor_names:
            resolved.append(factor)
        else:
            raise InvalidInputError(f"Factor '{factor}' not found. Available factors: {factor_names}")

    if len(set(resolved)) != len(resolved):
        raise InvalidInputError(f"Factor selection contains duplicates: {resolved}")
    return resolved


def _check_constant_factors(scores: pd.DataFrame) -> None:
    variances = scores.var(axis=0, skipna=True)
    constant = [str(f) for f, v in variances.items() if not (v > 0)]
    if constant:
        raise InvalidInputError(
            f"Factors {constant} are constant across samples; remove them from the selection"
        )


def _check_group_sizes(index: FeatureSetIndex) -> None:
    n_features = index.n_features
    too_small = [name for name, size in zip(index.names, index.sizes) if size < 2]
    too_large = [name for name, size in zip(index.names, index.sizes) if n_features - size < 2]
    if too_small:
        raise InvalidInputError(
            f"Feature sets {too_small} have fewer than 2 features; increase min_size"
        )
    if too_large:
        raise InvalidInputError(
            f"Feature sets {too_large} leave fewer than 2 of {n_features} features outside the set"
        )


def _warn_nonfinite_statistics(
    feature_stats: np.ndarray,
    feature_ids: Sequence[str],
    factors: Sequence[str],
    set_statistic: SetStatistic,
) -> None:
    nonfinite = ~np.isfinite(feature_stats)
    if set_statistic is SetStatistic.RANK_SUM:
        consequence = "they are left out of the rank-sum test"
    else:
        consequence = "the mean-difference statistics on this factor are not finite"
    for j in np.flatnonzero(nonfinite.any(axis=0)):
        bad = [str(feature_ids[i]) for i in np.flatnonzero(nonfinite[:, j])]
        shown = ", ".join(bad[:10]) + (", ..." if len(bad) > 10 else "")
        logger.warning(
            f"Factor '{factors[j]}': {len(bad)} feature(s) have non-finite feature "
            f"statistics ({shown}); {consequence}"
        )


def _align_inputs(
    model: FactorModelLike,
    view: str,
    membership: pd.DataFrame,
    factors: list[str],
) -> tuple[pd.DataFrame, pd.DataFrame, pd.DataFrame]:
    data = model.get_training_data(view)
    loadings = model.get_loadings(view)
    scores = model.get_factors()[factors]

    missing_samples = data.index.difference(scores.index)
    if len(missing_samples):
        raise InvalidInputError(
            f"{len(missing_samples)} samples of view '{view}' have no factor scores"
        )
    scores = scores.loc[data.index]
    _check_constant_factors(scores)

    membership_features = set(membership.columns)
    features = [f for f in data.columns if f in membership_features]
    if not features:
        raise InvalidInputError(
            f"Feature names in feature_sets do not match feature names of view '{view}'"
        )
    missing_loadings = pd.Index(features).difference(loadings.index)
    if len(missing_loadings):
        raise InvalidInputError(
            f"{len(missing_loadings)} features of view '{view}' have no loadings"
        )

    return data[features], loadings.loc[features, factors], scores


def run_enrichment_analysis(
    model: FactorModelLike,
    view: str,
    feature_sets: pd.DataFrame | Mapping[str, Iterable[str]],
    factors: FactorSelection = "all",
    config: EnrichmentConfig | None = None,
    **options: Any,
) -> EnrichmentResult:
    """
    Run feature set enrichment analysis on the factors of a model.

    Args:
        model: Fitted factor model providing training data, loadings and
            factor scores.
        view: View whose features are tested.
        feature_sets: Binary membership DataFrame (feature sets x features)
            or a mapping of feature set name to member feature ids. The
            permutation test requires the DataFrame form.
        factors: "all", factor names, or 0-based factor positions.
        config: Analysis options. Defaults to ``EnrichmentConfig()``.
        **options: Overrides of individual ``EnrichmentConfig`` fields, e.g.
            ``statistical_test="permutation"``.

    Returns:
        EnrichmentResult with feature statistics, set statistics, raw and
        adjusted p-values and per-factor significant feature sets.

    Raises:
        InvalidConfigurationError: Unrecognized or out-of-range option.
        IncompatibleOptionsError: ``loading`` statistic or non-matrix
            feature sets combined with the permutation test.
        InvalidInputError: Unknown or constant factors, malformed feature
            sets, or no overlap between feature set and model features.
        NoFeatureSetsError: No feature set reaches ``min_size``.
    """
    config = config or EnrichmentConfig()
    if options:
        try:
            config = config.replace(**options)
        except TypeError as e:
            raise InvalidConfigurationError(str(e)) from e

    if config.statistical_test is StatisticalTest.PERMUTATION and not isinstance(feature_sets, pd.DataFrame):
        raise IncompatibleOptionsError(
            "feature_sets must be a binary membership matrix if statistical_test is 'permutation'"
        )

    factors = resolve_factors(factors, model.factor_names)
    membership = validate_membership(feature_sets)
    data, loadings, scores = _align_inputs(model, view, membership, factors)

    feature_ids = list(data.columns)
    index = build_feature_set_index(membership, feature_ids, min_size=config.min_size)
    if len(index) == 0:
        raise NoFeatureSetsError(
            f"No feature set has at least {config.min_size} features in view '{view}'"
        )
    _check_group_sizes(index)

    logger.info("Doing Feature Set Enrichment Analysis with the following options...")
    logger.info(f"View: {view}")
    logger.info(f"Factors: {' '.join(str(f) for f in factors)}")
    logger.info(f"Number of feature sets: {len(index)}")
    logger.info(f"Feature statistic: {config.feature_statistic.value}")
    logger.info(f"Transformation: {config.transformation.value}")
    logger.info(f"Set statistic: {config.set_statistic.value}")
    logger.info(f"Statistical test: {config.statistical_test.value}")
    if config.statistical_test is StatisticalTest.PERMUTATION:
        logger.info(f"Workers: {config.n_jobs}")
        logger.info(f"Number of permutations: {config.n_permutations}")

    data_np = data.to_numpy(dtype=np.float64)
    loadings_np = loadings.to_numpy(dtype=np.float64)
    scores_np = scores.to_numpy(dtype=np.float64)

    feature_stats = compute_feature_statistic_matrix(
        data_np, loadings_np, scores_np, config.feature_statistic, config.transformation
    )
    _warn_nonfinite_statistics(feature_stats, feature_ids, factors, config.set_statistic)

    null_statistics = None
    if config.statistical_test is StatisticalTest.PERMUTATION:
        permutation = run_permutation_test(
            data_np,
            loadings_np,
            scores_np,
            index,
            feature_statistic=config.feature_statistic,
            transformation=config.transformation,
            set_statistic=config.set_statistic,
            n_permutations=config.n_permutations,
            n_jobs=config.n_jobs,
            seed=config.seed,
        )
        set_stats, pvalues = permutation.statistics, permutation.pvalues
        null_statistics = permutation.null_statistics
    else:
        parametric = compute_set_statistics(
            feature_stats,
            index,
            config.set_statistic,
            cor_adjustment=config.statistical_test.cor_adjustment,
            data=data_np,
        )
        set_stats, pvalues = parametric.statistics, parametric.pvalues

    set_index = pd.Index(index.names, name="feature_set")
    factor_index = pd.Index(factors, name="factor")
    set_stats_df = pd.DataFrame(set_stats, index=set_index, columns=factor_index)
    pvalues_df = pd.DataFrame(pvalues, index=set_index, columns=factor_index)
    feature_stats_df = pd.DataFrame(
        feature_stats, index=pd.Index(feature_ids, name="feature"), columns=factor_index
    )

    adjusted_df = adjust_pvalue_matrix(pvalues_df, config.p_adjust_method)
    significant = {
        factor: list(adjusted_df.index[(adjusted_df[factor] <= config.alpha).to_numpy()])
        for factor in factors
    }
    logger.info(
        "Significant feature sets per factor: "
        + ", ".join(f"{f}={len(s)}" for f, s in significant.items())
    )

    return EnrichmentResult(
        feature_statistics=feature_stats_df,
        set_statistics=set_stats_df,
        pvalues=pvalues_df,
        adjusted_pvalues=adjusted_df,
        significant_sets=significant,
        config=config,
        view=view,
        null_statistics=null_statistics,
    )
