"""
Summaries of enrichment results for downstream reporting.

These return the tables behind the usual enrichment figures (top sets per
factor, a p-value heatmap over factors, counts of enriched sets per factor)
without drawing anything.
"""

from __future__ import annotations

import warnings

import numpy as np
import pandas as pd

from .enrichment import EnrichmentResult
from .exceptions import InvalidInputError, NoSignificantSetsError, NoSignificantSetsWarning

__all__ = [
    'significant_sets',
    'top_enriched_sets',
    'enrichment_heatmap_table',
    'count_enriched_sets',
]


def _resolve_factor(result: EnrichmentResult, factor: str | int) -> str:
    if isinstance(factor, (int, np.integer)) and not isinstance(factor, bool):
        if not 0 <= factor < len(result.factors):
            raise InvalidInputError(
                f"Factor position {factor} out of range for {len(result.factors)} factors"
            )
        return result.factors[factor]
    if factor not in result.factors:
        raise InvalidInputError(
            f"No feature set enrichment calculated for factor '{factor}'. "
            f"Available factors: {result.factors}"
        )
    return factor


def significant_sets(result: EnrichmentResult, alpha: float | None = None) -> dict[str, list[str]]:
    """Feature sets with adjusted p-value <= alpha, per factor (default: the run's alpha)."""
    if alpha is None:
        return {f: list(sets) for f, sets in result.significant_sets.items()}
    adjusted = result.adjusted_pvalues
    return {f: list(adjusted.index[(adjusted[f] <= alpha).to_numpy()]) for f in result.factors}


def top_enriched_sets(
    result: EnrichmentResult,
    factor: str | int,
    alpha: float = 0.1,
    max_sets: int = 25,
    adjust: bool = True,
) -> pd.DataFrame:
    """
    Most significant feature sets for one factor.

    Args:
        result: Enrichment result.
        factor: Factor name or 0-based position.
        alpha: p-value threshold.
        max_sets: Keep at most this many feature sets.
        adjust: Use adjusted (True) or raw (False) p-values.

    Returns:
        DataFrame with columns feature_set, pvalue, neg_log10_pvalue, sorted
        by increasing p-value. Empty (with a NoSignificantSetsWarning) when
        nothing passes ``alpha``.
    """
    factor = _resolve_factor(result, factor)
    pvalues = (result.adjusted_pvalues if adjust else result.pvalues)[factor]
    passing = pvalues[pvalues <= alpha].sort_values(kind="mergesort")

    if passing.empty:
        warnings.warn(
            f"No significant feature sets for factor '{factor}' at alpha={alpha}",
            NoSignificantSetsWarning,
            stacklevel=2,
        )

    passing = passing.head(max_sets)
    with np.errstate(divide="ignore"):
        neg_log = -np.log10(passing.to_numpy(dtype=np.float64))
    return pd.DataFrame({
        "feature_set": list(passing.index),
        "pvalue": passing.to_numpy(dtype=np.float64),
        "neg_log10_pvalue": neg_log,
    })


def enrichment_heatmap_table(
    result: EnrichmentResult,
    alpha: float = 0.05,
    log_scale: bool = True,
) -> pd.DataFrame:
    """
    Adjusted p-values of feature sets significant on at least one factor.

    Args:
        result: Enrichment result.
        alpha: Keep feature sets with adjusted p-value < alpha on any factor.
        log_scale: Return -log10 adjusted p-values.

    Returns:
        DataFrame (feature sets x factors).
    """
    adjusted = result.adjusted_pvalues
    table = adjusted.loc[(adjusted < alpha).any(axis=1)]
    if log_scale:
        with np.errstate(divide="ignore"):
            table = -np.log10(table)
    return table


def count_enriched_sets(result: EnrichmentResult, alpha: float = 0.05) -> pd.Series:
    """
    Number of feature sets with adjusted p-value <= alpha, per factor.

    Raises:
        NoSignificantSetsError: If no feature set is significant on any factor.
    """
    adjusted = result.adjusted_pvalues
    if not (adjusted <= alpha).to_numpy().any():
        raise NoSignificantSetsError(
            f"No enriched feature sets found on the considered factors at alpha={alpha}"
        )
    counts = (adjusted <= alpha).sum(axis=0).astype(int)
    counts.name = "n_enriched"
    return counts
