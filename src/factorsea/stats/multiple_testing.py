"""
Multiple testing correction of set-level p-values.

Correction is applied independently per factor: each factor's column of
p-values across feature sets is one family.
"""

from __future__ import annotations

import numpy as np
import pandas as pd
from numpy.typing import NDArray

from .types import PAdjustMethod

__all__ = ['adjust_pvalues', 'adjust_pvalue_matrix']


def adjust_pvalues(
    pvalues: NDArray[np.float64],
    method: PAdjustMethod | str = PAdjustMethod.BH,
) -> NDArray[np.float64]:
    """
    Adjust a vector of p-values for multiple testing.

    Args:
        pvalues: Array of raw p-values. NaN entries are left as NaN and
            excluded from the family.
        method: Correction method:
            - "BH": Benjamini-Hochberg (controls FDR)
            - "BY": Benjamini-Yekutieli (controls FDR under dependence)
            - "bonferroni", "holm", "hochberg", "hommel" (control FWER)
            - "none": no adjustment

    Returns:
        Array of adjusted p-values.
    """
    from statsmodels.stats.multitest import multipletests

    method = PAdjustMethod.parse(method)
    pvalues = np.asarray(pvalues, dtype=np.float64)
    adj_pvals = np.full_like(pvalues, np.nan)

    valid_mask = ~np.isnan(pvalues)
    if not np.any(valid_mask):
        return adj_pvals

    if method is PAdjustMethod.NONE:
        adj_pvals[valid_mask] = pvalues[valid_mask]
        return adj_pvals

    _, adj_pvals[valid_mask], _, _ = multipletests(
        pvalues[valid_mask],
        method=method.statsmodels_name,
        returnsorted=False,
    )
    return adj_pvals


def adjust_pvalue_matrix(
    pvalues: pd.DataFrame,
    method: PAdjustMethod | str = PAdjustMethod.BH,
) -> pd.DataFrame:
    """Adjust a (feature sets x factors) p-value table column by column."""
    return pvalues.apply(lambda column: pd.Series(
        adjust_pvalues(column.to_numpy(), method), index=column.index
    ))
