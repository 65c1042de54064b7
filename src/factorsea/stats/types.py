"""
Option types for feature set enrichment analysis.

Every selector accepted by the enrichment entry point is an Enum. String
values coming from config files or the command line are coerced through
``parse()``, which is the only place an unrecognized value can surface.
"""

from __future__ import annotations

from enum import Enum
from typing import TypeVar

from ..exceptions import InvalidConfigurationError

__all__ = [
    'FeatureStatistic',
    'Transformation',
    'SetStatistic',
    'StatisticalTest',
    'PAdjustMethod',
]

_E = TypeVar("_E", bound="_ParsableEnum")


class _ParsableEnum(Enum):
    """Enum with lenient string coercion."""

    @classmethod
    def parse(cls: type[_E], value: "_E | str") -> _E:
        """
        Coerce a string (or an existing member) to a member of this enum.

        Matching is case-insensitive and treats '.', '-' and '_' as
        equivalent, so ``"cor.adj.parametric"``, ``"cor_adj_parametric"``
        and ``StatisticalTest.COR_ADJ_PARAMETRIC`` are all accepted.

        Raises:
            InvalidConfigurationError: If the value matches no member.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            key = _normalize(value)
            for member in cls:
                if key == _normalize(member.value) or key == _normalize(member.name):
                    return member
            for alias, member_name in cls._aliases().items():
                if key == _normalize(alias):
                    return cls[member_name]
        allowed = ", ".join(repr(m.value) for m in cls)
        raise InvalidConfigurationError(
            f"Unrecognized {cls.__name__} {value!r}. Must be one of: {allowed}"
        )

    @classmethod
    def _aliases(cls) -> dict[str, str]:
        return {}


def _normalize(value: str) -> str:
    return value.strip().lower().replace(".", "_").replace("-", "_")


class FeatureStatistic(_ParsableEnum):
    """
    Per-feature association statistic between a feature and one factor.

    Attributes:
        LOADING: The factor loading itself (ignores the data matrix)
        COR: Pearson correlation between feature values and factor scores
        Z: Fisher Z-transformed correlation, sqrt(n-3) * atanh(r)
    """

    LOADING = "loading"
    COR = "cor"
    Z = "z"


class Transformation(_ParsableEnum):
    """Optional transformation of feature statistics."""

    NONE = "none"
    ABS_VALUE = "abs.value"

    @classmethod
    def _aliases(cls) -> dict[str, str]:
        return {"abs": "ABS_VALUE", "absolute": "ABS_VALUE"}


class SetStatistic(_ParsableEnum):
    """
    Competitive two-sample comparison of in-set vs out-of-set statistics.

    Attributes:
        MEAN_DIFF: Difference in means, two-sided Student t-test
        RANK_SUM: Wilcoxon rank-sum, two-sided normal approximation
    """

    MEAN_DIFF = "mean.diff"
    RANK_SUM = "rank.sum"


class StatisticalTest(_ParsableEnum):
    """
    How significance of a set statistic is derived.

    Attributes:
        PARAMETRIC: Closed-form null assuming independent features (liberal)
        COR_ADJ_PARAMETRIC: Closed-form null with the inter-feature
            correlation adjustment (conservative)
        PERMUTATION: Empirical null from permuting the feature axis
    """

    PARAMETRIC = "parametric"
    COR_ADJ_PARAMETRIC = "cor.adj.parametric"
    PERMUTATION = "permutation"

    @property
    def cor_adjustment(self) -> bool:
        return self is StatisticalTest.COR_ADJ_PARAMETRIC


class PAdjustMethod(_ParsableEnum):
    """
    Multiple testing correction procedures.

    Values follow the conventional short names; ``statsmodels_name`` gives
    the identifier understood by ``statsmodels.stats.multitest.multipletests``.
    """

    HOLM = "holm"
    HOCHBERG = "hochberg"
    HOMMEL = "hommel"
    BONFERRONI = "bonferroni"
    BH = "BH"
    BY = "BY"
    NONE = "none"

    @classmethod
    def _aliases(cls) -> dict[str, str]:
        return {
            "fdr": "BH",
            "fdr_bh": "BH",
            "benjamini-hochberg": "BH",
            "fdr_by": "BY",
            "benjamini-yekutieli": "BY",
            "simes-hochberg": "HOCHBERG",
        }

    @property
    def statsmodels_name(self) -> str | None:
        return _STATSMODELS_NAMES[self]


_STATSMODELS_NAMES = {
    PAdjustMethod.HOLM: "holm",
    PAdjustMethod.HOCHBERG: "simes-hochberg",
    PAdjustMethod.HOMMEL: "hommel",
    PAdjustMethod.BONFERRONI: "bonferroni",
    PAdjustMethod.BH: "fdr_bh",
    PAdjustMethod.BY: "fdr_by",
    PAdjustMethod.NONE: None,
}
