"""
Container for a fitted latent factor model.

The factorization itself (PCA, factor analysis, a multi-view factor model)
is computed upstream. Enrichment analysis only needs four things from it:
per-view training data, per-view loadings, the factor scores, and the
ordered factor names. Anything providing those satisfies
``FactorModelLike``; ``FactorModel`` is the plain in-memory implementation.

Shape Conventions:
    - training data: samples x features  (index = sample ids)
    - loadings:      features x factors  (index = feature ids)
    - factor scores: samples x factors   (index = sample ids)

Examples:
    >>> model = FactorModel(
    ...     training_data={"mRNA": expression},   # samples x genes
    ...     loadings={"mRNA": weights},           # genes x factors
    ...     factors=scores,                       # samples x factors
    ... )
    >>> model.factor_names
    ['Factor1', 'Factor2', 'Factor3']
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping, Protocol, runtime_checkable

import pandas as pd

from ..exceptions import InvalidInputError

__all__ = ['FactorModelLike', 'FactorModel']


@runtime_checkable
class FactorModelLike(Protocol):
    """Protocol for an upstream factor model consumed by enrichment analysis."""

    @property
    def factor_names(self) -> list[str]:
        """Ordered factor names known to the model."""
        ...

    def get_training_data(self, view: str) -> pd.DataFrame:
        """Training data for one view (samples x features)."""
        ...

    def get_loadings(self, view: str) -> pd.DataFrame:
        """Loadings for one view (features x factors)."""
        ...

    def get_factors(self) -> pd.DataFrame:
        """Factor scores (samples x factors)."""
        ...


@dataclass(frozen=True, eq=False)
class FactorModel:
    """
    Immutable in-memory factor model.

    Attributes:
        training_data: Mapping view -> samples x features DataFrame
        loadings: Mapping view -> features x factors DataFrame
        factors: samples x factors DataFrame of factor scores

    Shape Invariants:
        - every view has both training data and loadings
        - loadings columns == factors columns (same order)
        - loadings index == training data columns (as sets)
        - factors index == training data index (as sets)
    """

    training_data: Mapping[str, pd.DataFrame]
    loadings: Mapping[str, pd.DataFrame]
    factors: pd.DataFrame
    _views: tuple[str, ...] = field(init=False, repr=False)

    def __post_init__(self):
        if set(self.training_data) != set(self.loadings):
            raise InvalidInputError(
                f"training_data views {sorted(self.training_data)} do not match "
                f"loadings views {sorted(self.loadings)}"
            )
        factor_names = list(self.factors.columns)
        if len(set(factor_names)) != len(factor_names):
            raise InvalidInputError("Factor names must be unique")

        for view, data in self.training_data.items():
            weights = self.loadings[view]
            if list(weights.columns) != factor_names:
                raise InvalidInputError(
                    f"Loadings for view '{view}' have factors {list(weights.columns)}, "
                    f"expected {factor_names}"
                )
            if not data.columns.is_unique:
                raise InvalidInputError(f"Feature ids in view '{view}' are not unique")
            if set(weights.index) != set(data.columns):
                raise InvalidInputError(
                    f"Loadings for view '{view}' are not indexed by the view's features"
                )
            if set(data.index) != set(self.factors.index):
                raise InvalidInputError(
                    f"Samples in view '{view}' do not match factor score samples"
                )

        object.__setattr__(self, "_views", tuple(self.training_data))

    @property
    def views(self) -> list[str]:
        return list(self._views)

    @property
    def factor_names(self) -> list[str]:
        return list(self.factors.columns)

    def get_training_data(self, view: str) -> pd.DataFrame:
        return self.training_data[self._check_view(view)]

    def get_loadings(self, view: str) -> pd.DataFrame:
        return self.loadings[self._check_view(view)]

    def get_factors(self) -> pd.DataFrame:
        return self.factors

    def _check_view(self, view: str) -> str:
        if view not in self._views:
            raise InvalidInputError(f"Unknown view '{view}'. Available views: {self.views}")
        return view

    def __repr__(self) -> str:
        return (
            f"FactorModel(views={self.views}, n_factors={len(self.factor_names)}, "
            f"n_samples={self.factors.shape[0]})"
        )
