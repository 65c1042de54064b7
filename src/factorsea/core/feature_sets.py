"""
Feature set membership normalization.

Feature sets arrive in one of two informationally equivalent forms:

    - a binary membership matrix (rows = feature sets, columns = features,
      entries in {0, 1})
    - a mapping from feature set name to a collection of feature ids

Both are converted once into a ``FeatureSetIndex``: for every retained set,
the sorted integer positions of its members within a fixed feature order.
That index is the only representation the statistic engines consume.

Examples:
    >>> membership = membership_from_mapping({
    ...     "glycolysis": ["HK1", "PFKM", "PKM"],
    ...     "tca_cycle": ["CS", "IDH1", "PKM"],
    ... })
    >>> membership.shape
    (2, 5)
    >>> index = build_feature_set_index(membership, ["PKM", "HK1", "CS"], min_size=2)
    >>> index.names
    ['glycolysis', 'tca_cycle']
    >>> index.indexes[0]
    array([0, 1])
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Iterator, Mapping, Sequence

import numpy as np
import pandas as pd
from numpy.typing import NDArray

from ..exceptions import InvalidInputError

__all__ = [
    'FeatureSetIndex',
    'membership_from_mapping',
    'membership_to_mapping',
    'validate_membership',
    'build_feature_set_index',
]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FeatureSetIndex:
    """
    Per-set member positions relative to a shared feature order.

    Attributes:
        names: Feature set names, in row order of every downstream result
        indexes: One sorted int array of member positions per set
        feature_ids: The shared feature order the positions refer to
    """

    names: list[str]
    indexes: list[NDArray[np.intp]]
    feature_ids: list[str]

    def __post_init__(self):
        if len(self.names) != len(self.indexes):
            raise InvalidInputError(
                f"names length ({len(self.names)}) != indexes length ({len(self.indexes)})"
            )

    @property
    def sizes(self) -> NDArray[np.intp]:
        return np.array([len(idx) for idx in self.indexes], dtype=np.intp)

    @property
    def n_features(self) -> int:
        return len(self.feature_ids)

    def __len__(self) -> int:
        return len(self.names)

    def __iter__(self) -> Iterator[tuple[str, NDArray[np.intp]]]:
        return iter(zip(self.names, self.indexes))

    def to_membership(self) -> pd.DataFrame:
        """Binary membership matrix (sets x features) over ``feature_ids``."""
        matrix = np.zeros((len(self.names), self.n_features), dtype=int)
        for row, idx in enumerate(self.indexes):
            matrix[row, idx] = 1
        return pd.DataFrame(matrix, index=list(self.names), columns=list(self.feature_ids))


def membership_from_mapping(feature_sets: Mapping[str, Iterable[str]]) -> pd.DataFrame:
    """
    Convert a name -> members mapping to a binary membership matrix.

    The feature axis is the union of all members in first-seen order; rows
    follow the mapping's order. Duplicate members within a set count once.
    """
    features: dict[str, None] = {}
    members_by_set = {}
    for name, members in feature_sets.items():
        if isinstance(members, str):
            raise InvalidInputError(
                f"Members of feature set '{name}' must be a collection of ids, not a string"
            )
        members = list(members)
        members_by_set[name] = set(members)
        for feature in members:
            features.setdefault(feature, None)

    feature_order = list(features)
    matrix = pd.DataFrame(
        [[int(f in members_by_set[name]) for f in feature_order] for name in members_by_set],
        index=pd.Index(list(members_by_set), name="feature_set"),
        columns=pd.Index(feature_order, name="feature"),
        dtype=int,
    )
    return matrix


def membership_to_mapping(membership: pd.DataFrame) -> dict[str, list[str]]:
    """Convert a binary membership matrix to a name -> members mapping."""
    membership = validate_membership(membership)
    columns = membership.columns
    return {
        name: list(columns[row.to_numpy() == 1])
        for name, row in membership.iterrows()
    }


def validate_membership(feature_sets: pd.DataFrame | Mapping[str, Iterable[str]]) -> pd.DataFrame:
    """
    Return the binary membership matrix for either accepted input form.

    Raises:
        InvalidInputError: If the input is neither a DataFrame nor a mapping,
            contains values other than 0/1, or has duplicate set/feature ids.
    """
    if isinstance(feature_sets, Mapping):
        membership = membership_from_mapping(feature_sets)
    elif isinstance(feature_sets, pd.DataFrame):
        membership = feature_sets
    else:
        raise InvalidInputError(
            "feature_sets has to be a mapping of set name to members or a binary "
            f"membership DataFrame, got {type(feature_sets).__name__}"
        )

    if not membership.columns.is_unique:
        raise InvalidInputError("Feature ids in the membership matrix are not unique")
    if not membership.index.is_unique:
        raise InvalidInputError("Feature set names in the membership matrix are not unique")

    values = membership.to_numpy()
    if values.dtype == bool:
        return membership.astype(int)
    if not np.issubdtype(values.dtype, np.number):
        raise InvalidInputError("Membership matrix must be numeric with entries in {0, 1}")
    if not np.isin(values, (0, 1)).all():
        raise InvalidInputError("Membership matrix must only contain 0 and 1")
    return membership.astype(int)


def build_feature_set_index(
    membership: pd.DataFrame,
    feature_order: Sequence[str],
    min_size: int = 1,
) -> FeatureSetIndex:
    """
    Build member positions for every set with at least ``min_size`` members.

    Membership columns that are not in ``feature_order`` are ignored, so the
    size checked against ``min_size`` is the overlap with ``feature_order``.

    Args:
        membership: Binary membership matrix (sets x features).
        feature_order: The shared feature order positions refer to.
        min_size: Minimum number of overlapping members to keep a set.

    Returns:
        FeatureSetIndex over ``feature_order``.
    """
    membership = validate_membership(membership)
    feature_order = list(feature_order)
    aligned = membership.reindex(columns=feature_order, fill_value=0)
    values = aligned.to_numpy()

    names = []
    indexes = []
    for name, row in zip(aligned.index, values):
        idx = np.flatnonzero(row == 1).astype(np.intp)
        if len(idx) >= min_size:
            names.append(name)
            indexes.append(idx)

    n_dropped = membership.shape[0] - len(names)
    if n_dropped:
        logger.debug(f"Dropped {n_dropped} feature sets with fewer than {min_size} features")

    return FeatureSetIndex(names=names, indexes=indexes, feature_ids=feature_order)
