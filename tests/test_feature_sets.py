"""
Tests for feature set membership normalization and indexing.
"""

import numpy as np
import pandas as pd
import pytest

from factorsea.core.feature_sets import (
    FeatureSetIndex,
    build_feature_set_index,
    membership_from_mapping,
    membership_to_mapping,
    validate_membership,
)
from factorsea.exceptions import InvalidInputError


class TestMembershipConversion:
    """Test conversion between mapping and binary matrix forms."""

    def test_mapping_to_matrix(self):
        membership = membership_from_mapping({"a": ["x", "y"], "b": ["y", "z"]})

        assert list(membership.index) == ["a", "b"]
        assert list(membership.columns) == ["x", "y", "z"]
        np.testing.assert_array_equal(membership.to_numpy(), [[1, 1, 0], [0, 1, 1]])

    def test_duplicate_members_count_once(self):
        membership = membership_from_mapping({"a": ["x", "x", "y"]})
        np.testing.assert_array_equal(membership.to_numpy(), [[1, 1]])

    def test_matrix_to_mapping(self):
        mapping = {"a": ["x", "y"], "b": ["y", "z"]}
        assert membership_to_mapping(membership_from_mapping(mapping)) == mapping

    def test_string_members_rejected(self):
        with pytest.raises(InvalidInputError, match="not a string"):
            membership_from_mapping({"a": "xyz"})


class TestValidateMembership:
    """Test validation of membership input."""

    def test_boolean_matrix_converted(self):
        membership = pd.DataFrame([[True, False]], index=["s"], columns=["x", "y"])
        validated = validate_membership(membership)

        assert validated.to_numpy().dtype.kind == "i"
        np.testing.assert_array_equal(validated.to_numpy(), [[1, 0]])

    def test_mapping_accepted(self):
        validated = validate_membership({"s": ["x"]})
        assert validated.shape == (1, 1)

    def test_non_binary_values_rejected(self):
        membership = pd.DataFrame([[1, 2]], index=["s"], columns=["x", "y"])
        with pytest.raises(InvalidInputError, match="only contain 0 and 1"):
            validate_membership(membership)

    def test_non_numeric_values_rejected(self):
        membership = pd.DataFrame([["a", "b"]], index=["s"], columns=["x", "y"])
        with pytest.raises(InvalidInputError, match="numeric"):
            validate_membership(membership)

    def test_missing_values_rejected(self):
        membership = pd.DataFrame([[1.0, np.nan]], index=["s"], columns=["x", "y"])
        with pytest.raises(InvalidInputError):
            validate_membership(membership)

    def test_unsupported_type_rejected(self):
        with pytest.raises(InvalidInputError, match="mapping"):
            validate_membership([["x", "y"]])

    def test_duplicate_features_rejected(self):
        membership = pd.DataFrame([[1, 0]], index=["s"], columns=["x", "x"])
        with pytest.raises(InvalidInputError, match="not unique"):
            validate_membership(membership)


class TestBuildFeatureSetIndex:
    """Test positions of set members within the shared feature order."""

    def test_positions_follow_feature_order(self):
        membership = membership_from_mapping({
            "glycolysis": ["HK1", "PFKM", "PKM"],
            "tca_cycle": ["CS", "IDH1", "PKM"],
        })
        index = build_feature_set_index(membership, ["PKM", "HK1", "CS"], min_size=2)

        assert index.names == ["glycolysis", "tca_cycle"]
        np.testing.assert_array_equal(index.indexes[0], [0, 1])
        np.testing.assert_array_equal(index.indexes[1], [0, 2])
        np.testing.assert_array_equal(index.sizes, [2, 2])
        assert index.n_features == 3

    def test_min_size_boundary(self):
        """A set with exactly min_size overlapping members is kept, one fewer is dropped."""
        membership = membership_from_mapping({
            "three": ["a", "b", "c"],
            "two": ["a", "b", "z"],
        })
        index = build_feature_set_index(membership, ["a", "b", "c", "d"], min_size=3)

        assert index.names == ["three"]

    def test_size_counts_overlap_only(self):
        membership = membership_from_mapping({"s": ["a", "ghost1", "ghost2"]})
        assert len(build_feature_set_index(membership, ["a", "b"], min_size=2)) == 0
        assert len(build_feature_set_index(membership, ["a", "b"], min_size=1)) == 1

    def test_iteration_yields_name_and_positions(self):
        membership = membership_from_mapping({"s": ["b", "a"]})
        index = build_feature_set_index(membership, ["a", "b", "c"])

        (name, idx), = list(index)
        assert name == "s"
        np.testing.assert_array_equal(idx, [0, 1])

    def test_to_membership(self):
        membership = membership_from_mapping({"s": ["c", "a"], "t": ["b"]})
        index = build_feature_set_index(membership, ["a", "b", "c"])

        np.testing.assert_array_equal(index.to_membership().to_numpy(), [[1, 0, 1], [0, 1, 0]])
        assert list(index.to_membership().columns) == ["a", "b", "c"]

    def test_mismatched_lengths_rejected(self):
        with pytest.raises(InvalidInputError):
            FeatureSetIndex(names=["a", "b"], indexes=[np.array([0])], feature_ids=["x"])
