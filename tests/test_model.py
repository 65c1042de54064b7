"""
Tests for the FactorModel container.
"""

import pandas as pd
import pytest

from factorsea.core.model import FactorModel, FactorModelLike
from factorsea.exceptions import InvalidInputError


def _frames():
    data = pd.DataFrame([[1.0, 2.0], [3.0, 5.0], [4.0, 1.0]],
                        index=["s1", "s2", "s3"], columns=["g1", "g2"])
    loadings = pd.DataFrame([[0.5, 0.1], [0.2, 0.9]], index=["g1", "g2"], columns=["F1", "F2"])
    factors = pd.DataFrame([[0.1, 1.0], [0.3, -1.0], [-0.4, 0.5]],
                           index=["s1", "s2", "s3"], columns=["F1", "F2"])
    return data, loadings, factors


class TestFactorModel:
    """Test construction and accessors of FactorModel."""

    def test_accessors(self):
        data, loadings, factors = _frames()
        model = FactorModel({"rna": data}, {"rna": loadings}, factors)

        assert model.views == ["rna"]
        assert model.factor_names == ["F1", "F2"]
        pd.testing.assert_frame_equal(model.get_training_data("rna"), data)
        pd.testing.assert_frame_equal(model.get_loadings("rna"), loadings)
        pd.testing.assert_frame_equal(model.get_factors(), factors)

    def test_satisfies_protocol(self, factor_model):
        assert isinstance(factor_model, FactorModelLike)

    def test_unknown_view(self):
        data, loadings, factors = _frames()
        model = FactorModel({"rna": data}, {"rna": loadings}, factors)
        with pytest.raises(InvalidInputError, match="Unknown view"):
            model.get_training_data("protein")

    def test_views_must_match(self):
        data, loadings, factors = _frames()
        with pytest.raises(InvalidInputError, match="views"):
            FactorModel({"rna": data}, {"protein": loadings}, factors)

    def test_loading_factors_must_match(self):
        data, loadings, factors = _frames()
        with pytest.raises(InvalidInputError, match="expected"):
            FactorModel({"rna": data}, {"rna": loadings[["F2", "F1"]]}, factors)

    def test_loading_features_must_match(self):
        data, loadings, factors = _frames()
        with pytest.raises(InvalidInputError, match="not indexed"):
            FactorModel({"rna": data}, {"rna": loadings.rename(index={"g2": "g3"})}, factors)

    def test_samples_must_match(self):
        data, loadings, factors = _frames()
        with pytest.raises(InvalidInputError, match="Samples"):
            FactorModel({"rna": data}, {"rna": loadings}, factors.rename(index={"s3": "s4"}))

    def test_repr(self, factor_model):
        assert repr(factor_model) == "FactorModel(views=['view_0'], n_factors=3, n_samples=100)"
