"""
Tests for feature-level statistics and correlation helpers.
"""

import numpy as np
import pytest

from factorsea.stats.correlation import (
    correlate_with_vector,
    correlation_matrix,
    mean_pairwise_correlation,
)
from factorsea.stats.feature_statistics import (
    compute_feature_statistic_matrix,
    compute_feature_statistics,
    fisher_z_statistic,
)
from factorsea.stats.types import FeatureStatistic, Transformation


@pytest.fixture
def rng():
    return np.random.default_rng(42)


class TestCorrelation:
    """Test Pearson correlation helpers."""

    def test_matches_numpy(self, rng):
        data = rng.normal(size=(40, 6))
        y = rng.normal(size=40)

        r = correlate_with_vector(data, y)
        expected = [np.corrcoef(data[:, j], y)[0, 1] for j in range(6)]
        np.testing.assert_allclose(r, expected, rtol=1e-10)

    def test_complete_case_with_missing_values(self, rng):
        data = rng.normal(size=(30, 4))
        y = rng.normal(size=30)
        data[[0, 3, 7], 1] = np.nan
        y[10] = np.nan

        r = correlate_with_vector(data, y)
        keep = np.setdiff1d(np.arange(30), [0, 3, 7, 10])
        expected = [np.corrcoef(data[keep, j], y[keep])[0, 1] for j in range(4)]
        np.testing.assert_allclose(r, expected, rtol=1e-10)

    def test_missing_value_in_one_feature_drops_sample_for_all(self, rng):
        data = rng.normal(size=(20, 3))
        y = rng.normal(size=20)
        data[5, 1] = np.nan

        r = correlate_with_vector(data, y)
        keep = np.arange(20) != 5
        assert np.isclose(r[0], np.corrcoef(data[keep, 0], y[keep])[0, 1])
        assert not np.isclose(r[0], np.corrcoef(data[:, 0], y)[0, 1])

    def test_too_few_complete_samples_gives_nan(self):
        data = np.array([[1.0, 1.0], [np.nan, 2.0], [np.nan, 3.0]])
        y = np.array([1.0, 2.0, 4.0])

        r = correlate_with_vector(data, y)
        assert np.isnan(r).all()

    def test_sample_count_mismatch(self, rng):
        with pytest.raises(ValueError):
            correlate_with_vector(rng.normal(size=(5, 2)), rng.normal(size=4))

    def test_mean_pairwise_correlation_two_columns(self, rng):
        data = rng.normal(size=(50, 2))
        assert mean_pairwise_correlation(data) == pytest.approx(np.corrcoef(data.T)[0, 1])

    def test_mean_pairwise_correlation_not_floored(self, rng):
        x = rng.normal(size=50)
        assert mean_pairwise_correlation(np.column_stack([x, -x])) == pytest.approx(-1.0)

    def test_mean_pairwise_correlation_single_column(self, rng):
        assert np.isnan(mean_pairwise_correlation(rng.normal(size=(10, 1))))

    def test_correlation_matrix_drops_incomplete_samples(self, rng):
        data = rng.normal(size=(20, 3))
        data[4, 2] = np.nan
        expected = np.corrcoef(np.delete(data, 4, axis=0), rowvar=False)
        np.testing.assert_allclose(correlation_matrix(data), expected)


class TestFisherZ:
    """Test the Fisher Z statistic."""

    def test_formula(self):
        r = np.array([0.0, 0.5, -0.3])
        np.testing.assert_allclose(fisher_z_statistic(r, 28), 5.0 * np.arctanh(r))

    def test_perfect_correlation_is_infinite(self):
        z = fisher_z_statistic(np.array([1.0, -1.0]), 10)
        assert np.isposinf(z[0])
        assert np.isneginf(z[1])


class TestComputeFeatureStatistics:
    """Test the per-factor feature statistic computer."""

    def test_loading_with_and_without_abs(self, rng):
        loadings = np.array([-0.5, 0.2, -1.0])
        data = rng.normal(size=(10, 3))
        scores = rng.normal(size=10)

        raw = compute_feature_statistics(data, loadings, scores, "loading", "none")
        absolute = compute_feature_statistics(data, loadings, scores, "loading", "abs.value")

        np.testing.assert_array_equal(raw, loadings)
        np.testing.assert_array_equal(absolute, np.abs(loadings))

    def test_loading_does_not_mutate_input(self, rng):
        loadings = np.array([-0.5, 0.2])
        compute_feature_statistics(rng.normal(size=(5, 2)), loadings, rng.normal(size=5))
        np.testing.assert_array_equal(loadings, [-0.5, 0.2])

    def test_cor_matches_correlation(self, rng):
        data = rng.normal(size=(25, 4))
        scores = rng.normal(size=25)

        cor = compute_feature_statistics(data, np.zeros(4), scores,
                                         FeatureStatistic.COR, Transformation.NONE)
        np.testing.assert_allclose(cor, correlate_with_vector(data, scores))

    def test_z_uses_number_of_samples(self, rng):
        data = rng.normal(size=(28, 4))
        scores = rng.normal(size=28)

        z = compute_feature_statistics(data, np.zeros(4), scores, "z", "none")
        np.testing.assert_allclose(z, 5.0 * np.arctanh(correlate_with_vector(data, scores)))

    def test_abs_value_nonnegative(self, rng):
        data = rng.normal(size=(30, 8))
        scores = rng.normal(size=30)
        z = compute_feature_statistics(data, np.zeros(8), scores, "z", "abs.value")
        assert (z >= 0).all()

    def test_matrix_shape_and_columns(self, rng):
        data = rng.normal(size=(30, 8))
        scores = rng.normal(size=(30, 3))
        loadings = rng.normal(size=(8, 3))

        matrix = compute_feature_statistic_matrix(data, loadings, scores, "cor", "none")
        assert matrix.shape == (8, 3)
        np.testing.assert_allclose(matrix[:, 2], correlate_with_vector(data, scores[:, 2]))

    def test_matrix_factor_mismatch(self, rng):
        with pytest.raises(ValueError, match="factors"):
            compute_feature_statistic_matrix(
                rng.normal(size=(10, 4)), rng.normal(size=(4, 2)), rng.normal(size=(10, 3))
            )

    def test_active_features_have_larger_statistics(self, factor_model):
        data = factor_model.get_training_data("view_0").to_numpy()
        loadings = factor_model.get_loadings("view_0").to_numpy()
        scores = factor_model.get_factors().to_numpy()

        z = compute_feature_statistic_matrix(data, loadings, scores, "z", "abs.value")
        assert z[:30, 0].min() > z[30:, 0].max()
