"""
Tests for the feature-permutation null.
"""

import numpy as np
import pytest

from factorsea.core.feature_sets import build_feature_set_index
from factorsea.exceptions import PermutationPrecisionWarning
from factorsea.stats.permutation import (
    empirical_pvalues,
    null_statistic,
    permute_configuration,
    run_permutation_test,
    set_statistic_matrix,
)


@pytest.fixture
def arrays(factor_model):
    data = factor_model.get_training_data("view_0").to_numpy()
    loadings = factor_model.get_loadings("view_0").to_numpy()
    scores = factor_model.get_factors().to_numpy()
    return data, loadings, scores


@pytest.fixture
def index(membership, feature_ids):
    return build_feature_set_index(membership, feature_ids, min_size=10)


class TestEmpiricalPvalues:
    """Test the empirical p-value formula."""

    def test_strictly_greater_count(self):
        observed = np.array([[2.0]])
        null = np.array([1.0, 3.0, 2.0, -2.5]).reshape(4, 1, 1)

        # |null| > 2 for 3.0 and 2.5 only; a tie does not count
        assert empirical_pvalues(observed, null)[0, 0] == 0.5

    def test_sign_of_observed_ignored(self):
        null = np.array([1.0, 3.0, 2.0, 2.5]).reshape(4, 1, 1)
        assert empirical_pvalues(np.array([[-2.0]]), null)[0, 0] == 0.5

    def test_zero_when_never_exceeded(self):
        null = np.ones((10, 2, 1))
        np.testing.assert_array_equal(empirical_pvalues(np.full((2, 1), 5.0), null), [[0.0], [0.0]])

    def test_one_when_always_exceeded(self):
        null = np.full((10, 1, 1), 5.0)
        assert empirical_pvalues(np.array([[0.0]]), null)[0, 0] == 1.0


class TestPermuteConfiguration:
    """Test that one permutation is applied to both feature axes."""

    def test_data_columns_and_loading_rows(self):
        data = np.arange(12, dtype=float).reshape(3, 4)
        loadings = np.arange(8, dtype=float).reshape(4, 2)
        permutation = np.array([2, 0, 3, 1])

        configuration = permute_configuration(data, loadings, permutation)

        np.testing.assert_array_equal(configuration.data, data[:, permutation])
        np.testing.assert_array_equal(configuration.loadings, loadings[permutation])
        np.testing.assert_array_equal(configuration.permutation, permutation)
        np.testing.assert_array_equal(data, np.arange(12, dtype=float).reshape(3, 4))

    def test_identity_permutation_reproduces_observed(self, arrays, index):
        data, loadings, scores = arrays
        identity = permute_configuration(data, loadings, np.arange(loadings.shape[0]))

        observed = set_statistic_matrix(data, loadings, scores, index, "z", "abs.value", "mean.diff")
        np.testing.assert_allclose(
            null_statistic(identity, scores, index, "z", "abs.value", "mean.diff"),
            np.abs(observed),
        )


class TestRunPermutationTest:
    """Test the full permutation procedure."""

    def test_warns_about_precision(self, arrays, index):
        with pytest.warns(PermutationPrecisionWarning, match="0.1"):
            run_permutation_test(*arrays, index, feature_statistic="z",
                                 n_permutations=10, seed=0)

    @pytest.mark.filterwarnings("ignore::factorsea.exceptions.PermutationPrecisionWarning")
    def test_pvalues_are_multiples_of_resolution(self, arrays, index):
        result = run_permutation_test(*arrays, index, feature_statistic="z",
                                      n_permutations=50, seed=1)

        assert result.pvalues.shape == (2, 3)
        assert ((result.pvalues >= 0) & (result.pvalues <= 1)).all()
        np.testing.assert_allclose(result.pvalues * 50, np.round(result.pvalues * 50))

    @pytest.mark.filterwarnings("ignore::factorsea.exceptions.PermutationPrecisionWarning")
    def test_pvalues_follow_null_distribution(self, arrays, index):
        result = run_permutation_test(*arrays, index, feature_statistic="cor",
                                      n_permutations=40, seed=2)

        assert result.n_permutations == 40
        assert result.null_statistics.shape == (40, 2, 3)
        assert (result.null_statistics >= 0).all()
        np.testing.assert_array_equal(
            result.pvalues, empirical_pvalues(result.statistics, result.null_statistics)
        )

    @pytest.mark.filterwarnings("ignore::factorsea.exceptions.PermutationPrecisionWarning")
    def test_observed_statistics_are_unadjusted_parametric(self, arrays, index):
        data, loadings, scores = arrays
        result = run_permutation_test(data, loadings, scores, index, feature_statistic="z",
                                      set_statistic="rank.sum", n_permutations=5, seed=3)

        np.testing.assert_allclose(
            result.statistics,
            set_statistic_matrix(data, loadings, scores, index, "z", "abs.value", "rank.sum"),
        )

    @pytest.mark.filterwarnings("ignore::factorsea.exceptions.PermutationPrecisionWarning")
    def test_planted_module_is_extreme(self, arrays, index):
        result = run_permutation_test(*arrays, index, feature_statistic="z",
                                      n_permutations=100, seed=4)

        # active_module on Factor1
        assert result.pvalues[0, 0] == 0.0

    @pytest.mark.filterwarnings("ignore::factorsea.exceptions.PermutationPrecisionWarning")
    def test_seed_reproducible(self, arrays, index):
        first = run_permutation_test(*arrays, index, feature_statistic="z",
                                     n_permutations=20, seed=5)
        second = run_permutation_test(*arrays, index, feature_statistic="z",
                                      n_permutations=20, seed=5)
        other = run_permutation_test(*arrays, index, feature_statistic="z",
                                     n_permutations=20, seed=6)

        np.testing.assert_array_equal(first.null_statistics, second.null_statistics)
        assert not np.array_equal(first.null_statistics, other.null_statistics)

    @pytest.mark.filterwarnings("ignore::factorsea.exceptions.PermutationPrecisionWarning")
    def test_worker_count_does_not_change_result(self, arrays, index):
        serial = run_permutation_test(*arrays, index, feature_statistic="z",
                                      n_permutations=20, n_jobs=1, seed=7)
        parallel = run_permutation_test(*arrays, index, feature_statistic="z",
                                        n_permutations=20, n_jobs=2, seed=7)

        np.testing.assert_allclose(serial.null_statistics, parallel.null_statistics, rtol=1e-12)
        np.testing.assert_allclose(serial.pvalues, parallel.pvalues)
