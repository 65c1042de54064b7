"""
Pytest configuration and shared fixtures.

Synthetic factor models are generated from a known latent structure so the
enriched feature set is known in advance: the first ``n_active`` features
load strongly (and positively) on Factor1, every other loading is small.
"""

import numpy as np
import pandas as pd
import pytest

from factorsea.core.model import FactorModel


def make_factor_model(
    n_features: int = 200,
    n_samples: int = 100,
    n_factors: int = 3,
    n_active: int = 30,
    constant_factor: int | None = None,
    seed: int = 42,
) -> FactorModel:
    """
    Generate a single-view factor model with one planted feature module.

    Args:
        n_features: Number of features
        n_samples: Number of samples
        n_factors: Number of factors
        n_active: Features 0..n_active-1 load strongly on Factor1
        constant_factor: 0-based position of a factor whose scores are constant
        seed: Random seed for reproducibility

    Returns:
        FactorModel with view "view_0"
    """
    rng = np.random.default_rng(seed)

    scores = rng.normal(size=(n_samples, n_factors))
    loadings = rng.normal(scale=0.1, size=(n_features, n_factors))
    loadings[:n_active, 0] = rng.uniform(1.5, 2.5, size=n_active)
    if constant_factor is not None:
        scores[:, constant_factor] = 1.0

    data = scores @ loadings.T + rng.normal(scale=0.5, size=(n_samples, n_features))

    feature_ids = [f"feat_{i:03d}" for i in range(n_features)]
    sample_ids = [f"sample_{j:03d}" for j in range(n_samples)]
    factor_names = [f"Factor{k + 1}" for k in range(n_factors)]

    return FactorModel(
        training_data={"view_0": pd.DataFrame(data, index=sample_ids, columns=feature_ids)},
        loadings={"view_0": pd.DataFrame(loadings, index=feature_ids, columns=factor_names)},
        factors=pd.DataFrame(scores, index=sample_ids, columns=factor_names),
    )


def make_membership(feature_ids, sets) -> pd.DataFrame:
    """Binary membership matrix over ``feature_ids`` from name -> positions."""
    matrix = pd.DataFrame(0, index=list(sets), columns=list(feature_ids))
    for row, positions in enumerate(sets.values()):
        matrix.iloc[row, list(positions)] = 1
    return matrix


@pytest.fixture
def factor_model():
    """200 features x 100 samples, 3 factors, features 0-29 active on Factor1."""
    return make_factor_model()


@pytest.fixture
def feature_ids(factor_model):
    return list(factor_model.get_training_data("view_0").columns)


@pytest.fixture
def random_positions():
    """12 features drawn from outside the active module."""
    rng = np.random.default_rng(7)
    return sorted(rng.choice(np.arange(30, 200), size=12, replace=False).tolist())


@pytest.fixture
def membership(feature_ids, random_positions):
    """
    Binary membership over all 200 features:
        active_module: features 0-29 (30 features)
        random_set:    12 features outside the module
        small_set:     5 features (below the default min_size of 10)
    """
    return make_membership(feature_ids, {
        "active_module": range(30),
        "random_set": random_positions,
        "small_set": range(100, 105),
    })


@pytest.fixture
def feature_set_mapping(membership):
    """The same feature sets as a name -> members mapping."""
    return {
        name: [f for f, flag in row.items() if flag == 1]
        for name, row in membership.iterrows()
    }
