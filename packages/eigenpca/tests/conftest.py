"""Shared fixtures for the eigenpca tests."""
import numpy as np
import pytest


@pytest.fixture
def reference_records():
    """3 records, 4 variables, last variable constant."""
    return [
        [1, 2.5, 42, 7],
        [3, 4.2, 90, 7],
        [456, 444, 0, 7],
    ]


@pytest.fixture
def reference_pca(reference_records):
    """Unsolved 4-variable model holding the reference records."""
    from eigenpca.model import PCA
    pca = PCA(4)
    for record in reference_records:
        pca.add_record(record)
    return pca


@pytest.fixture
def random_records():
    """40 records, 5 variables with distinct scales → well-separated eigenvalues."""
    rng = np.random.default_rng(42)
    base = rng.normal(size=(40, 5))
    mix = np.array([
        [3.0, 0.5, 0.0, 0.0, 0.0],
        [0.0, 2.0, 0.3, 0.0, 0.0],
        [0.0, 0.0, 1.2, 0.1, 0.0],
        [0.0, 0.0, 0.0, 0.7, 0.2],
        [0.0, 0.0, 0.0, 0.0, 0.3],
    ])
    return base @ mix + np.array([10.0, -4.0, 0.5, 100.0, 2.0])


@pytest.fixture
def random_pca(random_records):
    from eigenpca.model import PCA
    pca = PCA(random_records.shape[1])
    for record in random_records:
        pca.add_record(record)
    return pca


@pytest.fixture
def column_major_3x3():
    """The 3×3 matrix with columns [1,2,3], [4,5,6], [7,8,9]."""
    return np.arange(1, 10, dtype=np.float64).reshape(3, 3).T.copy()
