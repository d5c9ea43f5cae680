"""
Principal component analysis engine.

Records in, eigenvalue structure out: covariance of the centered
(optionally RMS-normalized) records, eigendecomposition with a
standard or divide-and-conquer LAPACK solver, optional bootstrap
distributions of the eigenvalues, projection to and from principal
space, and save/load of the full model state.
"""

from eigenpca.model import PCA
from eigenpca.config import CONFIG, PCAConfig
from eigenpca.decompose import Solver, compute_decomposition, eigen_decompose
from eigenpca.bootstrap import (
    BootstrapResult,
    bootstrap_decomposition,
    summarize_bootstrap,
)
from eigenpca.flatten import flatten_result, summary_frame
from eigenpca.errors import (
    PCAError,
    ConfigurationError,
    DimensionMismatchError,
    StateError,
    UnsupportedOptionError,
    RangeError,
    DegenerateValueError,
    PersistenceIOError,
)

__all__ = [
    'PCA',
    'CONFIG',
    'PCAConfig',
    'Solver',
    'compute_decomposition',
    'eigen_decompose',
    'BootstrapResult',
    'bootstrap_decomposition',
    'summarize_bootstrap',
    'flatten_result',
    'summary_frame',
    'PCAError',
    'ConfigurationError',
    'DimensionMismatchError',
    'StateError',
    'UnsupportedOptionError',
    'RangeError',
    'DegenerateValueError',
    'PersistenceIOError',
]
