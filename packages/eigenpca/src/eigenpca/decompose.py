"""
Core eigendecomposition computation.

Takes the record matrix (n_records × n_variables), produces eigenvalue
fractions, eigenvectors, total energy and principal scores.

Eigen kernels come from scipy.linalg (LAPACK). This module is
orchestration: center → normalize → covariance → eigendecompose →
sign convention → scores.
"""

from enum import Enum
from typing import Any, Dict, Tuple, Union

import numpy as np
from scipy import linalg

from eigenpca.errors import (
    DegenerateValueError,
    DimensionMismatchError,
    UnsupportedOptionError,
)
from eigenpca.matrix import (
    column_means,
    column_rms,
    covariance,
    enforce_positive_sign,
    normalize_by_column,
    remove_column_means,
)


class Solver(Enum):
    STANDARD = "standard"            # LAPACK syev
    DIVIDE_CONQUER = "divide_conquer"  # LAPACK syevd


_LAPACK_DRIVER = {
    Solver.STANDARD: "ev",
    Solver.DIVIDE_CONQUER: "evd",
}

_ALIASES = {
    "dc": Solver.DIVIDE_CONQUER,
}


def resolve_solver(name: Union[str, Solver]) -> Solver:
    """Map a solver name (or alias) to a Solver."""
    if isinstance(name, Solver):
        return name
    if name in _ALIASES:
        return _ALIASES[name]
    try:
        return Solver(name)
    except ValueError:
        known = [s.value for s in Solver] + sorted(_ALIASES)
        raise UnsupportedOptionError(
            f"Unknown solver: {name!r}. Available: {known}"
        ) from None


# ---------------------------------------------------------------------------
# Eigendecomposition
# ---------------------------------------------------------------------------

def eigen_decompose(
    matrix: np.ndarray,
    solver: Union[str, Solver] = Solver.DIVIDE_CONQUER,
) -> Tuple[np.ndarray, np.ndarray, float]:
    """
    Decompose a symmetric matrix into sorted, normalized eigenpairs.

    Parameters
    ----------
    matrix : np.ndarray
        Symmetric (n, n) matrix, typically a covariance matrix.
    solver : str or Solver
        "standard" or "divide_conquer" ("dc").

    Returns
    -------
    fractions : np.ndarray
        (n,) eigenvalues as fractions of the total, sorted descending.
    eigenvectors : np.ndarray
        (n, n) unit eigenvectors as columns, matching `fractions`,
        sign-normalized with enforce_positive_sign.
    energy : float
        Sum of the eigenvalues (trace of `matrix`).
    """
    solver = resolve_solver(solver)
    matrix = np.asarray(matrix, dtype=np.float64)
    if matrix.ndim != 2 or matrix.shape[0] != matrix.shape[1]:
        raise DimensionMismatchError(
            f"eigen_decompose needs a square matrix, got shape {matrix.shape}"
        )

    eigenvalues, eigenvectors = linalg.eigh(
        matrix, driver=_LAPACK_DRIVER[solver]
    )

    # Ensure non-negative (numerical noise from float precision)
    eigenvalues = np.maximum(eigenvalues, 0.0)

    # Sort descending
    idx = np.argsort(eigenvalues, kind="stable")[::-1]
    eigenvalues = eigenvalues[idx]
    eigenvectors = np.ascontiguousarray(eigenvectors[:, idx])

    energy = float(np.sum(eigenvalues))
    if energy <= 0.0:
        raise DegenerateValueError("total variance is zero")

    enforce_positive_sign(eigenvectors)

    return eigenvalues / energy, eigenvectors, energy


# ---------------------------------------------------------------------------
# Solve pipeline
# ---------------------------------------------------------------------------

def compute_decomposition(
    records: np.ndarray,
    do_normalize: bool = False,
    solver: Union[str, Solver] = Solver.DIVIDE_CONQUER,
) -> Dict[str, Any]:
    """
    Run the full covariance + decomposition pipeline on a record matrix.

    The input is not modified.

    Parameters
    ----------
    records : np.ndarray
        (n_records, n_variables) record matrix.
    do_normalize : bool
        Divide centered columns by their RMS before the covariance.
    solver : str or Solver
        Eigen solver, see eigen_decompose.

    Returns
    -------
    dict with:
        means : np.ndarray — column means used for centering
        sigmas : np.ndarray or None — column RMS (None if not normalizing)
        eigenvalues : np.ndarray — fractions, sorted descending
        eigenvectors : np.ndarray — (n_variables, n_variables), columns
        energy : float — total variance
        principals : np.ndarray — (n_records, n_variables) scores
    """
    data = np.array(records, dtype=np.float64, copy=True)
    if data.ndim != 2:
        raise DimensionMismatchError(
            f"record matrix must be 2D, got {data.ndim}D"
        )

    means = column_means(data)
    remove_column_means(data, means)

    sigmas = None
    if do_normalize:
        sigmas = column_rms(data)
        normalize_by_column(data, sigmas)

    cov = covariance(data)
    eigenvalues, eigenvectors, energy = eigen_decompose(cov, solver)

    return {
        'means': means,
        'sigmas': sigmas,
        'eigenvalues': eigenvalues,
        'eigenvectors': eigenvectors,
        'energy': energy,
        'principals': data @ eigenvectors,
    }
