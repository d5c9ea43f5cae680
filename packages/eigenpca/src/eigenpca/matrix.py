"""
Matrix utilities for the PCA engine.

Stateless helpers used by the solve pipeline and the bootstrap engine:
covariance, centering, RMS normalization, eigenvector sign convention,
row/column extraction, approximate equality, and the binary matrix
format used by persistence.

Matrices are 2D float64 numpy arrays with rows = records and
columns = variables. Functions named remove_*/normalize_*/enforce_*
modify their argument in place; everything else returns new arrays.
"""

from pathlib import Path
from typing import Optional, Union

import numpy as np

from eigenpca.errors import (
    DegenerateValueError,
    DimensionMismatchError,
    PersistenceIOError,
    RangeError,
)

PathLike = Union[str, Path]


# ---------------------------------------------------------------------------
# Covariance pipeline
# ---------------------------------------------------------------------------

def covariance(centered: np.ndarray) -> np.ndarray:
    """
    Covariance matrix (1/(n-1)) · Xᵀ·X of an already centered matrix.

    No centering happens here. Normalize first if wanted.
    """
    centered = np.asarray(centered, dtype=np.float64)
    n = centered.shape[0]
    if n < 2:
        raise DimensionMismatchError(
            f"covariance needs at least 2 rows, got {n}"
        )
    return (centered.T @ centered) / (n - 1)


def column_means(matrix: np.ndarray) -> np.ndarray:
    """Arithmetic mean of each column."""
    return np.mean(np.asarray(matrix, dtype=np.float64), axis=0)


def remove_column_means(matrix: np.ndarray, means: np.ndarray) -> None:
    """Subtract each mean from its column, in place."""
    means = np.asarray(means, dtype=np.float64)
    if means.ndim != 1 or len(means) != matrix.shape[1]:
        raise DimensionMismatchError(
            f"{means.size} means for {matrix.shape[1]} columns"
        )
    matrix -= means


def column_rms(matrix: np.ndarray) -> np.ndarray:
    """
    Root-mean-square of each column: sqrt(sum(x²) / (n-1)).

    No centering implied. On a centered matrix this equals the
    sample standard deviation.
    """
    matrix = np.asarray(matrix, dtype=np.float64)
    n = matrix.shape[0]
    if n < 2:
        raise DimensionMismatchError(
            f"column_rms needs at least 2 rows, got {n}"
        )
    return np.sqrt(np.sum(matrix ** 2, axis=0) / (n - 1))


def normalize_by_column(matrix: np.ndarray, scales: np.ndarray) -> None:
    """Divide each column by its scale, in place."""
    scales = np.asarray(scales, dtype=np.float64)
    if scales.ndim != 1 or len(scales) != matrix.shape[1]:
        raise DimensionMismatchError(
            f"{scales.size} scales for {matrix.shape[1]} columns"
        )
    zero = np.flatnonzero(scales == 0)
    if len(zero) > 0:
        raise DegenerateValueError(
            f"zero normalization scale in column(s) {zero.tolist()}"
        )
    matrix /= scales


def enforce_positive_sign(matrix: np.ndarray) -> None:
    """
    Fix the sign of each column, in place.

    A column whose largest-magnitude entry is negative is negated.
    Applied to eigenvector matrices so that v and -v map to the
    same result.
    """
    if matrix.size == 0:
        return
    idx = np.argmax(np.abs(matrix), axis=0)
    pivots = matrix[idx, np.arange(matrix.shape[1])]
    matrix[:, pivots < 0] *= -1


# ---------------------------------------------------------------------------
# Extraction
# ---------------------------------------------------------------------------

def extract_column(matrix: np.ndarray, index: int) -> np.ndarray:
    """Copy of column `index`."""
    if not 0 <= index < matrix.shape[1]:
        raise RangeError(
            f"column index {index} out of range for {matrix.shape[1]} columns"
        )
    return matrix[:, index].copy()


def extract_row(matrix: np.ndarray, index: int) -> np.ndarray:
    """Copy of row `index`."""
    if not 0 <= index < matrix.shape[0]:
        raise RangeError(
            f"row index {index} out of range for {matrix.shape[0]} rows"
        )
    return matrix[index, :].copy()


def shuffle_rows_with_replacement(
    matrix: np.ndarray,
    rng: np.random.Generator,
) -> np.ndarray:
    """New matrix with the same row count, rows drawn with replacement."""
    n = matrix.shape[0]
    idx = rng.integers(0, n, size=n)
    return matrix[idx]


# ---------------------------------------------------------------------------
# Equality
# ---------------------------------------------------------------------------

def _default_eps(a, b) -> float:
    dtype = np.result_type(np.asarray(a), np.asarray(b))
    if not np.issubdtype(dtype, np.inexact):
        dtype = np.float64
    return float(np.finfo(dtype).eps)


def is_equal(a, b) -> bool:
    return bool(a == b)


def is_approx_equal(a, b, eps: Optional[float] = None) -> bool:
    """True if |a - b| < eps. eps defaults to machine epsilon."""
    if eps is None:
        eps = _default_eps(a, b)
    return bool(abs(a - b) < eps)


def is_equal_container(a, b) -> bool:
    a = np.asarray(a)
    b = np.asarray(b)
    return a.shape == b.shape and bool(np.all(a == b))


def is_approx_equal_container(a, b, eps: Optional[float] = None) -> bool:
    """Element-wise is_approx_equal; shapes must match."""
    a = np.asarray(a)
    b = np.asarray(b)
    if a.shape != b.shape:
        return False
    if eps is None:
        eps = _default_eps(a, b)
    return bool(np.all(np.abs(a - b) < eps))


# ---------------------------------------------------------------------------
# Summary statistics
# ---------------------------------------------------------------------------

def get_mean(values) -> float:
    return float(np.mean(np.asarray(values, dtype=np.float64)))


def get_sigma(values) -> float:
    """Sample standard deviation (n-1 divisor)."""
    values = np.asarray(values, dtype=np.float64)
    if len(values) < 2:
        return np.nan
    return float(np.std(values, ddof=1))


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------

def write_matrix(path: PathLike, matrix: np.ndarray) -> None:
    """
    Write an array to `path` in .npy format.

    The path is used as given (no suffix appended). Round trips
    through read_matrix are bit-exact.
    """
    try:
        with open(path, "wb") as f:
            np.save(f, np.asarray(matrix), allow_pickle=False)
    except OSError as e:
        raise PersistenceIOError(f"cannot write matrix to {path}: {e}") from e


def read_matrix(path: PathLike) -> np.ndarray:
    """Read an array written by write_matrix."""
    try:
        with open(path, "rb") as f:
            return np.load(f, allow_pickle=False)
    except OSError as e:
        raise PersistenceIOError(f"cannot read matrix from {path}: {e}") from e
    except (ValueError, EOFError) as e:
        raise PersistenceIOError(f"not a matrix file: {path}: {e}") from e
