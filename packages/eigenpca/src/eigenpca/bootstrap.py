"""
Bootstrap distributions for eigenvalue fractions and energy.

Resample the records with replacement, rerun the covariance +
decomposition pipeline, and collect one eigenvalue-fraction vector
and one energy value per resample. The spread of these estimates
tells you how stable each eigenvalue is.

Each iteration draws from its own generator seeded by (seed, index),
so results are identical whether iterations run in order, out of
order or on several threads.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Dict, Union

import numpy as np

from eigenpca.config import CONFIG
from eigenpca.decompose import Solver, compute_decomposition
from eigenpca.errors import ConfigurationError, DegenerateValueError
from eigenpca.matrix import shuffle_rows_with_replacement

logger = logging.getLogger(__name__)


@dataclass
class BootstrapResult:
    """Raw bootstrap distributions."""
    eigenvalues: np.ndarray  # (num_bootstraps, n_variables)
    energy: np.ndarray       # (num_bootstraps,)

    @property
    def num_bootstraps(self) -> int:
        return len(self.energy)


def iteration_rng(seed: int, index: int) -> np.random.Generator:
    """Independent generator for bootstrap iteration `index`."""
    return np.random.default_rng([seed, index])


def validate_num_bootstraps(num_bootstraps: int) -> None:
    minimum = CONFIG['bootstrap']['min_bootstraps']
    if num_bootstraps < minimum:
        raise ConfigurationError(
            f"num_bootstraps must be >= {minimum}, got {num_bootstraps}"
        )


def bootstrap_decomposition(
    records: np.ndarray,
    num_bootstraps: int = CONFIG['bootstrap']['num_bootstraps'],
    seed: int = CONFIG['bootstrap']['seed'],
    do_normalize: bool = False,
    solver: Union[str, Solver] = Solver.DIVIDE_CONQUER,
    n_workers: int = 1,
) -> BootstrapResult:
    """
    Bootstrap the eigenvalue fractions and energy of a record matrix.

    Parameters
    ----------
    records : np.ndarray
        (n_records, n_variables) raw (uncentered) records.
    num_bootstraps : int
        Number of resamples (>= 10).
    seed : int
        Base seed; iteration i uses iteration_rng(seed, i).
    do_normalize : bool
        Same meaning as in compute_decomposition.
    solver : str or Solver
        Eigen solver.
    n_workers : int
        Threads used to run iterations. Does not change results.

    Returns
    -------
    BootstrapResult
        A degenerate resample (e.g. every drawn row identical) leaves
        NaN in its slot.
    """
    validate_num_bootstraps(num_bootstraps)
    if n_workers < 1:
        raise ConfigurationError(f"n_workers must be >= 1, got {n_workers}")

    records = np.asarray(records, dtype=np.float64)
    n_vars = records.shape[1]

    eigenvalues = np.full((num_bootstraps, n_vars), np.nan)
    energy = np.full(num_bootstraps, np.nan)

    def run_one(i: int) -> None:
        sample = shuffle_rows_with_replacement(records, iteration_rng(seed, i))
        try:
            result = compute_decomposition(sample, do_normalize, solver)
        except DegenerateValueError as e:
            logger.warning("bootstrap iteration %d is degenerate: %s", i, e)
            return
        eigenvalues[i] = result['eigenvalues']
        energy[i] = result['energy']

    logger.debug(
        "bootstrap: %d resamples of %d records, seed=%d, workers=%d",
        num_bootstraps, records.shape[0], seed, n_workers,
    )

    if n_workers == 1:
        for i in range(num_bootstraps):
            run_one(i)
    else:
        with ThreadPoolExecutor(max_workers=n_workers) as executor:
            # list() propagates the first exception raised by any iteration
            list(executor.map(run_one, range(num_bootstraps)))

    return BootstrapResult(eigenvalues=eigenvalues, energy=energy)


def summarize_bootstrap(
    values: np.ndarray,
    confidence_level: float = CONFIG['bootstrap']['confidence_level'],
) -> Dict[str, float]:
    """
    Summary statistics of one bootstrap distribution.

    NaN entries (degenerate resamples) are ignored.

    Returns
    -------
    dict with:
        mean : float
        std : float — sample standard deviation
        ci_lower : float — normal-approximation lower bound
        ci_upper : float — normal-approximation upper bound
        n_valid : int — number of finite estimates
    """
    values = np.asarray(values, dtype=np.float64)
    valid = values[np.isfinite(values)]

    if len(valid) < 2:
        return {
            'mean': float(valid[0]) if len(valid) == 1 else np.nan,
            'std': np.nan,
            'ci_lower': np.nan,
            'ci_upper': np.nan,
            'n_valid': len(valid),
        }

    mean = float(np.mean(valid))
    std = float(np.std(valid, ddof=1))

    # z = 1.96 for 95% confidence
    z_map = {0.90: 1.645, 0.95: 1.960, 0.99: 2.576}
    z = z_map.get(confidence_level, 1.960)

    return {
        'mean': mean,
        'std': std,
        'ci_lower': mean - z * std,
        'ci_upper': mean + z * std,
        'n_valid': len(valid),
    }
