"""
Flatten solved PCA results to tabular rows.

A solved model holds arrays (eigenvalues, bootstrap distributions)
and matrices (eigenvectors, scores). This module flattens them into
a dict of scalars, or a polars DataFrame with one row per component,
suitable for writing to parquet or printing.
"""

from typing import Dict

import numpy as np
import polars as pl

from eigenpca.bootstrap import summarize_bootstrap
from eigenpca.config import CONFIG
from eigenpca.model import PCA


def flatten_result(
    pca: PCA,
    max_eigenvalues: int = 5,
) -> Dict[str, float]:
    """
    Flatten a solved model to scalar key-value pairs.

    Parameters
    ----------
    pca : PCA
        Solved model.
    max_eigenvalues : int
        Number of eigenvalues to include.

    Returns
    -------
    dict of {str: float} suitable for a parquet row.
    """
    eigenvalues = pca.get_eigenvalues()
    n_out = min(max_eigenvalues, len(eigenvalues))

    row = {
        'energy': pca.get_energy(),
        'num_records': pca.num_records,
        'num_variables': pca.num_variables,
    }

    cum = 0.0
    for i in range(n_out):
        row[f'eigenvalue_{i}'] = float(eigenvalues[i])
        cum += float(eigenvalues[i])
        row[f'cumulative_variance_{i}'] = cum

    energy_boot = pca.get_energy_boot()
    if len(energy_boot) > 0:
        row['energy_boot_std'] = summarize_bootstrap(energy_boot)['std']
        for i in range(n_out):
            row[f'eigenvalue_{i}_boot_std'] = summarize_bootstrap(
                pca.get_eigenvalue_boot(i)
            )['std']

    return row


def summary_frame(
    pca: PCA,
    confidence_level: float = CONFIG['bootstrap']['confidence_level'],
) -> pl.DataFrame:
    """
    One row per principal component.

    Columns: component, eigenvalue, cumulative_variance, boot_mean,
    boot_std, ci_lower, ci_upper. Bootstrap columns are null when the
    model was solved without bootstrap.
    """
    eigenvalues = pca.get_eigenvalues()
    bootstrapped = len(pca.get_energy_boot()) > 0

    rows = []
    for i, (value, cum) in enumerate(zip(eigenvalues, np.cumsum(eigenvalues))):
        row = {
            'component': i,
            'eigenvalue': float(value),
            'cumulative_variance': float(cum),
            'boot_mean': None,
            'boot_std': None,
            'ci_lower': None,
            'ci_upper': None,
        }
        if bootstrapped:
            stats = summarize_bootstrap(pca.get_eigenvalue_boot(i), confidence_level)
            row['boot_mean'] = stats['mean']
            row['boot_std'] = stats['std']
            row['ci_lower'] = stats['ci_lower']
            row['ci_upper'] = stats['ci_upper']
        rows.append(row)

    return pl.DataFrame(rows, schema={
        'component': pl.Int64,
        'eigenvalue': pl.Float64,
        'cumulative_variance': pl.Float64,
        'boot_mean': pl.Float64,
        'boot_std': pl.Float64,
        'ci_lower': pl.Float64,
        'ci_upper': pl.Float64,
    })
