"""
PCA Configuration
=================
Defaults, limits and tolerances for the PCA engine.
Single source of truth. The model, the bootstrap engine and
persistence all read from here.

Usage:
    from eigenpca.config import CONFIG
    min_boots = CONFIG['bootstrap']['min_bootstraps']
"""

from dataclasses import dataclass, asdict
from typing import Dict, Any

CONFIG = {

    # =================================================================
    # Record store
    # =================================================================
    'records': {
        'min_variables': 2,
        'default_variables': 2,
    },

    # =================================================================
    # Solve pipeline
    # =================================================================
    'solve': {
        'min_records': 2,   # n-1 divisor of the covariance
        'do_normalize': False,
        'solver': 'divide_conquer',
    },

    # =================================================================
    # Bootstrap resampling
    # =================================================================
    'bootstrap': {
        'enabled': False,
        'num_bootstraps': 30,
        'min_bootstraps': 10,
        'seed': 1,
        'workers': 1,
        'confidence_level': 0.95,
    },

    # =================================================================
    # Self-checks (orthogonality, projection round trip)
    # =================================================================
    'checks': {
        'orthogonality_tolerance': 1e-7,
        'projection_tolerance': 1e-7,
    },

    # =================================================================
    # Persistence: one file per artifact, sharing a base name
    # =================================================================
    'persistence': {
        'config': '.pca',
        'records': '.records',
        'means': '.mean',
        'sigmas': '.sigma',
        'eigenvalues': '.eigval',
        'eigenvectors': '.eigvec',
        'principals': '.princomp',
        'energy': '.energy',
        'eigenvalues_boot': '.eigvalboot',
        'energy_boot': '.energyboot',
    },
}


@dataclass
class PCAConfig:
    """Configuration of one PCA model."""
    num_variables: int = CONFIG['records']['default_variables']
    do_normalize: bool = CONFIG['solve']['do_normalize']
    do_bootstrap: bool = CONFIG['bootstrap']['enabled']
    num_bootstraps: int = CONFIG['bootstrap']['num_bootstraps']
    bootstrap_seed: int = CONFIG['bootstrap']['seed']
    bootstrap_workers: int = CONFIG['bootstrap']['workers']
    solver: str = CONFIG['solve']['solver']

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PCAConfig':
        """Build from a mapping, ignoring keys that are not config fields."""
        return cls(
            num_variables=int(data['num_variables']),
            do_normalize=bool(data['do_normalize']),
            do_bootstrap=bool(data['do_bootstrap']),
            num_bootstraps=int(data['num_bootstraps']),
            bootstrap_seed=int(data['bootstrap_seed']),
            bootstrap_workers=int(data.get('bootstrap_workers', 1)),
            solver=str(data['solver']),
        )
