"""
PCA model: record store, configuration and solved state.

Usage:
    pca = PCA(num_variables=4)
    for record in records:
        pca.add_record(record)
    pca.set_do_bootstrap(True, num_bootstraps=100)
    pca.solve()
    pca.get_eigenvalues()     # fractions, descending
    pca.get_energy_boot()     # (100,) bootstrap energies
    pca.save('results/run')   # results/run.pca, results/run.eigvec, ...
"""

import logging
from typing import Any, Dict, List, Optional, Sequence

import numpy as np

from eigenpca import persist
from eigenpca.bootstrap import (
    BootstrapResult,
    bootstrap_decomposition,
    validate_num_bootstraps,
)
from eigenpca.config import CONFIG, PCAConfig
from eigenpca.decompose import compute_decomposition, resolve_solver
from eigenpca.errors import (
    ConfigurationError,
    DegenerateValueError,
    DimensionMismatchError,
    RangeError,
    StateError,
)
from eigenpca.matrix import (
    extract_column,
    extract_row,
)

logger = logging.getLogger(__name__)

_RESULT_KEYS = ('means', 'sigmas', 'eigenvalues', 'eigenvectors', 'principals')


def _validate_num_variables(n: int) -> None:
    minimum = CONFIG['records']['min_variables']
    if n < minimum:
        raise ConfigurationError(
            f"num_variables must be >= {minimum}, got {n}"
        )


def _arrays_equal(a: Optional[np.ndarray], b: Optional[np.ndarray]) -> bool:
    if a is None or b is None:
        return a is None and b is None
    return a.shape == b.shape and bool(np.array_equal(a, b, equal_nan=True))


class PCA:
    """
    Principal component analysis over fixed-length numeric records.

    Parameters
    ----------
    num_variables : int
        Length of every record (>= 2).
    """

    def __init__(self, num_variables: int = CONFIG['records']['default_variables']):
        _validate_num_variables(num_variables)
        self._config = PCAConfig(num_variables=num_variables)
        self._records: List[np.ndarray] = []
        self._result: Optional[Dict[str, Any]] = None
        self._boot: Optional[BootstrapResult] = None

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def set_num_variables(self, n: int) -> None:
        _validate_num_variables(n)
        if self._records and n != self._config.num_variables:
            raise ConfigurationError(
                f"cannot change num_variables to {n} with "
                f"{len(self._records)} records stored"
            )
        if n != self._config.num_variables:
            self._invalidate()
        self._config.num_variables = n

    def set_do_normalize(self, flag: bool) -> None:
        if bool(flag) != self._config.do_normalize:
            self._invalidate()
        self._config.do_normalize = bool(flag)

    def set_do_bootstrap(
        self,
        flag: bool,
        num_bootstraps: int = CONFIG['bootstrap']['num_bootstraps'],
        seed: int = CONFIG['bootstrap']['seed'],
        n_workers: int = CONFIG['bootstrap']['workers'],
    ) -> None:
        """Enable or disable bootstrap resampling in solve()."""
        validate_num_bootstraps(num_bootstraps)
        if n_workers < 1:
            raise ConfigurationError(f"n_workers must be >= 1, got {n_workers}")
        cfg = self._config
        if (bool(flag), num_bootstraps, seed) != (
            cfg.do_bootstrap, cfg.num_bootstraps, cfg.bootstrap_seed
        ):
            self._invalidate()
        cfg.do_bootstrap = bool(flag)
        cfg.num_bootstraps = int(num_bootstraps)
        cfg.bootstrap_seed = int(seed)
        cfg.bootstrap_workers = int(n_workers)

    def set_solver(self, name: str) -> None:
        """Select "standard" or "divide_conquer" ("dc")."""
        solver = resolve_solver(name).value
        if solver != self._config.solver:
            self._invalidate()
        self._config.solver = solver

    @property
    def config(self) -> PCAConfig:
        """Copy of the current configuration."""
        return PCAConfig.from_dict(self._config.to_dict())

    @property
    def num_variables(self) -> int:
        return self._config.num_variables

    @property
    def do_normalize(self) -> bool:
        return self._config.do_normalize

    @property
    def do_bootstrap(self) -> bool:
        return self._config.do_bootstrap

    @property
    def num_bootstraps(self) -> int:
        return self._config.num_bootstraps

    @property
    def bootstrap_seed(self) -> int:
        return self._config.bootstrap_seed

    @property
    def bootstrap_workers(self) -> int:
        return self._config.bootstrap_workers

    @property
    def solver(self) -> str:
        return self._config.solver

    # ------------------------------------------------------------------
    # Record store
    # ------------------------------------------------------------------

    def add_record(self, values: Sequence[float]) -> None:
        record = np.array(values, dtype=np.float64).ravel()
        if len(record) != self._config.num_variables:
            raise DimensionMismatchError(
                f"record has {len(record)} values, "
                f"expected {self._config.num_variables}"
            )
        if not np.all(np.isfinite(record)):
            raise DegenerateValueError(
                f"record contains non-finite values: {record.tolist()}"
            )
        record.flags.writeable = False
        self._records.append(record)
        self._invalidate()

    @property
    def num_records(self) -> int:
        return len(self._records)

    def get_record(self, index: int) -> np.ndarray:
        return extract_row(self.records, index)

    @property
    def records(self) -> np.ndarray:
        """(num_records, num_variables) copy of the record store."""
        if not self._records:
            return np.empty((0, self._config.num_variables))
        return np.vstack(self._records)

    # ------------------------------------------------------------------
    # Solve
    # ------------------------------------------------------------------

    def solve(self) -> None:
        """
        Center → (normalize) → covariance → decompose → (bootstrap).

        Recomputes everything on every call. On failure the previous
        results are left untouched.
        """
        cfg = self._config
        min_records = CONFIG['solve']['min_records']
        if self.num_records < min_records:
            raise StateError(
                f"solve needs at least {min_records} records, "
                f"got {self.num_records}"
            )

        records = self.records
        result = compute_decomposition(records, cfg.do_normalize, cfg.solver)

        boot = None
        if cfg.do_bootstrap:
            boot = bootstrap_decomposition(
                records,
                num_bootstraps=cfg.num_bootstraps,
                seed=cfg.bootstrap_seed,
                do_normalize=cfg.do_normalize,
                solver=cfg.solver,
                n_workers=cfg.bootstrap_workers,
            )

        self._result = result
        self._boot = boot
        logger.info(
            "solved PCA: %d records, %d variables, solver=%s, energy=%.6g",
            self.num_records, cfg.num_variables, cfg.solver, result['energy'],
        )

    @property
    def is_solved(self) -> bool:
        return self._result is not None

    def _invalidate(self) -> None:
        self._result = None
        self._boot = None

    def _require_solved(self) -> Dict[str, Any]:
        if self._result is None:
            raise StateError("model is not solved; call solve() first")
        return self._result

    # ------------------------------------------------------------------
    # Results
    # ------------------------------------------------------------------

    def get_eigenvalues(self) -> np.ndarray:
        """Eigenvalue fractions, sorted descending, summing to 1."""
        return self._require_solved()['eigenvalues'].copy()

    def _check_component(self, index: int) -> None:
        if not 0 <= index < self._config.num_variables:
            raise RangeError(
                f"component index {index} out of range for "
                f"{self._config.num_variables} components"
            )

    def get_eigenvalue(self, index: int) -> float:
        values = self._require_solved()['eigenvalues']
        self._check_component(index)
        return float(values[index])

    def get_eigenvector(self, index: int) -> np.ndarray:
        return extract_column(self._require_solved()['eigenvectors'], index)

    def get_principal(self, index: int) -> np.ndarray:
        """Scores of every record on component `index`."""
        return extract_column(self._require_solved()['principals'], index)

    def get_energy(self) -> float:
        return float(self._require_solved()['energy'])

    def get_eigenvalue_boot(self, index: int) -> np.ndarray:
        """Bootstrap distribution of eigenvalue fraction `index`."""
        self._require_solved()
        if self._boot is None:
            self._check_component(index)
            return np.empty(0)
        return extract_column(self._boot.eigenvalues, index)

    def get_energy_boot(self) -> np.ndarray:
        self._require_solved()
        if self._boot is None:
            return np.empty(0)
        return self._boot.energy.copy()

    # ------------------------------------------------------------------
    # Projection
    # ------------------------------------------------------------------

    def _check_length(self, values: np.ndarray) -> None:
        if len(values) != self._config.num_variables:
            raise DimensionMismatchError(
                f"vector has {len(values)} values, "
                f"expected {self._config.num_variables}"
            )

    def to_principal_space(self, record: Sequence[float]) -> np.ndarray:
        """Coordinates of `record` along each eigenvector."""
        result = self._require_solved()
        x = np.array(record, dtype=np.float64).ravel()
        self._check_length(x)
        x -= result['means']
        if result['sigmas'] is not None:
            x /= result['sigmas']
        return result['eigenvectors'].T @ x

    def to_variable_space(self, principal: Sequence[float]) -> np.ndarray:
        """Inverse of to_principal_space (uses the full eigenbasis)."""
        result = self._require_solved()
        p = np.asarray(principal, dtype=np.float64).ravel()
        self._check_length(p)
        x = result['eigenvectors'] @ p
        if result['sigmas'] is not None:
            x *= result['sigmas']
        return x + result['means']

    # ------------------------------------------------------------------
    # Self-checks
    # ------------------------------------------------------------------

    def check_eigenvectors_orthogonal(self, tolerance: Optional[float] = None) -> float:
        """
        Fraction of eigenvector pairs whose dot product is ~0.

        1.0 means every pair is orthogonal within `tolerance`.
        """
        if tolerance is None:
            tolerance = CONFIG['checks']['orthogonality_tolerance']
        vectors = self._require_solved()['eigenvectors']
        gram = vectors.T @ vectors
        upper = gram[np.triu_indices(gram.shape[0], k=1)]
        if len(upper) == 0:
            return 1.0
        return float(np.mean(np.abs(upper) < tolerance))

    def check_projection_accurate(self, tolerance: Optional[float] = None) -> float:
        """
        Fraction of stored records reproduced by a projection round trip.

        1.0 means every record survives to_principal_space followed by
        to_variable_space within `tolerance`, taken both as an absolute
        and as a relative bound so large-valued records are judged on
        the same scale as small ones.
        """
        if tolerance is None:
            tolerance = CONFIG['checks']['projection_tolerance']
        self._require_solved()
        n_ok = 0
        for record in self._records:
            back = self.to_variable_space(self.to_principal_space(record))
            if np.allclose(back, record, rtol=tolerance, atol=tolerance):
                n_ok += 1
        return n_ok / len(self._records)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def save(self, basename: str) -> None:
        """Write basename.pca, basename.records, basename.eigvec, ..."""
        persist.save_state(
            basename, self._config, self.records, self._result, self._boot,
        )

    def load(self, basename: str) -> None:
        """Replace this model's state with the one saved under `basename`."""
        config, records, result, boot = persist.load_state(basename)
        self._config = config
        self._records = []
        for row in records:
            row = row.copy()
            row.flags.writeable = False
            self._records.append(row)
        self._result = result
        self._boot = boot

    # ------------------------------------------------------------------
    # Equality
    # ------------------------------------------------------------------

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PCA):
            return NotImplemented
        # bootstrap_workers never changes results
        mine = self._config.to_dict()
        theirs = other._config.to_dict()
        mine.pop('bootstrap_workers')
        theirs.pop('bootstrap_workers')
        if mine != theirs:
            return False
        if not _arrays_equal(self.records, other.records):
            return False
        if self.is_solved != other.is_solved:
            return False
        if self.is_solved:
            for key in _RESULT_KEYS:
                if not _arrays_equal(self._result[key], other._result[key]):
                    return False
            if self._result['energy'] != other._result['energy']:
                return False
        if (self._boot is None) != (other._boot is None):
            return False
        if self._boot is not None:
            return (
                _arrays_equal(self._boot.eigenvalues, other._boot.eigenvalues)
                and _arrays_equal(self._boot.energy, other._boot.energy)
            )
        return True

    __hash__ = None

    def __repr__(self) -> str:
        state = "solved" if self.is_solved else "unsolved"
        return (
            f"PCA(num_variables={self.num_variables}, "
            f"num_records={self.num_records}, solver={self.solver!r}, {state})"
        )
