"""
Save and load PCA model state as a family of files.

All files share a base name, one file per artifact:

    run.pca         YAML: configuration, record count, solved flag
    run.records     record store
    run.mean        column means               (solved)
    run.sigma       column RMS                 (solved, normalized)
    run.eigval      eigenvalue fractions       (solved)
    run.eigvec      eigenvectors as columns    (solved)
    run.princomp    principal scores           (solved)
    run.energy      total energy               (solved)
    run.eigvalboot  bootstrap fractions        (solved, bootstrapped)
    run.energyboot  bootstrap energy           (solved, bootstrapped)

Arrays use the .npy format via matrix.write_matrix, so a save/load
round trip is bit-exact. Loading reads and validates everything
before returning; nothing is half-loaded.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import numpy as np
import yaml

from eigenpca.bootstrap import BootstrapResult, validate_num_bootstraps
from eigenpca.config import CONFIG, PCAConfig
from eigenpca.decompose import resolve_solver
from eigenpca.errors import PCAError, PersistenceIOError
from eigenpca.matrix import read_matrix, write_matrix

logger = logging.getLogger(__name__)

SUFFIX = CONFIG['persistence']


def artifact_path(basename: str, artifact: str) -> Path:
    """Path of one artifact, e.g. artifact_path('run', 'eigenvectors') → run.eigvec"""
    return Path(f"{basename}{SUFFIX[artifact]}")


# ---------------------------------------------------------------------------
# Save
# ---------------------------------------------------------------------------

def save_state(
    basename: str,
    config: PCAConfig,
    records: np.ndarray,
    result: Optional[Dict[str, Any]],
    boot: Optional[BootstrapResult],
) -> None:
    """
    Write the model state under `basename`.

    Optional artifacts that do not apply to this state are removed if
    an earlier save left them behind. The .pca header is written last,
    so a save that fails partway never leaves a header describing
    arrays that were not written.
    """
    header_path = artifact_path(basename, 'config')
    if header_path.exists():
        try:
            header_path.unlink()
        except OSError as e:
            raise PersistenceIOError(f"cannot remove stale {header_path}: {e}") from e

    arrays: Dict[str, np.ndarray] = {'records': records}
    if result is not None:
        arrays['means'] = result['means']
        arrays['eigenvalues'] = result['eigenvalues']
        arrays['eigenvectors'] = result['eigenvectors']
        arrays['principals'] = result['principals']
        arrays['energy'] = np.array(result['energy'])
        if result['sigmas'] is not None:
            arrays['sigmas'] = result['sigmas']
        if boot is not None:
            arrays['eigenvalues_boot'] = boot.eigenvalues
            arrays['energy_boot'] = boot.energy

    for artifact in SUFFIX:
        if artifact == 'config':
            continue
        path = artifact_path(basename, artifact)
        if artifact in arrays:
            write_matrix(path, arrays[artifact])
        elif path.exists():
            try:
                path.unlink()
            except OSError as e:
                raise PersistenceIOError(f"cannot remove stale {path}: {e}") from e

    header = config.to_dict()
    header['num_records'] = int(records.shape[0])
    header['solved'] = result is not None
    try:
        with open(header_path, "w") as f:
            yaml.safe_dump(header, f, sort_keys=False)
    except OSError as e:
        raise PersistenceIOError(f"cannot write {header_path}: {e}") from e

    logger.debug("saved PCA state to %s.* (%d artifacts)", basename, len(arrays) + 1)


# ---------------------------------------------------------------------------
# Load
# ---------------------------------------------------------------------------

def _read_header(basename: str) -> Dict[str, Any]:
    path = artifact_path(basename, 'config')
    try:
        with open(path) as f:
            header = yaml.safe_load(f)
    except OSError as e:
        raise PersistenceIOError(f"cannot read {path}: {e}") from e
    except yaml.YAMLError as e:
        raise PersistenceIOError(f"malformed {path}: {e}") from e

    if not isinstance(header, dict):
        raise PersistenceIOError(f"malformed {path}: expected a mapping")
    return header


def _parse_config(header: Dict[str, Any], basename: str) -> PCAConfig:
    try:
        config = PCAConfig.from_dict(header)
        config.solver = resolve_solver(config.solver).value
        validate_num_bootstraps(config.num_bootstraps)
        if config.num_variables < CONFIG['records']['min_variables']:
            raise ValueError(f"num_variables={config.num_variables}")
    except (KeyError, TypeError, ValueError, PCAError) as e:
        raise PersistenceIOError(
            f"invalid configuration in {artifact_path(basename, 'config')}: {e}"
        ) from e
    return config


def _expect_shape(array: np.ndarray, shape: Tuple[int, ...], basename: str, artifact: str) -> None:
    if array.shape != shape:
        raise PersistenceIOError(
            f"{artifact_path(basename, artifact)} has shape {array.shape}, "
            f"expected {shape}"
        )


def load_state(
    basename: str,
) -> Tuple[PCAConfig, np.ndarray, Optional[Dict[str, Any]], Optional[BootstrapResult]]:
    """
    Read the model state saved under `basename`.

    Returns
    -------
    (config, records, result, boot)
        result is None for an unsolved model; boot is None unless the
        model was solved with bootstrap enabled.
    """
    header = _read_header(basename)
    config = _parse_config(header, basename)
    n_vars = config.num_variables

    try:
        num_records = int(header['num_records'])
        solved = bool(header['solved'])
    except (KeyError, TypeError, ValueError) as e:
        raise PersistenceIOError(f"incomplete header for {basename}: {e}") from e

    records = read_matrix(artifact_path(basename, 'records'))
    _expect_shape(records, (num_records, n_vars), basename, 'records')

    if not solved:
        logger.debug("loaded unsolved PCA state from %s.*", basename)
        return config, records, None, None

    result: Dict[str, Any] = {
        'means': read_matrix(artifact_path(basename, 'means')),
        'sigmas': None,
        'eigenvalues': read_matrix(artifact_path(basename, 'eigenvalues')),
        'eigenvectors': read_matrix(artifact_path(basename, 'eigenvectors')),
        'principals': read_matrix(artifact_path(basename, 'principals')),
    }
    energy = read_matrix(artifact_path(basename, 'energy'))
    _expect_shape(energy, (), basename, 'energy')
    result['energy'] = float(energy)

    _expect_shape(result['means'], (n_vars,), basename, 'means')
    _expect_shape(result['eigenvalues'], (n_vars,), basename, 'eigenvalues')
    _expect_shape(result['eigenvectors'], (n_vars, n_vars), basename, 'eigenvectors')
    _expect_shape(result['principals'], (num_records, n_vars), basename, 'principals')

    if config.do_normalize:
        result['sigmas'] = read_matrix(artifact_path(basename, 'sigmas'))
        _expect_shape(result['sigmas'], (n_vars,), basename, 'sigmas')

    boot = None
    if config.do_bootstrap:
        k = config.num_bootstraps
        boot = BootstrapResult(
            eigenvalues=read_matrix(artifact_path(basename, 'eigenvalues_boot')),
            energy=read_matrix(artifact_path(basename, 'energy_boot')),
        )
        _expect_shape(boot.eigenvalues, (k, n_vars), basename, 'eigenvalues_boot')
        _expect_shape(boot.energy, (k,), basename, 'energy_boot')

    logger.debug("loaded solved PCA state from %s.*", basename)
    return config, records, result, boot
