"""
Error types raised by the PCA engine.

Each error also subclasses the closest builtin so callers can catch
either the specific type or the generic one (ValueError, IndexError, ...).
"""


class PCAError(Exception):
    """Base class for all engine errors."""


class ConfigurationError(PCAError, ValueError):
    """Invalid configuration value (num_variables, num_bootstraps, workers)."""


class DimensionMismatchError(PCAError, ValueError):
    """Record, vector or matrix has the wrong size."""


class StateError(PCAError, RuntimeError):
    """Operation not valid in the model's current state."""


class UnsupportedOptionError(PCAError, ValueError):
    """Unknown option value, e.g. a solver name."""


class RangeError(PCAError, IndexError):
    """Index out of bounds."""


class DegenerateValueError(PCAError, ArithmeticError):
    """A value that makes the computation undefined (zero scale, zero energy)."""


class PersistenceIOError(PCAError, OSError):
    """Persistence path cannot be written or read."""
