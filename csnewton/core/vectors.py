from __future__ import annotations

from typing import Any, Union, Sequence

import numpy as np

from .errors import ConfigurationError

__all__ = [
    "ArrayLike",
    "as_complex_vector",
    "as_residual",
    "check_probe_distance",
    "residual_norm",
]


ArrayLike = Union[np.ndarray, Sequence[complex], Sequence[float]]


def as_complex_vector(x: Any, name: str = "x") -> np.ndarray:
    """Copy x into a fresh complex128 vector of shape (N,)."""
    v = np.array(x, dtype=complex)
    if v.ndim != 1:
        raise ConfigurationError(f"{name} must be a 1D array-like of shape (N,), got shape {v.shape}.")
    return v


def as_residual(R: Any, d: int) -> np.ndarray:
    Rv = np.asarray(R, dtype=complex)
    if Rv.ndim != 1 or Rv.shape[0] != d:
        raise ConfigurationError(f"Residual evaluator must return shape ({d},), got {Rv.shape}.")
    return Rv


def check_probe_distance(h: float) -> float:
    h_f = float(h)
    if h_f == 0.0 or not np.isfinite(h_f):
        raise ConfigurationError(f"probe distance must be finite and non-zero, got {h!r}.")
    return h_f


def residual_norm(target: np.ndarray, residual: np.ndarray) -> float:
    """L2 norm of Re(target - residual)."""
    return float(np.linalg.norm(np.real(target - residual), 2)) if residual.size else 0.0
