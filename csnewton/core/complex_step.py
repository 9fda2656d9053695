from __future__ import annotations

from typing import Any, Callable, Optional, Sequence, Tuple

import numpy as np

from .errors import ConfigurationError
from .vectors import as_residual, check_probe_distance

__all__ = [
    "complex_step_derivative",
    "central_difference_derivative",
    "complex_step_jacobian",
    "central_difference_jacobian",
]


Evaluator = Callable[[np.ndarray, Any], Any]


def _fd_step(x: float, dx_rel: float) -> float:
    """Relative finite-difference step with a floor."""
    dx = float(dx_rel) * (abs(float(x)) + 1.0)
    # avoid pathological zero/denorm steps
    if dx == 0.0:
        dx = float(dx_rel) if dx_rel != 0.0 else 1e-12
    return dx


def _column_order(order: Optional[Sequence[int]], d: int) -> Sequence[int]:
    if order is None:
        return range(d)
    cols = [int(j) for j in order]
    if sorted(cols) != list(range(d)):
        raise ConfigurationError(f"order must be a permutation of range({d}), got {list(order)}.")
    return cols


def complex_step_derivative(f: Callable[[complex], complex], x: float, h: float = 1e-22) -> float:
    """Complex-step derivative of an analytic scalar function.

    f(x + ih) = f(x) + ih f'(x) - h^2/2 f''(x) - ..., so Im(f(x + ih))/h = f'(x) + O(h^2)
    with no subtraction of nearly equal numbers, so h can be taken as small as 1e-22 or less.
    """
    h_f = check_probe_distance(h)
    return float(np.imag(f(complex(float(x), h_f)))) / h_f


def central_difference_derivative(f: Callable[[float], float], x: float, h: float) -> float:
    """(f(x+h) - f(x-h)) / 2h; loses digits to cancellation once h drops below ~1e-6."""
    h_f = check_probe_distance(h)
    x_f = float(x)
    return (float(f(x_f + h_f)) - float(f(x_f - h_f))) / (2.0 * h_f)


def complex_step_jacobian(
    evaluate: Evaluator,
    guess: np.ndarray,
    params: Any,
    probe_distance: float,
    *,
    order: Optional[Sequence[int]] = None,
) -> Tuple[np.ndarray, np.ndarray]:
    """Jacobian of evaluate(guess, params) by complex-step perturbation.

    Parameters
    ----------
    evaluate
        Residual evaluator: evaluate(guess, params) -> (N,). Must be analytic in every
        component of guess; a non-analytic evaluator (abs, conj, ...) gives a wrong Jacobian.
    guess
        Complex vector, shape (N,). Perturbed in place one entry at a time and restored.
    params
        Problem parameters forwarded to evaluate unchanged.
    probe_distance
        Imaginary step h. Must be non-zero.
    order
        Optional permutation of range(N) giving the order in which columns are filled.

    Returns
    -------
    jacobian : np.ndarray
        Real (N, N) matrix, jacobian[k, j] = d(residual k)/d(guess j).
    baseline : np.ndarray
        Unperturbed residual, shape (N,), so the caller need not evaluate it again.
    """
    h = check_probe_distance(probe_distance)
    if not np.iscomplexobj(guess):
        raise ConfigurationError(f"guess must be a complex array, got dtype {guess.dtype}.")
    d = int(guess.size)
    if d == 0:
        return np.empty((0, 0), dtype=float), np.empty(0, dtype=complex)
    cols = _column_order(order, d)

    baseline = as_residual(evaluate(guess, params), d).copy()

    J = np.empty((d, d), dtype=float)
    for j in cols:
        saved = guess[j]
        guess[j] = saved + 1j * h
        try:
            perturbed = as_residual(evaluate(guess, params), d)
        finally:
            guess[j] = saved
        J[:, j] = np.imag(perturbed) / h
    return J, baseline


def central_difference_jacobian(
    evaluate: Evaluator,
    guess: np.ndarray,
    params: Any,
    dx_rel: float = 1e-6,
) -> Tuple[np.ndarray, np.ndarray]:
    """Central-difference Jacobian on the real part of guess.

    Same return convention as complex_step_jacobian. Step per component:
    dx_j = dx_rel*(|x_j|+1).
    """
    d = int(guess.size)
    if d == 0:
        return np.empty((0, 0), dtype=float), np.empty(0, dtype=complex)

    x = np.real(guess).astype(complex)
    baseline = as_residual(evaluate(x, params), d).copy()

    J = np.empty((d, d), dtype=float)
    for j in range(d):
        dxj = _fd_step(float(x[j].real), dx_rel)
        xp = x.copy(); xm = x.copy()
        xp[j] += dxj
        xm[j] -= dxj
        Fp = as_residual(evaluate(xp, params), d)
        Fm = as_residual(evaluate(xm, params), d)
        J[:, j] = np.real(Fp - Fm) / (2.0 * dxj)
    return J, baseline
