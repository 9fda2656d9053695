from __future__ import annotations

from typing import Optional

import numpy as np
import scipy.linalg

from .errors import ConfigurationError, NonFiniteResidualError, SingularJacobianError

__all__ = ["DEFAULT_COND_LIMIT", "solve_update"]


DEFAULT_COND_LIMIT = 1e12


def solve_update(
    jacobian: np.ndarray,
    residual: np.ndarray,
    guess: np.ndarray,
    target: Optional[np.ndarray] = None,
    *,
    cond_limit: float = DEFAULT_COND_LIMIT,
) -> np.ndarray:
    """One Newton update: solve J * dx = Re(target - residual), return guess + dx.

    With target=None (zero target) this is J * dx = -Re(residual). The imaginary part of
    the residual is discarded. The solve goes through an LU factorisation; J is never inverted.

    Raises
    ------
    SingularJacobianError
        J is exactly singular, its condition number is non-finite or above cond_limit,
        or the step is not finite.
    NonFiniteResidualError
        The residual (or target) contains inf or nan.
    """
    J = np.asarray(jacobian, dtype=float)
    guess = np.asarray(guess, dtype=complex)
    residual = np.asarray(residual, dtype=complex)
    if target is not None:
        target = np.asarray(target, dtype=complex)
    d = int(guess.size)
    if J.shape != (d, d):
        raise ConfigurationError(f"jacobian must have shape ({d},{d}), got {J.shape}.")
    if residual.shape != (d,):
        raise ConfigurationError(f"residual must have shape ({d},), got {residual.shape}.")
    if d == 0:
        return guess.copy()

    rhs = -np.real(residual) if target is None else np.real(target - residual)
    if not np.all(np.isfinite(rhs)):
        raise NonFiniteResidualError("Residual contains non-finite values.")

    if not np.all(np.isfinite(J)):
        raise SingularJacobianError("Jacobian contains non-finite entries.")
    with np.errstate(divide="ignore", invalid="ignore"):
        cond = float(np.linalg.cond(J))
    if not np.isfinite(cond) or cond > float(cond_limit):
        raise SingularJacobianError(
            f"Jacobian is singular or ill-conditioned (cond={cond:.3e}, limit={cond_limit:.1e}).",
            condition=cond,
        )

    try:
        dx = scipy.linalg.solve(J, rhs, assume_a="gen", check_finite=True)
    except np.linalg.LinAlgError as e:
        raise SingularJacobianError(f"LU solve failed: {e}", condition=cond) from e

    if not np.all(np.isfinite(dx)):
        raise SingularJacobianError("Newton step is not finite.", condition=cond)

    return guess + dx
