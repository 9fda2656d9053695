from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Callable, List, Optional, Tuple

import numpy as np

from .complex_step import central_difference_jacobian, complex_step_jacobian
from .errors import ConfigurationError, SolveArithmeticError
from .linear import DEFAULT_COND_LIMIT, solve_update
from .vectors import ArrayLike, as_complex_vector, as_residual, check_probe_distance, residual_norm

__all__ = [
    "ResidualEvaluator",
    "NewtonConfig",
    "IterationRecord",
    "NewtonResult",
    "solve",
]

logger = logging.getLogger(__name__)


ResidualEvaluator = Callable[[np.ndarray, Any], Any]

JACOBIAN_METHODS = ("complex-step", "central")


@dataclass
class NewtonConfig:
    """
    Settings for the complex-step Newton driver.

    Notes
    -----
    - probe_distance is the imaginary step of the complex-step Jacobian. Since no
      subtraction is involved it can be tiny (default 1e-22).
    - tolerance is on the L2 norm of Re(target - residual).
    - cond_limit: Jacobians with a larger 2-norm condition number are rejected as singular.
    - jacobian_method="central" swaps in a real central-difference Jacobian with
      relative step dx_rel (mainly useful for comparison).
    """
    probe_distance: float = 1e-22
    tolerance: float = 1e-4
    max_iterations: int = 9
    cond_limit: float = DEFAULT_COND_LIMIT
    jacobian_method: str = "complex-step"
    dx_rel: float = 1e-6

    def validate(self) -> None:
        check_probe_distance(self.probe_distance)
        tol = float(self.tolerance)
        if not (tol > 0.0):
            raise ConfigurationError(f"tolerance must be positive, got {self.tolerance!r}.")
        if isinstance(self.max_iterations, bool) or int(self.max_iterations) != self.max_iterations:
            raise ConfigurationError(f"max_iterations must be an integer, got {self.max_iterations!r}.")
        if int(self.max_iterations) < 1:
            raise ConfigurationError(f"max_iterations must be at least 1, got {self.max_iterations!r}.")
        if not (float(self.cond_limit) > 1.0):
            raise ConfigurationError(f"cond_limit must exceed 1, got {self.cond_limit!r}.")
        if self.jacobian_method not in JACOBIAN_METHODS:
            raise ConfigurationError(
                f"Unknown jacobian_method {self.jacobian_method!r}; expected one of {JACOBIAN_METHODS}."
            )
        if self.jacobian_method == "central" and not (float(self.dx_rel) > 0.0):
            raise ConfigurationError(f"dx_rel must be positive, got {self.dx_rel!r}.")


@dataclass
class IterationRecord:
    """Snapshot handed to the solve callback after each iteration."""
    iteration: int
    guess: np.ndarray
    error: float


@dataclass
class NewtonResult:
    """Terminal state of one solve.

    status is "converged", "exhausted" (iteration cap reached) or "cancelled" (callback).
    history[0] is the error of the initial guess, history[k] the error after iteration k.
    """
    guess: np.ndarray
    error: float
    niter: int
    converged: bool
    status: str
    history: List[float] = field(default_factory=list)

    @property
    def x(self) -> np.ndarray:
        """Real part of the final guess."""
        return np.real(self.guess)


def _resolve_config(
    config: Optional[NewtonConfig],
    probe_distance: Optional[float],
    tolerance: Optional[float],
    max_iterations: Optional[int],
) -> NewtonConfig:
    cfg = config if config is not None else NewtonConfig()
    overrides = {}
    if probe_distance is not None:
        overrides["probe_distance"] = probe_distance
    if tolerance is not None:
        overrides["tolerance"] = tolerance
    if max_iterations is not None:
        overrides["max_iterations"] = max_iterations
    if overrides:
        cfg = replace(cfg, **overrides)
    cfg.validate()
    return cfg


def _estimate_jacobian(
    evaluate: ResidualEvaluator,
    x: np.ndarray,
    params: Any,
    cfg: NewtonConfig,
) -> Tuple[np.ndarray, np.ndarray]:
    if cfg.jacobian_method == "central":
        return central_difference_jacobian(evaluate, x, params, float(cfg.dx_rel))
    return complex_step_jacobian(evaluate, x, params, float(cfg.probe_distance))


def solve(
    initial_guess: ArrayLike,
    target: ArrayLike,
    params: Any,
    evaluate: ResidualEvaluator,
    probe_distance: Optional[float] = None,
    tolerance: Optional[float] = None,
    max_iterations: Optional[int] = None,
    *,
    config: Optional[NewtonConfig] = None,
    callback: Optional[Callable[[IterationRecord], Optional[bool]]] = None,
) -> NewtonResult:
    """Newton-Raphson on evaluate(x, params) = target with a complex-step Jacobian.

    Parameters
    ----------
    initial_guess
        Starting point, shape (N,). Copied; the caller's array is never modified.
    target
        Desired residual value, shape (N,). Usually zeros.
    params
        Problem parameters, forwarded to evaluate unchanged.
    evaluate
        Residual evaluator: evaluate(x, params) -> (N,). Must be analytic, deterministic
        and free of side effects.
    probe_distance, tolerance, max_iterations
        Override the corresponding fields of config (defaults: 1e-22, 1e-4, 9).
    config
        Full NewtonConfig. If None, NewtonConfig() is used.
    callback
        Optional callback(record) run after every iteration. Returning True stops the
        solve with status "cancelled".

    Each iteration:
        1. (J, R) = Jacobian and unperturbed residual at x
        2. solve J * dx = Re(target - R); x <- x + dx
        3. R = evaluate(x) ; error = ||Re(target - R)||_2
        4. stop if error <= tolerance (converged) or niter >= max_iterations (exhausted)

    If the initial guess already satisfies the tolerance, returns with niter == 0 and no
    linear solve is attempted.

    Returns
    -------
    NewtonResult

    Raises
    ------
    ConfigurationError
        Dimension mismatch, invalid settings or an initial guess with a non-zero
        imaginary part; raised before iterating.
    SingularJacobianError, NonFiniteResidualError
        The update could not be computed (both are SolveArithmeticError). e.iteration
        holds the number of completed iterations and e.guess the guess at that point.
    """
    cfg = _resolve_config(config, probe_distance, tolerance, max_iterations)
    tol = float(cfg.tolerance)
    maxiter = int(cfg.max_iterations)

    x = as_complex_vector(initial_guess, "initial_guess")
    if np.any(np.imag(x) != 0.0):
        raise ConfigurationError("initial_guess must have a zero imaginary part; it is reserved for the complex step.")
    d = int(x.size)
    tgt = as_complex_vector(target, "target")
    if tgt.shape != x.shape:
        raise ConfigurationError(f"target must have shape ({d},), got {tgt.shape}.")

    R = as_residual(evaluate(x, params), d)
    error = residual_norm(tgt, R)
    history = [error]
    logger.info(f"Starting complex-step Newton: {d} variables, initial error={error:.6e}")

    if error <= tol:
        return NewtonResult(x, error, 0, True, "converged", history)

    niter = 0
    while True:
        J, baseline = _estimate_jacobian(evaluate, x, params, cfg)
        logger.debug(f"Current Jacobian:\n{J}")

        try:
            x = solve_update(J, baseline, x, tgt, cond_limit=float(cfg.cond_limit))
        except SolveArithmeticError as e:
            logger.warning(f"Iteration {niter + 1}: {e}")
            e.iteration = niter
            e.guess = x.copy()
            raise

        R = as_residual(evaluate(x, params), d)
        error = residual_norm(tgt, R)
        niter += 1
        history.append(error)
        logger.info(f"Iter {niter:3d}: Residual Error: {error:.6e}")

        stop = bool(callback(IterationRecord(niter, x.copy(), error))) if callback is not None else False

        if error <= tol:
            logger.info(f"Converged in {niter} iterations")
            return NewtonResult(x, error, niter, True, "converged", history)
        if niter >= maxiter:
            logger.warning(f"Complex-step Newton did not converge in {maxiter} iterations (error={error:.3e})")
            return NewtonResult(x, error, niter, False, "exhausted", history)
        if stop:
            logger.info(f"Cancelled by callback after {niter} iterations")
            return NewtonResult(x, error, niter, False, "cancelled", history)
