from __future__ import annotations

from typing import Optional

import numpy as np

__all__ = [
    "ConfigurationError",
    "SolveArithmeticError",
    "SingularJacobianError",
    "NonFiniteResidualError",
]


class ConfigurationError(ValueError):
    """Invalid solver input detected before any iteration runs."""


class SolveArithmeticError(ArithmeticError):
    """A Newton update could not be computed.

    Attributes
    ----------
    iteration
        Number of completed iterations when the failure happened
        (None if raised outside the driver).
    guess
        Guess at which the update was attempted (None if unknown).
    condition
        2-norm condition number of the Jacobian, if computed.
    """

    def __init__(
        self,
        message: str,
        *,
        iteration: Optional[int] = None,
        guess: Optional[np.ndarray] = None,
        condition: Optional[float] = None,
    ) -> None:
        super().__init__(message)
        self.iteration = iteration
        self.guess = guess
        self.condition = condition


class SingularJacobianError(SolveArithmeticError):
    """The Jacobian is singular, ill-conditioned or gives a non-finite step."""


class NonFiniteResidualError(SolveArithmeticError, FloatingPointError):
    """The residual feeding the update contains inf or nan."""
