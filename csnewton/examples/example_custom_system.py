"""
Example: a user-defined 2D system solved with the complex-step Newton engine.

    x^2 + y - a = 0
    x - y^2 - b = 0

With (a, b) = (37, 5) the root near (5, 2) is (6, 1).

Run:
  python -m csnewton.examples.example_custom_system
"""
from __future__ import annotations

from dataclasses import dataclass
import numpy as np

from csnewton.core.newton import NewtonConfig, solve


@dataclass
class Params:
    a: float
    b: float


def residual(x: np.ndarray, params: Params) -> np.ndarray:
    return np.array([x[0] ** 2 + x[1] - params.a, x[0] - x[1] ** 2 - params.b], dtype=complex)


def main() -> None:
    params = Params(a=37.0, b=5.0)
    config = NewtonConfig(tolerance=1e-12, max_iterations=30)

    result = solve([5.0, 2.0], [0.0, 0.0], params, residual, config=config)

    print("Converged (x, y) =", tuple(result.x))
    print("niter =", result.niter, " error =", result.error, " status =", result.status)
    print("history =", result.history)


if __name__ == "__main__":
    main()
