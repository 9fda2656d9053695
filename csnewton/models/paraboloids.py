"""Intersection of three infinite paraboloids.

    (x-1)^2 + y^2 + z     = 0
    x^2     + y^2 - (z+1) = 0
    x^2     + y^2 + (z-1) = 0

The only common point is (1, 0, 0). Written with offsets o (3x3):

    r_i = sum_{k<2} (g_k - o_ik)^2 + (-1)^i g_2 - o_i2

which is analytic in g, so it can be fed straight to the complex-step Newton solver.
Note the Jacobian is singular at the root itself (the y column vanishes at y=0), so
Newton converges only linearly in y there.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Optional

import numpy as np

from ..core.newton import IterationRecord, NewtonConfig, NewtonResult, solve
from ..core.vectors import ArrayLike

__all__ = [
    "KNOWN_ROOT",
    "DEFAULT_GUESS",
    "ParaboloidOffsets",
    "paraboloid_residual",
    "solve_paraboloids",
]


KNOWN_ROOT = np.array([1.0, 0.0, 0.0], dtype=float)
DEFAULT_GUESS = np.array([2.0, 2.0, 2.0], dtype=float)


def _default_offsets() -> np.ndarray:
    o = np.zeros((3, 3), dtype=complex)
    o[0, 0] = 1.0
    o[1, 2] = 1.0
    o[2, 2] = 1.0
    return o


@dataclass(frozen=True, eq=False)
class ParaboloidOffsets:
    """Row i holds the (x, y, z) offsets of paraboloid i."""
    offsets: np.ndarray = field(default_factory=_default_offsets)

    def __post_init__(self) -> None:
        o = np.array(self.offsets, dtype=complex)
        if o.shape != (3, 3):
            raise ValueError(f"offsets must have shape (3,3), got {o.shape}.")
        o.setflags(write=False)
        object.__setattr__(self, "offsets", o)


def paraboloid_residual(guess: np.ndarray, params: ParaboloidOffsets) -> np.ndarray:
    g = np.asarray(guess, dtype=complex)
    o = params.offsets
    R = np.empty(3, dtype=complex)
    for i in range(3):
        R[i] = np.sum((g[:2] - o[i, :2]) ** 2) + g[2] * (-1.0) ** i - o[i, 2]
    return R


def solve_paraboloids(
    guess: ArrayLike = DEFAULT_GUESS,
    params: Optional[ParaboloidOffsets] = None,
    *,
    config: Optional[NewtonConfig] = None,
    callback: Optional[Callable[[IterationRecord], Any]] = None,
) -> NewtonResult:
    """Run the complex-step Newton solver on the paraboloid system (target = 0)."""
    if params is None:
        params = ParaboloidOffsets()
    return solve(
        guess,
        np.zeros(3, dtype=complex),
        params,
        paraboloid_residual,
        config=config,
        callback=callback,
    )
