from __future__ import annotations

import argparse
import logging
import os
from typing import List, Optional

import numpy as np

# Non-interactive backend for batch runs
import matplotlib
matplotlib.use("Agg")  # noqa: E402
import matplotlib.pyplot as plt  # noqa: E402

from ..core.errors import SingularJacobianError
from ..core.newton import NewtonConfig, NewtonResult
from ..models.paraboloids import DEFAULT_GUESS, KNOWN_ROOT, solve_paraboloids


def plot_history(result: NewtonResult, tolerance: float, path: str) -> None:
    plt.figure()
    plt.semilogy(range(len(result.history)), result.history, "o-", label="residual error")
    plt.axhline(tolerance, color="r", linestyle="--", label="tolerance")
    plt.xlabel("iteration")
    plt.ylabel("L2 residual error")
    plt.legend()
    plt.title(f"Complex-step Newton: {result.status} after {result.niter} iterations")
    plt.grid(True, alpha=0.3)
    plt.tight_layout()
    plt.savefig(path, dpi=200)
    plt.close()


def main(argv: Optional[List[str]] = None) -> int:
    ap = argparse.ArgumentParser(description="Complex-step Newton-Raphson: intersection of three paraboloids")
    ap.add_argument("--guess", type=float, nargs=3, default=list(DEFAULT_GUESS), metavar=("X", "Y", "Z"))
    ap.add_argument("--probe", type=float, default=1e-22, help="complex-step probe distance")
    ap.add_argument("--tol", type=float, default=1e-4)
    ap.add_argument("--maxiter", type=int, default=9)
    ap.add_argument("--method", choices=("complex-step", "central"), default="complex-step")
    ap.add_argument("--plot", action="store_true", help="write convergence history PNG")
    ap.add_argument("--outdir", type=str, default=".")
    ap.add_argument("--verbose", action="store_true", help="log every iteration")
    args = ap.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    config = NewtonConfig(
        probe_distance=args.probe,
        tolerance=args.tol,
        max_iterations=args.maxiter,
        jacobian_method=args.method,
    )

    print("Running complex step example ................")
    try:
        result = solve_paraboloids(np.array(args.guess, dtype=float), config=config)
    except SingularJacobianError as e:
        print(f"[failed] singular Jacobian after {e.iteration} iterations: {e}")
        return 2

    print("******************************************")
    print(f"Number of iterations: {result.niter}")
    print("Final guess:\n x, y, z")
    print(" " + "  ".join(f"{v:.12g}" for v in result.x))
    print(f"Error tolerance: {config.tolerance:g}")
    print(f"Final error: {result.error:.6e}")
    print(f"Status: {result.status}")
    print(f"Distance to known root {tuple(KNOWN_ROOT)}: {np.linalg.norm(result.x - KNOWN_ROOT):.3e}")

    if args.plot:
        os.makedirs(args.outdir, exist_ok=True)
        fn = os.path.join(args.outdir, "paraboloid_convergence.png")
        plot_history(result, config.tolerance, fn)
        print(f"[saved] {os.path.abspath(fn)}")

    print("--program complete--")
    return 0 if result.converged else 1


if __name__ == "__main__":
    raise SystemExit(main())
