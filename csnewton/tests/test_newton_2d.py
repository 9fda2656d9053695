import numpy as np
import pytest

from csnewton.core.errors import ConfigurationError, NonFiniteResidualError, SingularJacobianError
from csnewton.core.newton import NewtonConfig, NewtonResult, solve


def F_system(x: np.ndarray, params: None) -> np.ndarray:
    # A simple nonlinear 2D system with a known root at (6, 1):
    #   x^2 + y - 37 = 0
    #   x - y^2 - 5 = 0
    return np.array([x[0] ** 2 + x[1] - 37.0, x[0] - x[1] ** 2 - 5.0], dtype=complex)


def F_duplicate(x: np.ndarray, params: None) -> np.ndarray:
    # Two identical equations: the Jacobian is exactly singular everywhere.
    return np.array([x[0] + x[1] - 2.0, x[0] + x[1] - 2.0], dtype=complex)


def test_newton_2d_complex_step() -> None:
    x0 = np.array([5.0, 2.0], dtype=float)
    res = solve(x0, [0.0, 0.0], None, F_system, tolerance=1e-12, max_iterations=30)

    assert isinstance(res, NewtonResult)
    assert res.converged is True
    assert res.status == "converged"
    assert np.allclose(res.x, np.array([6.0, 1.0]), rtol=0.0, atol=1e-10)
    assert res.error <= 1e-12
    assert len(res.history) == res.niter + 1
    assert np.all(np.imag(res.guess) == 0.0)


def test_newton_2d_central_difference_matches() -> None:
    x0 = np.array([5.0, 2.0], dtype=float)
    cfg = NewtonConfig(tolerance=1e-10, max_iterations=30, jacobian_method="central")
    res = solve(x0, [0.0, 0.0], None, F_system, config=cfg)

    assert res.converged is True
    assert np.allclose(res.x, np.array([6.0, 1.0]), rtol=0.0, atol=1e-9)


def test_nonzero_target() -> None:
    # x^2 = 4 starting from 1 -> 2
    res = solve([1.0], [4.0], None, lambda x, p: x ** 2, tolerance=1e-12, max_iterations=20)
    assert res.converged is True
    assert abs(res.x[0] - 2.0) < 1e-12


def test_initial_guess_not_mutated() -> None:
    x0 = np.array([5.0, 2.0], dtype=complex)
    solve(x0, [0.0, 0.0], None, F_system, tolerance=1e-12, max_iterations=30)
    assert np.array_equal(x0, np.array([5.0, 2.0], dtype=complex))


def test_already_converged_skips_linear_solve() -> None:
    calls = {"n": 0}

    def counting(x: np.ndarray, params: None) -> np.ndarray:
        calls["n"] += 1
        return F_duplicate(x, params)

    # On the solution line the Jacobian is singular, so any linear solve would raise.
    res = solve([1.5, 0.5], [0.0, 0.0], None, counting, tolerance=1e-8, max_iterations=5)
    assert res.converged is True
    assert res.niter == 0
    assert res.error == 0.0
    assert calls["n"] == 1


def test_singular_jacobian_aborts() -> None:
    with pytest.raises(ArithmeticError):
        solve([0.0, 0.0], [0.0, 0.0], None, F_duplicate, tolerance=1e-8, max_iterations=5)

    with pytest.raises(SingularJacobianError) as exc:
        solve([0.0, 0.0], [0.0, 0.0], None, F_duplicate, tolerance=1e-8, max_iterations=5)
    assert exc.value.iteration == 0
    assert np.array_equal(exc.value.guess, np.zeros(2, dtype=complex))


def test_singular_jacobian_after_one_iteration() -> None:
    # f(x) = (x-1)^2 + 1 has no real root; from x=2 the first step lands on x=1 where f'(1) = 0.
    def F(x: np.ndarray, params: None) -> np.ndarray:
        return np.array([(x[0] - 1.0) ** 2 + 1.0], dtype=complex)

    with pytest.raises(SingularJacobianError) as exc:
        solve([2.0], [0.0], None, F, tolerance=1e-8, max_iterations=10)
    assert exc.value.iteration == 1
    assert np.array_equal(exc.value.guess, np.array([1.0], dtype=complex))


def test_exhausted_is_not_an_error() -> None:
    x0 = np.array([50.0, -20.0], dtype=float)
    res = solve(x0, [0.0, 0.0], None, F_system, tolerance=1e-12, max_iterations=2)

    assert res.converged is False
    assert res.status == "exhausted"
    assert res.niter == 2
    assert res.error > 1e-12
    assert len(res.history) == 3


def test_determinism() -> None:
    a = solve([5.0, 2.0], [0.0, 0.0], None, F_system, tolerance=1e-12, max_iterations=30)
    b = solve([5.0, 2.0], [0.0, 0.0], None, F_system, tolerance=1e-12, max_iterations=30)

    assert a.niter == b.niter
    assert np.array_equal(a.guess, b.guess)
    assert a.history == b.history


def test_callback_can_cancel() -> None:
    seen = []

    def cb(record) -> bool:
        seen.append(record.iteration)
        return record.iteration >= 2

    res = solve([50.0, -20.0], [0.0, 0.0], None, F_system, tolerance=1e-14, max_iterations=30, callback=cb)
    assert res.status == "cancelled"
    assert res.converged is False
    assert res.niter == 2
    assert seen == [1, 2]


def test_empty_system_converges_immediately() -> None:
    res = solve([], [], None, lambda x, p: x)
    assert res.converged is True
    assert res.niter == 0
    assert res.guess.shape == (0,)


@pytest.mark.parametrize(
    "kwargs",
    [
        {"probe_distance": 0.0},
        {"probe_distance": float("nan")},
        {"tolerance": 0.0},
        {"tolerance": -1e-4},
        {"max_iterations": 0},
        {"max_iterations": 2.5},
        {"config": NewtonConfig(jacobian_method="secant")},
        {"config": NewtonConfig(cond_limit=0.5)},
    ],
)
def test_invalid_configuration(kwargs) -> None:
    with pytest.raises(ConfigurationError):
        solve([5.0, 2.0], [0.0, 0.0], None, F_system, **kwargs)


def test_dimension_mismatch() -> None:
    with pytest.raises(ConfigurationError):
        solve([5.0, 2.0], [0.0, 0.0, 0.0], None, F_system)
    with pytest.raises(ConfigurationError):
        solve([5.0, 2.0, 1.0], [0.0, 0.0, 0.0], None, F_system)
    with pytest.raises(ConfigurationError):
        solve([[5.0, 2.0]], [0.0, 0.0], None, F_system)


def test_configuration_error_is_a_value_error() -> None:
    with pytest.raises(ValueError):
        solve([5.0, 2.0], [0.0, 0.0], None, F_system, tolerance=0.0)


def test_complex_initial_guess_rejected() -> None:
    with pytest.raises(ConfigurationError):
        solve([5.0 + 1e-3j, 2.0], [0.0, 0.0], None, F_system, tolerance=1e-12, max_iterations=30)

    # a complex dtype with zero imaginary part is fine
    res = solve(np.array([5.0, 2.0], dtype=complex), [0.0, 0.0], None, F_system, tolerance=1e-12, max_iterations=30)
    assert res.converged is True


def test_non_finite_residual_reports_iteration() -> None:
    # f(x) = x - 1 for x >= 1.5; from x=3 the first step lands on x=1 where the residual is inf
    def F(x: np.ndarray, params: None) -> np.ndarray:
        blowup = np.inf if x[0].real < 1.5 else 0.0
        return np.array([x[0] - 1.0 + blowup], dtype=complex)

    with pytest.raises(NonFiniteResidualError) as exc:
        solve([3.0], [0.0], None, F, tolerance=1e-8, max_iterations=10)
    assert isinstance(exc.value, ArithmeticError)
    assert exc.value.iteration == 1
    assert np.array_equal(exc.value.guess, np.array([1.0], dtype=complex))
