import numpy as np
import pytest
import scipy.sparse as sp

from embedded_fd.core.config import Scheme, SolverConfig
from embedded_fd.core.errors import IndexSpaceError, SolverError
from embedded_fd.operators.solve import compute_residual, residual_norms, solve, solve_with


def _poisson_1d(n=50):
    main = 2.0 * np.ones(n)
    off = -1.0 * np.ones(n - 1)
    return sp.diags([off, main, off], [-1, 0, 1], format="csr")


@pytest.mark.parametrize("method", ["direct", "bicgstab", "gmres"])
def test_methods_agree(method):
    A = _poisson_1d()
    x = np.linspace(0.0, 1.0, 50)
    u_ref = np.sin(np.pi * x)
    b = A @ u_ref
    u = solve(A, b, method=method, tol=1e-12, maxiter=5000)
    np.testing.assert_allclose(u, u_ref, atol=1e-7)
    assert residual_norms(A, u, b)["||r||2/||b||2"] < 1e-8


def test_scheme_tag_is_checked():
    A = _poisson_1d(5)
    b = np.ones(5)
    u = solve(A, b, Scheme.CRANK_NICOLSON)
    np.testing.assert_allclose(compute_residual(A, u, b), 0.0, atol=1e-12)
    with pytest.raises(TypeError):
        solve(A, b, "implicit")


def test_singular_matrix_raises():
    A = sp.csr_matrix(np.array([[1.0, 1.0], [1.0, 1.0]]))
    with pytest.raises(SolverError):
        solve(A, np.array([1.0, 2.0]))


def test_non_convergence_raises():
    A = _poisson_1d(200)
    with pytest.raises(SolverError):
        solve(A, np.ones(200), method="bicgstab", tol=1e-14, maxiter=2)


def test_bad_inputs():
    A = _poisson_1d(5)
    with pytest.raises(IndexSpaceError):
        solve(A, np.ones(4))
    with pytest.raises(ValueError):
        solve(A, np.ones(5), method="cholesky")


def test_solve_with_config():
    A = _poisson_1d(20)
    b = np.ones(20)
    u = solve_with(SolverConfig(method="gmres", tol=1e-12, maxiter=500), A, b)
    np.testing.assert_allclose(A @ u, b, atol=1e-8)
