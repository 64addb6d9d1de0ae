# operators/solve.py
from __future__ import annotations

import logging
import warnings
from typing import Dict, Optional

import numpy as np
import scipy.sparse as sp
import scipy.sparse.linalg as spla

from embedded_fd.core.config import Scheme, SolverConfig
from embedded_fd.core.errors import IndexSpaceError, SolverError

log = logging.getLogger(__name__)

METHODS = ("direct", "bicgstab", "gmres")


# ============================
# Low-level linear algebra
# ============================

def jacobi_preconditioner(A: sp.spmatrix) -> sp.dia_matrix:
    """Inverse of diag(A); zero diagonal entries are left as 1."""
    d = np.asarray(A.diagonal(), dtype=float)
    d = np.where(d == 0.0, 1.0, d)
    return sp.diags(1.0 / d)


def solve(
    A: sp.spmatrix,
    b: np.ndarray,
    scheme: Scheme = Scheme.IMPLICIT,
    *,
    method: str = "direct",
    tol: float = 1e-10,
    maxiter: Optional[int] = None,
) -> np.ndarray:
    """
    Solve A u = b.

    Parameters
    ----------
    scheme:
        Discretization tag of the system being solved. The system has already
        been formed for this scheme (see operators.timestepping); the tag is
        validated and reported.
    method:
        "direct" (sparse LU via spsolve), or "bicgstab" / "gmres" with a
        Jacobi preconditioner.
    tol, maxiter:
        Relative tolerance and iteration cap of the iterative methods.

    Raises
    ------
    SolverError
        Singular matrix, non-convergence, or non-finite solution.
    """
    if not isinstance(scheme, Scheme):
        raise TypeError(f"scheme must be a Scheme, got {scheme!r}")
    if method not in METHODS:
        raise ValueError(f"Unknown method '{method}'. Use one of: {', '.join(METHODS)}.")

    n = A.shape[0]
    b = np.asarray(b, dtype=float)
    if A.shape != (n, n):
        raise IndexSpaceError(f"A must be square, got shape {A.shape}")
    if b.shape != (n,):
        raise IndexSpaceError(f"b has shape {b.shape}, expected ({n},)")

    A = A.tocsr()

    if method == "direct":
        with warnings.catch_warnings():
            warnings.simplefilter("error", spla.MatrixRankWarning)
            try:
                u = spla.spsolve(A, b)
            except spla.MatrixRankWarning as exc:
                raise SolverError(f"direct solve failed ({scheme.value}): matrix is singular") from exc
        info = 0
    else:
        M = jacobi_preconditioner(A)
        if method == "bicgstab":
            u, info = spla.bicgstab(A, b, rtol=tol, atol=0.0, maxiter=maxiter, M=M)
        else:
            u, info = spla.gmres(A, b, rtol=tol, atol=0.0, restart=50, maxiter=maxiter, M=M)
        if info != 0:
            raise SolverError(
                f"{method} did not converge ({scheme.value}): info={info}, tol={tol}, maxiter={maxiter}"
            )

    u = np.asarray(u, dtype=float)
    if not np.all(np.isfinite(u)):
        raise SolverError(f"{method} solve returned non-finite values ({scheme.value})")

    log.debug("solve[%s, %s]: n=%d nnz=%d", method, scheme.value, n, A.nnz)
    return u


def solve_with(cfg: SolverConfig, A: sp.spmatrix, b: np.ndarray) -> np.ndarray:
    """solve() with the settings of a SolverConfig."""
    return solve(A, b, cfg.scheme, method=cfg.method, tol=cfg.tol, maxiter=cfg.maxiter)


def compute_residual(A: sp.spmatrix, u: np.ndarray, b: np.ndarray) -> np.ndarray:
    """
    r = b - A u
    """
    return b - A @ u


def residual_norms(A: sp.spmatrix, u: np.ndarray, b: np.ndarray) -> Dict[str, float]:
    """
    Common residual diagnostics.
    """
    r = compute_residual(A, u, b)
    bn = float(np.linalg.norm(b))
    rn = float(np.linalg.norm(r))
    return {
        "||r||2": rn,
        "||b||2": bn,
        "||r||2/||b||2": rn / bn if bn > 0 else np.nan,
        "||u||2": float(np.linalg.norm(u)),
        "||r||inf": float(np.max(np.abs(r))) if r.size else 0.0,
    }
