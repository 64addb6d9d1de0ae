# operators/timestepping.py
"""
Implicit time marching for u_t = L u + f on a mesh.

Every scheme is written as

    lhs u^{n+1} - theta dt L u^{n+1}
        = sum_k history[k] u^{n-k} + (1 - theta) dt L u^n
          + dt (theta f^{n+1} + (1 - theta) f^n)

with the coefficient sets

    BACKWARD_EULER_1   lhs=1    theta=1    history=(1,)
    CRANK_NICOLSON     lhs=1    theta=1/2  history=(1,)
    BACKWARD_EULER_2   lhs=3/2  theta=1    history=(2, -1/2)

Rows of Dirichlet points and EXTERIOR points are identity rows; their
right-hand side is the boundary value at t^{n+1} and 0 respectively.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import numpy as np
import scipy.sparse as sp

from embedded_fd.core.config import ScalarField, Scheme
from embedded_fd.core.levelset import fun_to_vec
from embedded_fd.core.mesh import Mesh
from embedded_fd.core.point import Location
from embedded_fd.operators.boundary import dirichlet_values, impose_dirichlet_rows
from embedded_fd.operators.solve import solve

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class SchemeCoefficients:
    lhs: float
    implicit_weight: float
    history: Tuple[float, ...]

    @property
    def steps(self) -> int:
        return len(self.history)


COEFFICIENTS: Dict[Scheme, SchemeCoefficients] = {
    Scheme.BACKWARD_EULER_1: SchemeCoefficients(lhs=1.0, implicit_weight=1.0, history=(1.0,)),
    Scheme.CRANK_NICOLSON: SchemeCoefficients(lhs=1.0, implicit_weight=0.5, history=(1.0,)),
    Scheme.BACKWARD_EULER_2: SchemeCoefficients(lhs=1.5, implicit_weight=1.0, history=(2.0, -0.5)),
}


def scheme_coefficients(scheme: Scheme) -> SchemeCoefficients:
    try:
        return COEFFICIENTS[scheme]
    except KeyError:
        raise ValueError(f"{scheme} is not a time-stepping scheme") from None


@dataclass
class TimeMarchResult:
    u: np.ndarray
    times: np.ndarray
    history: Optional[List[np.ndarray]] = None


def step_matrix(L: sp.spmatrix, dt: float, coeffs: SchemeCoefficients, fixed: np.ndarray) -> sp.csr_matrix:
    """lhs I - theta dt L, with identity rows on `fixed`."""
    n = L.shape[0]
    M = (coeffs.lhs * sp.identity(n, format="csr") - (coeffs.implicit_weight * dt) * L).tocsr()
    impose_dirichlet_rows(M, fixed)
    return M


def march(
    mesh: Mesh,
    L: sp.spmatrix,
    u0: np.ndarray,
    source: ScalarField,
    boundary_value: ScalarField,
    boundary_indices: Sequence[int],
    dt: float,
    n_steps: int,
    scheme: Scheme = Scheme.BACKWARD_EULER_1,
    *,
    t0: float = 0.0,
    vectorized: bool = False,
    method: str = "direct",
    tol: float = 1e-10,
    maxiter: Optional[int] = None,
    keep_history: bool = False,
    callback: Optional[Callable[[int, float, np.ndarray], None]] = None,
) -> TimeMarchResult:
    """
    Advance u from t0 by n_steps steps of size dt.

    Parameters
    ----------
    L:
        Spatial operator (Laplacian, possibly with insert_beta / insert_reaction
        applied), without Dirichlet rows.
    u0:
        Initial field on every mesh point.
    source, boundary_value:
        f(point, t) and the Dirichlet data g(point, t).
    boundary_indices:
        Points where u = g is imposed (border points and box faces).
    callback:
        Called as callback(step, t, u) after every step.

    BACKWARD_EULER_2 needs two levels of history; its first step is taken
    with BACKWARD_EULER_1.
    """
    coeffs = scheme_coefficients(scheme)
    mesh.check_matrix(L, "L")
    mesh.check_vector(u0, "u0")
    dt = float(dt)
    n_steps = int(n_steps)
    if dt <= 0.0 or n_steps < 1:
        raise ValueError(f"march requires dt > 0 and n_steps >= 1, got dt={dt}, n_steps={n_steps}")

    L = L.tocsr()
    bidx = np.unique(np.asarray(boundary_indices, dtype=np.int64))
    exterior = mesh.indices_with(Location.EXTERIOR)
    fixed = np.union1d(bidx, exterior)

    matrices = {scheme: step_matrix(L, dt, coeffs, fixed)}
    if coeffs.steps > 1:
        matrices[Scheme.BACKWARD_EULER_1] = step_matrix(L, dt, COEFFICIENTS[Scheme.BACKWARD_EULER_1], fixed)

    u = np.array(u0, dtype=float)
    u[exterior] = 0.0
    levels: List[np.ndarray] = [u]
    times = t0 + dt * np.arange(n_steps + 1)
    history: Optional[List[np.ndarray]] = [u.copy()] if keep_history else None

    f_old = fun_to_vec(mesh, source, t0, vectorized=vectorized)

    for step in range(1, n_steps + 1):
        t_new = float(times[step])
        active = scheme if len(levels) >= coeffs.steps else Scheme.BACKWARD_EULER_1
        c = COEFFICIENTS[active]
        theta = c.implicit_weight

        f_new = fun_to_vec(mesh, source, t_new, vectorized=vectorized)

        rhs = np.zeros_like(u)
        for k, w in enumerate(c.history):
            rhs += w * levels[-1 - k]
        if theta < 1.0:
            rhs += (1.0 - theta) * dt * (L @ levels[-1])
            rhs += dt * (theta * f_new + (1.0 - theta) * f_old)
        else:
            rhs += dt * f_new

        rhs[bidx] = dirichlet_values(mesh, boundary_value, bidx, t_new, vectorized=vectorized)
        rhs[exterior] = 0.0

        u = solve(matrices[active], rhs, active, method=method, tol=tol, maxiter=maxiter)

        levels.append(u)
        if len(levels) > 2:
            levels.pop(0)
        f_old = f_new

        if history is not None:
            history.append(u.copy())
        if callback is not None:
            callback(step, t_new, u)

    log.info("march[%s]: %d steps of dt=%.3e to t=%.6g", scheme.value, n_steps, dt, times[-1])
    return TimeMarchResult(u=u, times=times, history=history)
