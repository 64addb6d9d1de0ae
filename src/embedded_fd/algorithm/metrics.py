# algorithm/metrics.py
from __future__ import annotations

from typing import Sequence

import numpy as np

from embedded_fd.core.mesh import Mesh
from embedded_fd.core.point import Location


def domain_mask(mesh: Mesh) -> np.ndarray:
    """True on INTERIOR and BORDER points (the embedded domain)."""
    mesh.require_built()
    return mesh.locations != Location.EXTERIOR


def _restricted_error(mesh: Mesh, u_ana: np.ndarray, u_num: np.ndarray) -> np.ndarray:
    mesh.check_vector(u_ana, "u_ana")
    mesh.check_vector(u_num, "u_num")
    return np.abs(u_ana - u_num)[domain_mask(mesh)]


def get_error_abs(mesh: Mesh, u_ana: np.ndarray, u_num: np.ndarray) -> np.ndarray:
    """
    Pointwise |u_ana - u_num| on every mesh point, 0 on EXTERIOR points.
    """
    mesh.check_vector(u_ana, "u_ana")
    mesh.check_vector(u_num, "u_num")
    e = np.abs(u_ana - u_num)
    e[~domain_mask(mesh)] = 0.0
    return e


def get_error_l1(mesh: Mesh, u_ana: np.ndarray, u_num: np.ndarray) -> float:
    """
    Cell-weighted discrete l1 norm:
        ||e||_1 = sum |e_p| * prod_active_axes h
    """
    e = _restricted_error(mesh, u_ana, u_num)
    cell = float(np.prod([mesh.spacing[a] for a in mesh.active_axes]))
    return float(np.sum(e) * cell)


def get_error_l2(mesh: Mesh, u_ana: np.ndarray, u_num: np.ndarray) -> float:
    """Root-mean-square error over the embedded domain."""
    e = _restricted_error(mesh, u_ana, u_num)
    return float(np.sqrt(np.mean(e ** 2))) if e.size else 0.0


def get_error_L2(mesh: Mesh, u_ana: np.ndarray, u_num: np.ndarray) -> float:
    """
    Cell-weighted discrete L2 norm:
        ||e||_2 = sqrt( sum |e_p|^2 * prod_active_axes h )
    """
    e = _restricted_error(mesh, u_ana, u_num)
    cell = float(np.prod([mesh.spacing[a] for a in mesh.active_axes]))
    return float(np.sqrt(np.sum(e ** 2) * cell))


def get_error_linf(mesh: Mesh, u_ana: np.ndarray, u_num: np.ndarray) -> float:
    e = _restricted_error(mesh, u_ana, u_num)
    return float(np.max(e)) if e.size else 0.0


def get_error_rela(mesh: Mesh, u_ana: np.ndarray, u_num: np.ndarray, eps: float = 1e-30) -> float:
    """Relative error: ||u_ana - u_num||_2 / (||u_ana||_2 + eps) over the embedded domain."""
    e = _restricted_error(mesh, u_ana, u_num)
    ref = np.asarray(u_ana)[domain_mask(mesh)]
    return float(np.linalg.norm(e) / (np.linalg.norm(ref) + eps))


def error_report(mesh: Mesh, u_ana: np.ndarray, u_num: np.ndarray) -> dict:
    return {
        "l1": get_error_l1(mesh, u_ana, u_num),
        "l2": get_error_l2(mesh, u_ana, u_num),
        "L2": get_error_L2(mesh, u_ana, u_num),
        "linf": get_error_linf(mesh, u_ana, u_num),
        "rela": get_error_rela(mesh, u_ana, u_num),
    }


def mesh_size(mesh: Mesh) -> float:
    """sqrt(hx^2 + hy^2 + hz^2)."""
    return float(np.sqrt(mesh.hx ** 2 + mesh.hy ** 2 + mesh.hz ** 2))


def _check_levels(errors: Sequence[float], h: Sequence[float]) -> tuple[np.ndarray, np.ndarray]:
    e = np.asarray(errors, dtype=float).ravel()
    hh = np.asarray(h, dtype=float).ravel()
    if e.size != hh.size:
        raise ValueError(f"errors and h must have the same length, got {e.size} and {hh.size}")
    if e.size < 2:
        raise ValueError("convergence order needs at least two refinement levels")
    if np.any(e <= 0.0) or np.any(hh <= 0.0):
        raise ValueError("errors and mesh sizes must be positive to take logarithms")
    return e, hh


def order(errors: Sequence[float], h: Sequence[float]) -> np.ndarray:
    """
    Observed order between consecutive refinement levels:
        p_k = log(e_k / e_{k+1}) / log(h_k / h_{k+1})
    """
    e, hh = _check_levels(errors, h)
    return np.log(e[:-1] / e[1:]) / np.log(hh[:-1] / hh[1:])


def fitted_order(errors: Sequence[float], h: Sequence[float]) -> float:
    """Least-squares slope of log(e) against log(h)."""
    e, hh = _check_levels(errors, h)
    slope, _ = np.polyfit(np.log(hh), np.log(e), 1)
    return float(slope)
