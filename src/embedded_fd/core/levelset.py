# core/levelset.py
"""
Level-set sampling and border detection.

The embedded domain is {phi < 0}. For every pair of axis-adjacent grid
points whose level-set values have opposite signs, a border point is
inserted at the linear-interpolation zero crossing

    theta = phi_p / (phi_p - phi_q),    x_b = x_p + theta (x_q - x_p)

and spliced between p and q, so that p sees b at distance theta*h and q
sees b at distance (1 - theta)*h.
"""
from __future__ import annotations

import logging
from typing import Callable, List

import numpy as np

from .errors import GeometryError
from .mesh import Mesh
from .point import Axis, Location, Point

log = logging.getLogger(__name__)


def fun_to_vec(
    mesh: Mesh,
    fn: Callable[[Point, float], float],
    t: float = 0.0,
    *,
    vectorized: bool = False,
) -> np.ndarray:
    """
    Sample fn(point, t) at every mesh point.

    With vectorized=True, fn is called once with a Point whose components
    are coordinate arrays and must return an array (or a scalar).
    """
    mesh.require_built()
    n = mesh.n_points
    if vectorized:
        values = np.asarray(fn(mesh.points(), t), dtype=float)
        if values.ndim == 0:
            return np.full(n, float(values))
        if values.shape != (n,):
            raise GeometryError(f"vectorized field returned shape {values.shape}, expected ({n},)")
        return values.copy()

    out = np.empty(n, dtype=float)
    for i, c in enumerate(mesh.coords):
        out[i] = fn(Point(float(c[0]), float(c[1]), float(c[2])), t)
    return out


def classify(phi: np.ndarray) -> np.ndarray:
    """Location codes from level-set values: <0 interior, 0 border, >0 exterior."""
    loc = np.full(phi.shape, Location.INTERIOR, dtype=np.int8)
    loc[phi > 0.0] = Location.EXTERIOR
    loc[phi == 0.0] = Location.BORDER
    return loc


def make_border_points(mesh: Mesh, phi: np.ndarray, *, snap: float = 1e-10) -> List[int]:
    """
    Classify the Cartesian points and insert border points at the zero level set.

    Parameters
    ----------
    mesh : Mesh
        Built mesh with no border points inserted yet.
    phi : ndarray (n_cartesian,)
        Level-set values at the Cartesian points.
    snap : float
        Values with |phi| <= snap * h (h the smallest active spacing) count as
        exactly zero, so round-off never produces a border point at a
        vanishing distance from a grid point.

    Returns
    -------
    list of int
        Indices of all BORDER points (inserted ones and grid points with phi == 0),
        ready for Dirichlet imposition.
    """
    mesh.require_built()
    phi = np.asarray(phi, dtype=float)
    n = mesh.n_cartesian

    if mesh.border_inserted:
        raise GeometryError("Border points were already inserted; rebuild the mesh first.")
    if phi.shape != (n,):
        raise GeometryError(f"level-set vector has shape {phi.shape}, expected ({n},) Cartesian values")
    if not np.all(np.isfinite(phi)):
        raise GeometryError("level-set vector contains non-finite values")

    h_min = min((mesh.spacing[a] for a in range(3) if mesh.shape[a] > 1), default=0.0)
    phi = np.where(np.abs(phi) <= snap * h_min, 0.0, phi)

    mesh.locations[:n] = classify(phi)

    nx, ny, nz = mesh.shape
    ids = np.arange(n).reshape(nz, ny, nx)
    inserted: List[np.ndarray] = []

    for axis in (Axis.X, Axis.Y, Axis.Z):
        if mesh.shape[axis] < 2:
            continue
        lines = np.moveaxis(ids, 2 - int(axis), -1)
        p = lines[..., :-1].ravel()
        q = lines[..., 1:].ravel()

        cut = phi[p] * phi[q] < 0.0
        if not np.any(cut):
            continue
        p = p[cut]
        q = q[cut]

        theta = phi[p] / (phi[p] - phi[q])
        h = mesh.neighbor_distance[p, axis, 1]
        xb = mesh.coords[p] + theta[:, None] * (mesh.coords[q] - mesh.coords[p])

        b = mesh.append_points(xb, Location.BORDER)
        d_low = theta * h
        d_high = (1.0 - theta) * h

        # splice p <-> b <-> q
        mesh.neighbor_index[p, axis, 1] = b
        mesh.neighbor_distance[p, axis, 1] = d_low
        mesh.neighbor_index[q, axis, 0] = b
        mesh.neighbor_distance[q, axis, 0] = d_high

        mesh.neighbor_index[b, axis, 0] = p
        mesh.neighbor_distance[b, axis, 0] = d_low
        mesh.neighbor_index[b, axis, 1] = q
        mesh.neighbor_distance[b, axis, 1] = d_high

        inserted.append(b)
        log.debug("axis %s: inserted %d border points", axis.name, b.size)

    mesh.border_inserted = True

    n_new = int(sum(b.size for b in inserted))
    border = mesh.get_list_of_index_points()
    log.info(
        "Border detection: %d inserted, %d grid points on the level set, %d interior, %d exterior",
        n_new,
        len(border) - n_new,
        int(np.sum(mesh.locations == Location.INTERIOR)),
        int(np.sum(mesh.locations == Location.EXTERIOR)),
    )
    return border
