# operators/assemble.py
from __future__ import annotations

import enum
import logging

import numpy as np
import scipy.sparse as sp

from embedded_fd.core.errors import AssemblyError
from embedded_fd.core.mesh import NO_NEIGHBOR, Mesh, side_slot
from embedded_fd.core.point import Axis, Location

log = logging.getLogger(__name__)


class TruncationOrder(enum.IntEnum):
    FIRST = 1
    SECOND = 2


def _require_csr(A: sp.spmatrix, name: str = "A") -> None:
    if getattr(A, "format", None) != "csr":
        raise TypeError(f"{name} must be a CSR matrix to be updated in place, got {type(A).__name__}")


def _row_ids(A: sp.csr_matrix) -> np.ndarray:
    """Row index of every stored entry of a CSR matrix."""
    return np.repeat(np.arange(A.shape[0]), np.diff(A.indptr))


def assemble_laplacian(mesh: Mesh) -> sp.csr_matrix:
    """
    Assemble the discrete Laplacian on a (possibly border-augmented) mesh.

    Row p, for an INTERIOR point with both neighbors on every active axis:
        sum_axes  2/(a(a+b)) u_lo  -  2/(ab) u_p  +  2/(b(a+b)) u_hi
    where a, b are the distances to the lower/upper neighbor. Far from the
    embedded boundary a = b = h and this is the usual 1/h^2 (1, -2, 1)
    stencil; next to a border point one of the distances is shorter and the
    row is the second derivative of the quadratic through the three points.

    Identity rows are written for:
      - EXTERIOR points (value 0 by convention),
      - BORDER points (Dirichlet data is imposed on them afterwards),
      - box-face points missing one neighbor on a non-periodic axis.

    Raises
    ------
    AssemblyError
        If an INTERIOR point has no neighbor at all on an active axis
        (mesh not built for this dimension, or an unlinked point).
    """
    mesh.require_built()
    n = mesh.n_points
    nbr = mesh.neighbor_index
    dist = mesh.neighbor_distance

    interior = mesh.locations == Location.INTERIOR
    full_stencil = interior.copy()

    for axis in mesh.active_axes:
        count = np.sum(nbr[:, axis, :] != NO_NEIGHBOR, axis=1)
        missing = np.flatnonzero(interior & (count == 0))
        if missing.size:
            raise AssemblyError(
                f"{missing.size} interior point(s) have no neighbor on axis {Axis(axis).name} "
                f"(first index {int(missing[0])}); mesh dimension is {mesh.dim}"
            )
        full_stencil &= count == 2

    rows: list[np.ndarray] = []
    cols: list[np.ndarray] = []
    data: list[np.ndarray] = []

    ident = np.flatnonzero(~full_stencil)
    rows.append(ident)
    cols.append(ident)
    data.append(np.ones(ident.size))

    p = np.flatnonzero(full_stencil)
    diag = np.zeros(p.size)
    for axis in mesh.active_axes:
        lo = nbr[p, axis, 0]
        hi = nbr[p, axis, 1]
        a = dist[p, axis, 0]
        b = dist[p, axis, 1]
        if np.any(a <= 0.0) or np.any(b <= 0.0):
            raise AssemblyError(f"non-positive neighbor distance on axis {Axis(axis).name}")

        rows += [p, p]
        cols += [lo, hi]
        data += [2.0 / (a * (a + b)), 2.0 / (b * (a + b))]
        diag -= 2.0 / (a * b)

    rows.append(p)
    cols.append(p)
    data.append(diag)

    A = sp.coo_matrix(
        (np.concatenate(data), (np.concatenate(rows), np.concatenate(cols))),
        shape=(n, n),
    ).tocsr()

    irregular = np.sum(np.any(mesh.locations[nbr[p][:, list(mesh.active_axes), :]] == Location.BORDER, axis=(1, 2)))
    log.debug("Laplacian: %d stencil rows (%d next to the border), %d identity rows", p.size, irregular, ident.size)
    return A


def insert_beta(mesh: Mesh, A: sp.csr_matrix, beta: np.ndarray) -> None:
    """
    Turn the Laplacian rows of A into the divergence-form operator div(beta grad u), in place.

    Every coupling p -> q is scaled by the mean (beta_p + beta_q)/2 and the
    diagonal absorbs the change of the off-diagonal row sum, so a constant
    field is still mapped to zero. Identity rows are left unchanged. Call it
    before remove_periodicity and Dirichlet imposition.
    """
    mesh.check_matrix(A)
    mesh.check_vector(beta, "beta")
    _require_csr(A)
    A.sum_duplicates()

    n = A.shape[0]
    rows = _row_ids(A)
    cols = A.indices
    off = rows != cols

    old_sum = np.bincount(rows[off], weights=A.data[off], minlength=n)
    A.data[off] *= 0.5 * (beta[rows[off]] + beta[cols[off]])
    new_sum = np.bincount(rows[off], weights=A.data[off], minlength=n)

    coupled = np.bincount(rows[off], minlength=n) > 0
    diag = np.flatnonzero(~off & coupled[rows])
    if diag.size != int(np.sum(coupled)):
        raise AssemblyError("insert_beta: some operator rows have no diagonal entry")
    A.data[diag] += old_sum[rows[diag]] - new_sum[rows[diag]]


def insert_reaction(mesh: Mesh, A: sp.csr_matrix, c: np.ndarray) -> None:
    """Add c_p to the diagonal of every operator row (rows with couplings), in place."""
    mesh.check_matrix(A)
    mesh.check_vector(c, "c")
    _require_csr(A)
    A.sum_duplicates()

    n = A.shape[0]
    rows = _row_ids(A)
    off = rows != A.indices
    coupled = np.bincount(rows[off], minlength=n) > 0
    diag = np.flatnonzero(~off & coupled[rows])
    A.data[diag] += c[rows[diag]]


def remove_periodicity(mesh: Mesh, A: sp.csr_matrix) -> int:
    """
    Remove wrap-around couplings of a periodic mesh from A, in place.

    Only the rows of the highest-index point of each axis line lose their
    coupling to the wrap-around neighbor (the second point of the line); rows
    of the first plane are left as they are. Callers impose Dirichlet rows on
    the box faces afterwards. Returns the number of entries removed.
    """
    mesh.check_matrix(A)
    _require_csr(A)
    A.sum_duplicates()

    removed = 0
    for p, axis in np.argwhere(mesh.neighbor_wraps[:, :, 1]):
        q = mesh.neighbor_index[p, axis, 1]
        start, end = A.indptr[p], A.indptr[p + 1]
        hits = np.flatnonzero(A.indices[start:end] == q)
        A.data[start + hits] = 0.0
        removed += hits.size
    A.eliminate_zeros()
    return removed


def _usable(mesh: Mesh, p: int, axis: int, side: int):
    """(index, distance) of the neighbor of p on (axis, side) unless missing or EXTERIOR."""
    s = side_slot(side)
    q = int(mesh.neighbor_index[p, axis, s])
    if q == NO_NEIGHBOR or mesh.locations[q] == Location.EXTERIOR:
        return None
    return q, float(mesh.neighbor_distance[p, axis, s])


def assemble_gradient(
    mesh: Mesh,
    axis: int = Axis.X,
    order: TruncationOrder = TruncationOrder.SECOND,
) -> sp.csr_matrix:
    """
    First-derivative operator d/d(axis) on the mesh.

    FIRST order uses two points: forward difference when the upper neighbor
    is usable, backward otherwise. SECOND order uses the quadratic through
    three points: centered (non-uniform) when both neighbors are usable,
    one-sided through the neighbor and the neighbor's neighbor otherwise,
    falling back to two points when that second neighbor is not available.

    EXTERIOR neighbors are never used; EXTERIOR rows are empty, and so are
    BORDER rows on an axis where the border point has no neighbors.
    """
    mesh.require_built()
    axis = Axis(axis)
    order = TruncationOrder(order)
    if axis not in mesh.active_axes:
        raise AssemblyError(f"axis {axis.name} is not active on a {mesh.dim}D mesh")

    n = mesh.n_points
    rows: list[int] = []
    cols: list[int] = []
    data: list[float] = []

    def add(p: int, q: int, val: float) -> None:
        rows.append(p)
        cols.append(q)
        data.append(val)

    for p in range(n):
        loc = mesh.locations[p]
        if loc == Location.EXTERIOR:
            continue

        lo = _usable(mesh, p, axis, -1)
        hi = _usable(mesh, p, axis, +1)
        if lo is None and hi is None:
            if loc == Location.INTERIOR:
                raise AssemblyError(f"interior point {p} has no usable neighbor on axis {axis.name}")
            continue

        if order == TruncationOrder.SECOND and lo is not None and hi is not None:
            (ql, a), (qh, b) = lo, hi
            add(p, ql, -b / (a * (a + b)))
            add(p, p, (b - a) / (a * b))
            add(p, qh, a / (b * (a + b)))
            continue

        side = +1 if hi is not None else -1
        q1, d1 = hi if hi is not None else lo

        second = _usable(mesh, q1, axis, side) if order == TruncationOrder.SECOND else None
        if second is not None and second[0] != p:
            q2, d2 = second
            x1 = side * d1
            x2 = side * (d1 + d2)
            add(p, p, -(1.0 / x1 + 1.0 / x2))
            add(p, q1, x2 / (x1 * (x2 - x1)))
            add(p, q2, -x1 / (x2 * (x2 - x1)))
        else:
            add(p, q1, side / d1)
            add(p, p, -side / d1)

    G = sp.coo_matrix((data, (rows, cols)), shape=(n, n)).tocsr()
    G.eliminate_zeros()
    return G
