# operators/boundary.py
from __future__ import annotations

import warnings
from typing import Sequence

import numpy as np
import scipy.sparse as sp

from embedded_fd.core.config import ScalarField
from embedded_fd.core.errors import IndexSpaceError
from embedded_fd.core.mesh import Mesh
from embedded_fd.core.point import Point
from embedded_fd.operators.assemble import _require_csr


def _as_indices(mesh: Mesh, indices: Sequence[int]) -> np.ndarray:
    idx = np.unique(np.asarray(indices, dtype=np.int64).ravel())
    if idx.size and (idx[0] < 0 or idx[-1] >= mesh.n_points):
        raise IndexSpaceError(
            f"boundary indices must lie in [0, {mesh.n_points}); got range [{idx[0]}, {idx[-1]}]"
        )
    return idx


def impose_dirichlet_rows(A: sp.csr_matrix, indices: Sequence[int]) -> None:
    """
    Replace rows `indices` of A by identity rows, in place.

    Off-diagonal entries of the rows are removed; the diagonal is set to 1
    (inserted if the row had none).
    """
    _require_csr(A)
    A.sum_duplicates()
    idx = np.unique(np.asarray(indices, dtype=np.int64).ravel())
    if idx.size and (idx[0] < 0 or idx[-1] >= A.shape[0]):
        raise IndexSpaceError(f"row indices must lie in [0, {A.shape[0]})")

    no_diagonal = []
    for r in idx:
        start, end = A.indptr[r], A.indptr[r + 1]
        A.data[start:end] = 0.0
        hit = np.flatnonzero(A.indices[start:end] == r)
        if hit.size:
            A.data[start + hit[0]] = 1.0
        else:
            no_diagonal.append(int(r))

    if no_diagonal:
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", sp.SparseEfficiencyWarning)
            for r in no_diagonal:
                A[r, r] = 1.0

    A.eliminate_zeros()


def dirichlet_values(
    mesh: Mesh,
    fn: ScalarField,
    indices: Sequence[int],
    t: float = 0.0,
    *,
    vectorized: bool = False,
) -> np.ndarray:
    """fn(point, t) evaluated at the listed points."""
    idx = _as_indices(mesh, indices)
    if vectorized:
        c = mesh.coords[idx]
        values = np.asarray(fn(Point(c[:, 0], c[:, 1], c[:, 2]), t), dtype=float)
        return np.broadcast_to(values, idx.shape).copy()
    return np.array([fn(mesh.point(i), t) for i in idx], dtype=float)


def impose_dirichlet_values(
    mesh: Mesh,
    b: np.ndarray,
    fn: ScalarField,
    indices: Sequence[int],
    t: float = 0.0,
    *,
    vectorized: bool = False,
) -> None:
    """b[i] = fn(point_i, t) for every listed index, in place."""
    mesh.check_vector(b, "b")
    idx = _as_indices(mesh, indices)
    b[idx] = dirichlet_values(mesh, fn, idx, t, vectorized=vectorized)


def impose_dirichlet(
    mesh: Mesh,
    A: sp.csr_matrix,
    b: np.ndarray,
    fn: ScalarField,
    indices: Sequence[int],
    t: float = 0.0,
    *,
    vectorized: bool = False,
) -> None:
    """
    Impose u = fn on the listed points: identity rows in A, values in b.

    Every index is validated and every value computed before A or b is
    touched, so a failure leaves both unchanged.
    """
    mesh.check_matrix(A)
    mesh.check_vector(b, "b")
    _require_csr(A)
    idx = _as_indices(mesh, indices)
    values = dirichlet_values(mesh, fn, idx, t, vectorized=vectorized)

    impose_dirichlet_rows(A, idx)
    b[idx] = values
