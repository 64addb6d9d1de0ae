import numpy as np
import pytest

from embedded_fd.core.errors import IndexSpaceError
from embedded_fd.core.mesh import Mesh
from embedded_fd.core.point import Point
from embedded_fd.operators.assemble import assemble_laplacian
from embedded_fd.operators.boundary import impose_dirichlet, impose_dirichlet_rows, impose_dirichlet_values


def _box(nx=6, ny=6):
    mesh = Mesh()
    mesh.set_bounds(Point(0.0, 0.0, 0.0), Point(1.0, 1.0, 0.0))
    mesh.set_nx(nx)
    mesh.set_ny(ny)
    mesh.build()
    return mesh


def test_impose_dirichlet_rows_and_values(disk_mesh):
    mesh, border = disk_mesh
    A = assemble_laplacian(mesh)
    b = np.zeros(mesh.n_points)
    g = lambda p, t: p.x + 2.0 * p.y + t

    impose_dirichlet(mesh, A, b, g, border, t=0.5)

    np.testing.assert_array_equal(A[border].toarray(), np.eye(mesh.n_points)[border])
    expected = mesh.coords[border, 0] + 2.0 * mesh.coords[border, 1] + 0.5
    np.testing.assert_allclose(b[border], expected)


def test_interior_rows_become_identity():
    mesh = _box()
    A = assemble_laplacian(mesh)
    before = A.copy()
    b = np.ones(mesh.n_points)
    rows = [mesh.index(2, 2), mesh.index(3, 3)]

    impose_dirichlet(mesh, A, b, lambda p, t: 7.0, rows)

    for r in rows:
        row = A[r].toarray().ravel()
        assert row[r] == 1.0
        assert np.count_nonzero(row) == 1
        assert A[r].nnz == 1
        assert b[r] == 7.0
    other = mesh.index(1, 2)
    np.testing.assert_array_equal(A[other].toarray(), before[other].toarray())
    assert b[other] == 1.0


def test_vectorized_values_match_scalar():
    mesh = _box()
    rows = mesh.get_domain_boundary_indices()
    g = lambda p, t: np.sin(p.x) * np.cos(p.y)
    b1 = np.zeros(mesh.n_points)
    b2 = np.zeros(mesh.n_points)
    impose_dirichlet_values(mesh, b1, g, rows)
    impose_dirichlet_values(mesh, b2, g, rows, vectorized=True)
    np.testing.assert_allclose(b1, b2)


def test_missing_diagonal_is_inserted():
    mesh = _box(4, 4)
    A = assemble_laplacian(mesh)
    r = mesh.index(1, 1)
    A[r, r] = 0.0
    A.eliminate_zeros()
    impose_dirichlet_rows(A, [r])
    assert A[r, r] == 1.0
    assert A[r].nnz == 1


def test_failed_imposition_leaves_system_untouched():
    mesh = _box()
    A = assemble_laplacian(mesh)
    before = A.copy()
    b = np.zeros(mesh.n_points)

    with pytest.raises(IndexSpaceError):
        impose_dirichlet(mesh, A, b, lambda p, t: 1.0, [0, mesh.n_points])
    assert (A != before).nnz == 0
    assert not np.any(b)

    def broken(p, t):
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError):
        impose_dirichlet(mesh, A, b, broken, [mesh.index(2, 2)])
    assert (A != before).nnz == 0

    with pytest.raises(IndexSpaceError):
        impose_dirichlet(mesh, A, np.zeros(3), lambda p, t: 1.0, [0])
    with pytest.raises(TypeError):
        impose_dirichlet(mesh, A.tocoo(), b, lambda p, t: 1.0, [0])
