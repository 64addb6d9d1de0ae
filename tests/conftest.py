# conftest.py
import matplotlib
import pytest

from embedded_fd.core.cases import sphere_levelset
from embedded_fd.core.levelset import fun_to_vec, make_border_points
from embedded_fd.core.mesh import Mesh
from embedded_fd.core.point import Point


@pytest.fixture(autouse=True)
def mpl_test_backend():
    """Switch to a non-interactive backend for all tests."""
    matplotlib.use('Agg')


@pytest.fixture
def disk_mesh():
    """21 x 21 unit square with the disk of radius 0.3 centred at (0.5, 0.5) embedded."""
    mesh = Mesh()
    mesh.set_bounds(Point(0.0, 0.0, 0.0), Point(1.0, 1.0, 0.0))
    mesh.set_nx(21)
    mesh.set_ny(21)
    mesh.build()
    phi = fun_to_vec(mesh, sphere_levelset(Point(0.5, 0.5, 0.0), 0.3), vectorized=True)
    border = make_border_points(mesh, phi)
    return mesh, border
