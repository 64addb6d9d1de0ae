import numpy as np
import pytest

from embedded_fd.core.errors import GeometryError
from embedded_fd.core.levelset import classify, fun_to_vec, make_border_points
from embedded_fd.core.mesh import Mesh
from embedded_fd.core.point import Axis, Location, Point


def _line(nx=11):
    mesh = Mesh()
    mesh.set_bounds(Point(0.0, 0.0, 0.0), Point(1.0, 0.0, 0.0))
    mesh.set_nx(nx)
    mesh.build()
    return mesh


def test_fun_to_vec_scalar_and_vectorized_agree():
    mesh = _line()
    fn = lambda p, t: np.sin(p.x) + t
    a = fun_to_vec(mesh, fn, 0.5)
    b = fun_to_vec(mesh, fn, 0.5, vectorized=True)
    np.testing.assert_allclose(a, b)
    np.testing.assert_allclose(a, np.sin(mesh.coords[:, 0]) + 0.5)

    c = fun_to_vec(mesh, lambda p, t: 2.0, vectorized=True)
    np.testing.assert_array_equal(c, np.full(11, 2.0))


def test_classify():
    loc = classify(np.array([-1.0, 0.0, 2.0]))
    assert list(loc) == [Location.INTERIOR, Location.BORDER, Location.EXTERIOR]


def test_border_point_inserted_at_crossing():
    mesh = _line()
    phi = mesh.coords[:, 0] - 0.55
    border = make_border_points(mesh, phi)

    assert border == [11]
    assert mesh.n_points == 12
    assert mesh.point(11).x == pytest.approx(0.55)
    assert mesh.location(11) == Location.BORDER
    assert np.all(mesh.locations[:6] == Location.INTERIOR)
    assert np.all(mesh.locations[6:11] == Location.EXTERIOR)

    # spliced between grid points 5 and 6
    left = mesh.node(5).neighbor(Axis.X, +1)
    right = mesh.node(6).neighbor(Axis.X, -1)
    assert left.index == 11 and right.index == 11
    assert left.distance == pytest.approx(0.05)
    assert right.distance == pytest.approx(0.05)
    b = mesh.node(11)
    assert b.neighbor(Axis.X, -1).index == 5
    assert b.neighbor(Axis.X, +1).index == 6


def test_zero_levelset_on_grid_point_is_border_without_insertion():
    mesh = _line()
    phi = mesh.coords[:, 0] - 0.5
    border = make_border_points(mesh, phi)
    assert border == [5]
    assert mesh.n_points == 11
    assert mesh.location(5) == Location.BORDER


def test_border_detection_errors():
    mesh = _line()
    with pytest.raises(GeometryError):
        make_border_points(mesh, np.zeros(10))
    with pytest.raises(GeometryError):
        make_border_points(mesh, np.full(11, np.nan))

    make_border_points(mesh, mesh.coords[:, 0] - 0.55)
    with pytest.raises(GeometryError):
        make_border_points(mesh, mesh.coords[:11, 0] - 0.55)


def test_disk_border_points_lie_on_circle(disk_mesh):
    mesh, border = disk_mesh
    h = mesh.hx
    assert len(border) > 0
    assert border == sorted(border)

    c = mesh.coords[border]
    r = np.hypot(c[:, 0] - 0.5, c[:, 1] - 0.5)
    assert np.max(np.abs(r - 0.3)) < h ** 2

    # inserted points sit between one interior and one exterior neighbor
    for b in border:
        if b < mesh.n_cartesian:
            continue
        node = mesh.node(b)
        assert len(node.neighbors) == 2
        locs = sorted(n.location for n in node.neighbors)
        assert locs[0] == Location.INTERIOR
        assert locs[1] in (Location.EXTERIOR, Location.BORDER)


def test_disk_locations_partition(disk_mesh):
    mesh, _ = disk_mesh
    n = mesh.n_cartesian
    r = np.hypot(mesh.coords[:n, 0] - 0.5, mesh.coords[:n, 1] - 0.5)
    loc = mesh.locations[:n]
    assert np.all(r[loc == Location.INTERIOR] < 0.3)
    assert np.all(r[loc == Location.EXTERIOR] > 0.3)
    assert np.all(np.isclose(r[loc == Location.BORDER], 0.3))
