import numpy as np
import pytest

from embedded_fd.core.config import MeshConfig
from embedded_fd.core.errors import IndexSpaceError, MeshConfigurationError
from embedded_fd.core.mesh import NO_NEIGHBOR, Mesh
from embedded_fd.core.point import Axis, Location, Point


def _mesh(nx, ny=1, nz=1, extrema=(1.0, 1.0, 1.0), periodic=False):
    mesh = Mesh()
    mesh.set_bounds(Point(0.0, 0.0, 0.0), Point(*extrema))
    mesh.set_nx(nx)
    mesh.set_ny(ny)
    mesh.set_nz(nz)
    mesh.set_periodic(periodic)
    mesh.build()
    return mesh


def test_index_ijk_bijection():
    mesh = _mesh(4, 3, 2)
    assert mesh.n_points == 24
    seen = set()
    for k in range(2):
        for j in range(3):
            for i in range(4):
                idx = mesh.index(i, j, k)
                assert idx == i + 4 * (j + 3 * k)
                assert mesh.ijk(idx) == (i, j, k)
                seen.add(idx)
    assert seen == set(range(24))


def test_coordinates_and_spacing():
    mesh = _mesh(11, 21, 1, extrema=(1.0, 2.0, 0.0))
    assert mesh.dim == 2
    assert mesh.hx == pytest.approx(0.1)
    assert mesh.hy == pytest.approx(0.1)
    assert mesh.hz == 0.0
    p = mesh.point(mesh.index(3, 7))
    assert p.x == pytest.approx(0.3)
    assert p.y == pytest.approx(0.7)
    assert np.all(mesh.locations == Location.INTERIOR)


def test_dimension_inference_and_forcing():
    assert _mesh(5).dim == 1
    assert _mesh(5, 0, 0).dim == 1
    assert _mesh(5, 5).dim == 2
    assert _mesh(5, 5, 5).dim == 3

    mesh = Mesh()
    mesh.set_bounds((0, 0, 0), (1, 1, 1))
    mesh.set_nx(5)
    assert mesh.force_dimension_to(2) == 2
    assert mesh.dim == 2
    with pytest.raises(MeshConfigurationError):
        mesh.force_dimension_to(4)


def test_configuration_errors():
    mesh = Mesh()
    with pytest.raises(MeshConfigurationError):
        mesh.set_nx(-1)
    with pytest.raises(MeshConfigurationError):
        mesh.build()  # no counts

    mesh.set_bounds(Point(1.0, 0.0, 0.0), Point(0.0, 1.0, 0.0))
    mesh.set_nx(5)
    with pytest.raises(MeshConfigurationError):
        mesh.build()  # origin > extrema

    with pytest.raises(MeshConfigurationError):
        Mesh().require_built()

    with pytest.raises(MeshConfigurationError):
        MeshConfig(origin=(0, 0, 0), extrema=(1, 1, 1), nx=-3)


def test_neighbors_regular_grid():
    mesh = _mesh(5, 4, extrema=(1.0, 1.0, 0.0))
    node = mesh(2, 1, 0)
    assert node.index == mesh.index(2, 1)
    assert len(node.neighbors) == 4
    assert [(n.axis, n.side) for n in node.neighbors] == [(0, -1), (0, 1), (1, -1), (1, 1)]
    assert node.neighbor(Axis.X, +1).index == mesh.index(3, 1)
    assert node.neighbor(Axis.Y, -1).distance == pytest.approx(mesh.hy)

    corner = mesh(0)
    assert len(corner.neighbors) == 2
    assert mesh.neighbor_index[0, Axis.X, 0] == NO_NEIGHBOR


def test_periodic_wrap_links():
    mesh = _mesh(5, periodic=True)
    last = mesh.node(4)
    up = last.neighbor(Axis.X, +1)
    # the last point is the image of the first one at x = 1
    assert mesh.hx == pytest.approx(0.25)
    assert mesh.coords[4, 0] == pytest.approx(1.0)
    assert up.index == 1
    assert up.wraps
    assert up.distance == pytest.approx(mesh.hx)
    assert mesh.node(0).neighbor(Axis.X, -1).index == 3
    assert not mesh.node(2).neighbor(Axis.X, +1).wraps
    assert mesh.get_domain_boundary_indices() == []
    assert sorted(mesh.get_domain_boundary_indices(include_periodic=True)) == [0, 4]


def test_periodic_axis_needs_three_points():
    with pytest.raises(MeshConfigurationError):
        _mesh(2, periodic=True)


def test_domain_boundary_indices():
    mesh = _mesh(5, 4, extrema=(1.0, 1.0, 0.0))
    faces = mesh.get_domain_boundary_indices()
    assert len(faces) == 5 * 4 - 3 * 2
    for idx in faces:
        i, j, _ = mesh.ijk(idx)
        assert i in (0, 4) or j in (0, 3)

    assert sorted(_mesh(7).get_domain_boundary_indices()) == [0, 6]


def test_rebuild_discards_added_points():
    mesh = _mesh(5)
    b = mesh.add_point_on_border(Point(0.3, 0.0, 0.0))
    d = mesh.add_point_on_domain((0.6, 0.0, 0.0))
    assert (b, d) == (5, 6)
    assert mesh.location(b) == Location.BORDER
    assert mesh.get_list_of_index_points() == [5]

    mesh.build()
    assert mesh.n_points == 5
    assert mesh.get_list_of_index_points() == []


def test_make_zero_on_extern_and_checks():
    mesh = _mesh(5)
    mesh.locations[3:] = Location.EXTERIOR
    v = np.arange(5, dtype=float) + 1.0
    mesh.make_zero_on_extern_omega_in_vector(v)
    np.testing.assert_array_equal(v, [1.0, 2.0, 3.0, 0.0, 0.0])

    with pytest.raises(IndexSpaceError):
        mesh.check_vector(np.zeros(4))
    with pytest.raises(IndexError):
        mesh.index(5)


def test_bounds_helpers_and_describe():
    mesh = _mesh(3, 3, 3, extrema=(2.0, 4.0, 6.0))
    assert mesh.extent().as_tuple() == (2.0, 4.0, 6.0)
    assert mesh.divide(2.0).as_tuple() == (1.0, 2.0, 3.0)
    assert mesh.scale(0.5).as_tuple() == (1.0, 2.0, 3.0)
    assert mesh.add(Point(1.0, 1.0, 1.0)).as_tuple() == (1.0, 1.0, 1.0)
    text = mesh.describe()
    assert "Mesh 3D" in text
    assert "interior=27" in text


def test_from_config():
    cfg = MeshConfig(origin=(-1.0, 0.0, 0.0), extrema=(1.0, 0.0, 0.0), nx=21, ny=0, nz=0)
    mesh = Mesh.from_config(cfg)
    assert mesh.is_built
    assert mesh.dim == 1
    assert mesh.n_points == 21
    assert mesh.hx == pytest.approx(0.1)
