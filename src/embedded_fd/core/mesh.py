# core/mesh.py
"""
Structured Cartesian mesh with an arena of points.

Points live in flat numpy arrays indexed by their global index:

  coords             (n, 3)     coordinates
  locations          (n,)       Location code (INTERIOR / BORDER / EXTERIOR)
  neighbor_index     (n, 3, 2)  index of the neighbor per (axis, side); -1 if none
  neighbor_distance  (n, 3, 2)  physical distance to that neighbor
  neighbor_wraps     (n, 3, 2)  True for wrap-around links of a periodic mesh

Slot 0 of the last dimension is the lower neighbor (side -1), slot 1 the
upper neighbor (side +1). The first nx*ny*nz points are the Cartesian grid
points, ordered by index(i, j, k) = i + nx*(j + ny*k). Border points inserted
later by the level-set detector are appended after them.
"""
from __future__ import annotations

import logging
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np

from .errors import IndexSpaceError, MeshConfigurationError
from .point import Axis, Location, Neighbor, Node, Point

log = logging.getLogger(__name__)

NO_NEIGHBOR = -1
SIDES = (-1, 1)

PointLike = Union[Point, Sequence[float]]


def side_slot(side: int) -> int:
    return 0 if side < 0 else 1


def _as_point(p: PointLike) -> Point:
    if isinstance(p, Point):
        return Point(float(p.x), float(p.y), float(p.z))
    return Point.from_array(p)


class Mesh:
    """
    Structured mesh of [a, b] x [c, d] x [e, f].

    Usage:
        mesh = Mesh()
        mesh.set_bounds(Point(0, 0, 0), Point(1, 1, 1))
        mesh.set_nx(21); mesh.set_ny(21); mesh.set_nz(21)
        mesh.build()

    A count of 0 or 1 collapses the axis. The dimension is inferred from the
    counts (3 if nz > 1, else 2 if ny > 1, else 1) unless forced.
    """

    def __init__(self) -> None:
        self._origin = Point(0.0, 0.0, 0.0)
        self._extrema = Point(0.0, 0.0, 0.0)
        self._counts = [0, 0, 0]
        self._periodic = False
        self._forced_dim: Optional[int] = None
        self._built = False
        self._reset_storage()

    @classmethod
    def from_config(cls, cfg) -> "Mesh":
        """Build a mesh from a MeshConfig."""
        mesh = cls()
        mesh.set_bounds(cfg.origin, cfg.extrema)
        mesh.set_nx(cfg.nx)
        mesh.set_ny(cfg.ny)
        mesh.set_nz(cfg.nz)
        mesh.set_periodic(cfg.periodic)
        if cfg.dim is not None:
            mesh.force_dimension_to(cfg.dim)
        mesh.build()
        return mesh

    def _reset_storage(self) -> None:
        self.coords = np.zeros((0, 3), dtype=float)
        self.locations = np.zeros(0, dtype=np.int8)
        self.neighbor_index = np.full((0, 3, 2), NO_NEIGHBOR, dtype=np.int64)
        self.neighbor_distance = np.zeros((0, 3, 2), dtype=float)
        self.neighbor_wraps = np.zeros((0, 3, 2), dtype=bool)
        self._n_cartesian = 0
        self.border_inserted = False

    # -----------------------------
    # Configuration
    # -----------------------------

    def _set_count(self, axis: int, n: int) -> None:
        n = int(n)
        if n < 0:
            raise MeshConfigurationError(f"Point count on axis {Axis(axis).name} must be >= 0, got {n}.")
        self._counts[axis] = n

    def set_nx(self, nx: int) -> None:
        self._set_count(Axis.X, nx)

    def set_ny(self, ny: int) -> None:
        self._set_count(Axis.Y, ny)

    def set_nz(self, nz: int) -> None:
        self._set_count(Axis.Z, nz)

    def set_bounds(self, origin: PointLike, extrema: PointLike) -> None:
        self._origin = _as_point(origin)
        self._extrema = _as_point(extrema)

    def set_periodic(self, periodic: bool) -> None:
        """
        Close every active axis into a period.

        The last point of an axis line sits on the image of the first one
        (period L = extrema - origin), so it wraps onto the second point of
        the line at the regular spacing, and the first point wraps back onto
        the second to last. Periodic axes need at least three points.
        """
        self._periodic = bool(periodic)

    def force_dimension_to(self, dim: int) -> int:
        dim = int(dim)
        if dim not in (1, 2, 3):
            raise MeshConfigurationError(f"dimension must be 1, 2 or 3, got {dim}")
        self._forced_dim = dim
        return dim

    # -----------------------------
    # Queries
    # -----------------------------

    @property
    def nx(self) -> int:
        return self._counts[0]

    @property
    def ny(self) -> int:
        return self._counts[1]

    @property
    def nz(self) -> int:
        return self._counts[2]

    @property
    def shape(self) -> Tuple[int, int, int]:
        """Effective (nx, ny, nz); collapsed axes count one point."""
        return tuple(max(n, 1) for n in self._counts)

    def _spacing(self, axis: int) -> float:
        n = self.shape[axis]
        if n < 2:
            return 0.0
        lo = self._origin.component(axis)
        hi = self._extrema.component(axis)
        return (float(hi) - float(lo)) / float(n - 1)

    @property
    def hx(self) -> float:
        return self._spacing(Axis.X)

    @property
    def hy(self) -> float:
        return self._spacing(Axis.Y)

    @property
    def hz(self) -> float:
        return self._spacing(Axis.Z)

    @property
    def spacing(self) -> Tuple[float, float, float]:
        return (self.hx, self.hy, self.hz)

    @property
    def dim(self) -> int:
        if self._forced_dim is not None:
            return self._forced_dim
        nx, ny, nz = self.shape
        if nz > 1:
            return 3
        if ny > 1:
            return 2
        return 1

    @property
    def active_axes(self) -> Tuple[int, ...]:
        return tuple(range(self.dim))

    @property
    def periodic(self) -> bool:
        return self._periodic

    @property
    def bounds(self) -> Tuple[Point, Point]:
        return (self._origin, self._extrema)

    @property
    def is_built(self) -> bool:
        return self._built

    @property
    def n_cartesian(self) -> int:
        return self._n_cartesian

    @property
    def n_points(self) -> int:
        """Total number of points, inserted border points included."""
        return int(self.coords.shape[0])

    def require_built(self) -> None:
        if not self._built:
            raise MeshConfigurationError("Mesh has not been built; call build() first.")

    # -----------------------------
    # Build
    # -----------------------------

    def _validate(self) -> None:
        if all(n == 0 for n in self._counts):
            raise MeshConfigurationError("No point counts configured; call set_nx/set_ny/set_nz.")
        for axis, n in enumerate(self.shape):
            if n < 2:
                continue
            lo = float(self._origin.component(axis))
            hi = float(self._extrema.component(axis))
            if not np.isfinite(lo) or not np.isfinite(hi) or hi <= lo:
                raise MeshConfigurationError(
                    f"Bounds on axis {Axis(axis).name} must satisfy origin < extrema, got [{lo}, {hi}]."
                )
            if self._periodic and n < 3:
                raise MeshConfigurationError(
                    f"Periodic axis {Axis(axis).name} needs at least 3 points, got {n}."
                )

    def build(self) -> None:
        """
        Allocate and position all Cartesian points.

        Every point starts INTERIOR and is linked to its axis neighbors.
        Calling build() again starts from scratch; indices held elsewhere
        become invalid.
        """
        self._validate()
        self._reset_storage()

        nx, ny, nz = self.shape
        n = nx * ny * nz
        kk, jj, ii = np.meshgrid(np.arange(nz), np.arange(ny), np.arange(nx), indexing="ij")
        h = self.spacing
        o = self._origin

        coords = np.empty((n, 3), dtype=float)
        coords[:, 0] = float(o.x) + ii.ravel() * h[0]
        coords[:, 1] = float(o.y) + jj.ravel() * h[1]
        coords[:, 2] = float(o.z) + kk.ravel() * h[2]

        self.coords = coords
        self.locations = np.full(n, Location.INTERIOR, dtype=np.int8)
        self.neighbor_index = np.full((n, 3, 2), NO_NEIGHBOR, dtype=np.int64)
        self.neighbor_distance = np.zeros((n, 3, 2), dtype=float)
        self.neighbor_wraps = np.zeros((n, 3, 2), dtype=bool)
        self._n_cartesian = n

        ids = np.arange(n).reshape(nz, ny, nx)
        for axis in (Axis.X, Axis.Y, Axis.Z):
            count = self.shape[axis]
            if count < 2:
                continue
            # numpy axis of `ids` that runs along this mesh axis
            lines = np.moveaxis(ids, 2 - int(axis), -1)
            upper = lines[..., 1:].ravel()
            lower = lines[..., :-1].ravel()
            self.neighbor_index[upper, axis, 0] = lower
            self.neighbor_index[lower, axis, 1] = upper
            self.neighbor_distance[upper, axis, 0] = h[axis]
            self.neighbor_distance[lower, axis, 1] = h[axis]

            if self._periodic:
                # the last point is the image of the first one
                first = lines[..., 0].ravel()
                last = lines[..., -1].ravel()
                self.neighbor_index[first, axis, 0] = lines[..., -2].ravel()
                self.neighbor_index[last, axis, 1] = lines[..., 1].ravel()
                self.neighbor_distance[first, axis, 0] = h[axis]
                self.neighbor_distance[last, axis, 1] = h[axis]
                self.neighbor_wraps[first, axis, 0] = True
                self.neighbor_wraps[last, axis, 1] = True

        self._built = True
        log.debug("Built mesh %s with %d points (dim=%d)", self.shape, n, self.dim)

    # -----------------------------
    # Indexing and lookup
    # -----------------------------

    def index(self, i: int, j: int = 0, k: int = 0) -> int:
        """Global index of Cartesian point (i, j, k)."""
        nx, ny, nz = self.shape
        if not (0 <= i < nx and 0 <= j < ny and 0 <= k < nz):
            raise IndexError(f"(i, j, k)=({i}, {j}, {k}) outside grid {self.shape}")
        return int(i + nx * (j + ny * k))

    def ijk(self, index: int) -> Tuple[int, int, int]:
        """Inverse of index() for Cartesian points."""
        index = int(index)
        if not (0 <= index < self._n_cartesian):
            raise IndexError(f"{index} is not a Cartesian point index (0..{self._n_cartesian - 1})")
        nx, ny, _ = self.shape
        i = index % nx
        j = (index // nx) % ny
        k = index // (nx * ny)
        return (i, j, k)

    def point(self, index: int) -> Point:
        c = self.coords[int(index)]
        return Point(float(c[0]), float(c[1]), float(c[2]))

    def location(self, index: int) -> Location:
        return Location(int(self.locations[int(index)]))

    def node(self, index: int) -> Node:
        index = int(index)
        if not (0 <= index < self.n_points):
            raise IndexError(f"point index {index} out of range (n_points={self.n_points})")
        neighbors: List[Neighbor] = []
        for axis in (Axis.X, Axis.Y, Axis.Z):
            for side in SIDES:
                s = side_slot(side)
                q = int(self.neighbor_index[index, axis, s])
                if q == NO_NEIGHBOR:
                    continue
                neighbors.append(Neighbor(
                    index=q,
                    axis=axis,
                    side=side,
                    distance=float(self.neighbor_distance[index, axis, s]),
                    location=self.location(q),
                    wraps=bool(self.neighbor_wraps[index, axis, s]),
                ))
        return Node(index=index, point=self.point(index), location=self.location(index), neighbors=tuple(neighbors))

    def __call__(self, *args: int) -> Node:
        """mesh(i) -> node by global index; mesh(i, j, k) -> Cartesian node."""
        if len(args) == 1:
            return self.node(args[0])
        if len(args) == 3:
            return self.node(self.index(*args))
        raise TypeError("Mesh() expects a global index or (i, j, k)")

    def points(self) -> Point:
        """All coordinates as one Point of arrays."""
        return Point(self.coords[:, 0], self.coords[:, 1], self.coords[:, 2])

    # -----------------------------
    # Point helpers over bounds
    # -----------------------------

    def extent(self) -> Point:
        return self._extrema.sub(self._origin)

    def add(self, a: Point) -> Point:
        """Physical position of offset `a` from the origin."""
        return self._origin.add(a)

    def sub(self, a: Point) -> Point:
        """Offset of physical point `a` from the origin."""
        return a.sub(self._origin)

    def scale(self, v: float) -> Point:
        """Box extent scaled by v."""
        return self.extent().scale(v)

    def divide(self, v: float) -> Point:
        """Box extent divided by v."""
        return self.extent().divide(v)

    # -----------------------------
    # Point-list management
    # -----------------------------

    def append_points(self, coords: np.ndarray, location: Location) -> np.ndarray:
        """Append unlinked points; returns their new global indices."""
        self.require_built()
        coords = np.asarray(coords, dtype=float).reshape(-1, 3)
        m = coords.shape[0]
        start = self.n_points
        self.coords = np.vstack([self.coords, coords])
        self.locations = np.concatenate([self.locations, np.full(m, int(location), dtype=np.int8)])
        self.neighbor_index = np.concatenate(
            [self.neighbor_index, np.full((m, 3, 2), NO_NEIGHBOR, dtype=np.int64)]
        )
        self.neighbor_distance = np.concatenate([self.neighbor_distance, np.zeros((m, 3, 2))])
        self.neighbor_wraps = np.concatenate([self.neighbor_wraps, np.zeros((m, 3, 2), dtype=bool)])
        return np.arange(start, start + m)

    def add_point_on_border(self, a: PointLike) -> int:
        return int(self.append_points(_as_point(a).as_array(), Location.BORDER)[0])

    def add_point_on_domain(self, a: PointLike) -> int:
        return int(self.append_points(_as_point(a).as_array(), Location.INTERIOR)[0])

    def indices_with(self, location: Location) -> np.ndarray:
        return np.flatnonzero(self.locations == int(location))

    def get_list_of_index_points(self) -> List[int]:
        """Indices of all BORDER points."""
        return self.indices_with(Location.BORDER).tolist()

    def get_domain_boundary_indices(self, *, include_periodic: bool = False) -> List[int]:
        """
        Cartesian points on the first and last planes of every active axis.

        A periodic mesh has no faces unless include_periodic is set, which is
        what a caller wants after remove_periodicity.
        """
        self.require_built()
        if self._periodic and not include_periodic:
            return []
        nx, ny, nz = self.shape
        ids = np.arange(self._n_cartesian).reshape(nz, ny, nx)
        mask = np.zeros(ids.shape, dtype=bool)
        for axis in self.active_axes:
            if self.shape[axis] < 2:
                continue
            lines = np.moveaxis(mask, 2 - axis, -1)
            lines[..., 0] = True
            lines[..., -1] = True
        return ids[mask].tolist()

    def make_zero_on_extern_omega_in_vector(self, v: np.ndarray) -> np.ndarray:
        """Zero the entries of v located on EXTERIOR points (in place)."""
        self.check_vector(v, "v")
        v[self.locations == Location.EXTERIOR] = 0.0
        return v

    # -----------------------------
    # Index-space checks
    # -----------------------------

    def check_vector(self, v: np.ndarray, name: str = "vector") -> None:
        self.require_built()
        shape = getattr(v, "shape", None)
        if shape != (self.n_points,):
            raise IndexSpaceError(f"{name} has shape {shape}, expected ({self.n_points},) for this mesh")

    def check_matrix(self, A, name: str = "A") -> None:
        self.require_built()
        n = self.n_points
        if getattr(A, "shape", None) != (n, n):
            raise IndexSpaceError(f"{name} has shape {getattr(A, 'shape', None)}, expected {(n, n)} for this mesh")

    # -----------------------------
    # Reporting
    # -----------------------------

    def describe(self) -> str:
        o, e = self._origin, self._extrema
        counts = {loc.name: int(np.sum(self.locations == loc)) for loc in Location}
        lines = [
            f"Mesh {self.dim}D  [{o.x}, {e.x}] x [{o.y}, {e.y}] x [{o.z}, {e.z}]",
            f"  N = {self.shape}  h = ({self.hx:.6g}, {self.hy:.6g}, {self.hz:.6g})",
            f"  points: {self.n_points} ({self._n_cartesian} Cartesian)",
            "  " + "  ".join(f"{k.lower()}={v}" for k, v in counts.items()),
        ]
        return "\n".join(lines)

    def print_info(self) -> None:
        for line in self.describe().splitlines():
            log.info(line)
