# core/point.py
from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Tuple, Union

import numpy as np

Scalar = Union[float, np.ndarray]


class Axis(enum.IntEnum):
    X = 0
    Y = 1
    Z = 2


class Location(enum.IntEnum):
    """Classification of a mesh point with respect to the embedded domain."""
    INTERIOR = 0
    BORDER = 1
    EXTERIOR = 2


@dataclass(frozen=True)
class Point:
    """
    3D coordinate value.

    Components are usually floats. They may also be numpy arrays of equal
    shape, in which case every method works elementwise; this is how
    problem callbacks are evaluated on a whole mesh at once.
    """
    x: Scalar = 0.0
    y: Scalar = 0.0
    z: Scalar = 0.0

    def add(self, other: "Point") -> "Point":
        return Point(self.x + other.x, self.y + other.y, self.z + other.z)

    def sub(self, other: "Point") -> "Point":
        return Point(self.x - other.x, self.y - other.y, self.z - other.z)

    def scale(self, v: Scalar) -> "Point":
        return Point(self.x * v, self.y * v, self.z * v)

    def divide(self, v: Scalar) -> "Point":
        if np.any(np.asarray(v) == 0):
            raise ZeroDivisionError("Point.divide by zero")
        return Point(self.x / v, self.y / v, self.z / v)

    def dot(self, other: "Point") -> Scalar:
        return self.x * other.x + self.y * other.y + self.z * other.z

    def norm(self) -> Scalar:
        return np.sqrt(self.dot(self))

    def distance_to(self, other: "Point") -> Scalar:
        return self.sub(other).norm()

    def component(self, axis: int) -> Scalar:
        return (self.x, self.y, self.z)[int(axis)]

    def as_tuple(self) -> Tuple[Scalar, Scalar, Scalar]:
        return (self.x, self.y, self.z)

    def as_array(self) -> np.ndarray:
        return np.array([self.x, self.y, self.z], dtype=float)

    @classmethod
    def from_array(cls, a) -> "Point":
        a = np.asarray(a, dtype=float).reshape(-1)
        if a.size != 3:
            raise ValueError(f"Point.from_array expects 3 values, got {a.size}")
        return cls(float(a[0]), float(a[1]), float(a[2]))


def distance(a: Point, b: Point) -> Scalar:
    """Euclidean distance between two points."""
    return a.distance_to(b)


@dataclass(frozen=True)
class Neighbor:
    """
    Link from a mesh point to one of its axis neighbors.

    side is -1 (towards lower coordinates) or +1. distance is the physical
    distance, which is smaller than the grid spacing next to a border point.
    """
    index: int
    axis: Axis
    side: int
    distance: float
    location: Location
    wraps: bool = False


@dataclass(frozen=True)
class Node:
    """Read-only view of one mesh point and its neighbor relations."""
    index: int
    point: Point
    location: Location
    neighbors: Tuple[Neighbor, ...] = ()

    def neighbors_on(self, axis: int) -> Tuple[Neighbor, ...]:
        return tuple(n for n in self.neighbors if n.axis == int(axis))

    def neighbor(self, axis: int, side: int) -> Neighbor | None:
        for n in self.neighbors:
            if n.axis == int(axis) and n.side == side:
                return n
        return None
