from __future__ import annotations

import numpy as np

from .config import CaseConfig, MeshConfig
from .point import Point, distance

PI = np.pi


def sphere_levelset(center: Point, radius: float):
    def phi(p: Point, t: float = 0.0):
        return distance(p, center) - radius
    return phi


def make_sphere_case() -> CaseConfig:
    """
    3D ball of radius 0.3 centred in the unit cube, variable coefficient beta = xyz:
        div(xyz grad u) = f,   u = sin(4 pi x) sin(4 pi y) sin(4 pi z)
    """
    k = 4.0 * PI

    def u(p: Point, t: float = 0.0):
        return np.sin(k * p.x) * np.sin(k * p.y) * np.sin(k * p.z)

    def beta(p: Point, t: float = 0.0):
        return p.x * p.y * p.z

    def f(p: Point, t: float = 0.0):
        x, y, z = p.x, p.y, p.z
        sx, sy, sz = np.sin(k * x), np.sin(k * y), np.sin(k * z)
        cx, cy, cz = np.cos(k * x), np.cos(k * y), np.cos(k * z)
        value = 4.0 * x * y * PI * cz * sx * sy
        value = value + 4.0 * x * z * PI * cy * sx * sz
        value = value + 4.0 * y * z * PI * cx * sy * sz
        value = value - 48.0 * x * y * z * PI * PI * sx * sy * sz
        return value

    return CaseConfig(
        name="sphere_3d",
        mesh=MeshConfig(origin=(0.0, 0.0, 0.0), extrema=(1.0, 1.0, 1.0), nx=21, ny=21, nz=21),
        exact=u,
        source=f,
        levelset=sphere_levelset(Point(0.5, 0.5, 0.5), 0.3),
        coefficient=beta,
    )


def make_disk_case() -> CaseConfig:
    """2D disk of radius 0.3 in the unit square: lap u = f, u = sin(pi x) sin(pi y)."""

    def u(p: Point, t: float = 0.0):
        return np.sin(PI * p.x) * np.sin(PI * p.y)

    def f(p: Point, t: float = 0.0):
        return -2.0 * PI * PI * np.sin(PI * p.x) * np.sin(PI * p.y)

    return CaseConfig(
        name="disk_2d",
        mesh=MeshConfig(origin=(0.0, 0.0, 0.0), extrema=(1.0, 1.0, 0.0), nx=21, ny=21),
        exact=u,
        source=f,
        levelset=sphere_levelset(Point(0.5, 0.5, 0.0), 0.3),
    )


def make_box_case() -> CaseConfig:
    """Unit square without embedded domain, Dirichlet data on the box faces."""

    def u(p: Point, t: float = 0.0):
        return np.sin(PI * p.x) * np.cos(PI * p.y)

    def f(p: Point, t: float = 0.0):
        return -2.0 * PI * PI * np.sin(PI * p.x) * np.cos(PI * p.y)

    return CaseConfig(
        name="box_2d",
        mesh=MeshConfig(origin=(0.0, 0.0, 0.0), extrema=(1.0, 1.0, 0.0), nx=21, ny=21),
        exact=u,
        source=f,
    )


def make_heat_case() -> CaseConfig:
    """1D heat equation on [-1, 1]: u_t = u_xx, u = exp(-pi^2 t) sin(pi x)."""

    def u(p: Point, t: float = 0.0):
        return np.exp(-PI * PI * t) * np.sin(PI * p.x)

    def f(p: Point, t: float = 0.0):
        return 0.0 * p.x

    return CaseConfig(
        name="heat_1d",
        mesh=MeshConfig(origin=(-1.0, 0.0, 0.0), extrema=(1.0, 0.0, 0.0), nx=41, ny=0, nz=0),
        exact=u,
        source=f,
    )


def make_default_cases() -> dict[str, CaseConfig]:
    cases = [make_sphere_case(), make_disk_case(), make_box_case(), make_heat_case()]
    return {c.name: c for c in cases}
