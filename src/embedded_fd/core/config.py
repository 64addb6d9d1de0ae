from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Callable, Optional, Tuple

from .errors import MeshConfigurationError
from .point import Point

# f(point, t) -> value. With vectorized=True the Point holds arrays.
ScalarField = Callable[[Point, float], float]


class Scheme(enum.Enum):
    """Discretization scheme tags understood by the solve/time-marching pipeline."""
    IMPLICIT = "implicit"                  # steady problem, A u = b
    BACKWARD_EULER_1 = "backward_euler_1"
    CRANK_NICOLSON = "crank_nicolson"
    BACKWARD_EULER_2 = "backward_euler_2"  # BDF2


@dataclass(frozen=True)
class MeshConfig:
    """
    Box [origin, extrema] sampled with nx x ny x nz points.

    Counts of 0 or 1 collapse the axis (ny = nz = 1 gives a 1D mesh).
    """
    origin: Tuple[float, float, float]
    extrema: Tuple[float, float, float]
    nx: int
    ny: int = 1
    nz: int = 1
    periodic: bool = False
    dim: Optional[int] = None

    def __post_init__(self) -> None:
        if min(int(self.nx), int(self.ny), int(self.nz)) < 0:
            raise MeshConfigurationError("MeshConfig requires nx, ny, nz >= 0.")
        if len(self.origin) != 3 or len(self.extrema) != 3:
            raise MeshConfigurationError("origin and extrema must have 3 components.")

    def with_counts(self, nx: int, ny: int = 1, nz: int = 1) -> "MeshConfig":
        return MeshConfig(
            origin=self.origin,
            extrema=self.extrema,
            nx=nx,
            ny=ny,
            nz=nz,
            periodic=self.periodic,
            dim=self.dim,
        )


@dataclass(frozen=True)
class SolverConfig:
    method: str = "direct"      # "direct" | "bicgstab" | "gmres"
    tol: float = 1e-10
    maxiter: Optional[int] = None
    scheme: Scheme = Scheme.IMPLICIT


@dataclass(frozen=True)
class TimeConfig:
    t_final: float
    n_steps: int
    scheme: Scheme = Scheme.BACKWARD_EULER_1
    t0: float = 0.0

    def __post_init__(self) -> None:
        if int(self.n_steps) < 1:
            raise ValueError("TimeConfig requires n_steps >= 1.")
        if float(self.t_final) <= float(self.t0):
            raise ValueError("TimeConfig requires t_final > t0.")
        if self.scheme is Scheme.IMPLICIT:
            raise ValueError("Scheme.IMPLICIT is the steady solve; pick a time scheme.")

    @property
    def dt(self) -> float:
        return (float(self.t_final) - float(self.t0)) / int(self.n_steps)


@dataclass(frozen=True)
class CaseConfig:
    """
    Problem definition. Every callback has the signature f(point, t).

    exact           analytic solution (used for errors and, by default, as Dirichlet data)
    source          right-hand side f of  div(beta grad u) = f  (or u_t = L u + f)
    levelset        signed distance, negative inside the embedded domain; None = whole box
    coefficient     beta; None = 1
    boundary_value  Dirichlet data; None = exact
    """
    name: str
    mesh: MeshConfig
    exact: ScalarField
    source: ScalarField
    levelset: Optional[ScalarField] = None
    coefficient: Optional[ScalarField] = None
    boundary_value: Optional[ScalarField] = None
    vectorized: bool = True

    @property
    def dirichlet(self) -> ScalarField:
        return self.boundary_value if self.boundary_value is not None else self.exact
