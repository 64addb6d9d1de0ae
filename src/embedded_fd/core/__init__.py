"""
Core: mesh, points, level-set border detection, configs and cases.
"""

from .errors import (
    AssemblyError,
    GeometryError,
    IndexSpaceError,
    MeshConfigurationError,
    SolverError,
)
from .point import Axis, Location, Neighbor, Node, Point, distance
from .mesh import Mesh
from .levelset import classify, fun_to_vec, make_border_points
from .config import CaseConfig, MeshConfig, Scheme, SolverConfig, TimeConfig
from .cases import make_default_cases, sphere_levelset

__all__ = [
    "AssemblyError",
    "GeometryError",
    "IndexSpaceError",
    "MeshConfigurationError",
    "SolverError",
    "Axis",
    "Location",
    "Neighbor",
    "Node",
    "Point",
    "distance",
    "Mesh",
    "classify",
    "fun_to_vec",
    "make_border_points",
    "CaseConfig",
    "MeshConfig",
    "Scheme",
    "SolverConfig",
    "TimeConfig",
    "make_default_cases",
    "sphere_levelset",
]
