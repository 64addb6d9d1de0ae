"""Exception types raised by the mesh, assembly and solve stages."""


class MeshConfigurationError(ValueError):
    """Raised when mesh bounds/counts are missing or inconsistent, or the mesh is used before build()."""


class GeometryError(ValueError):
    """Raised when level-set data does not fit the mesh it is applied to."""


class IndexSpaceError(ValueError):
    """Raised when a vector or matrix does not belong to the mesh index space."""


class AssemblyError(RuntimeError):
    """Raised when a stencil cannot be formed (missing neighbor data)."""


class SolverError(RuntimeError):
    """Raised when a linear solve fails or does not converge."""
