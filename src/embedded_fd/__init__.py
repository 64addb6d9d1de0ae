"""
Top-level package for the project.

We keep three sibling subpackages:
- core: mesh, points, level-set border detection, configs and cases
- operators: Laplacian/gradient assembly, Dirichlet rows, linear solves, time stepping
- algorithm: error metrics and convergence drivers
"""

__all__ = ["core", "operators", "algorithm", "diagnostics"]
