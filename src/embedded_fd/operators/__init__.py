"""
Operators: discretization/assembly + Dirichlet rows + linear solves + time stepping.

Public API:
- assemble_laplacian, assemble_gradient, insert_beta, insert_reaction, remove_periodicity
- impose_dirichlet (and its row/value halves)
- solve, compute_residual, residual_norms
- march, scheme_coefficients
"""

# Assembly
from .assemble import (
    TruncationOrder,
    assemble_gradient,
    assemble_laplacian,
    insert_beta,
    insert_reaction,
    remove_periodicity,
)

# Dirichlet imposition
from .boundary import dirichlet_values, impose_dirichlet, impose_dirichlet_rows, impose_dirichlet_values

# Linear solves
from .solve import compute_residual, jacobi_preconditioner, residual_norms, solve, solve_with

# Time stepping
from .timestepping import COEFFICIENTS, SchemeCoefficients, TimeMarchResult, march, scheme_coefficients

__all__ = [
    # Assembly
    "TruncationOrder",
    "assemble_gradient",
    "assemble_laplacian",
    "insert_beta",
    "insert_reaction",
    "remove_periodicity",

    # Dirichlet
    "dirichlet_values",
    "impose_dirichlet",
    "impose_dirichlet_rows",
    "impose_dirichlet_values",

    # Solves
    "compute_residual",
    "jacobi_preconditioner",
    "residual_norms",
    "solve",
    "solve_with",

    # Time stepping
    "COEFFICIENTS",
    "SchemeCoefficients",
    "TimeMarchResult",
    "march",
    "scheme_coefficients",
]
