"""
Algorithm: error metrics, convergence orders and the drivers that run a case end to end.
"""

from .metrics import (
    domain_mask,
    error_report,
    fitted_order,
    get_error_abs,
    get_error_l1,
    get_error_l2,
    get_error_L2,
    get_error_linf,
    get_error_rela,
    mesh_size,
    order,
)
from .convergence import (
    ConvergenceResult,
    build_mesh,
    build_operator,
    refine_config,
    run_convergence_study,
    run_heat_case,
    solve_case,
)

__all__ = [
    "domain_mask",
    "error_report",
    "fitted_order",
    "get_error_abs",
    "get_error_l1",
    "get_error_l2",
    "get_error_L2",
    "get_error_linf",
    "get_error_rela",
    "mesh_size",
    "order",
    "ConvergenceResult",
    "build_mesh",
    "build_operator",
    "refine_config",
    "run_convergence_study",
    "run_heat_case",
    "solve_case",
]
