# algorithm/convergence.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import numpy as np

from embedded_fd.algorithm.metrics import error_report, fitted_order, get_error_abs, mesh_size, order
from embedded_fd.core.config import CaseConfig, MeshConfig, SolverConfig, TimeConfig
from embedded_fd.core.levelset import fun_to_vec, make_border_points
from embedded_fd.core.mesh import Mesh
from embedded_fd.core.point import Location
from embedded_fd.diagnostics import Writer
from embedded_fd.operators.assemble import assemble_laplacian, insert_beta, remove_periodicity
from embedded_fd.operators.boundary import impose_dirichlet
from embedded_fd.operators.solve import residual_norms, solve_with
from embedded_fd.operators.timestepping import march

log = logging.getLogger(__name__)

METRICS = ("l1", "l2", "L2", "linf", "rela")


def refine_config(cfg: MeshConfig, n: int) -> MeshConfig:
    """Same box with n points on every axis that is not collapsed."""
    n = int(n)
    counts = [n if c > 1 else c for c in (cfg.nx, cfg.ny, cfg.nz)]
    return cfg.with_counts(*counts)


def build_mesh(case: CaseConfig, n: int) -> tuple[Mesh, List[int]]:
    """
    Build the mesh of a case at resolution n and insert its border points.

    Returns the mesh and the Dirichlet indices: BORDER points plus the
    box-face points that are not EXTERIOR.
    """
    mesh = Mesh.from_config(refine_config(case.mesh, n))

    border: List[int] = []
    if case.levelset is not None:
        phi = fun_to_vec(mesh, case.levelset, vectorized=case.vectorized)
        border = make_border_points(mesh, phi)

    # periodic couplings are removed in build_operator, so the faces need data too
    faces = [
        i for i in mesh.get_domain_boundary_indices(include_periodic=True)
        if mesh.locations[i] != Location.EXTERIOR
    ]
    dirichlet = sorted(set(border) | set(faces))
    return mesh, dirichlet


def build_operator(case: CaseConfig, mesh: Mesh):
    """Laplacian, or div(beta grad .) when the case has a coefficient."""
    A = assemble_laplacian(mesh)
    if case.coefficient is not None:
        beta = fun_to_vec(mesh, case.coefficient, vectorized=case.vectorized)
        insert_beta(mesh, A, beta)
    if mesh.periodic:
        remove_periodicity(mesh, A)
    return A


def solve_case(
    case: CaseConfig,
    n: int,
    *,
    solver: SolverConfig = SolverConfig(),
    out_dir: Optional[Path] = None,
    write_exterior: bool = False,
    return_fields: bool = True,
) -> Dict[str, Any]:
    """
    Steady pipeline for one resolution:
      mesh -> level set -> border points -> operator -> rhs -> Dirichlet -> solve -> errors

    Returns:
      {
        "n": n, "h": mesh size, "metrics": {l1, l2, L2, linf, rela},
        "residual": residual norms,
        (optional) "mesh", "u_num", "u_ana", "err_abs"
      }
    """
    mesh, dirichlet = build_mesh(case, n)
    mesh.print_info()

    A = build_operator(case, mesh)

    b = fun_to_vec(mesh, case.source, vectorized=case.vectorized)
    mesh.make_zero_on_extern_omega_in_vector(b)
    impose_dirichlet(mesh, A, b, case.dirichlet, dirichlet, vectorized=case.vectorized)

    u_num = solve_with(solver, A, b)
    norms = residual_norms(A, u_num, b)

    u_ana = fun_to_vec(mesh, case.exact, vectorized=case.vectorized)
    mesh.make_zero_on_extern_omega_in_vector(u_ana)
    mesh.make_zero_on_extern_omega_in_vector(u_num)
    err_abs = get_error_abs(mesh, u_ana, u_num)

    metrics = error_report(mesh, u_ana, u_num)
    h = mesh_size(mesh)
    log.info("%s N=%d h=%.4e l1=%.3e linf=%.3e rela=%.3e", case.name, n, h, metrics["l1"], metrics["linf"], metrics["rela"])

    if out_dir is not None:
        writer = Writer(mesh, out_dir)
        writer.set_filename(f"{case.name}_{n}")
        writer.set_vector_numerical(u_num)
        writer.set_vector_analytical(u_ana)
        writer.set_vector_error_abs(err_abs)
        writer.set_write_both_domains(write_exterior)
        writer.write_now()

    out: Dict[str, Any] = {"n": int(n), "h": h, "metrics": metrics, "residual": norms}
    if return_fields:
        out.update(dict(mesh=mesh, u_num=u_num, u_ana=u_ana, err_abs=err_abs))
    return out


@dataclass
class ConvergenceResult:
    case: str
    n: List[int]
    h: List[float]
    errors: Dict[str, List[float]] = field(default_factory=dict)

    def orders(self, metric: str = "l1") -> np.ndarray:
        return order(self.errors[metric], self.h)

    def fitted_order(self, metric: str = "l1") -> float:
        return fitted_order(self.errors[metric], self.h)

    def summary(self, metrics: Sequence[str] = ("l1", "linf", "rela")) -> str:
        def fmt(values) -> str:
            return "[" + ", ".join(f"{float(v):.4e}" for v in values) + "]"

        lines = [f"#Summary {self.case}", f"{'N':<14}: {self.n}", f"{'h':<14}: {fmt(self.h)}"]
        for m in metrics:
            lines.append(f"{m + '-error':<14}: {fmt(self.errors[m])}")
            if len(self.n) >= 2:
                lines.append(f"{'Order':<14}: {fmt(self.orders(m))}")
        return "\n".join(lines)


def run_convergence_study(
    case: CaseConfig,
    n_list: Sequence[int],
    *,
    solver: SolverConfig = SolverConfig(),
    out_dir: Optional[Path] = None,
) -> ConvergenceResult:
    """Solve the case at every resolution in n_list and collect error norms."""
    result = ConvergenceResult(case=case.name, n=[], h=[], errors={m: [] for m in METRICS})
    for n in n_list:
        run = solve_case(case, n, solver=solver, out_dir=out_dir, return_fields=False)
        result.n.append(int(n))
        result.h.append(run["h"])
        for m in METRICS:
            result.errors[m].append(run["metrics"][m])
    return result


def run_heat_case(
    case: CaseConfig,
    n: int,
    time_cfg: TimeConfig,
    *,
    solver: SolverConfig = SolverConfig(),
    keep_history: bool = False,
) -> Dict[str, Any]:
    """
    Parabolic pipeline u_t = div(beta grad u) + f with the exact solution as
    initial condition and Dirichlet data; errors are measured at t_final.
    """
    mesh, dirichlet = build_mesh(case, n)
    L = build_operator(case, mesh)

    u0 = fun_to_vec(mesh, case.exact, time_cfg.t0, vectorized=case.vectorized)
    res = march(
        mesh,
        L,
        u0,
        case.source,
        case.dirichlet,
        dirichlet,
        time_cfg.dt,
        time_cfg.n_steps,
        time_cfg.scheme,
        t0=time_cfg.t0,
        vectorized=case.vectorized,
        method=solver.method,
        tol=solver.tol,
        maxiter=solver.maxiter,
        keep_history=keep_history,
    )

    t_final = float(res.times[-1])
    u_ana = fun_to_vec(mesh, case.exact, t_final, vectorized=case.vectorized)
    mesh.make_zero_on_extern_omega_in_vector(u_ana)
    metrics = error_report(mesh, u_ana, res.u)

    return {
        "n": int(n),
        "h": mesh_size(mesh),
        "dt": time_cfg.dt,
        "scheme": time_cfg.scheme,
        "t_final": t_final,
        "metrics": metrics,
        "mesh": mesh,
        "u_num": res.u,
        "u_ana": u_ana,
        "march": res,
    }
