from __future__ import annotations

import logging
from pathlib import Path

import numpy as np

from embedded_fd.algorithm.convergence import run_convergence_study, solve_case
from embedded_fd.core.cases import make_default_cases
from embedded_fd.core.config import SolverConfig
from embedded_fd.diagnostics import plot_convergence, plot_field, save_npz


def run_case(name: str, n_list: list[int], outdir: Path, solver: SolverConfig) -> None:
    case = make_default_cases()[name]

    result = run_convergence_study(case, n_list, solver=solver, out_dir=outdir / "fields")
    print(result.summary())
    print(f"{'fitted l1':<14}: {result.fitted_order('l1'):.3f}")

    save_npz(
        outdir / "convergence.npz",
        n=np.array(result.n),
        h=np.array(result.h),
        **{f"err_{m}": np.array(v) for m, v in result.errors.items()},
    )
    plot_convergence(
        np.array(result.h),
        {m: np.array(result.errors[m]) for m in ("l1", "linf", "rela")},
        title=f"{case.name} convergence",
        path=outdir / "figs" / "convergence.png",
        show=False,
    )

    # fields of the finest level
    run = solve_case(case, n_list[-1], solver=solver)
    mesh = run["mesh"]
    plot_field(mesh, run["u_num"], title=f"{case.name} u_num", path=outdir / "figs" / "u_num.png", show=False)
    plot_field(mesh, run["err_abs"], title=f"{case.name} |error|", path=outdir / "figs" / "err_abs.png", show=False)


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    base_out = Path("outputs")

    run_case("disk_2d", [21, 41, 81, 161], base_out / "disk_2d", SolverConfig())
    run_case("box_2d", [21, 41, 81], base_out / "box_2d", SolverConfig())

    # 81^3 is too large for a direct solve on most machines
    run_case(
        "sphere_3d",
        [21, 41, 81],
        base_out / "sphere_3d",
        SolverConfig(method="bicgstab", tol=1e-10, maxiter=20000),
    )


if __name__ == "__main__":
    main()
