from __future__ import annotations

import logging
from pathlib import Path

import numpy as np

from embedded_fd.algorithm.convergence import run_heat_case
from embedded_fd.algorithm.metrics import order
from embedded_fd.core.cases import make_heat_case
from embedded_fd.core.config import Scheme, TimeConfig
from embedded_fd.diagnostics import plot_field, save_npz


def main() -> None:
    logging.basicConfig(level=logging.WARNING, format="%(levelname)s %(name)s: %(message)s")
    base_out = Path("outputs") / "heat_1d"
    case = make_heat_case()
    t_final = 0.1

    schemes = (Scheme.BACKWARD_EULER_1, Scheme.CRANK_NICOLSON, Scheme.BACKWARD_EULER_2)
    steps = [10, 20, 40, 80]

    for scheme in schemes:
        errors = []
        dts = []
        for n_steps in steps:
            tc = TimeConfig(t_final=t_final, n_steps=n_steps, scheme=scheme)
            run = run_heat_case(case, 401, tc)
            errors.append(run["metrics"]["linf"])
            dts.append(tc.dt)

        print(f"#Summary {scheme.value}")
        print(f"{'dt':<14}: {dts}")
        print(f"{'linf-error':<14}: {[f'{e:.4e}' for e in errors]}")
        print(f"{'Order':<14}: {order(errors, dts)}")

        save_npz(base_out / f"{scheme.value}.npz", dt=np.array(dts), err_linf=np.array(errors))
        plot_field(
            run["mesh"],
            run["u_num"],
            title=f"u(t={t_final}) {scheme.value}",
            path=base_out / "figs" / f"{scheme.value}.png",
            show=False,
        )


if __name__ == "__main__":
    main()
