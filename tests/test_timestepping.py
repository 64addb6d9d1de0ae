import numpy as np
import pytest

from embedded_fd.algorithm.convergence import run_heat_case
from embedded_fd.core.cases import make_heat_case
from embedded_fd.core.config import Scheme, TimeConfig
from embedded_fd.core.mesh import Mesh
from embedded_fd.core.point import Point
from embedded_fd.operators.assemble import assemble_laplacian
from embedded_fd.operators.timestepping import COEFFICIENTS, march, scheme_coefficients


def test_scheme_coefficients():
    assert scheme_coefficients(Scheme.BACKWARD_EULER_1).history == (1.0,)
    assert scheme_coefficients(Scheme.CRANK_NICOLSON).implicit_weight == 0.5
    bdf2 = scheme_coefficients(Scheme.BACKWARD_EULER_2)
    assert bdf2.lhs == 1.5 and bdf2.history == (2.0, -0.5) and bdf2.steps == 2
    # consistency: lhs equals the sum of the history weights
    for c in COEFFICIENTS.values():
        assert c.lhs == pytest.approx(sum(c.history))
    with pytest.raises(ValueError):
        scheme_coefficients(Scheme.IMPLICIT)


def test_time_config_validation():
    assert TimeConfig(t_final=1.0, n_steps=4).dt == pytest.approx(0.25)
    with pytest.raises(ValueError):
        TimeConfig(t_final=1.0, n_steps=0)
    with pytest.raises(ValueError):
        TimeConfig(t_final=0.0, n_steps=10)
    with pytest.raises(ValueError):
        TimeConfig(t_final=1.0, n_steps=10, scheme=Scheme.IMPLICIT)


@pytest.mark.parametrize("scheme", [Scheme.BACKWARD_EULER_1, Scheme.CRANK_NICOLSON, Scheme.BACKWARD_EULER_2])
def test_heat_1d_accuracy(scheme):
    case = make_heat_case()
    run = run_heat_case(case, 41, TimeConfig(t_final=0.1, n_steps=50, scheme=scheme))
    assert run["t_final"] == pytest.approx(0.1)
    assert run["metrics"]["linf"] < 1e-2
    # Dirichlet ends stay at the exact (zero) value
    assert abs(run["u_num"][0]) < 1e-12 and abs(run["u_num"][40]) < 1e-12


@pytest.mark.parametrize("scheme", [Scheme.CRANK_NICOLSON, Scheme.BACKWARD_EULER_2])
def test_second_order_schemes_beat_backward_euler(scheme):
    case = make_heat_case()
    be = run_heat_case(case, 201, TimeConfig(t_final=0.1, n_steps=40, scheme=Scheme.BACKWARD_EULER_1))
    coarse = run_heat_case(case, 201, TimeConfig(t_final=0.1, n_steps=10, scheme=scheme))
    fine = run_heat_case(case, 201, TimeConfig(t_final=0.1, n_steps=40, scheme=scheme))
    assert fine["metrics"]["linf"] < coarse["metrics"]["linf"]
    assert fine["metrics"]["linf"] < be["metrics"]["linf"]


def test_march_history_and_callback():
    mesh = Mesh()
    mesh.set_bounds(Point(0.0, 0.0, 0.0), Point(1.0, 0.0, 0.0))
    mesh.set_nx(11)
    mesh.build()
    L = assemble_laplacian(mesh)
    u0 = np.sin(np.pi * mesh.coords[:, 0])
    seen = []

    res = march(
        mesh, L, u0,
        source=lambda p, t: 0.0,
        boundary_value=lambda p, t: 0.0,
        boundary_indices=mesh.get_domain_boundary_indices(),
        dt=0.01,
        n_steps=5,
        scheme=Scheme.BACKWARD_EULER_2,
        keep_history=True,
        callback=lambda step, t, u: seen.append((step, t)),
    )
    assert len(res.history) == 6
    np.testing.assert_allclose(res.times, np.linspace(0.0, 0.05, 6))
    assert [s for s, _ in seen] == [1, 2, 3, 4, 5]
    # pure decay: the maximum shrinks every step
    peaks = [np.max(np.abs(u)) for u in res.history]
    assert all(b < a for a, b in zip(peaks, peaks[1:]))


def test_march_rejects_bad_step():
    mesh = Mesh()
    mesh.set_bounds(Point(0.0, 0.0, 0.0), Point(1.0, 0.0, 0.0))
    mesh.set_nx(5)
    mesh.build()
    L = assemble_laplacian(mesh)
    with pytest.raises(ValueError):
        march(mesh, L, np.zeros(5), lambda p, t: 0.0, lambda p, t: 0.0, [0, 4], dt=0.0, n_steps=3)
