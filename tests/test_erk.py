"""
tests/test_erk.py
Explicit Runge-Kutta methods: fixed-step accuracy, observed orders of
convergence, adaptive stepping and dense output.
"""
import math
import pytest
import torch

from rkode import Config, ConfigError, Solver
from rkode.erk_tables import TABLEAUS
from rkode.problems import nonlinear_ndim2, simple_ndim2

# error bound at x = 1 of the harmonic oscillator with h = 1/6
FIXED_TOL = {
    "fweuler": 0.2,
    "moeuler": 0.02, "rk2": 0.02,
    "rk3": 2e-3, "heun3": 2e-3,
    "rk4": 1e-4, "rk4-3/8": 1e-4, "merson4": 1e-4, "zonneveld4": 1e-4,
    "fehlberg4": 1e-4,
    "dopri5": 1e-5,
    "verner6": 1e-6, "fehlberg7": 1e-6, "dopri8": 1e-6,
}

EMBEDDED = sorted(n for n, t in TABLEAUS.items() if t.embedded)


def _max_err(p, y, x):
    ref = torch.zeros(p.ndim, dtype=torch.float64)
    p.yana(ref, x)
    return torch.max(torch.abs(y - ref)).item()


@pytest.mark.parametrize("method", sorted(FIXED_TOL))
def test_fixed_step_accuracy(method):
    p = simple_ndim2()
    y, stat, out = p.solve(method, fixed=True, dx=0.17)
    assert stat.nsteps == 6
    assert stat.naccepted == 0
    assert len(out.step_x) == 7
    assert out.step_x[-1] == pytest.approx(1.0, abs=1e-15)
    err = _max_err(p, y, 1.0)
    assert err < FIXED_TOL[method], f"{method}: err = {err:.3e}"


@pytest.mark.parametrize("method,hs", [
    ("fweuler", [0.02, 0.01, 0.005]),
    ("moeuler", [0.02, 0.01, 0.005]),
    ("rk2",     [0.02, 0.01, 0.005]),
    ("rk3",     [0.1, 0.05, 0.025]),
    ("heun3",   [0.1, 0.05, 0.025]),
    ("rk4",     [0.1, 0.05, 0.025]),
    ("rk4-3/8", [0.1, 0.05, 0.025]),
    ("merson4", [0.1, 0.05, 0.025]),
])
def test_observed_order(method, hs):
    p = nonlinear_ndim2()
    errs, order = p.convergence(method, hs)
    expected = TABLEAUS[method].p
    assert abs(order - expected) < 0.2, f"{method}: order {order:.3f}, errs {errs}"


@pytest.mark.parametrize("method", ["dopri5", "verner6", "fehlberg7", "dopri8"])
def test_high_order_convergence(method):
    p = nonlinear_ndim2()
    errs, order = p.convergence(method, [0.4, 0.2, 0.1])
    assert errs[0] > errs[1] > errs[2]
    assert order > TABLEAUS[method].p - 1.5, f"{method}: order {order:.3f}"


def test_rk4_error_ratio():
    p = nonlinear_ndim2()
    errs, _ = p.convergence("rk4", [0.1, 0.05])
    assert 14.0 < errs[0] / errs[1] < 18.0


@pytest.mark.parametrize("method", EMBEDDED)
def test_adaptive_lands_on_xf(method):
    p = nonlinear_ndim2()
    y, stat, out = p.solve(method, atol=1e-4, rtol=1e-4)
    assert out.step_x[-1] == p.xf
    assert stat.naccepted == len(out.step_x) - 1
    assert stat.nsteps >= stat.naccepted + stat.nrejected
    assert _max_err(p, y, p.xf) < 1e-2


def test_dopri5_statistics():
    p = simple_ndim2()
    y, stat, _ = p.solve("dopri5", atol=1e-8, rtol=1e-8)
    assert _max_err(p, y, 1.0) < 1e-6
    # FSAL: six new stages per step plus the initial evaluation(s)
    assert stat.nfeval <= 6 * stat.nsteps + 2
    assert stat.njeval == 0 and stat.ndecomp == 0


def test_fixed_only_methods_need_fixed_steps():
    p = simple_ndim2()
    for method in ("fweuler", "rk4", "bweuler"):
        with pytest.raises(ConfigError):
            p.solve(method)


def test_dense_output_dopri5():
    p = simple_ndim2()
    conf = Config("dopri5")
    conf.set_tolerances(1e-8, 1e-8)
    conf.set_dense_out(True, 0.1, p.xf)
    y = p.y0()
    with Solver(p.ndim, conf, p.fcn) as sol:
        sol.solve(y, 0.0, p.xf)
    out = sol.out
    assert len(out.dense_x) == 11
    for x, yd in zip(out.dense_x, out.dense_y):
        assert abs(yd[0].item() - math.sin(x)) < 1e-6
        assert abs(yd[1].item() - math.cos(x)) < 1e-6
    assert out.dense_x[-1] == pytest.approx(1.0)
    assert out.dense_s == sorted(out.dense_s)


def test_dense_output_callback_without_saving():
    p = simple_ndim2()
    seen = []

    def dense_f(istep, h, x, y, xout, yout):
        seen.append((xout, yout[0].item()))

    conf = Config("dopri5")
    conf.set_dense_out(False, 0.25, p.xf, dense_f)
    y = p.y0()
    with Solver(p.ndim, conf, p.fcn) as sol:
        sol.solve(y, 0.0, p.xf)
    assert [x for x, _ in seen] == pytest.approx([0.0, 0.25, 0.5, 0.75, 1.0])
    assert sol.out.dense_x == []


def test_dopri8_has_no_dense_output():
    p = simple_ndim2()
    conf = Config("dopri8")
    conf.set_dense_out(True, 0.1, p.xf)
    with pytest.raises(ConfigError):
        Solver(p.ndim, conf, p.fcn)


def test_explicit_methods_reject_mass_matrix():
    from rkode import Triplet
    p = simple_ndim2()
    mass = Triplet(2, 2, 2)
    mass.put_diag(1.0)
    with pytest.raises(ConfigError):
        Solver(p.ndim, Config("dopri5"), p.fcn, mass=mass)
