"""
tests/test_radau5.py
Radau5 against analytic solutions and scipy's Radau on stiff problems.
"""
import math
import numpy as np
import pytest
import torch
from scipy.integrate import solve_ivp

from rkode import Config, Solver, Triplet
from rkode.problems import hw_eq11, robertson, simple_ndim2, van_der_pol


def scipy_reference(p, rtol=1e-10, atol=1e-14):
    """Reference y(xf) from scipy's Radau with the problem's own Jacobian."""
    n = p.ndim

    def fun(x, y):
        f = torch.zeros(n, dtype=torch.float64)
        p.fcn(f, 0.0, x, torch.from_numpy(y))
        return f.numpy()

    def jac(x, y):
        J = Triplet(n, n, n * n)
        p.jac(J, 0.0, x, torch.from_numpy(y))
        return J.to_dense().numpy()

    sol = solve_ivp(fun, (p.x0, p.xf), p.y.numpy(), method="Radau",
                    jac=jac, rtol=rtol, atol=atol)
    assert sol.success, sol.message
    return sol.y[:, -1]


# --------------------------------------------------------------------------- #
def test_hw_eq11_adaptive():
    p = hw_eq11()
    y, stat, out = p.solve("radau5", atol=1e-6, rtol=1e-6)
    assert out.step_x[-1] == p.xf
    assert abs(y[0].item() - p.calc_yana(0, p.xf)) < 1e-4
    # linear problem: the Jacobian is only re-evaluated after rejections
    assert stat.njeval <= stat.nrejected + 1
    assert stat.njeval < stat.naccepted
    assert stat.ndecomp <= stat.nsteps


def test_factorisation_reused_when_step_barely_changes():
    p = simple_ndim2()
    rec = []

    def step_f(istep, h, x, y):
        rec.append((h, sol.stat.ndecomp, sol.stat.nsteps))

    conf = Config("radau5")
    conf.set_tolerances(1e-6, 1e-6)
    conf.set_step_out(False, step_f)
    y = p.y0()
    with Solver(p.ndim, conf, p.fcn, p.jac) as sol:
        sol.solve(y, 0.0, 30.0)
    stat = sol.stat
    assert abs(y[0].item() - math.sin(30.0)) < 1e-3
    assert stat.ndecomp < stat.nsteps

    # a step taken without refactorising keeps the previous h exactly
    reused = 0
    for (h0, nd0, ns0), (h1, nd1, ns1) in zip(rec[1:], rec[2:]):
        if nd1 == nd0 and ns1 == ns0 + 1:
            assert h1 == h0
            reused += 1
    assert reused > 0


def test_hw_eq11_fixed_steps():
    p = hw_eq11()
    y, stat, _ = p.solve("radau5", fixed=True)
    assert stat.nsteps == 40
    assert stat.naccepted == 0
    assert stat.njeval == 40
    assert stat.ndecomp == 40
    assert abs(y[0].item() - p.calc_yana(0, p.xf)) < 1e-5


def test_robertson():
    p = robertson()
    ref = scipy_reference(p)
    y, stat, _ = p.solve("radau5", atol=1e-10, rtol=1e-6)
    y = y.numpy()
    assert abs(y[0] - ref[0]) < 1e-4
    assert abs(y[1] - ref[1]) < 1e-3 * abs(ref[1])
    assert abs(y[2] - ref[2]) < 1e-4
    assert abs(y.sum() - 1.0) < 1e-8
    assert stat.njeval < stat.naccepted


def test_robertson_linear_solvers_agree():
    p = robertson()
    y1, s1, _ = p.solve("radau5", atol=1e-10, rtol=1e-6, ls_kind="splu")
    y2, s2, _ = p.solve("radau5", atol=1e-10, rtol=1e-6, ls_kind="dense")
    assert torch.allclose(y1, y2, atol=1e-8)
    assert s2.ls_kind == "dense"


def test_stiff_van_der_pol():
    p = van_der_pol(eps=1e-6)
    ref = scipy_reference(p, rtol=1e-8, atol=1e-10)
    y, stat, _ = p.solve("radau5", atol=1e-6, rtol=1e-6)
    y = y.numpy()
    assert np.allclose(y, ref, rtol=1e-3, atol=1e-4), f"{y} vs {ref}"

    y_num, stat_num, _ = p.solve("radau5", num_jac=True, atol=1e-6, rtol=1e-6)
    assert np.allclose(y_num.numpy(), ref, rtol=1e-3, atol=1e-4)
    assert stat_num.nfeval > stat.nfeval


def test_divergence_shrinks_step():
    """A zero Jacobian turns Newton into a fixed-point iteration that
    diverges for h = 1; the step must be retried with a smaller h."""
    lam = -5.0

    def fcn(f, h, x, y):
        f[0] = lam * y[0]

    def jac(dfdy, h, x, y):
        pass

    conf = Config("radau5", ini_h=1.0)
    conf.set_tolerances(1e-6, 1e-6)
    conf.set_step_out(True)
    y = torch.ones(1, dtype=torch.float64)
    with Solver(1, conf, fcn, jac) as sol:
        x = sol.solve(y, 0.0, 1.0)
    assert x == 1.0
    assert sol.out.step_h[0] == 1.0
    assert sol.out.step_h[1] < 1.0
    assert sol.stat.nsteps > sol.stat.naccepted
    assert abs(y[0].item() - math.exp(lam)) < 5e-5


def test_mass_matrix():
    """2·y' = −y  must give the same solution as  y' = −y/2."""
    def fcn_m(f, h, x, y):
        f[0] = -y[0]

    def jac_m(dfdy, h, x, y):
        dfdy.put(0, 0, -1.0)

    def fcn(f, h, x, y):
        f[0] = -0.5 * y[0]

    def jac(dfdy, h, x, y):
        dfdy.put(0, 0, -0.5)

    mass = Triplet(1, 1, 1)
    mass.put(0, 0, 2.0)

    conf = Config("radau5")
    conf.set_tolerances(1e-8, 1e-8)
    ym = torch.ones(1, dtype=torch.float64)
    with Solver(1, conf, fcn_m, jac_m, mass) as sol:
        sol.solve(ym, 0.0, 1.0)
    y = torch.ones(1, dtype=torch.float64)
    with Solver(1, conf, fcn, jac) as sol:
        sol.solve(y, 0.0, 1.0)
    assert abs(ym[0].item() - y[0].item()) < 1e-10
    assert abs(y[0].item() - math.exp(-0.5)) < 1e-7


def test_dense_output():
    p = simple_ndim2()
    conf = Config("radau5")
    conf.set_tolerances(1e-8, 1e-8)
    conf.set_dense_out(True, 0.1, p.xf)
    y = p.y0()
    with Solver(p.ndim, conf, p.fcn, p.jac) as sol:
        sol.solve(y, 0.0, p.xf)
    xs = sol.out.get_dense_x()
    assert len(xs) == 11
    sin_err = (sol.out.get_dense_y(0) - torch.sin(xs)).abs().max().item()
    cos_err = (sol.out.get_dense_y(1) - torch.cos(xs)).abs().max().item()
    assert max(sin_err, cos_err) < 1e-5


def test_free_is_idempotent():
    p = robertson()
    sol = Solver(p.ndim, Config("radau5"), p.fcn, p.jac)
    sol.solve(p.y0(), 0.0, 0.01)
    assert sol.rkm.ls_r.initialized
    sol.free()
    sol.free()
    assert not sol.rkm.ls_r.initialized
    # handles are rebuilt on the next solve
    y = p.y0()
    sol.solve(y, 0.0, 0.01)
    sol.free()
    assert abs(y.sum().item() - 1.0) < 1e-10


@pytest.mark.parametrize("bad", [Triplet(2, 2, 4), Triplet(3, 2, 6)])
def test_mass_matrix_shape(bad):
    from rkode import ConfigError
    p = robertson()
    with pytest.raises(ConfigError):
        Solver(p.ndim, Config("radau5"), p.fcn, p.jac, bad)
