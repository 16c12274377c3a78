# highlevel.py
import torch
from typing import Tuple

from .config import Config
from .output import Output
from .rkmethod import Func, JacF
from .solver import Solver
from .stat import Stat


def solve(method: str, fcn: Func, jac: JacF | None, y: torch.Tensor,
          xf: float, dx: float, atol: float, rtol: float, *,
          num_jac: bool = False, fixed_step: bool = False,
          save_step: bool = False, save_dense: bool = False,
          x0: float = 0.0) -> Tuple[Stat, Output | None]:
    """
    Solve dy/dx = f(x, y) from x0 to xf in one call; `y` is updated in place.

    Parameters
    ----------
    dx         : fixed step size (``fixed_step``) and/or dense output spacing
                 (``save_dense``)
    num_jac    : ignore `jac` and use the numerical Jacobian
    fixed_step : use fixed steps of size ≈ dx
    save_step  : record every accepted step
    save_dense : record dense output every dx

    Returns
    -------
    stat, out  : statistics and the output collector (None if nothing saved)
    """
    conf = Config(method)
    conf.set_tolerances(atol, rtol)
    if fixed_step:
        conf.set_fixed_h(dx, xf, x0)
    if save_step:
        conf.set_step_out(True)
    if save_dense:
        conf.set_dense_out(True, dx, xf)
    if num_jac:
        jac = None
    with Solver(y.numel(), conf, fcn, jac) as sol:
        sol.solve(y, x0, xf)
    return sol.stat, sol.out


def _simple(method, fcn, jac, y, xf, tol, x0):
    conf = Config(method)
    conf.set_tolerances(tol, tol)
    with Solver(y.numel(), conf, fcn, jac) as sol:
        sol.solve(y, x0, xf)
    return sol.stat


def dopri5_simple(fcn: Func, y: torch.Tensor, xf: float, tol: float,
                  x0: float = 0.0) -> Stat:
    """Dormand-Prince 5(4) with atol = rtol = tol; `y` is updated in place."""
    return _simple("dopri5", fcn, None, y, xf, tol, x0)


def dopri8_simple(fcn: Func, y: torch.Tensor, xf: float, tol: float,
                  x0: float = 0.0) -> Stat:
    """Dormand-Prince 8(5,3) with atol = rtol = tol."""
    return _simple("dopri8", fcn, None, y, xf, tol, x0)


def radau5_simple(fcn: Func, jac: JacF | None, y: torch.Tensor, xf: float,
                  tol: float, x0: float = 0.0) -> Stat:
    """Radau5 with atol = rtol = tol (jac may be None)."""
    return _simple("radau5", fcn, jac, y, xf, tol, x0)
