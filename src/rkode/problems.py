# problems.py
"""
Reference problems with known solutions (or well documented behaviour),
used by the tests and handy for trying methods out.

References: Hairer & Wanner, Solving ODEs II (1996), eq. (1.1) of Sec. IV.1,
the Van der Pol oscillator of Sec. IV.1 and the Robertson reaction.
"""
import math
import numpy as np
import torch
from dataclasses import dataclass, field
from typing import Callable, List, Sequence, Tuple

from .config import Config
from .output import Output
from .rkmethod import Func, JacF
from .solver import Solver
from .sparse import Triplet
from .stat import Stat


@dataclass
class Problem:
    name:  str
    ndim:  int
    fcn:   Func
    jac:   JacF | None
    y:     torch.Tensor                 # initial values (kept untouched)
    xf:    float
    dx:    float
    x0:    float = 0.0
    yana:  Callable[[torch.Tensor, float], None] | None = None   # yana(res, x)
    mass:  Triplet | None = None
    notes: str = field(default="", repr=False)

    def y0(self) -> torch.Tensor:
        return self.y.clone()

    def calc_yana(self, i: int, x: float) -> float:
        res = torch.zeros(self.ndim, dtype=torch.float64)
        self.yana(res, x)
        return res[i].item()

    def solve(self, method: str, fixed: bool = False, num_jac: bool = False, *,
              atol: float = 1e-4, rtol: float = 1e-4, dx: float | None = None,
              save_step: bool = True, ls_kind: str = "splu",
              ) -> Tuple[torch.Tensor, Stat, Output | None]:
        """Solve from x0 to xf; returns (y(xf), stat, out)."""
        conf = Config(method, ls_kind=ls_kind)
        conf.set_tolerances(atol, rtol)
        if fixed:
            conf.set_fixed_h(self.dx if dx is None else dx, self.xf, self.x0)
        conf.set_step_out(save_step)
        y = self.y0()
        jac = None if num_jac else self.jac
        with Solver(self.ndim, conf, self.fcn, jac, self.mass) as sol:
            sol.solve(y, self.x0, self.xf)
        return y, sol.stat, sol.out

    def convergence(self, method: str, hs: Sequence[float],
                    y_exact: torch.Tensor | None = None,
                    ) -> Tuple[List[float], float]:
        """
        Fixed-step errors at xf for each h in `hs` and the observed order
        (slope of log(err) against log(h)).
        """
        if y_exact is None:
            y_exact = torch.zeros(self.ndim, dtype=torch.float64)
            self.yana(y_exact, self.xf)
        errs = []
        for h in hs:
            y, _, _ = self.solve(method, fixed=True, dx=h, save_step=False)
            errs.append(torch.max(torch.abs(y - y_exact)).item())
        order = np.polyfit(np.log(hs), np.log(errs), 1)[0]
        return errs, float(order)


# --------------------------------------------------------------------------- #
def hw_eq11() -> Problem:
    """y' = −50 (y − cos x),  y(0) = 0   (Hairer & Wanner II, eq. (1.1))"""
    lam = -50.0

    def fcn(f, h, x, y):
        f[0] = lam * (y[0] - math.cos(x))

    def jac(dfdy, h, x, y):
        dfdy.put(0, 0, lam)

    def yana(res, x):
        res[0] = (-lam * lam * (math.exp(lam * x) - math.cos(x))
                  - lam * math.sin(x)) / (lam * lam + 1.0)

    return Problem("hw_eq11", 1, fcn, jac,
                   torch.zeros(1, dtype=torch.float64),
                   xf=1.5, dx=1.875 / 50.0, yana=yana)


def simple_ndim2() -> Problem:
    """Harmonic oscillator  y0' = y1, y1' = −y0  with y = (sin x, cos x)."""

    def fcn(f, h, x, y):
        f[0] = y[1]
        f[1] = -y[0]

    def jac(dfdy, h, x, y):
        dfdy.put(0, 1, 1.0)
        dfdy.put(1, 0, -1.0)

    def yana(res, x):
        res[0] = math.sin(x)
        res[1] = math.cos(x)

    return Problem("simple_ndim2", 2, fcn, jac,
                   torch.tensor([0.0, 1.0], dtype=torch.float64),
                   xf=1.0, dx=0.1, yana=yana)


def nonlinear_ndim2() -> Problem:
    """
    Two decoupled non-autonomous, non-linear equations

        y0' = y0 cos x      →  y0 = exp(sin x)
        y1' = −2 x y1²      →  y1 = 1 / (1 + x²)
    """

    def fcn(f, h, x, y):
        f[0] = y[0] * math.cos(x)
        f[1] = -2.0 * x * y[1] * y[1]

    def jac(dfdy, h, x, y):
        dfdy.put(0, 0, math.cos(x))
        dfdy.put(1, 1, -4.0 * x * y[1].item())

    def yana(res, x):
        res[0] = math.exp(math.sin(x))
        res[1] = 1.0 / (1.0 + x * x)

    return Problem("nonlinear_ndim2", 2, fcn, jac,
                   torch.tensor([1.0, 1.0], dtype=torch.float64),
                   xf=2.0, dx=0.1, yana=yana)


# period and amplitude of the μ = 1 limit cycle
VDP_T = 6.6632868593231301896996820305
VDP_A = 2.00861986087484313650940188


def van_der_pol(eps: float = 1e-6, stationary: bool = False) -> Problem:
    """
    Van der Pol oscillator  y0' = y1,  ε y1' = (1 − y0²) y1 − y0.

    With ``stationary`` the problem starts on the ε = 1 limit cycle and runs
    exactly one period, so y(xf) = y(0).
    """
    if stationary:
        eps = 1.0
        y, xf, dx = [VDP_A, 0.0], VDP_T, 0.1
    else:
        y, xf, dx = [2.0, -0.66], 2.0, 0.2

    def fcn(f, h, x, y):
        f[0] = y[1]
        f[1] = ((1.0 - y[0] * y[0]) * y[1] - y[0]) / eps

    def jac(dfdy, h, x, y):
        y0, y1 = y[0].item(), y[1].item()
        dfdy.put(0, 1, 1.0)
        dfdy.put(1, 0, (-2.0 * y0 * y1 - 1.0) / eps)
        dfdy.put(1, 1, (1.0 - y0 * y0) / eps)

    return Problem("van_der_pol", 2, fcn, jac,
                   torch.tensor(y, dtype=torch.float64), xf=xf, dx=dx,
                   notes=f"eps={eps}")


def robertson() -> Problem:
    """Robertson's chemical reaction (stiff, y0 + y1 + y2 = 1)."""

    def fcn(f, h, x, y):
        f[0] = -0.04 * y[0] + 1.0e4 * y[1] * y[2]
        f[2] = 3.0e7 * y[1] * y[1]
        f[1] = -f[0] - f[2]

    def jac(dfdy, h, x, y):
        y1, y2 = y[1].item(), y[2].item()
        dfdy.put(0, 0, -0.04)
        dfdy.put(0, 1, 1.0e4 * y2)
        dfdy.put(0, 2, 1.0e4 * y1)
        dfdy.put(1, 0, 0.04)
        dfdy.put(1, 1, -1.0e4 * y2 - 6.0e7 * y1)
        dfdy.put(1, 2, -1.0e4 * y1)
        dfdy.put(2, 1, 6.0e7 * y1)

    return Problem("robertson", 3, fcn, jac,
                   torch.tensor([1.0, 0.0, 0.0], dtype=torch.float64),
                   xf=0.3, dx=0.01)
