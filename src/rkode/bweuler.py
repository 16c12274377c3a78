# bweuler.py
import torch

from .errors import ConfigError, ConvergenceError
from .jacobian import numerical_jacobian
from .linsolve import new_sparse_solver
from .logger import get_logger
from .rkmethod import RKMethod
from .sparse import Triplet

logger = get_logger(__name__)


class BwEuler(RKMethod):
    """
    Backward Euler  y₁ = y₀ + h f(x₀ + h, y₁)  solved by Newton's method on

        r(y₁) = y₁ − y₀ − h f(x₀ + h, y₁),   (I − h J) δ = r,   y₁ ← y₁ − δ.

    With ``conf.cte_tg`` the Jacobian and the factorisation are built only
    at the first iteration of each step.  Fixed steps only.
    """
    fixed_only = True
    implicit   = True

    def info(self):
        return True, True, 1

    def init(self, ndim, conf, work, stat, fcn, jac=None, mass=None):
        if mass is not None:
            raise ConfigError("bweuler: mass matrix is not supported")
        super().init(ndim, conf, work, stat, fcn, jac)
        f64 = dict(dtype=torch.float64)
        self.f = torch.zeros(ndim, **f64)
        self.r = torch.zeros(ndim, **f64)
        self.w = torch.zeros(ndim, **f64)          # y₁ (Newton iterate)
        self.dy = torch.zeros(ndim, **f64)
        self.tmp = torch.zeros(ndim, **f64)
        self.dfdy = Triplet(ndim, ndim, ndim * ndim)
        self.kmat = Triplet(ndim, ndim, ndim * ndim + ndim)
        self.ls = new_sparse_solver(conf.ls_kind)

    def step(self, x0, y0):
        work, stat, conf = self.work, self.stat, self.conf
        h = work.h
        x = x0 + h
        self.w.copy_(y0)
        for it in range(conf.nmax_it):
            work.nit = it + 1
            stat.nitmax = max(stat.nitmax, work.nit)

            stat.nfeval += 1
            self.fcn(self.f, h, x, self.w)
            torch.sub(self.w - y0, self.f, alpha=h, out=self.r)

            if it > 0 and self._norm(self.r / work.scal) < conf.fnewt:
                return

            if it == 0 or not conf.cte_tg:
                self._factorize(h, x)

            self.ls.solve(self.dy, self.r)
            stat.nlinsol += 1
            self.w -= self.dy

        raise ConvergenceError(
            f"bweuler: Newton iterations did not converge after {conf.nmax_it} "
            f"iterations at x = {x0}", x0)

    def _factorize(self, h, x):
        stat = self.stat
        stat.njeval += 1
        if self.jac is None:
            numerical_jacobian(self.dfdy,
                               lambda f, y: self.fcn(f, h, x, y),
                               self.w, self.f, self.tmp)
            stat.nfeval += self.ndim
        else:
            self.dfdy.start()
            self.jac(self.dfdy, h, x, self.w)

        # K = I − h·J
        self.kmat.start()
        self.kmat.put_diag(1.0, self.ndim)
        i, j, v = self.dfdy.entries()
        self.kmat.extend(i, j, -h * v)
        if not self.ls.initialized:
            self.ls.init(self.kmat, self.conf.ls_config)
        self.ls.fact()
        stat.ndecomp += 1

    def accept(self, y, x):
        y.copy_(self.w)
        return self.work.h

    def reject(self):
        return self.work.h

    def free(self):
        self.ls.free()
