# erk.py
import math
import torch

from .erk_tables import Tableau
from .errors import ConfigError
from .rkmethod import RKMethod


class ExplicitRK(RKMethod):
    """
    Explicit Runge-Kutta method driven by a `Tableau`.

    Embedded pairs estimate the local error with E = B − Be (DOP853 with its
    blended 5th/3rd order estimate) and control the step size with an
    optionally Lund-stabilised PI controller; tableaux without an embedded
    pair can only run with fixed steps.
    """

    def __init__(self, tab: Tableau):
        super().__init__()
        self.tab = tab
        self.fixed_only = not tab.embedded
        self.has_dense = tab.dense is not None

    def info(self):
        return self.fixed_only, False, self.tab.nstg

    def init(self, ndim, conf, work, stat, fcn, jac=None, mass=None):
        if mass is not None:
            raise ConfigError(f"{self.tab.name}: mass matrix is not supported")
        super().init(ndim, conf, work, stat, fcn, jac)
        tab, s = self.tab, self.tab.nstg
        f64 = dict(dtype=torch.float64)

        self.A = torch.tensor(tab.A, **f64)                  # (s, s)
        self.B = torch.tensor(tab.B, **f64)                  # (s,)
        self.C = tab.C
        self.E = torch.tensor(tab.E, **f64) if tab.embedded else None
        self.E3 = torch.tensor(tab.E3, **f64) if tab.E3 is not None else None
        self.D = torch.tensor(tab.dense, **f64) if self.has_dense else None

        self.k = torch.zeros(s, ndim, **f64)                 # stage slopes
        self.v = torch.zeros(s, ndim, **f64)                 # stage arguments
        self.w = torch.zeros(ndim, **f64)                    # tentative y_new
        self.rcont = torch.zeros(5, ndim, **f64) if self.has_dense else None

        self.beta = tab.lund if conf.lund_stab else 0.0
        self.alpha = 1.0 / (tab.q + 1) - 0.75 * self.beta

    # ------------------------------------------------------------------------ #
    def step(self, x, y):
        tab, work, k, v = self.tab, self.work, self.k, self.v
        h = work.h
        for i in range(tab.nstg):
            if i == 0:
                v[0].copy_(y)
                if tab.fsal and not work.first:
                    continue                  # k[0] is the last stage of the previous step
            else:
                torch.add(y, self.A[i, :i] @ k[:i], alpha=h, out=v[i])
            self.stat.nfeval += 1
            self.fcn(k[i], h, x + self.C[i] * h, v[i])

        torch.add(y, self.B @ k, alpha=h, out=self.w)
        if not tab.embedded:
            return

        conf = self.conf
        sk = conf.atol + conf.rtol * torch.maximum(y.abs(), self.w.abs())
        if self.E3 is None:
            lerr = h * (self.E @ k)
            work.rerr = max(self._norm(lerr / sk), 1e-10)
        else:
            e5 = (self.E @ k) / sk
            e3 = (self.E3 @ k) / sk
            err5 = torch.sum(e5 * e5).item()
            err3 = torch.sum(e3 * e3).item()
            deno = err5 + 0.01 * err3
            if deno <= 0.0:
                deno = 1.0
            work.rerr = max(abs(h) * err5 * math.sqrt(1.0 / (self.ndim * deno)), 1e-10)

        if tab.fsal:
            num = torch.sum((k[-1] - k[-2]) ** 2).item()
            den = torch.sum((v[-1] - v[-2]) ** 2).item()
            work.rs = h * math.sqrt(num / den) if den > 0.0 else 0.0

    def accept(self, y, x):
        tab, work, conf = self.tab, self.work, self.conf
        h = work.h
        if self.has_dense and conf.dense_out:
            k, r = self.k, self.rcont
            ydiff = self.w - y
            bspl = h * k[0] - ydiff
            r[0].copy_(y)
            r[1].copy_(ydiff)
            r[2].copy_(bspl)
            r[3].copy_(ydiff - h * k[-1] - bspl)
            r[4].copy_(h * (self.D @ k))
        if tab.fsal:
            self.k[0].copy_(self.k[-1])
        y.copy_(self.w)
        if not tab.embedded:
            return h

        fac11 = work.rerr ** self.alpha
        fac = fac11 / work.rerr_prev ** self.beta
        fac = max(conf.mmin, min(conf.mmax, fac / conf.mfac))
        return h / fac

    def reject(self):
        conf = self.conf
        fac11 = self.work.rerr ** self.alpha
        return self.work.h / min(conf.mmax, fac11 / conf.mfac)

    def dense_out(self, yout, h, x, y, xout):
        if not self.has_dense:
            return super().dense_out(yout, h, x, y, xout)
        r = self.rcont
        theta = (xout - (x - h)) / h
        theta1 = 1.0 - theta
        yout.copy_(r[0] + theta * (r[1] + theta1 * (r[2] + theta * (r[3] + theta1 * r[4]))))
