# radau5.py
import torch

from .errors import ConfigError
from .estrad import estrad
from .jacobian import numerical_jacobian
from .linsolve import new_sparse_solver
from .radau_tables import ALPH, BETA, C1, C1M1, C1MC2, C2, C2M1, TI, U1
from .rkmethod import RKMethod
from .simplified_newton import simplified_newton
from .sparse import Triplet


class Radau5(RKMethod):
    """
    Radau IIA, 3 stages, order 5 (Hairer & Wanner's RADAU5).

    Solves  M·y' = f(x, y)  with the transformed simplified Newton method:
    one real factorisation of (γ/h·M − J) and one complex factorisation of
    ((α+iβ)/h·M − J) per decomposition.  The Jacobian and the factorisations
    are reused according to the flags set by the driver in ``work``.
    """
    implicit  = True
    has_dense = True
    needs_f0  = True

    def info(self):
        return False, True, 3

    def init(self, ndim, conf, work, stat, fcn, jac=None, mass=None):
        super().init(ndim, conf, work, stat, fcn, jac)
        f64 = dict(dtype=torch.float64)
        c128 = dict(dtype=torch.complex128)

        self.mass = mass
        nnz_m = ndim
        if mass is not None:
            if mass.m != ndim or mass.n != ndim:
                raise ConfigError(f"radau5: mass matrix must be {ndim}x{ndim}, "
                                  f"got {mass.m}x{mass.n}")
            self._msp = mass.to_scipy().tocsr()
            nnz_m = self._msp.nnz

        self.z = torch.zeros(ndim, 3, **f64)       # stage increments
        self.w = torch.zeros(ndim, 3, **f64)       # transformed increments
        self.fw = torch.zeros(ndim, 3, **f64)
        self.ycol = torch.zeros(ndim, 3, **f64)    # collocation polynomial
        self.fv = torch.zeros(ndim, **f64)
        self.v = torch.zeros(ndim, **f64)
        self.err = torch.zeros(ndim, **f64)
        self.f1 = torch.zeros(ndim, **f64)
        self.zc = torch.zeros(ndim, **c128)
        self.xc = torch.zeros(ndim, **c128)

        self.dfdy = Triplet(ndim, ndim, ndim * ndim)
        self.kmat_r = Triplet(ndim, ndim, ndim * ndim + nnz_m)
        self.kmat_c = Triplet(ndim, ndim, ndim * ndim + nnz_m, complex=True)
        self.ls_r = new_sparse_solver(conf.ls_kind)
        self.ls_c = new_sparse_solver(conf.ls_kind)

    def _mmul(self, v: torch.Tensor) -> torch.Tensor:
        if self.mass is None:
            return v
        return torch.from_numpy(self._msp @ v.detach().cpu().numpy())

    # ---- Jacobian and decompositions ---------------------------------------
    def _jacobian(self, x, y):
        work, stat = self.work, self.stat
        h = work.h
        stat.njeval += 1
        if self.jac is None:
            self.v.copy_(y)
            numerical_jacobian(self.dfdy,
                               lambda f, yy: self.fcn(f, h, x, yy),
                               self.v, work.f0, self.fv)
            stat.nfeval += self.ndim
        else:
            self.dfdy.start()
            self.jac(self.dfdy, h, x, y)
        work.jac_is_ok = True

    def _assemble(self, kmat: Triplet, shift) -> None:
        """kmat = shift·M − J"""
        kmat.start()
        if self.mass is None:
            kmat.put_diag(shift, self.ndim)
        else:
            i, j, m = self.mass.entries()
            kmat.extend(i, j, shift * m)
        i, j, v = self.dfdy.entries()
        kmat.extend(i, j, -v)

    def _factorize(self):
        h = self.work.h
        self._assemble(self.kmat_r, U1 / h)
        self._assemble(self.kmat_c, complex(ALPH / h, BETA / h))
        if not self.ls_r.initialized:
            self.ls_r.init(self.kmat_r, self.conf.ls_config)
            self.ls_c.init(self.kmat_c, self.conf.ls_config)
        self.ls_r.fact()
        self.ls_c.fact()
        self.stat.ndecomp += 1

    # ---- step --------------------------------------------------------------
    def step(self, x, y):
        work, stat, conf = self.work, self.stat, self.conf
        h = work.h

        if work.reuse_jac_and_dec_once:
            work.reuse_jac_and_dec_once = False
        else:
            if work.reuse_jac_once:
                work.reuse_jac_once = False
            elif not work.jac_is_ok:
                self._jacobian(x, y)
            self._factorize()

        # starting values
        z, w = self.z, self.w
        if work.first or conf.zero_trial:
            z.zero_()
            w.zero_()
        else:
            c3q = h / work.h_prev
            ak1, ak2, ak3 = self.ycol.unbind(1)
            for k, cq in enumerate((C1 * c3q, C2 * c3q, c3q)):
                z[:, k] = cq * (ak1 + (cq - C2M1) * (ak2 + (cq - C1M1) * ak3))
            w.copy_(z @ TI.T)

        res = simplified_newton(
            self.fcn, x, y, h, z, w,
            ls_r=self.ls_r, ls_c=self.ls_c, mmul=self._mmul,
            scal=work.scal, eta=work.eta, theta=abs(conf.theta_max),
            fnewt=conf.fnewt, nmax_it=conf.nmax_it, eps=conf.eps,
            fw=self.fw, fv=self.fv, zc=self.zc, xc=self.xc)
        stat.nfeval += res.nfeval
        stat.nlinsol += res.nlinsol
        stat.nitmax = max(stat.nitmax, res.nit)
        work.nit, work.eta, work.theta = res.nit, res.eta, res.theta

        if not res.converged:
            work.diverg = True
            work.dvfac = res.dvfac
            return

        work.rerr, nfev = estrad(
            z, h, self.ls_r, self._mmul, work.scal, work.f0, self.err,
            first=work.first, reject=work.reject,
            fcn=lambda f, yy: self.fcn(f, h, x, yy), y=y, f1=self.f1)
        stat.nfeval += nfev

    def _quot(self) -> float:
        """Divisor of h proposed by the error, before predictive control."""
        work, conf = self.work, self.conf
        nit2 = 2 * conf.nmax_it
        fac = min(conf.mfac, conf.mfac * (1 + nit2) / (work.nit + nit2))
        quot = max(conf.mmin, min(conf.mmax, work.rerr ** 0.25 / fac))
        return quot

    def accept(self, y, x):
        work, conf = self.work, self.conf
        h = work.h
        z1, z2, z3 = self.z.unbind(1)
        y += z3

        # collocation polynomial for starting values and dense output
        ycol = self.ycol
        ycol[:, 0] = (z2 - z3) / C2M1
        ak = (z1 - z2) / C1MC2
        acont3 = (ak - z1 / C1) / C2
        ycol[:, 1] = (ak - ycol[:, 0]) / C1M1
        ycol[:, 2] = ycol[:, 1] - acont3

        quot = self._quot()
        if conf.pred_ctrl and self.stat.naccepted > 1:
            facgus = (work.h_prev / h) * (work.rerr ** 2 / work.rerr_prev) ** 0.25 / conf.mfac
            facgus = max(conf.mmin, min(conf.mmax, facgus))
            quot = max(quot, facgus)
        return h / quot

    def reject(self):
        return self.work.h / self._quot()

    def dense_out(self, yout, h, x, y, xout):
        s = (xout - x) / h
        a1, a2, a3 = self.ycol.unbind(1)
        yout.copy_(y + s * (a1 + (s - C2M1) * (a2 + (s - C1M1) * a3)))

    def free(self):
        self.ls_r.free()
        self.ls_c.free()
