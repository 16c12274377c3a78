# solver.py
import time
import torch

from .config import Config
from .errors import ConfigError, ConvergenceError
from .logger import get_logger
from .methods import new_rk_method
from .output import Output
from .rkmethod import Func, JacF
from .sparse import Triplet
from .stat import Stat
from .stepcontext import StepContext

logger = get_logger(__name__)

_LAST_FAC = 1.01          # take the final step if it is within 1 % of the end


class Solver:
    """
    Adaptive (or fixed-step) driver for  M·dy/dx = f(x, y).

    Parameters
    ----------
    ndim : problem dimension
    conf : `Config` (method, tolerances, output)
    fcn  : fcn(f, h, x, y) fills f with dy/dx
    jac  : jac(dfdy, h, x, y) fills a `Triplet` with df/dy; None ⇒ numerical
           Jacobian when an implicit method needs one
    mass : mass matrix M as a `Triplet` (radau5 only); None ⇒ identity

    A Solver owns linear-solver handles: use it as a context manager or call
    `free()`.  One instance must not be shared between threads; separate
    instances may run in different threads only when the linear-solver
    backend allows independent handles (petsc needs a thread-safe build).
    """

    # ---- construction -----------------------------------------------------
    def __init__(self, ndim: int, conf: Config, fcn: Func,
                 jac: JacF | None = None, mass: Triplet | None = None):
        if ndim < 1:
            raise ConfigError(f"ndim={ndim} must be positive")
        self.ndim = ndim
        self.conf = conf
        self.fcn  = fcn
        self.jac  = jac

        self.rkm = new_rk_method(conf.method)
        self.fixed_only, self.implicit, nstg = self.rkm.info()
        self.stat = Stat(ls_kind=conf.ls_kind, implicit=self.implicit)
        self.work = StepContext(ndim)
        self.rkm.init(ndim, conf, self.work, self.stat, fcn, jac, mass)

        self.out: Output | None = None
        self._stopped = False
        if conf.has_output:
            if conf.dense_out and not self.rkm.has_dense:
                raise ConfigError(f"method {conf.method!r} has no dense output")
            self.out = Output(ndim, conf)
            self.out.dout = self.rkm.dense_out

    def free(self) -> None:
        """Release linear-solver resources; safe to call more than once."""
        if self.rkm is not None:
            self.rkm.free()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.free()
        return False

    # ---- main loop --------------------------------------------------------
    def solve(self, y: torch.Tensor, x: float, xf: float) -> float:
        """
        Integrate from (x, y) to xf, updating `y` in place.

        Returns the final x (equal to xf unless the output callback asked
        to stop).
        """
        if not isinstance(y, torch.Tensor) or y.shape != (self.ndim,):
            raise ConfigError(f"y must be a tensor of shape ({self.ndim},)")
        if y.dtype != torch.float64:
            raise ConfigError(f"y must be float64, got {y.dtype}")
        if xf < x:
            raise ConfigError(f"xf={xf} must be greater than x={x}")
        if self.fixed_only and not self.conf.fixed:
            raise ConfigError(f"method {self.conf.method!r} can only be used with "
                              f"fixed steps; call conf.set_fixed_h() first")
        if self.conf.fixed:
            length = self.conf.fixed_nsteps * self.conf.fixed_h
            if abs((xf - x) - length) > 1e-10 * max(1.0, abs(length)):
                raise ConfigError(f"fixed steps were set for an interval of length "
                                  f"{length:g}, got xf - x = {xf - x:g}; call "
                                  f"conf.set_fixed_h(dx, xf, x0) with this interval")

        t0 = time.perf_counter_ns()
        try:
            x = self._solve(y, x, xf)
        except Exception:
            self.free()
            raise
        finally:
            self.stat.update_ns_total(t0)
        if abs(x - xf) > 1e-10 and not self._stopped:
            logger.warning("|x - xf| = %g > 1e-10", abs(x - xf))
        return x

    def _output(self, istep, last, x, y) -> bool:
        if self.out is None:
            return False
        self._stopped = self.out.execute(istep, last, self.work.rs,
                                         self.work.h, x, y)
        return self._stopped

    def _verbose(self, x, y):
        if self.conf.verbose:
            logger.info("x = %g", x)
            logger.info("y = %s", y.tolist())

    def _solve(self, y, x, xf):
        conf, work, stat, rkm = self.conf, self.work, self.stat, self.rkm
        self._stopped = False

        # initial step size
        if conf.fixed:
            work.h = conf.fixed_h
        else:
            work.h = min(xf - x, conf.ini_h)

        # stat and output
        stat.reset()
        stat.hopt = work.h
        if self.out is not None:
            self.out.reset()
        if self._output(0, False, x, y):
            return x

        work.first = True
        work.reset_control(conf.theta_max)
        work.set_scal(conf.atol, conf.rtol, y)
        if conf.fixed:
            return self._fixed_steps(y, x)
        if x == xf:
            return x
        return self._variable_steps(y, x, xf)

    # ---- fixed steps ------------------------------------------------------
    def _fixed_steps(self, y, x0):
        conf, work, stat, rkm = self.conf, self.work, self.stat, self.rkm
        x = x0
        self._verbose(x, y)
        nsteps = conf.fixed_nsteps
        for n in range(nsteps):
            if rkm.needs_f0:
                stat.nfeval += 1
                self.fcn(work.f0, work.h, x, y)
            t0 = time.perf_counter_ns()
            rkm.step(x, y)
            stat.update_ns_step(t0)
            stat.nsteps += 1
            if work.diverg:
                logger.warning("Newton iterations diverged at x = %g (fixed step)", x)
                work.diverg = False
            rkm.accept(y, x)
            work.first = False
            work.jac_is_ok = False
            work.h_prev = work.h
            x = x0 + (n + 1) * work.h
            if self.implicit:
                work.set_scal(conf.atol, conf.rtol, y)
            if self._output(n + 1, n == nsteps - 1, x, y):
                return x
            self._verbose(x, y)
        return x

    # ---- variable steps ---------------------------------------------------
    def _check_h(self, x):
        conf, h = self.conf, self.work.h
        if h < conf.hmin or 0.1 * abs(h) <= abs(x) * conf.eps:
            raise ConvergenceError(f"step size too small: h = {h:g} at x = {x:g}", x)

    def _variable_steps(self, y, x, xf):
        conf, work, stat, rkm = self.conf, self.work, self.stat, self.rkm

        # first function evaluation
        stat.nfeval += 1
        self.fcn(work.f0, work.h, x, y)

        last = x + _LAST_FAC * work.h >= xf
        if last:
            work.h = xf - x

        for _ in range(conf.nmax_ss):
            stat.nsteps += 1

            t0 = time.perf_counter_ns()
            rkm.step(x, y)
            stat.update_ns_step(t0)

            # iterations diverging ?
            if work.diverg:
                work.diverg = False
                work.reject = True
                last = False
                work.h *= work.dvfac
                self._check_h(x)
                continue

            # accepted
            if work.rerr < 1.0:
                stat.naccepted += 1
                work.first = False
                work.jac_is_ok = False
                self._stiffness(x)

                dxnew = rkm.accept(y, x)
                x = xf if last else x + work.h

                if self._output(stat.naccepted, last, x, y):
                    return x
                self._verbose(x, y)
                if last:
                    stat.hopt = work.h
                    return x

                work.h_prev = work.h
                work.rerr_prev = max(conf.rerr_prev_min, work.rerr)

                # new scal and f0
                if self.implicit:
                    work.set_scal(conf.atol, conf.rtol, y)
                    stat.nfeval += 1
                    self.fcn(work.f0, work.h, x, y)

                # new step size
                dxnew = min(dxnew, xf - x)
                if work.reject:                  # no growth right after a reject
                    dxnew = min(work.h, dxnew)
                work.reject = False
                work.reuse_jac_and_dec_once = False

                if x + _LAST_FAC * dxnew >= xf:
                    last = True
                    work.h = xf - x
                elif self.implicit:
                    dxratio = dxnew / work.h
                    work.reuse_jac_and_dec_once = (work.theta <= conf.theta_max and
                                                   conf.c1h <= dxratio <= conf.c2h)
                    if not work.reuse_jac_and_dec_once:
                        work.h = dxnew
                else:
                    work.h = dxnew

                # at least the Jacobian can be reused?
                if self.implicit and not work.reuse_jac_and_dec_once:
                    work.reuse_jac_once = work.theta <= conf.theta_max

            # rejected
            else:
                if stat.naccepted > 0:
                    stat.nrejected += 1
                work.reject = True
                last = False

                dxnew = rkm.reject()
                if work.first and conf.mfirst_rej > 0.0:
                    work.h = conf.mfirst_rej * work.h
                else:
                    work.h = dxnew
                self._check_h(x)

                if x + _LAST_FAC * work.h >= xf:
                    last = True
                    work.h = xf - x

        raise ConvergenceError(
            f"sub-stepping did not converge after {conf.nmax_ss} steps "
            f"(x = {x:g}, xf = {xf:g})", x)

    def _stiffness(self, x):
        conf, work, stat = self.conf, self.work, self.stat
        if conf.stiff_nstp <= 0:
            return
        if stat.naccepted % conf.stiff_nstp == 0 or work.stiff_yes > 0:
            if work.rs > conf.stiff_rs_max:
                work.stiff_not = 0
                work.stiff_yes += 1
                if work.stiff_yes == conf.stiff_nyes:
                    logger.warning("stiff step detected @ x = %g", x)
            else:
                work.stiff_not += 1
                if work.stiff_not == conf.stiff_nnot:
                    work.stiff_yes = 0
