# stat.py
import time
from dataclasses import dataclass, fields

from .logger import get_logger

logger = get_logger(__name__)


@dataclass
class Stat:
    """Counters of a single `Solver.solve` call (reset at its start)."""
    ls_kind:    str  = ""
    implicit:   bool = False

    nfeval:     int   = 0        # f evaluations
    njeval:     int   = 0        # Jacobian evaluations
    nsteps:     int   = 0        # all sub-step attempts
    naccepted:  int   = 0
    nrejected:  int   = 0        # rejections after the first acceptance
    ndecomp:    int   = 0        # factorisations
    nlinsol:    int   = 0        # Newton linear solves
    nitmax:     int   = 0        # largest Newton iteration count
    hopt:       float = 0.0      # last accepted (optimal) step size

    ns_step:    int   = 0        # nanoseconds spent in step()
    ns_total:   int   = 0        # nanoseconds spent in solve()

    def reset(self) -> None:
        for f in fields(self):
            if f.name not in ("ls_kind", "implicit"):
                setattr(self, f.name, f.default)

    def update_ns_step(self, t0: int) -> None:
        self.ns_step += time.perf_counter_ns() - t0

    def update_ns_total(self, t0: int) -> None:
        self.ns_total = time.perf_counter_ns() - t0

    @property
    def elapsed(self) -> float:
        """Wall time of the last solve in seconds."""
        return self.ns_total * 1e-9

    def summary(self, full: bool = False) -> str:
        lines = [
            f"number of F evaluations   = {self.nfeval}",
        ]
        if self.implicit:
            lines += [
                f"number of J evaluations   = {self.njeval}",
            ]
        lines += [
            f"total number of steps     = {self.nsteps}",
            f"number of accepted steps  = {self.naccepted}",
            f"number of rejected steps  = {self.nrejected}",
        ]
        if self.implicit:
            lines += [
                f"number of decompositions  = {self.ndecomp}",
                f"number of lin solutions   = {self.nlinsol}",
                f"max number of iterations  = {self.nitmax}",
            ]
        if full:
            lines += [
                f"optimal step size Hopt    = {self.hopt:g}",
                f"elapsed time: steps       = {self.ns_step * 1e-9:.6f} s",
                f"elapsed time: total       = {self.ns_total * 1e-9:.6f} s",
            ]
            if self.implicit:
                lines.append(f"linear solver             = {self.ls_kind}")
        return "\n".join(lines)

    def print(self, full: bool = False) -> None:
        logger.info("\n%s", self.summary(full))
