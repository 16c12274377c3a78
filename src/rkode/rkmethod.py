# rkmethod.py
import torch
from typing import Callable, Optional, Tuple

from .config import Config
from .sparse import Triplet
from .stat import Stat
from .stepcontext import StepContext

# fcn(f, h, x, y)      fills f with dy/dx
# jac(dfdy, h, x, y)   fills the Triplet dfdy with df/dy
Func = Callable[[torch.Tensor, float, float, torch.Tensor], None]
JacF = Callable[[Triplet, float, float, torch.Tensor], None]


class RKMethod:
    """
    Step method strategy used by `Solver`.

    `step` computes a tentative step from (x, y) without touching y and sets
    ``work.rerr`` (and ``work.diverg`` for Newton-based methods).  `accept`
    commits it into y and returns the suggested next h; `reject` only
    returns the suggested next h.
    """
    fixed_only: bool = False
    implicit:   bool = False
    has_dense:  bool = False
    needs_f0:   bool = False       # uses work.f0 = f(x, y) at step start

    def __init__(self):
        self.ndim: int = 0
        self.conf: Optional[Config] = None
        self.work: Optional[StepContext] = None
        self.stat: Optional[Stat] = None
        self.fcn:  Optional[Func] = None
        self.jac:  Optional[JacF] = None

    def info(self) -> Tuple[bool, bool, int]:
        """(fixed_only, implicit, number of stages)"""
        raise NotImplementedError

    def init(self, ndim: int, conf: Config, work: StepContext, stat: Stat,
             fcn: Func, jac: JacF | None = None,
             mass: Triplet | None = None) -> None:
        self.ndim, self.conf, self.work, self.stat = ndim, conf, work, stat
        self.fcn, self.jac = fcn, jac

    def step(self, x: float, y: torch.Tensor) -> None:
        raise NotImplementedError

    def accept(self, y: torch.Tensor, x: float) -> float:
        raise NotImplementedError

    def reject(self) -> float:
        raise NotImplementedError

    def dense_out(self, yout: torch.Tensor, h: float, x: float,
                  y: torch.Tensor, xout: float) -> None:
        raise NotImplementedError(f"{type(self).__name__} has no dense output")

    def free(self) -> None:
        pass

    # ---- shared helpers ----------------------------------------------------
    def _norm(self, v: torch.Tensor) -> float:
        """RMS (or max) norm of an already scaled vector."""
        if self.conf.use_rms_norm:
            return torch.sqrt(torch.mean(v * v)).item()
        return v.abs().max().item()
