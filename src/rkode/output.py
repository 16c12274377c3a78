# output.py
import torch
from dataclasses import dataclass, field
from typing import Callable, List

from .config import Config

_XTOL = 1e-10


@dataclass
class Output:
    """
    Collector for accepted steps and dense output.

    `execute` is called by the driver once before the first step (istep = 0)
    and after every accepted step; its return value asks the driver to stop.
    """
    ndim:   int
    conf:   Config

    # steps
    step_idx: int                 = 0
    step_rs:  List[float]         = field(default_factory=list)
    step_h:   List[float]         = field(default_factory=list)
    step_x:   List[float]         = field(default_factory=list)
    step_y:   List[torch.Tensor]  = field(default_factory=list)

    # dense
    dense_idx: int                = 0
    dense_s:   List[int]          = field(default_factory=list)   # step index
    dense_x:   List[float]        = field(default_factory=list)
    dense_y:   List[torch.Tensor] = field(default_factory=list)

    dout: Callable | None = None      # method's dense_out(yout, h, x, y, xout)

    def __post_init__(self):
        self._ydense = torch.zeros(self.ndim, dtype=torch.float64)
        self._x0 = 0.0
        self._k = 0
        self._xlast = 0.0

    def reset(self) -> None:
        for buf in (self.step_rs, self.step_h, self.step_x, self.step_y,
                    self.dense_s, self.dense_x, self.dense_y):
            buf.clear()
        self.step_idx = self.dense_idx = 0
        self._k = 0
        self._xlast = 0.0

    # ---- driver hook -------------------------------------------------------
    def execute(self, istep: int, last: bool, rs: float, h: float,
                x: float, y: torch.Tensor) -> bool:
        conf = self.conf
        if conf.step_out:
            if conf.step_save:
                self.step_rs.append(rs)
                self.step_h.append(h)
                self.step_x.append(x)
                self.step_y.append(y.clone())
                self.step_idx += 1
            if conf.step_f is not None and conf.step_f(istep, h, x, y):
                return True
        if conf.dense_out:
            return self._dense(istep, last, h, x, y)
        return False

    def _dense(self, istep, last, h, x, y) -> bool:
        conf = self.conf
        if istep == 0:
            self._x0, self._k = x, 0
            if self._emit(istep, h, x, y, x, y):
                return True
            self._k = 1
            return False
        xtol = _XTOL * max(1.0, abs(x))
        while True:
            xout = self._x0 + self._k * conf.dense_dx
            if xout > x + xtol or xout > conf.dense_xf + xtol:
                break
            if abs(xout - x) <= xtol:
                yout = y
            else:
                self.dout(self._ydense, h, x, y, xout)
                yout = self._ydense
            self._k += 1
            if self._emit(istep, h, x, y, xout, yout):
                return True
        if last and self._xlast < x - xtol:
            return self._emit(istep, h, x, y, x, y)
        return False

    def _emit(self, istep, h, x, y, xout, yout) -> bool:
        conf = self.conf
        self._xlast = xout
        if conf.dense_save:
            self.dense_s.append(istep)
            self.dense_x.append(xout)
            self.dense_y.append(yout.clone())
            self.dense_idx += 1
        if conf.dense_f is not None:
            return bool(conf.dense_f(istep, h, x, y, xout, yout))
        return False

    # ---- accessors ---------------------------------------------------------
    def get_step_x(self) -> torch.Tensor:
        return torch.tensor(self.step_x, dtype=torch.float64)

    def get_step_h(self) -> torch.Tensor:
        return torch.tensor(self.step_h, dtype=torch.float64)

    def get_step_y(self, i: int) -> torch.Tensor:
        """i-th component of y at every recorded step."""
        return torch.stack(self.step_y)[:, i]

    def get_dense_x(self) -> torch.Tensor:
        return torch.tensor(self.dense_x, dtype=torch.float64)

    def get_dense_y(self, i: int) -> torch.Tensor:
        return torch.stack(self.dense_y)[:, i]
