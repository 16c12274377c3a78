# stepcontext.py
import torch
from dataclasses import dataclass, field


@dataclass
class StepContext:
    """Work record shared by the `Solver` driver and the step method."""
    ndim:    int

    # step size and error
    h:         float = 0.0
    h_prev:    float = 0.0           # last accepted h
    rerr:      float = 0.0
    rerr_prev: float = 1e-4
    rs:        float = 0.0           # stiffness ratio (FSAL explicit methods)

    # vectors owned by the driver
    f0:      torch.Tensor = field(init=False)    # f(x, y) at step start
    scal:    torch.Tensor = field(init=False)    # atol + rtol·|y|

    # flags between calls
    first:   bool = True
    reject:  bool = False

    # Newton state (implicit methods)
    nit:     int   = 0
    eta:     float = 1.0
    theta:   float = 0.0
    dvfac:   float = 0.0
    diverg:  bool  = False

    # Jacobian / decomposition reuse
    jac_is_ok:                bool = False
    reuse_jac_once:           bool = False
    reuse_jac_and_dec_once:   bool = False

    # stiffness counters
    stiff_yes: int = 0
    stiff_not: int = 0

    def __post_init__(self):
        self.f0   = torch.zeros(self.ndim, dtype=torch.float64)
        self.scal = torch.zeros(self.ndim, dtype=torch.float64)

    def set_scal(self, atol, rtol, y: torch.Tensor) -> None:
        self.scal.copy_(atol + rtol * y.abs())

    def reset_control(self, theta_max: float) -> None:
        """Start-of-solve values of the adaptive control variables."""
        self.reuse_jac_and_dec_once = False
        self.reuse_jac_once = False
        self.jac_is_ok = False
        self.h_prev = self.h
        self.nit = 0
        self.eta = 1.0
        self.theta = theta_max
        self.dvfac = 0.0
        self.diverg = False
        self.reject = False
        self.rerr_prev = 1e-4
        self.stiff_yes = 0
        self.stiff_not = 0
