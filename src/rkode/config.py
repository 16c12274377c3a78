# config.py
import math
import torch
from dataclasses import dataclass, field
from typing import Callable, Optional

from .errors import ConfigError
from .linsolve import SOLVERS, SparseConfig

MACHEPS = torch.finfo(torch.float64).eps

StepOutF  = Callable[[int, float, float, torch.Tensor], Optional[bool]]
DenseOutF = Callable[[int, float, float, torch.Tensor, float, torch.Tensor],
                     Optional[bool]]


@dataclass
class Config:
    """
    Parameters of an ODE solve.

    Tolerances, fixed stepping and output are set through the ``set_*``
    methods so that derived quantities (``fnewt``, the Radau5 tolerance
    transform, ``fixed_nsteps``) stay consistent.

    Step-size controller: after a step with error ``rerr`` the new size is
    ``h / d`` with the divisor ``d`` clipped to ``[mmin, mmax]`` and the safety
    factor ``mfac``.
    """
    method:        str   = "dopri5"
    ls_kind:       str   = "splu"          # linear solver for implicit methods
    ls_config:     SparseConfig = field(default_factory=SparseConfig)

    # ---- step control --------------------------------------------------------
    hmin:          float = 0.0             # 0 ⇒ only the round-off check applies
    ini_h:         float = 1e-4
    nmax_it:       int   = 7               # max Newton iterations
    nmax_ss:       int   = 1000            # max number of sub-steps
    mmin:          float = 0.125
    mmax:          float = 5.0
    mfac:          float = 0.9
    mfirst_rej:    float = 0.1             # h ← mfirst_rej·h on a first-step reject
    pred_ctrl:     bool  = True            # Gustafsson predictive control (Radau5)
    lund_stab:     bool  = True            # Lund stabilisation (explicit RK)
    use_rms_norm:  bool  = True
    eps:           float = MACHEPS
    rerr_prev_min: float = 1e-4

    # ---- Newton / Jacobian reuse ------------------------------------------------
    theta_max:     float = 1e-3
    c1h:           float = 1.0
    c2h:           float = 1.2
    cte_tg:        bool  = True            # constant tangent (backward Euler)
    zero_trial:    bool  = False           # Radau5: start Newton from zero

    # ---- stiffness detection ----------------------------------------------------
    stiff_nstp:    int   = 1
    stiff_rs_max:  float = 3.25
    stiff_nyes:    int   = 15
    stiff_nnot:    int   = 6

    verbose:       bool  = False

    # ---- derived / set through methods -----------------------------------------
    atol:          float | torch.Tensor = field(init=False)
    rtol:          float | torch.Tensor = field(init=False)
    atol_user:     float | torch.Tensor = field(init=False)
    rtol_user:     float | torch.Tensor = field(init=False)
    fnewt:         float = field(init=False)

    fixed:         bool  = field(default=False, init=False)
    fixed_h:       float = field(default=0.0,   init=False)
    fixed_nsteps:  int   = field(default=0,     init=False)

    step_out:      bool  = field(default=False, init=False)
    step_save:     bool  = field(default=False, init=False)
    step_f:        StepOutF | None  = field(default=None, init=False)
    dense_out:     bool  = field(default=False, init=False)
    dense_save:    bool  = field(default=False, init=False)
    dense_dx:      float = field(default=0.0,   init=False)
    dense_xf:      float = field(default=0.0,   init=False)
    dense_f:       DenseOutF | None = field(default=None, init=False)

    def __post_init__(self):
        from .methods import available_methods
        if self.method not in available_methods():
            raise ConfigError(f"unknown method {self.method!r}; "
                              f"available: {available_methods()}")
        if self.ls_kind not in SOLVERS:
            raise ConfigError(f"unknown linear solver kind {self.ls_kind!r}")
        self.set_tolerances(1e-4, 1e-4)

    # ------------------------------------------------------------------------ #
    def set_tolerances(self, atol, rtol=None) -> None:
        """
        Set absolute and relative tolerances (scalars or per-component
        tensors).  For radau5 the values are transformed as in Hairer's
        RADAU5:  rtol' = 0.1·rtol^(2/3),  atol' = rtol'·atol/rtol.
        """
        if rtol is None:
            rtol = atol
        atol, rtol = _as_tol(atol, "atol"), _as_tol(rtol, "rtol")
        self.atol_user, self.rtol_user = atol, rtol
        if self.method == "radau5":
            quot = atol / rtol
            rtol = 0.1 * rtol ** (2.0 / 3.0)
            atol = rtol * quot
        self.atol, self.rtol = atol, rtol
        rmin = float(torch.as_tensor(rtol).min())
        self.fnewt = max(10.0 * self.eps / rmin, min(0.03, math.sqrt(rmin)))

    def set_fixed_h(self, dx_approx: float, xf: float, x0: float = 0.0) -> None:
        """Use fixed steps: the largest h ≤ dx_approx dividing [x0, xf] evenly."""
        if dx_approx <= 0.0:
            raise ConfigError(f"dx_approx={dx_approx} must be positive")
        if xf <= x0:
            raise ConfigError(f"xf={xf} must be greater than x0={x0}")
        self.fixed = True
        self.fixed_nsteps = max(1, math.ceil((xf - x0) / dx_approx - 1e-10))
        self.fixed_h = (xf - x0) / self.fixed_nsteps

    def set_step_out(self, save: bool, step_f: StepOutF | None = None) -> None:
        """Record every accepted step and/or call ``step_f(istep, h, x, y)``."""
        self.step_out = save or step_f is not None
        self.step_save = save
        self.step_f = step_f

    def set_dense_out(self, save: bool, dx_out: float, xf: float,
                      dense_f: DenseOutF | None = None) -> None:
        """Dense output every ``dx_out`` up to ``xf`` (saved and/or passed to
        ``dense_f(istep, h, x, y, xout, yout)``)."""
        if dx_out <= 0.0:
            raise ConfigError(f"dx_out={dx_out} must be positive")
        self.dense_out = save or dense_f is not None
        self.dense_save = save
        self.dense_dx = dx_out
        self.dense_xf = xf
        self.dense_f = dense_f

    @property
    def has_output(self) -> bool:
        return self.step_out or self.dense_out


def _as_tol(v, name: str):
    if isinstance(v, torch.Tensor):
        v = v.to(torch.float64)
        bad = bool((v <= 0.0).any())
    else:
        v = float(v)
        bad = v <= 0.0
    if bad:
        raise ConfigError(f"{name} must be positive")
    return v
