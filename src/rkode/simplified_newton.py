# simplified_newton.py
import math
import torch
from dataclasses import dataclass
from typing import Callable

from .linsolve import SparseSolver
from .radau_tables import C, TI, T
from .solvrad import solve_radau


@dataclass
class NewtonResult:
    converged: bool          # True if the convergence test was satisfied
    nit:       int           # iterations performed
    theta:     float         # contraction estimate
    eta:       float         # θ/(1−θ), kept for the next step
    dvfac:     float         # step reduction factor when not converged
    nfeval:    int           # f evaluations spent
    nlinsol:   int           # linear solves spent


# --------------------------------------------------------------------------- #
def simplified_newton(
    fcn:      Callable[[torch.Tensor, float, float, torch.Tensor], None],
    x:        float,
    y:        torch.Tensor,          # (n,)
    h:        float,
    z:        torch.Tensor,          # (n, 3)  starting increments, updated
    w:        torch.Tensor,          # (n, 3)  T⁻¹·z, updated
    *,
    ls_r:     SparseSolver,
    ls_c:     SparseSolver,
    mmul:     Callable[[torch.Tensor], torch.Tensor],
    scal:     torch.Tensor,          # (n,)
    eta:      float,
    theta:    float,
    fnewt:    float,
    nmax_it:  int,
    eps:      float,
    fw:       torch.Tensor,          # (n, 3) workspace
    fv:       torch.Tensor,          # (n,)   workspace
    zc:       torch.Tensor,          # (n,)   complex workspace
    xc:       torch.Tensor,          # (n,)   complex workspace
) -> NewtonResult:
    """
    Simplified Newton iterations for one Radau5 step (Hairer & Wanner II,
    Sec. IV.8).  Does *not* compute the local error; the caller runs
    estrad() afterwards.

    Divergence is declared when θ ≥ 0.99, when the predicted error after the
    remaining iterations stays above ``fnewt`` or when ``nmax_it`` iterations
    were not enough; ``dvfac`` then tells how much to shrink h.
    """
    n = y.numel()
    sqrt_3n = math.sqrt(3 * n)
    eta = max(eta, eps) ** 0.8
    dyno_old = 1.0
    thq_old = 1.0
    nfeval = nlinsol = 0

    for it in range(nmax_it):
        nit = it + 1

        # --- RHS evaluations at each stage ---------------------------------
        for q in range(3):
            fcn(fv, h, x + C[q].item() * h, y + z[:, q])
            fw[:, q] = fv
        nfeval += 3

        # --- z = TI·F, then solve the transformed systems ------------------
        z.copy_(fw @ TI.T)
        solve_radau(z, w, h, ls_r, ls_c, mmul, zc, xc)
        nlinsol += 1

        # --- Newton convergence measure ------------------------------------
        dyno = torch.linalg.norm(z / scal[:, None]).item() / sqrt_3n

        if 1 < nit < nmax_it:
            thq = dyno / dyno_old
            theta = thq if nit == 2 else math.sqrt(thq * thq_old)
            thq_old = thq
            if theta >= 0.99:
                return NewtonResult(False, nit, theta, eta, 0.5, nfeval, nlinsol)
            eta = theta / (1.0 - theta)
            dyth = eta * dyno * theta ** (nmax_it - 1 - nit) / fnewt
            if dyth >= 1.0:
                qnewt = max(1e-4, min(20.0, dyth))
                dvfac = 0.8 * qnewt ** (-1.0 / (4.0 + nmax_it - 1 - nit))
                return NewtonResult(False, nit, theta, eta, dvfac, nfeval, nlinsol)

        dyno_old = max(dyno, eps)

        w += z                                   # update transformed stages
        z.copy_(w @ T.T)                         # back to stage increments

        if eta * dyno <= fnewt:
            return NewtonResult(True, nit, theta, eta, 0.0, nfeval, nlinsol)

    return NewtonResult(False, nmax_it, theta, eta, 0.5, nfeval, nlinsol)
