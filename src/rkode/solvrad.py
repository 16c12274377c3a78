# solvrad.py
import torch
from typing import Callable

from .linsolve import SparseSolver
from .radau_tables import ALPH, BETA, U1


def solve_radau(
    z:     torch.Tensor,                 # (n, 3) – TI·F on entry, ΔW on exit
    w:     torch.Tensor,                 # (n, 3) transformed stage values
    h:     float,
    ls_r:  SparseSolver,                 # factorised (γ/h·M − J)
    ls_c:  SparseSolver,                 # factorised ((α+iβ)/h·M − J)
    mmul:  Callable[[torch.Tensor], torch.Tensor],   # v ↦ M·v
    zc:    torch.Tensor,                 # (n,) complex128 workspace
    xc:    torch.Tensor,                 # (n,) complex128 workspace
) -> torch.Tensor:
    """
    Overwrites z with the solution of the transformed Newton systems

        (γ/h·M − J) Δw₁ = z₁ − γ/h·M w₁
        ((α+iβ)/h·M − J)(Δw₂ + iΔw₃) = (z₂ + iz₃) − (α+iβ)/h·M (w₂ + iw₃)
    """
    gam = U1 / h
    alp = ALPH / h
    bet = BETA / h
    Mw = torch.stack([mmul(w[:, k]) for k in range(3)], dim=1)   # (n, 3)

    # --- real stage ---------------------------------------------------------
    rhs0 = z[:, 0] - gam * Mw[:, 0]
    ls_r.solve(z[:, 0], rhs0)

    # --- complex pair -------------------------------------------------------
    rhs_re = z[:, 1] - alp * Mw[:, 1] + bet * Mw[:, 2]
    rhs_im = z[:, 2] - bet * Mw[:, 1] - alp * Mw[:, 2]
    zc.real.copy_(rhs_re)
    zc.imag.copy_(rhs_im)
    ls_c.solve(xc, zc)
    z[:, 1] = xc.real
    z[:, 2] = xc.imag
    return z
