# estrad.py
import math
import torch
from typing import Callable

from .linsolve import SparseSolver
from .radau_tables import DD


def estrad(
    z:      torch.Tensor,          # (n, 3)  stage increments after Newton
    h:      float,
    ls_r:   SparseSolver,          # factorised (γ/h·M − J)
    mmul:   Callable[[torch.Tensor], torch.Tensor],
    scal:   torch.Tensor,          # (n,)   error scale vector
    f0:     torch.Tensor,          # (n,)   f(x, y) at step start
    err:    torch.Tensor,          # (n,)   workspace → error vector
    *,
    first:  bool,
    reject: bool,
    fcn:    Callable[[torch.Tensor, torch.Tensor], None],   # fcn(f, y) at x
    y:      torch.Tensor,
    f1:     torch.Tensor,          # (n,)   workspace
) -> tuple[float, int]:
    """
    Radau5 local-error estimate (Hairer & Wanner II, Sec. IV.8).

    Returns (rerr, number of extra f evaluations).  When the first estimate
    fails on a first or rejected step it is refined with one more
    evaluation of f at y + err.
    """
    sqrt_n = math.sqrt(y.numel())

    # 1 · temp = M · (z · DD/h)
    temp = mmul(z @ (DD / h))

    # 2 · error vector via the real factorisation
    ls_r.solve(err, f0 + temp)

    # 3 · scaled Euclidean norm
    rerr = max((torch.linalg.norm(err / scal) / sqrt_n).item(), 1e-10)

    # 4 · optional second evaluation
    nfev = 0
    if rerr >= 1.0 and (first or reject):
        fcn(f1, y + err)
        nfev = 1
        ls_r.solve(err, f1 + temp)
        rerr = max((torch.linalg.norm(err / scal) / sqrt_n).item(), 1e-10)

    return rerr, nfev
