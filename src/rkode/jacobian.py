# jacobian.py
import math
import numpy as np
import torch
from typing import Callable

from .sparse import Triplet

MACHEPS = torch.finfo(torch.float64).eps


def numerical_jacobian(
    J:    Triplet,
    ffcn: Callable[[torch.Tensor, torch.Tensor], None],   # ffcn(f, y) fills f
    y:    torch.Tensor,           # (n,) point of evaluation (restored on exit)
    fy:   torch.Tensor,           # (n,) f(y), already computed
    w:    torch.Tensor,           # (n,) workspace
    *,
    drop_zeros: bool = True,
) -> None:
    """
    Forward-difference Jacobian  J[:, j] ≈ (f(y + δ_j e_j) − f(y)) / δ_j
    with  δ_j = sqrt(ε · max(1e-5, |y_j|)).

    Costs exactly n evaluations of `ffcn`.  `J` is restarted and refilled
    column by column; exact zeros are skipped when `drop_zeros` is set.
    """
    n = y.numel()
    rows = np.arange(n)
    J.start()
    for col in range(n):
        ysafe = y[col].item()
        delta = math.sqrt(MACHEPS * max(1e-5, abs(ysafe)))
        y[col] = ysafe + delta
        try:
            ffcn(w, y)
        finally:
            y[col] = ysafe
        dfdy = ((w - fy) / delta).detach().cpu().numpy()
        if drop_zeros:
            nz = dfdy != 0.0
            J.extend(rows[nz], np.full(nz.sum(), col), dfdy[nz])
        else:
            J.extend(rows, np.full(n, col), dfdy)
