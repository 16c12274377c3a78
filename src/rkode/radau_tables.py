# radau_tables.py
"""
Constants of the 3-stage Radau IIA method (order 5) in the transformed form
used by Hairer & Wanner's RADAU5:

    A⁻¹ = T · diag(γ, [[α, −β], [β, α]]) · T⁻¹
"""
import math
import torch
from typing import Tuple

SQ6 = math.sqrt(6.0)

# abscissae
C1 = (4.0 - SQ6) / 10.0
C2 = (4.0 + SQ6) / 10.0
C3 = 1.0
C1M1 = C1 - 1.0
C2M1 = C2 - 1.0
C1MC2 = C1 - C2

# error estimate weights
DD1 = -(13.0 + 7.0 * SQ6) / 3.0
DD2 = (-13.0 + 7.0 * SQ6) / 3.0
DD3 = -1.0 / 3.0

# eigenvalues of A⁻¹: real γ and complex pair α ± iβ
_u = 81.0 ** (1.0 / 3.0)
_v = 9.0 ** (1.0 / 3.0)
U1 = 1.0 / ((6.0 + _u - _v) / 30.0)
_a = (12.0 - _u + _v) / 60.0
_b = (_u + _v) * math.sqrt(3.0) / 60.0
_cno = _a * _a + _b * _b
ALPH = _a / _cno
BETA = _b / _cno

T = torch.tensor([
    [9.1232394870892942792e-02, -0.14125529502095420843, -3.0029194105147424492e-02],
    [0.24171793270710701896,     0.20412935229379993199,  0.38294211275726193779],
    [0.96604818261509293619,     1.0,                     0.0],
], dtype=torch.float64)

TI = torch.tensor([
    [4.3255798900631553510,  0.33919925181580986954,  0.54177053993587487119],
    [-4.1787185915519047273, -0.32768282076106238708, 0.47662355450055045196],
    [-0.50287263494578687595, 2.5719269498556054292, -0.59603920482822492497],
], dtype=torch.float64)

C = torch.tensor([C1, C2, C3], dtype=torch.float64)
DD = torch.tensor([DD1, DD2, DD3], dtype=torch.float64)


# --------------------------------------------------------------------------- #
def _vandermonde(c: torch.Tensor, power: int) -> torch.Tensor:
    """Row-wise Vandermonde: V[i,j] = c[i]**j  for j=0…power-1."""
    exps = torch.arange(power, dtype=c.dtype, device=c.device)
    return c.unsqueeze(1).pow(exps)          # (s, power)


def _integral_vandermonde(c: torch.Tensor) -> torch.Tensor:
    """Q[i,j] = c[i]**(j+1)/(j+1)  (∫₀ᶜ τʲ dτ)"""
    s = c.numel()
    exps = torch.arange(1, s + 1, dtype=c.dtype, device=c.device)
    return c.unsqueeze(1).pow(exps) / exps


def collocation_matrix(c: torch.Tensor = C) -> torch.Tensor:
    """Butcher matrix A of the collocation method with abscissae `c`."""
    s = c.numel()
    CP = _vandermonde(c, s)
    CQ = _integral_vandermonde(c)
    return CQ @ torch.linalg.inv(CP)


def transformed_inverse() -> Tuple[torch.Tensor, torch.Tensor]:
    """(Λ, T·Λ·T⁻¹) with Λ the real block form of the eigenvalues of A⁻¹."""
    lam = torch.tensor([[U1, 0.0, 0.0],
                        [0.0, ALPH, -BETA],
                        [0.0, BETA, ALPH]], dtype=torch.float64)
    return lam, T @ lam @ TI
