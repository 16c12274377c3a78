"""
tests/test_jacobian.py
Forward-difference Jacobian against the analytic ones of the test problems.
"""
import torch

from rkode.jacobian import numerical_jacobian
from rkode.problems import robertson, van_der_pol
from rkode.sparse import Triplet


def _compare(p, y, rtol, atol):
    n = p.ndim
    fy = torch.zeros(n, dtype=torch.float64)
    w = torch.zeros(n, dtype=torch.float64)
    p.fcn(fy, 0.0, 0.0, y)

    calls = []

    def ffcn(f, yy):
        calls.append(1)
        p.fcn(f, 0.0, 0.0, yy)

    ysave = y.clone()
    Jnum = Triplet(n, n, n * n)
    numerical_jacobian(Jnum, ffcn, y, fy, w)
    assert len(calls) == n
    assert torch.equal(y, ysave), "y must be restored"

    Jana = Triplet(n, n, n * n)
    p.jac(Jana, 0.0, 0.0, y)
    assert torch.allclose(Jnum.to_dense(), Jana.to_dense(), rtol=rtol, atol=atol)


def test_robertson():
    y = torch.tensor([0.9, 2e-5, 0.1], dtype=torch.float64)
    _compare(robertson(), y, rtol=1e-5, atol=1e-6)


def test_van_der_pol():
    y = torch.tensor([1.5, -0.7], dtype=torch.float64)
    _compare(van_der_pol(eps=1e-3), y, rtol=1e-6, atol=1e-6)


def test_zeros_are_dropped():
    def ffcn(f, y):
        f[0] = 2.0 * y[0]
        f[1] = 0.0

    y = torch.tensor([1.0, 1.0], dtype=torch.float64)
    fy = torch.tensor([2.0, 0.0], dtype=torch.float64)
    J = Triplet(2, 2, 4)
    numerical_jacobian(J, ffcn, y, fy, torch.zeros(2, dtype=torch.float64))
    assert len(J) == 1
    numerical_jacobian(J, ffcn, y, fy, torch.zeros(2, dtype=torch.float64),
                       drop_zeros=False)
    assert len(J) == 4
