"""
tests/test_radau_tables.py
Radau IIA constants: transformation matrices, eigenvalues and the
collocation matrix they diagonalise.
"""
import math
import torch

from rkode.radau_tables import (ALPH, BETA, C, C1, C2, T, TI, U1,
                                collocation_matrix, transformed_inverse)


def test_abscissae():
    assert abs(C1 - (4.0 - math.sqrt(6.0)) / 10.0) < 1e-16
    assert abs(C2 - (4.0 + math.sqrt(6.0)) / 10.0) < 1e-16
    assert C[2].item() == 1.0


def test_t_times_ti_is_identity():
    eye = torch.eye(3, dtype=torch.float64)
    assert torch.allclose(T @ TI, eye, atol=1e-13)
    assert torch.allclose(TI @ T, eye, atol=1e-13)


def test_eigenvalues_of_inverse_collocation_matrix():
    assert abs(U1 - 3.6378342527444953) < 1e-13
    assert abs(ALPH - 2.6810828736277521) < 1e-13
    assert abs(BETA - 3.0504301992474105) < 1e-13


def test_collocation_matrix_is_radau_iia():
    A = collocation_matrix()
    ones = torch.ones(3, dtype=torch.float64)
    # row sums are the abscissae
    assert torch.allclose(A @ ones, C, atol=1e-14)
    # stiffly accurate: the last row holds the quadrature weights
    b = torch.tensor([(16.0 - math.sqrt(6.0)) / 36.0,
                      (16.0 + math.sqrt(6.0)) / 36.0,
                      1.0 / 9.0], dtype=torch.float64)
    assert torch.allclose(A[2], b, atol=1e-14)


def test_transformed_inverse():
    A = collocation_matrix()
    lam, Ainv = transformed_inverse()
    eye = torch.eye(3, dtype=torch.float64)
    assert torch.allclose(Ainv @ A, eye, atol=1e-12)
    ev = torch.linalg.eigvals(lam)
    assert any(abs(e.real.item() - U1) < 1e-12 and abs(e.imag.item()) < 1e-12
               for e in ev)
    assert any(abs(e.imag.item() - BETA) < 1e-12 for e in ev)
