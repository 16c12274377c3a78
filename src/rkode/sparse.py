# sparse.py
import numpy as np
import scipy.sparse as sp
import torch


class Triplet:
    """
    Coordinate-format (i, j, value) matrix with a fixed capacity.

    Entries are appended with `put`; duplicated positions are summed when
    the matrix is converted.  `start()` rewinds the insertion pointer so the
    same storage can be refilled (e.g. a Jacobian at every step) without
    reallocating.

    Parameters
    ----------
    m, n    : matrix shape
    max_nnz : capacity (number of entries that can be put before `start`)
    complex : store complex128 values instead of float64
    """

    def __init__(self, m: int, n: int, max_nnz: int, complex: bool = False):
        self.m = m
        self.n = n
        self.dtype = np.complex128 if complex else np.float64
        self._i = np.zeros(max_nnz, dtype=np.int64)
        self._j = np.zeros(max_nnz, dtype=np.int64)
        self._x = np.zeros(max_nnz, dtype=self.dtype)
        self.pos = 0

    # ---- filling -----------------------------------------------------------
    def start(self) -> None:
        self.pos = 0

    def put(self, i: int, j: int, x) -> None:
        if self.pos >= self._x.size:
            raise IndexError(f"triplet capacity {self._x.size} exceeded")
        self._i[self.pos] = i
        self._j[self.pos] = j
        self._x[self.pos] = x
        self.pos += 1

    def extend(self, rows, cols, vals) -> None:
        """Append many entries at once (array-likes of equal length)."""
        vals = np.asarray(vals)
        k = vals.size
        if self.pos + k > self._x.size:
            raise IndexError(f"triplet capacity {self._x.size} exceeded")
        sl = slice(self.pos, self.pos + k)
        self._i[sl] = rows
        self._j[sl] = cols
        self._x[sl] = vals
        self.pos += k

    def put_diag(self, value, size: int | None = None) -> None:
        """Append `value` on the first `size` diagonal entries."""
        size = min(self.m, self.n) if size is None else size
        idx = np.arange(size)
        self.extend(idx, idx, np.full(size, value, dtype=self.dtype))

    # ---- access ------------------------------------------------------------
    @property
    def is_complex(self) -> bool:
        return self.dtype == np.complex128

    @property
    def max_nnz(self) -> int:
        return self._x.size

    def entries(self):
        """Views of the stored (rows, cols, values)."""
        return self._i[:self.pos], self._j[:self.pos], self._x[:self.pos]

    def to_scipy(self) -> sp.coo_matrix:
        i, j, x = self.entries()
        return sp.coo_matrix((x.copy(), (i.copy(), j.copy())),
                             shape=(self.m, self.n))

    def to_dense(self) -> torch.Tensor:
        return torch.from_numpy(self.to_scipy().toarray())

    def __len__(self) -> int:
        return self.pos

    def __repr__(self) -> str:
        kind = "complex" if self.is_complex else "real"
        return (f"Triplet({self.m}x{self.n}, {kind}, "
                f"nnz={self.pos}/{self.max_nnz})")
