# linsolve.py
import numpy as np
import scipy.sparse as sp
import scipy.sparse.linalg as spla
import torch
from dataclasses import dataclass

from .errors import ConfigError, ConvergenceError
from .logger import get_logger
from .sparse import Triplet

logger = get_logger(__name__)


@dataclass
class SparseConfig:
    """Tuning knobs shared by the linear-solver backends."""
    verbose:  bool  = False
    ksp_type: str   = "preonly"      # PETSc only; "gmres" for iterative
    pc_type:  str   = "lu"           # PETSc only; "ilu" with gmres
    tol:      float = 1e-10
    maxits:   int   = 500


class SparseSolver:
    """
    Linear solver service:  init(triplet) -> fact() -> solve(x, b) ... -> free().

    `init` binds the coordinate matrix once; every `fact` re-reads its
    current values so a caller can refill the triplet and refactorise.
    `free` may be called any number of times.
    """
    kind = ""

    def __init__(self):
        self.config:  SparseConfig | None = None
        self._t:      Triplet | None      = None

    def init(self, t: Triplet, config: SparseConfig | None = None) -> None:
        if t.m != t.n:
            raise ConfigError(f"{self.kind}: matrix must be square, got {t.m}x{t.n}")
        self._t = t
        self.config = config or SparseConfig()
        if self.config.verbose:
            logger.info("%s solver bound to %r", self.kind, t)

    @property
    def initialized(self) -> bool:
        return self._t is not None

    def fact(self) -> None:
        raise NotImplementedError

    def solve(self, x: torch.Tensor, b: torch.Tensor) -> None:
        raise NotImplementedError

    def free(self) -> None:
        self._t = None

    def _check_factored(self, handle) -> None:
        if handle is None:
            raise RuntimeError(f"{self.kind}: fact() must be called before solve()")


# --------------------------------------------------------------------------- #
# ---- SciPy SuperLU (default) ---------------------------------------------- #
class SpluSolver(SparseSolver):
    kind = "splu"

    def __init__(self):
        super().__init__()
        self._lu = None

    def fact(self) -> None:
        A = self._t.to_scipy().tocsc()
        self._lu = spla.splu(A)

    def solve(self, x, b):
        self._check_factored(self._lu)
        x.copy_(torch.from_numpy(self._lu.solve(b.detach().cpu().numpy())))

    def free(self):
        self._lu = None
        super().free()


# --------------------------------------------------------------------------- #
# ---- dense LU in pure PyTorch --------------------------------------------- #
class DenseSolver(SparseSolver):
    kind = "dense"

    def __init__(self):
        super().__init__()
        self._LU = self._piv = None

    def fact(self):
        self._LU, self._piv = torch.linalg.lu_factor(self._t.to_dense())

    def solve(self, x, b):
        self._check_factored(self._LU)
        b_col = b.to(self._LU.dtype).unsqueeze(-1)                 # (n,1)
        x.copy_(torch.linalg.lu_solve(self._LU, self._piv, b_col).squeeze(-1))

    def free(self):
        self._LU = self._piv = None
        super().free()


# --------------------------------------------------------------------------- #
# ---- PETSc KSP ------------------------------------------------------------ #
class PetscSolver(SparseSolver):
    """
    petsc4py backend.  Direct LU by default (``preonly`` + ``lu``); any
    KSP/PC pair can be selected through `SparseConfig` or the usual
    ``-ksp_*`` / ``-pc_*`` command-line options.

    Complex systems on a real PETSc build are solved through the equivalent
    real block system  [[Re A, -Im A], [Im A, Re A]].
    """
    kind = "petsc"

    def __init__(self):
        super().__init__()
        from petsc4py import PETSc
        self._PETSc = PETSc
        self._ksp = self._A = self._xv = self._bv = None
        self._realify = False

    def init(self, t, config=None):
        super().init(t, config)
        petsc_complex = np.dtype(self._PETSc.ScalarType).kind == "c"
        self._realify = t.is_complex and not petsc_complex

    def _csr(self) -> sp.csr_matrix:
        A = self._t.to_scipy().tocsr()
        if self._realify:
            Ar, Ai = A.real, A.imag
            A = sp.bmat([[Ar, -Ai], [Ai, Ar]], format="csr")
        A.sum_duplicates()
        A.sort_indices()
        return A

    def _make_ksp(self, A):
        cfg = self.config
        ksp = self._PETSc.KSP().create()
        ksp.setOperators(A)
        ksp.setType(cfg.ksp_type)
        ksp.setTolerances(rtol=cfg.tol, max_it=cfg.maxits)
        ksp.pc.setType(cfg.pc_type)
        ksp.setFromOptions()                 # honour -ksp_* command-line flags
        ksp.setUp()                          # factorises for direct PCs
        return ksp

    def fact(self):
        PETSc = self._PETSc
        self._destroy()
        csr = self._csr()
        self._A = PETSc.Mat().createAIJ(size=csr.shape,
                                        nnz=np.diff(csr.indptr).astype(PETSc.IntType))
        self._A.setValuesCSR(csr.indptr.astype(PETSc.IntType),
                             csr.indices.astype(PETSc.IntType), csr.data)
        self._A.assemble()
        self._ksp = self._make_ksp(self._A)
        self._xv, self._bv = self._A.createVecs()

    def solve(self, x, b):
        self._check_factored(self._ksp)
        bn = b.detach().cpu().numpy()
        if self._realify:
            bn = np.concatenate([bn.real, bn.imag])
        self._bv.array[:] = bn
        self._ksp.solve(self._bv, self._xv)
        reason = self._ksp.getConvergedReason()
        if reason < 0:
            raise ConvergenceError(f"petsc: KSP failed to converge (reason {reason})")
        xn = self._xv.array.copy()
        if self._realify:
            n = self._t.n
            xn = xn[:n] + 1j * xn[n:]
        elif not self._t.is_complex:
            xn = xn.real
        x.copy_(torch.from_numpy(xn))

    def _destroy(self):
        for obj in (self._ksp, self._A, self._xv, self._bv):
            if obj is not None:
                obj.destroy()
        self._ksp = self._A = self._xv = self._bv = None

    def free(self):
        self._destroy()
        super().free()


# --------------------------------------------------------------------------- #
SOLVERS = {
    "splu":  SpluSolver,
    "dense": DenseSolver,
    "petsc": PetscSolver,
}


def new_sparse_solver(kind: str = "splu") -> SparseSolver:
    """Allocate an (uninitialised) solver of the given kind."""
    try:
        cls = SOLVERS[kind]
    except KeyError:
        raise ConfigError(f"unknown linear solver kind {kind!r}; "
                          f"available: {sorted(SOLVERS)}") from None
    return cls()


def sp_solve(A: Triplet, b: torch.Tensor, kind: str = "splu") -> torch.Tensor:
    """Solve A x = b once and release the factorisation."""
    dtype = torch.complex128 if A.is_complex else torch.float64
    x = torch.zeros(A.n, dtype=dtype)
    solver = new_sparse_solver(kind)
    try:
        solver.init(A)
        solver.fact()
        solver.solve(x, b.to(dtype))
    finally:
        solver.free()
    return x
