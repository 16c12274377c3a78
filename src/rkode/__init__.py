"""
rkode: Runge-Kutta ODE solvers.

Explicit embedded pairs (up to DOP853), backward Euler and Radau IIA
(Radau5) with adaptive step control, Jacobian reuse and dense output.

>>> import torch
>>> from rkode import Config, Solver
>>> def fcn(f, h, x, y):
...     f[0] = -y[0]
>>> conf = Config("dopri5")
>>> y = torch.ones(1, dtype=torch.float64)
>>> with Solver(1, conf, fcn) as sol:
...     sol.solve(y, 0.0, 1.0)
1.0
"""
from .config import Config
from .errors import ConfigError, ConvergenceError, ODEError
from .highlevel import dopri5_simple, dopri8_simple, radau5_simple, solve
from .linsolve import SparseConfig, SparseSolver, new_sparse_solver, sp_solve
from .methods import available_methods, new_rk_method
from .output import Output
from .solver import Solver
from .sparse import Triplet
from .stat import Stat

__all__ = [
    "Config", "Solver", "Output", "Stat", "Triplet",
    "ODEError", "ConfigError", "ConvergenceError",
    "SparseConfig", "SparseSolver", "new_sparse_solver", "sp_solve",
    "available_methods", "new_rk_method",
    "solve", "dopri5_simple", "dopri8_simple", "radau5_simple",
]
