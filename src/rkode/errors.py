# errors.py
"""Exceptions raised by the ODE solvers."""


class ODEError(Exception):
    """Base class for every error raised by rkode."""


class ConfigError(ODEError, ValueError):
    """Invalid configuration or call arguments (raised before stepping)."""


class ConvergenceError(ODEError, RuntimeError):
    """The integration could not make progress.

    Raised when the maximum number of sub-steps is exhausted, when the step
    size underflows, or when a fixed-step Newton solve fails.
    """

    def __init__(self, msg: str, x: float | None = None):
        super().__init__(msg)
        self.x = x
