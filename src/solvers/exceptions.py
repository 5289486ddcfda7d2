"""
Solver Exceptions
=================
"""


class PhaseFieldError(Exception):
    """Base class for solver errors."""


class TimeStepTooSmallError(PhaseFieldError):
    """The time step was cut below the configured minimum."""

    def __init__(self, time: float, time_step: float, minimum_time_step: float):
        self.time = time
        self.time_step = time_step
        self.minimum_time_step = minimum_time_step
        super().__init__(
            f"Time step {time_step:.3e} at t = {time:.6e} fell below the "
            f"minimum {minimum_time_step:.3e}"
        )


class LinearSolverError(PhaseFieldError):
    """The linear solve failed or produced a non-finite update."""


class SolutionTransferError(PhaseFieldError):
    """Field transfer onto a refined mesh failed."""
