"""
Solvers Module
==============

Active-set Newton solver, time stepping, mesh adaptation and the run loop.
"""

from .exceptions import (
    PhaseFieldError,
    TimeStepTooSmallError,
    LinearSolverError,
    SolutionTransferError,
)
from .state import SimulationState
from .active_set import ActiveSetManager
from .linear_solver import solve_constrained
from .newton_solver import NewtonSolver, NewtonConfig, NewtonResult, NewtonStatus
from .time_stepping import TimeStepSchedule, TimeStepConfig, TimeStepController, StepState
from .mesh_adaptation import MeshAdaptationTrigger
from .run_loop import (
    PhaseFieldSimulation,
    SimulationConfig,
    AdaptivityConfig,
    OutputConfig,
    StepAction,
    StepRecord,
)

__all__ = [
    "PhaseFieldError",
    "TimeStepTooSmallError",
    "LinearSolverError",
    "SolutionTransferError",
    "SimulationState",
    "ActiveSetManager",
    "solve_constrained",
    "NewtonSolver",
    "NewtonConfig",
    "NewtonResult",
    "NewtonStatus",
    "TimeStepSchedule",
    "TimeStepConfig",
    "TimeStepController",
    "StepState",
    "MeshAdaptationTrigger",
    "PhaseFieldSimulation",
    "SimulationConfig",
    "AdaptivityConfig",
    "OutputConfig",
    "StepAction",
    "StepRecord",
]
