"""
Active-Set Newton Solver
========================

Monolithic Newton iteration for the coupled displacement/phase-field
system with the irreversibility constraint handled by a primal-dual
active set.

Per iteration k:
    1. assemble residual and Jacobian
    2. reclassify the active set (every k) and, for k > 0, measure the
       residual with Dirichlet and active rows zeroed; stop if the active
       set is unchanged and the error is below
       max(tolerance, relative_tolerance * error_0)
    3. solve the reduced system with the Dirichlet and active DOFs pinned
    4. take the full update

error_0 is the constrained residual norm of the initial guess.
"""

import logging
import numpy as np
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Set, Tuple, TYPE_CHECKING

from assembly.global_assembly import assemble_coupled_system
from physics.stress_decomposition import JACOBIAN_VARIANTS
from .active_set import ActiveSetManager
from .exceptions import LinearSolverError
from .linear_solver import solve_constrained, LINEAR_SOLVERS

if TYPE_CHECKING:
    from assembly.boundary_conditions import BoundaryConditionManager
    from physics.material import PhaseFieldMaterial
    from .state import SimulationState

LOG = logging.getLogger(__name__)


class NewtonStatus(Enum):
    ITERATING = "iterating"
    CONVERGED = "converged"
    DIVERGED = "diverged"


@dataclass
class NewtonConfig:
    """Configuration for the Newton solver."""
    tolerance: float = 1e-8          # Constrained residual norm
    relative_tolerance: float = 1e-8  # Relative to the initial residual norm
    max_iterations: int = 30         # Iteration budget per attempt
    jacobian: str = 'frozen'         # 'frozen' or 'exact'
    linear_solver: str = 'direct'    # 'direct' or 'gmres'
    active_set_constant: float = 1e8
    active_set_tolerance: float = 1e-8
    active_set_increment_tolerance: float = 1e-12  # |φ - φ_old| taken as zero
    verbose: bool = False            # Log the iteration table at INFO

    def __post_init__(self):
        if self.tolerance <= 0:
            raise ValueError(f"tolerance must be positive, got {self.tolerance}")
        if self.relative_tolerance < 0:
            raise ValueError(f"relative_tolerance must be non-negative, got {self.relative_tolerance}")
        if self.max_iterations < 1:
            raise ValueError(f"max_iterations must be >= 1, got {self.max_iterations}")
        if self.jacobian not in JACOBIAN_VARIANTS:
            raise ValueError(f"Unknown Jacobian variant: {self.jacobian}")
        if self.linear_solver not in LINEAR_SOLVERS:
            raise ValueError(f"Unknown linear solver: {self.linear_solver}")


@dataclass
class NewtonResult:
    """Outcome of one attempt at a time step."""
    status: NewtonStatus
    n_iterations: int
    residual_norm: float
    active_set_size: int
    linear_iterations: int = 0

    @property
    def converged(self) -> bool:
        return self.status == NewtonStatus.CONVERGED


class NewtonSolver:
    """
    Active-set Newton solver.

    Attributes:
        material: PhaseFieldMaterial
        config: NewtonConfig
        active_set: ActiveSetManager of the last solve
        status: NewtonStatus of the last solve
    """

    def __init__(self, material: 'PhaseFieldMaterial',
                 config: Optional[NewtonConfig] = None):
        self.material = material
        self.config = config or NewtonConfig()
        self.active_set = ActiveSetManager(self.config.active_set_constant,
                                           self.config.active_set_tolerance,
                                           self.config.active_set_increment_tolerance)
        self.status = NewtonStatus.ITERATING

    @property
    def _log_level(self) -> int:
        return logging.INFO if self.config.verbose else logging.DEBUG

    def _assemble(self, state: 'SimulationState', pressure, time_steps):
        return assemble_coupled_system(
            state.dof_handler, self.material,
            state.solution, state.old_solution, state.old_old_solution,
            pressure=pressure,
            time_steps=time_steps,
            include_pressure=pressure is not None,
            assemble_matrix=True,
            jacobian=self.config.jacobian,
            use_old_time_step_phi=state.use_old_time_step_phi,
        )

    def advance_time_step(self, state: 'SimulationState',
                          pressure: Optional[np.ndarray] = None,
                          time_steps: Optional[Tuple[float, float]] = None,
                          bcs: Optional['BoundaryConditionManager'] = None) -> NewtonResult:
        """
        Solve one time step starting from state.solution.

        The state's trial solution is updated in place; old generations are
        left untouched.

        Args:
            state: SimulationState
            pressure: per-element pressure or None
            time_steps: (time_step, old_time_step), default from the state
            bcs: Dirichlet conditions evaluated at state.time

        Returns:
            NewtonResult
        """
        cfg = self.config
        dof_handler = state.dof_handler
        if time_steps is None:
            time_steps = state.time_steps

        if bcs is not None:
            bc_dofs = bcs.impose(dof_handler, state.solution, state.time)
        else:
            bc_dofs = np.array([], dtype=np.int64)

        self.active_set.reset()
        self.status = NewtonStatus.ITERATING

        LOG.log(self._log_level, "%5s %10s %12s %8s", "iter", "active", "error", "linear")

        error = np.inf
        threshold = cfg.tolerance
        linear_iterations = 0
        for k in range(cfg.max_iterations):
            residual, matrix = self._assemble(state, pressure, time_steps)
            changed = self.active_set.update(dof_handler, state.solution,
                                             state.old_solution, residual)
            error = self._constrained_norm(residual, bc_dofs)

            LOG.log(self._log_level, "%5d %10d %12.3e %8d",
                    k, self.active_set.size, error, linear_iterations)

            if not np.isfinite(error):
                LOG.warning("Non-finite residual at Newton iteration %d", k)
                return self._finish(NewtonStatus.DIVERGED, k, error, linear_iterations)
            if k == 0:
                threshold = max(cfg.tolerance, cfg.relative_tolerance * error)
            elif not changed and error < threshold:
                self.active_set.project(dof_handler, state.solution, state.old_solution)
                return self._finish(NewtonStatus.CONVERGED, k, error, linear_iterations)

            constrained = np.concatenate([bc_dofs, self.active_set.indices])
            values = np.concatenate([
                np.zeros(len(bc_dofs)),
                self.active_set.constraint_values(state.solution, state.old_solution),
            ])

            try:
                update, n_linear = solve_constrained(matrix, -residual, constrained, values,
                                                     method=cfg.linear_solver)
            except LinearSolverError as exc:
                LOG.warning("Linear solver failed at Newton iteration %d: %s", k, exc)
                return self._finish(NewtonStatus.DIVERGED, k, error, linear_iterations)

            linear_iterations += n_linear
            state.solution += update

        LOG.warning("Newton solver did not converge in %d iterations (error %.3e)",
                    cfg.max_iterations, error)
        return self._finish(NewtonStatus.DIVERGED, cfg.max_iterations, error,
                            linear_iterations)

    def _constrained_norm(self, residual: np.ndarray, bc_dofs: np.ndarray) -> float:
        """Residual norm with Dirichlet and active rows zeroed."""
        masked = residual.copy()
        masked[bc_dofs] = 0.0
        masked[self.active_set.indices] = 0.0
        return float(np.linalg.norm(masked))

    def _finish(self, status: NewtonStatus, n_iterations: int, error: float,
                linear_iterations: int) -> NewtonResult:
        self.status = status
        return NewtonResult(status=status, n_iterations=n_iterations,
                            residual_norm=error,
                            active_set_size=self.active_set.size,
                            linear_iterations=linear_iterations)

    def active_set_size(self) -> int:
        return self.active_set.size

    def get_active_set(self) -> Set[int]:
        """Global DOF indices of the current active set."""
        return self.active_set.as_set()
