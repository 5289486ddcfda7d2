"""
Simulation State
================

The mutable state shared by the Newton solver, the time-step controller
and the mesh adaptation: discretization, the three retained solution
generations, and the clock.
"""

import numpy as np
from typing import Optional, TYPE_CHECKING

from assembly.dof_handler import DofHandler

if TYPE_CHECKING:
    from mesh.triangle_mesh import TriangleMesh


class SimulationState:
    """
    Field state of a running simulation.

    `old_solution` and `old_old_solution` only change in accept(), at the
    start of a new time step, or when all three generations are replaced
    together after mesh refinement.

    Attributes:
        mesh: current TriangleMesh
        dof_handler: DofHandler bound to mesh
        solution: current trial state
        old_solution: last accepted state
        old_old_solution: state accepted before that
        time: physical time of the step being solved
        time_step: current step size
        old_time_step: size of the last accepted step
        use_old_time_step_phi: degrade with φ_old instead of the extrapolation
        step: number of accepted steps
    """

    def __init__(self, mesh: 'TriangleMesh', initial: Optional[np.ndarray] = None,
                 time_step: float = 1.0):
        self.mesh = mesh
        self.dof_handler = DofHandler(mesh)

        if initial is None:
            initial = self.dof_handler.make_vector()
        initial = np.asarray(initial, dtype=np.float64)
        if initial.size != self.dof_handler.n_dofs:
            raise ValueError(f"initial state has wrong size: {initial.size} != "
                             f"{self.dof_handler.n_dofs}")

        self.solution = initial.copy()
        self.old_solution = initial.copy()
        self.old_old_solution = initial.copy()

        self.time = 0.0
        self.time_step = time_step
        self.old_time_step = time_step
        self.use_old_time_step_phi = False
        self.step = 0

    @property
    def n_dofs(self) -> int:
        return self.dof_handler.n_dofs

    @property
    def time_steps(self):
        """(time_step, old_time_step) pair consumed by the assembler."""
        return self.time_step, self.old_time_step

    @property
    def displacement(self) -> np.ndarray:
        return self.dof_handler.displacement_field(self.solution)

    @property
    def phase_field(self) -> np.ndarray:
        return self.dof_handler.phase_field(self.solution)

    @property
    def old_phase_field(self) -> np.ndarray:
        return self.dof_handler.phase_field(self.old_solution)

    def begin_step(self, time_step: float) -> None:
        """Move the clock to the end of the next step."""
        self.time_step = time_step
        self.time += time_step

    def accept(self) -> None:
        """Copy the converged state forward."""
        self.old_old_solution = self.old_solution.copy()
        self.old_solution = self.solution.copy()
        self.old_time_step = self.time_step
        self.use_old_time_step_phi = False
        self.step += 1

    def rollback(self) -> None:
        """Discard the trial state."""
        self.solution = self.old_solution.copy()

    def cut_time_step(self, new_time_step: float) -> None:
        """Retry the current step with a smaller step size."""
        self.time -= self.time_step
        self.time_step = new_time_step
        self.time += self.time_step
        self.rollback()
        self.use_old_time_step_phi = True

    def rebuild(self, mesh: 'TriangleMesh', solution: np.ndarray,
                old_solution: np.ndarray, old_old_solution: np.ndarray) -> None:
        """
        Replace the discretization and all three generations at once.

        Raises:
            ValueError: if any vector does not fit the new mesh
        """
        dof_handler = DofHandler(mesh)
        for vector in (solution, old_solution, old_old_solution):
            if np.asarray(vector).size != dof_handler.n_dofs:
                raise ValueError(f"transferred vector has wrong size: "
                                 f"{np.asarray(vector).size} != {dof_handler.n_dofs}")

        self.mesh = mesh
        self.dof_handler = dof_handler
        self.solution = np.array(solution, dtype=np.float64)
        self.old_solution = np.array(old_solution, dtype=np.float64)
        self.old_old_solution = np.array(old_old_solution, dtype=np.float64)
