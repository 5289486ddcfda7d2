"""
Active Set
==========

Primal-dual active set for the irreversibility constraint φ ≤ φ_old.

A phase-field DOF i is active when

    -R_i / M_ii + c (φ_i - φ_old_i) > tol

with R the residual, M the lumped phase-field mass and c the
complementarity constant. Active DOFs are pinned to φ_old for the next
linear solve.

Differences |φ_i - φ_old_i| up to increment_tolerance are treated as
zero, so that roundoff in the linear solve cannot switch a DOF with
c ~ 1e8.
"""

import numpy as np
from typing import Set, TYPE_CHECKING

if TYPE_CHECKING:
    from assembly.dof_handler import DofHandler


class ActiveSetManager:
    """
    Tracks which phase-field DOFs have the irreversibility bound enforced.

    Attributes:
        constant: complementarity constant c
        tolerance: classification threshold
        increment_tolerance: |φ - φ_old| treated as zero
        indices: sorted global DOF indices of the active set
    """

    def __init__(self, constant: float = 1e8, tolerance: float = 1e-8,
                 increment_tolerance: float = 1e-12):
        if constant <= 0:
            raise ValueError(f"complementarity constant must be positive, got {constant}")
        if increment_tolerance < 0:
            raise ValueError(f"increment_tolerance must be non-negative, got {increment_tolerance}")
        self.constant = constant
        self.tolerance = tolerance
        self.increment_tolerance = increment_tolerance
        self.indices = np.array([], dtype=np.int64)

    def reset(self) -> None:
        """Forget the set; it is rebuilt from scratch every time step."""
        self.indices = np.array([], dtype=np.int64)

    def _increment(self, dof_handler: 'DofHandler', solution: np.ndarray,
                   old_solution: np.ndarray) -> np.ndarray:
        phase_dofs = dof_handler.phase_dofs
        increment = solution[phase_dofs] - old_solution[phase_dofs]
        increment[np.abs(increment) <= self.increment_tolerance] = 0.0
        return increment

    def classify(self, dof_handler: 'DofHandler', solution: np.ndarray,
                 old_solution: np.ndarray, residual: np.ndarray) -> np.ndarray:
        """
        Active phase-field DOFs for a trial state, without storing them.

        Returns:
            sorted global DOF indices
        """
        phase_dofs = dof_handler.phase_dofs
        mass = dof_handler.lumped_phase_mass()
        indicator = (-residual[phase_dofs] / mass
                     + self.constant * self._increment(dof_handler, solution, old_solution))
        return phase_dofs[indicator > self.tolerance]

    def update(self, dof_handler: 'DofHandler', solution: np.ndarray,
               old_solution: np.ndarray, residual: np.ndarray) -> bool:
        """
        Reclassify the phase-field DOFs.

        Returns:
            True if the active set changed
        """
        new_indices = self.classify(dof_handler, solution, old_solution, residual)
        changed = not np.array_equal(new_indices, self.indices)
        self.indices = new_indices
        return changed

    def project(self, dof_handler: 'DofHandler', solution: np.ndarray,
                old_solution: np.ndarray) -> int:
        """
        Clip φ to φ_old where it exceeds it by no more than increment_tolerance.

        Modifies solution in place.

        Returns:
            number of clipped DOFs
        """
        phase_dofs = dof_handler.phase_dofs
        excess = solution[phase_dofs] - old_solution[phase_dofs]
        clipped = phase_dofs[(excess > 0) & (excess <= self.increment_tolerance)]
        solution[clipped] = old_solution[clipped]
        return len(clipped)

    @property
    def size(self) -> int:
        return len(self.indices)

    def as_set(self) -> Set[int]:
        return set(int(i) for i in self.indices)

    def constraint_values(self, solution: np.ndarray,
                          old_solution: np.ndarray) -> np.ndarray:
        """Newton increments that pin the active DOFs to φ_old."""
        return old_solution[self.indices] - solution[self.indices]
