"""
Mesh Adaptation
===============

Refinement along the diffuse crack front.

An element is marked when its nodal phase field strictly spans the
threshold (min φ < threshold < max φ) and its level is below the maximum.
The conforming closure is capped at the same maximum level.
"""

import logging
import numpy as np
from typing import Optional, TYPE_CHECKING

from assembly.dof_handler import N_COMPONENTS
from mesh.refinement import MeshRefinement, refine_elements
from .exceptions import SolutionTransferError

if TYPE_CHECKING:
    from .state import SimulationState

LOG = logging.getLogger(__name__)


class MeshAdaptationTrigger:
    """
    Decides on and executes crack-front refinement.

    Attributes:
        threshold: phase-field value marking the crack front
        max_level: elements at this level are not refined further
        n_adaptations: number of refinements performed
    """

    def __init__(self, threshold: float = 0.5, max_level: int = 1):
        if not 0.0 < threshold < 1.0:
            raise ValueError(f"threshold must be in (0, 1), got {threshold}")
        if max_level < 0:
            raise ValueError(f"max_level must be non-negative, got {max_level}")
        self.threshold = threshold
        self.max_level = max_level
        self.n_adaptations = 0

    def mark(self, state: 'SimulationState') -> np.ndarray:
        """
        Elements to refine for the current trial phase field.

        Returns:
            element indices (possibly empty)
        """
        mesh = state.mesh
        phi = state.phase_field[mesh.elements]
        spans = (phi.min(axis=1) < self.threshold) & (phi.max(axis=1) > self.threshold)
        return np.where(spans & (mesh.levels < self.max_level))[0]

    def adapt(self, state: 'SimulationState') -> Optional[MeshRefinement]:
        """
        Refine marked elements and move all three generations to the new mesh.

        The state is only modified if every transfer succeeds.

        Returns:
            MeshRefinement, or None if nothing was refined

        Raises:
            SolutionTransferError: if a transfer fails (state untouched)
        """
        marked = self.mark(state)
        if len(marked) == 0:
            return None

        refinement = refine_elements(state.mesh, marked, self.max_level)
        if refinement.n_red == 0:
            LOG.debug("%d elements marked, none refinable below level %d",
                      len(marked), self.max_level)
            return None

        try:
            transferred = [refinement.transfer(vector, N_COMPONENTS)
                           for vector in (state.solution, state.old_solution,
                                          state.old_old_solution)]
            state.rebuild(refinement.mesh, *transferred)
        except ValueError as exc:
            raise SolutionTransferError(f"Solution transfer failed: {exc}") from exc

        self.n_adaptations += 1
        LOG.info("Adapting mesh: %d marked, %d red, %d green, %d elements",
                 len(marked), refinement.n_red, refinement.n_green,
                 refinement.mesh.n_elements)
        return refinement
