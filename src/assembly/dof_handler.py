"""
DOF Handler
===========

Degree-of-freedom numbering for the coupled displacement/phase-field system.

DOF ordering per node: [u_x, u_y, φ], global index 3*node + component.
"""

import numpy as np
from typing import List, TYPE_CHECKING

from elements.p1_element import TriangleP1Element

if TYPE_CHECKING:
    from mesh.triangle_mesh import TriangleMesh

DIM = 2
N_COMPONENTS = DIM + 1
PHASE_COMPONENT = DIM


class DofHandler:
    """
    DOF bookkeeping bound to one mesh.

    The sparsity pattern (row/column index arrays of the element blocks)
    is computed once here and reused by every assembly on this mesh.

    Attributes:
        mesh: TriangleMesh instance
        n_dofs: total number of DOFs
        element_dof_indices: shape (n_elements, 9)
        displacement_dofs: indices of all displacement DOFs
        phase_dofs: indices of all phase-field DOFs
        sparsity_rows, sparsity_cols: COO index arrays, shape (n_elements * 81,)
    """

    def __init__(self, mesh: 'TriangleMesh'):
        self.mesh = mesh
        self.n_dofs = N_COMPONENTS * mesh.n_nodes

        offsets = np.arange(N_COMPONENTS)
        self.element_dof_indices = (
            N_COMPONENTS * mesh.elements[:, :, None] + offsets[None, None, :]
        ).reshape(mesh.n_elements, 3 * N_COMPONENTS)

        all_nodes = np.arange(mesh.n_nodes)
        self.phase_dofs = N_COMPONENTS * all_nodes + PHASE_COMPONENT
        self.displacement_dofs = np.sort(np.concatenate(
            [N_COMPONENTS * all_nodes + c for c in range(DIM)]
        ))

        n_local = self.element_dof_indices.shape[1]
        self.sparsity_rows = np.repeat(self.element_dof_indices, n_local, axis=1).ravel()
        self.sparsity_cols = np.tile(self.element_dof_indices, (1, n_local)).ravel()

        self._elements = None
        self._lumped_mass = None

    @property
    def dofs_per_cell(self) -> int:
        return self.element_dof_indices.shape[1]

    @property
    def elements(self) -> List[TriangleP1Element]:
        """Element objects for every cell, built on first use."""
        if self._elements is None:
            self._elements = [TriangleP1Element(self.mesh.nodes[self.mesh.elements[e]])
                              for e in range(self.mesh.n_elements)]
        return self._elements

    def element_dofs(self, elem_idx: int) -> np.ndarray:
        """Global DOF indices of an element, node-major."""
        return self.element_dof_indices[elem_idx]

    def dof(self, node: int, component: int) -> int:
        """Global index of one nodal component."""
        return N_COMPONENTS * node + component

    def component_view(self, vector: np.ndarray, component: int) -> np.ndarray:
        """Nodal values of one component (a copy), shape (n_nodes,)."""
        return np.asarray(vector)[component::N_COMPONENTS].copy()

    def displacement_field(self, vector: np.ndarray) -> np.ndarray:
        """Nodal displacements, shape (n_nodes, 2)."""
        return np.asarray(vector).reshape(-1, N_COMPONENTS)[:, :DIM].copy()

    def phase_field(self, vector: np.ndarray) -> np.ndarray:
        """Nodal phase-field values, shape (n_nodes,)."""
        return self.component_view(vector, PHASE_COMPONENT)

    def lumped_phase_mass(self) -> np.ndarray:
        """
        Lumped mass diagonal of the phase-field block.

        Returns:
            mass: shape (n_nodes,), one entry per phase-field DOF
        """
        if self._lumped_mass is None:
            mass = np.zeros(self.mesh.n_nodes)
            np.add.at(mass, self.mesh.elements.ravel(),
                      np.repeat(self.mesh.element_areas / 3, 3))
            self._lumped_mass = mass
        return self._lumped_mass

    def nodal_dofs(self, nodes: np.ndarray, component: int) -> np.ndarray:
        """Global DOF indices of one component at a set of nodes."""
        return N_COMPONENTS * np.asarray(nodes, dtype=np.int64) + component

    def make_vector(self, displacement=None, phase_field=None) -> np.ndarray:
        """
        Build a global vector from nodal fields.

        Args:
            displacement: shape (n_nodes, 2) or None (zero)
            phase_field: shape (n_nodes,) or None (one)

        Returns:
            vector: shape (n_dofs,)
        """
        values = np.zeros((self.mesh.n_nodes, N_COMPONENTS))
        values[:, PHASE_COMPONENT] = 1.0
        if displacement is not None:
            values[:, :DIM] = displacement
        if phase_field is not None:
            values[:, PHASE_COMPONENT] = phase_field
        return values.ravel()
