"""
Boundary Conditions
===================

Dirichlet displacement conditions, possibly time dependent.

Conditions are stored by region so they can be re-resolved after the mesh
has been refined.
"""

import numpy as np
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple, Union, TYPE_CHECKING

from .dof_handler import DIM

if TYPE_CHECKING:
    from mesh.triangle_mesh import TriangleMesh
    from .dof_handler import DofHandler

Value = Union[float, Callable[[float], float]]

COMPONENTS = {'x': (0,), 'y': (1,), 'both': (0, 1)}


@dataclass
class DisplacementBC:
    """
    One Dirichlet condition.

    Attributes:
        name: label for summaries
        component: 'x', 'y' or 'both'
        value: constant or function(time) -> value
        region: function(x, y) -> bool selecting nodes, or None
        nodes: fixed node indices (used when region is None)
        point: single point; the closest node is constrained
    """
    name: str
    component: str
    value: Value = 0.0
    region: Optional[Callable[[float, float], bool]] = None
    nodes: Optional[np.ndarray] = None
    point: Optional[Tuple[float, float]] = None

    def __post_init__(self):
        if self.component not in COMPONENTS:
            raise ValueError(f"Unknown component: {self.component}")
        if self.region is None and self.nodes is None and self.point is None:
            raise ValueError("A boundary condition needs a region, nodes or a point")

    def resolve_nodes(self, mesh: 'TriangleMesh') -> np.ndarray:
        """Node indices this condition applies to on a given mesh."""
        if self.region is not None:
            return mesh.get_nodes_in_region(self.region)
        if self.point is not None:
            distances = np.linalg.norm(mesh.nodes - np.asarray(self.point), axis=1)
            return np.array([int(np.argmin(distances))], dtype=np.int64)
        return np.asarray(self.nodes, dtype=np.int64)

    def evaluate(self, time: float) -> float:
        return float(self.value(time)) if callable(self.value) else float(self.value)


def merge_bcs(*bc_pairs) -> Tuple[np.ndarray, np.ndarray]:
    """
    Merge multiple boundary condition specifications.

    Args:
        *bc_pairs: tuples of (bc_dofs, bc_values)

    Returns:
        merged_dofs: combined DOF indices
        merged_values: combined values (last value wins for duplicates)
    """
    dof_to_value = {}
    for dofs, values in bc_pairs:
        for dof, val in zip(dofs, values):
            dof_to_value[int(dof)] = float(val)

    merged_dofs = np.array(sorted(dof_to_value.keys()), dtype=np.int64)
    merged_values = np.array([dof_to_value[d] for d in merged_dofs], dtype=np.float64)
    return merged_dofs, merged_values


class BoundaryConditionManager:
    """
    Collection of displacement conditions for a simulation.

    Provides convenient interface for defining BCs and imposing them on a
    solution vector at a given time.
    """

    def __init__(self):
        self.conditions: List[DisplacementBC] = []

    def fix_region(self, region_func: Callable[[float, float], bool],
                   component: str = 'both', name: str = None) -> None:
        """
        Fix nodes in a region.

        Args:
            region_func: function(x, y) -> bool
            component: 'x', 'y', or 'both'
            name: optional name for this BC
        """
        self.conditions.append(DisplacementBC(name or "fix_region", component, 0.0,
                                              region=region_func))

    def prescribe_displacement(self, region_func: Callable[[float, float], bool],
                               component: str, value: Value,
                               name: str = None) -> None:
        """
        Prescribe displacement in a region.

        Args:
            region_func: function(x, y) -> bool
            component: 'x', 'y' or 'both'
            value: constant or function(time) -> displacement
            name: optional name
        """
        self.conditions.append(DisplacementBC(name or "prescribed_disp", component, value,
                                              region=region_func))

    def fix_nodes(self, node_indices: np.ndarray, component: str = 'both',
                  name: str = None) -> None:
        """Fix specific nodes."""
        self.conditions.append(DisplacementBC(name or "fix_nodes", component, 0.0,
                                              nodes=np.asarray(node_indices)))

    def prescribe_point(self, point: Tuple[float, float], component: str,
                        value: Value, name: str = None) -> None:
        """Prescribe displacement of the node closest to a point."""
        self.conditions.append(DisplacementBC(name or "point", component, value,
                                              point=tuple(point)))

    def values(self, dof_handler: 'DofHandler',
               time: float) -> Tuple[np.ndarray, np.ndarray]:
        """
        Constrained DOFs and their values at a given time.

        Returns:
            bc_dofs, bc_values
        """
        pairs = []
        for bc in self.conditions:
            nodes = bc.resolve_nodes(dof_handler.mesh)
            value = bc.evaluate(time)
            for c in COMPONENTS[bc.component]:
                dofs = dof_handler.nodal_dofs(nodes, c)
                pairs.append((dofs, np.full(len(dofs), value)))
        if not pairs:
            return np.array([], dtype=np.int64), np.array([], dtype=np.float64)
        return merge_bcs(*pairs)

    def constrained_dofs(self, dof_handler: 'DofHandler') -> np.ndarray:
        """Indices of all constrained displacement DOFs."""
        return self.values(dof_handler, 0.0)[0]

    def impose(self, dof_handler: 'DofHandler', solution: np.ndarray,
               time: float) -> np.ndarray:
        """
        Write prescribed values into the solution (in place).

        Returns:
            the constrained DOF indices
        """
        dofs, values = self.values(dof_handler, time)
        solution[dofs] = values
        return dofs

    def boundary_nodes(self, mesh: 'TriangleMesh', name: str) -> np.ndarray:
        """Nodes of the named condition on a mesh."""
        for bc in self.conditions:
            if bc.name == name:
                return bc.resolve_nodes(mesh)
        raise KeyError(f"No boundary condition named {name!r}")

    def summary(self) -> str:
        """Return summary of boundary conditions."""
        lines = [f"Boundary Conditions Summary ({len(self.conditions)} conditions):"]
        for bc in self.conditions:
            lines.append(f"  - {bc.name}: component {bc.component}")
        return "\n".join(lines)
