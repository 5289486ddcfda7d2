"""
Mesh Refinement
===============

Conforming local red-green refinement and nodal solution transfer.

Red: a triangle is split into four by its edge midpoints.
Green: a triangle with exactly one split edge is bisected from the
opposite vertex, so no hanging nodes remain.
"""

import numpy as np
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple
from .triangle_mesh import TriangleMesh


@dataclass
class MeshRefinement:
    """
    Result of a refinement pass.

    Nodes of the coarse mesh keep their indices; each new node is the
    midpoint of a coarse edge whose endpoints are stored in parent_nodes.

    Attributes:
        coarse: mesh before refinement
        mesh: refined mesh
        parent_nodes: shape (n_new_nodes, 2), endpoints of the split edges
        n_red: number of elements split into four
        n_green: number of elements bisected for conformity
    """
    coarse: TriangleMesh
    mesh: TriangleMesh
    parent_nodes: np.ndarray
    n_red: int = 0
    n_green: int = 0

    @property
    def n_new_nodes(self) -> int:
        return len(self.parent_nodes)

    def transfer(self, vector: np.ndarray, n_components: int = 1) -> np.ndarray:
        """
        Interpolate a nodal vector onto the refined mesh.

        The new node value is the mean of its parent edge endpoints, which
        is exact for piecewise linear fields.

        Args:
            vector: shape (n_components * coarse.n_nodes,), node-major layout
            n_components: values per node

        Returns:
            refined vector, shape (n_components * mesh.n_nodes,)
        """
        vector = np.asarray(vector, dtype=np.float64)
        if vector.size != n_components * self.coarse.n_nodes:
            raise ValueError(f"vector has wrong size: {vector.size} != "
                             f"{n_components * self.coarse.n_nodes}")

        values = vector.reshape(self.coarse.n_nodes, n_components)
        midpoint_values = 0.5 * (values[self.parent_nodes[:, 0]] +
                                 values[self.parent_nodes[:, 1]])
        return np.vstack([values, midpoint_values]).ravel()


def _propagate(mesh: TriangleMesh, red: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """Upgrade elements with two or more split edges until conforming."""
    split_edge = np.zeros(mesh.n_edges, dtype=bool)
    split_edge[mesh.element_to_edges[red].ravel()] = True

    while True:
        counts = split_edge[mesh.element_to_edges].sum(axis=1)
        upgrade = (~red) & (counts >= 2)
        if not np.any(upgrade):
            return red, split_edge
        red = red | upgrade
        split_edge[mesh.element_to_edges[upgrade].ravel()] = True


def _red_component(mesh: TriangleMesh, red: np.ndarray, seeds: np.ndarray) -> np.ndarray:
    """Red elements connected to the seeds through shared edges."""
    component = seeds.copy()
    frontier = seeds.copy()
    while np.any(frontier):
        touched = np.zeros(mesh.n_edges, dtype=bool)
        touched[mesh.element_to_edges[frontier].ravel()] = True
        frontier = red & ~component & touched[mesh.element_to_edges].any(axis=1)
        component |= frontier
    return component


def _closure(mesh: TriangleMesh, marked: np.ndarray,
             max_level: Optional[int] = None) -> Tuple[np.ndarray, np.ndarray]:
    """
    Red elements and split edges of a conforming refinement.

    With max_level, marked elements whose closure would split an element
    already at max_level are dropped, so no red child exceeds max_level.
    """
    marked = marked.copy()
    while True:
        red, split_edge = _propagate(mesh, marked)
        if max_level is None:
            return red, split_edge
        blocked = red & (mesh.levels >= max_level)
        if not np.any(blocked):
            return red, split_edge
        # Upgrades spread through adjacent red elements, so the marked
        # elements responsible for a blocked one lie in its red component
        marked &= ~_red_component(mesh, red, blocked)


def refine_elements(mesh: TriangleMesh, marked: Sequence[int],
                    max_level: Optional[int] = None) -> MeshRefinement:
    """
    Refine marked elements with conforming red-green closure.

    Red children are one level above their parent. Green children keep
    the parent level, so only red splits count towards max_level.

    Args:
        mesh: input mesh
        marked: element indices to split into four
        max_level: if given, no red child exceeds this level

    Returns:
        MeshRefinement with the new mesh and transfer data
    """
    marked = np.asarray(marked, dtype=np.int64)
    red = np.zeros(mesh.n_elements, dtype=bool)
    red[marked] = True
    red, split_edge = _closure(mesh, red, max_level)

    split_ids = np.where(split_edge)[0]
    midpoint_node = -np.ones(mesh.n_edges, dtype=np.int64)
    midpoint_node[split_ids] = mesh.n_nodes + np.arange(len(split_ids))

    parent_nodes = mesh.edges[split_ids]
    midpoints = 0.5 * (mesh.nodes[parent_nodes[:, 0]] + mesh.nodes[parent_nodes[:, 1]])
    new_nodes = np.vstack([mesh.nodes, midpoints])

    new_elements = []
    new_levels = []
    n_green = 0
    for elem_idx, elem_nodes in enumerate(mesh.elements):
        level = mesh.levels[elem_idx]
        mids = midpoint_node[mesh.element_to_edges[elem_idx]]

        if red[elem_idx]:
            n0, n1, n2 = elem_nodes
            m0, m1, m2 = mids
            new_elements.extend([[n0, m2, m1], [n1, m0, m2],
                                 [n2, m1, m0], [m0, m1, m2]])
            new_levels.extend([level + 1] * 4)
        elif np.any(mids >= 0):
            # Edge k is opposite to local node k
            k = int(np.argmax(mids >= 0))
            apex = elem_nodes[k]
            a = elem_nodes[(k + 1) % 3]
            b = elem_nodes[(k + 2) % 3]
            new_elements.extend([[apex, a, mids[k]], [apex, mids[k], b]])
            new_levels.extend([level] * 2)
            n_green += 1
        else:
            new_elements.append(list(elem_nodes))
            new_levels.append(level)

    refined = TriangleMesh(new_nodes, np.array(new_elements), np.array(new_levels))
    return MeshRefinement(coarse=mesh, mesh=refined, parent_nodes=parent_nodes,
                          n_red=int(red.sum()), n_green=n_green)


def refine_uniform(mesh: TriangleMesh) -> MeshRefinement:
    """
    Uniformly refine mesh by splitting each triangle into 4.

    Args:
        mesh: input mesh

    Returns:
        MeshRefinement
    """
    return refine_elements(mesh, np.arange(mesh.n_elements))


def refine_global(mesh: TriangleMesh, n_times: int) -> TriangleMesh:
    """Apply uniform refinement n_times."""
    for _ in range(n_times):
        mesh = refine_uniform(mesh).mesh
    return mesh


def refine_region(mesh: TriangleMesh, xlim: Tuple[float, float],
                  ylim: Tuple[float, float]) -> MeshRefinement:
    """
    Locally refine elements whose centroid lies inside a box.

    Args:
        mesh: input mesh
        xlim, ylim: (min, max) bounds of the box

    Returns:
        MeshRefinement
    """
    marked = mesh.get_elements_in_region(
        lambda x, y: xlim[0] <= x <= xlim[1] and ylim[0] <= y <= ylim[1]
    )
    return refine_elements(mesh, marked)
