"""
Triangle Mesh
=============

Linear triangle mesh with edge connectivity and per-element refinement levels.
"""

import numpy as np
from typing import Optional, Callable


class TriangleMesh:
    """
    Conforming triangle mesh.

    Attributes:
        nodes: np.ndarray, shape (n_nodes, 2)
        elements: np.ndarray, shape (n_elements, 3), counterclockwise
        levels: np.ndarray, shape (n_elements,), refinement level per element
        edges: np.ndarray, shape (n_edges, 2), smaller node index first
        element_to_edges: np.ndarray, shape (n_elements, 3)
            Local edge k is opposite to local node k
        edge_to_elements: list of lists, one or two elements per edge
        boundary_edges: edges with a single element
        boundary_nodes: nodes of the boundary edges
        element_areas: shape (n_elements,)
        edge_lengths: shape (n_edges,)
    """

    LOCAL_EDGE_NODES = [(1, 2), (2, 0), (0, 1)]

    def __init__(self, nodes: np.ndarray, elements: np.ndarray,
                 levels: Optional[np.ndarray] = None):
        self.nodes = np.asarray(nodes, dtype=np.float64)
        self.elements = np.asarray(elements, dtype=np.int64)

        if self.nodes.ndim != 2 or self.nodes.shape[1] != 2:
            raise ValueError("nodes must have shape (n_nodes, 2)")
        if self.elements.ndim != 2 or self.elements.shape[1] != 3:
            raise ValueError("elements must have shape (n_elements, 3)")
        if self.elements.size and (self.elements.min() < 0 or
                                   self.elements.max() >= len(self.nodes)):
            raise ValueError("element connectivity references unknown nodes")

        if levels is None:
            levels = np.zeros(len(self.elements), dtype=np.int64)
        self.levels = np.asarray(levels, dtype=np.int64)
        if self.levels.shape != (len(self.elements),):
            raise ValueError("levels must have shape (n_elements,)")

        clockwise = self._signed_areas() < 0
        if np.any(clockwise):
            self.elements[clockwise] = self.elements[clockwise][:, [0, 2, 1]]

        self._build_edges()
        self.element_areas = np.abs(self._signed_areas())
        self.edge_lengths = np.linalg.norm(
            self.nodes[self.edges[:, 1]] - self.nodes[self.edges[:, 0]], axis=1)

    @property
    def n_nodes(self) -> int:
        return len(self.nodes)

    @property
    def n_elements(self) -> int:
        return len(self.elements)

    @property
    def n_edges(self) -> int:
        return len(self.edges)

    @property
    def max_level(self) -> int:
        """Highest refinement level present."""
        return int(self.levels.max()) if self.n_elements else 0

    def _signed_areas(self) -> np.ndarray:
        X = self.nodes[self.elements]
        d1 = X[:, 1] - X[:, 0]
        d2 = X[:, 2] - X[:, 0]
        return 0.5 * (d1[:, 0] * d2[:, 1] - d2[:, 0] * d1[:, 1])

    def _build_edges(self) -> None:
        local = self.elements[:, self.LOCAL_EDGE_NODES].reshape(-1, 2)
        edges, inverse = np.unique(np.sort(local, axis=1), axis=0, return_inverse=True)

        self.edges = edges.reshape(-1, 2).astype(np.int64)
        self.element_to_edges = np.asarray(inverse, dtype=np.int64).reshape(-1, 3)

        self.edge_to_elements = [[] for _ in range(len(self.edges))]
        for elem_idx, elem_edges in enumerate(self.element_to_edges):
            for edge_idx in elem_edges:
                self.edge_to_elements[edge_idx].append(elem_idx)
        self._edge_index = {(int(a), int(b)): i for i, (a, b) in enumerate(self.edges)}

        counts = np.bincount(self.element_to_edges.ravel(), minlength=len(self.edges))
        self.boundary_edges = np.where(counts == 1)[0]
        self.boundary_nodes = np.unique(self.edges[self.boundary_edges].ravel())

    def element_centroids(self) -> np.ndarray:
        """Centroids of all elements, shape (n_elements, 2)."""
        return self.nodes[self.elements].mean(axis=1)

    def minimum_mesh_size(self) -> float:
        """Smallest edge length."""
        return float(self.edge_lengths.min())

    def edge_index(self, n1: int, n2: int) -> int:
        """Global index of the edge connecting two nodes."""
        return self._edge_index[(min(n1, n2), max(n1, n2))]

    def get_nodes_in_region(self, region_func: Callable[[float, float], bool]) -> np.ndarray:
        """
        Nodes satisfying a condition.

        Args:
            region_func: function(x, y) -> bool

        Returns:
            node_indices: array of node indices
        """
        mask = [bool(region_func(x, y)) for x, y in self.nodes]
        return np.flatnonzero(np.array(mask, dtype=bool))

    def get_elements_in_region(self, region_func: Callable[[float, float], bool]) -> np.ndarray:
        """Elements whose centroid satisfies a condition."""
        mask = [bool(region_func(x, y)) for x, y in self.element_centroids()]
        return np.flatnonzero(np.array(mask, dtype=bool))

    def find_element(self, point, tol: float = 1e-12) -> int:
        """
        Index of an element containing a point, or -1.

        Args:
            point: (x, y)
            tol: barycentric tolerance

        Returns:
            element index
        """
        p = np.asarray(point, dtype=np.float64)
        X = self.nodes[self.elements]
        d1 = X[:, 1] - X[:, 0]
        d2 = X[:, 2] - X[:, 0]
        dp = p - X[:, 0]
        det = d1[:, 0] * d2[:, 1] - d2[:, 0] * d1[:, 1]
        l1 = (dp[:, 0] * d2[:, 1] - d2[:, 0] * dp[:, 1]) / det
        l2 = (d1[:, 0] * dp[:, 1] - dp[:, 0] * d1[:, 1]) / det
        inside = (l1 >= -tol) & (l2 >= -tol) & (1 - l1 - l2 >= -tol)
        hits = np.flatnonzero(inside)
        return int(hits[0]) if len(hits) else -1
