"""
Linear Triangle Element
=======================

P1 triangle carrying two displacement components and the phase field at
each node, with a symmetric 3-point quadrature rule (exact for quadratics).
"""

import numpy as np

# Barycentric coordinates of the 3-point rule
QUADRATURE_POINTS = np.array([
    [2 / 3, 1 / 6, 1 / 6],
    [1 / 6, 2 / 3, 1 / 6],
    [1 / 6, 1 / 6, 2 / 3],
])
QUADRATURE_WEIGHTS = np.array([1 / 3, 1 / 3, 1 / 3])


class TriangleP1Element:
    """
    Linear triangle element.

    Shape functions are the barycentric coordinates, so gradients are
    constant over the element.

    Attributes:
        nodes: shape (3, 2), node coordinates
        area: element area
        dN: shape (3, 2), shape function gradients [∂N_a/∂x, ∂N_a/∂y]
        N: shape (n_q, 3), shape function values at quadrature points
        JxW: shape (n_q,), quadrature weights times area
        q_points: shape (n_q, 2), physical quadrature point coordinates
    """

    def __init__(self, nodes: np.ndarray):
        """
        Initialize element.

        Args:
            nodes: shape (3, 2), coordinates of element nodes
        """
        self.nodes = np.asarray(nodes, dtype=np.float64)

        if self.nodes.shape != (3, 2):
            raise ValueError(f"nodes must have shape (3, 2), got {self.nodes.shape}")

        X = self.nodes
        signed_area = 0.5 * (
            (X[1, 0] - X[0, 0]) * (X[2, 1] - X[0, 1]) -
            (X[2, 0] - X[0, 0]) * (X[1, 1] - X[0, 1])
        )
        self.area = abs(signed_area)

        if self.area < 1e-15:
            raise ValueError("Element has zero area (degenerate triangle)")

        # N_i = (a_i + b_i*x + c_i*y) / (2*A)
        b = np.array([X[1, 1] - X[2, 1], X[2, 1] - X[0, 1], X[0, 1] - X[1, 1]])
        c = np.array([X[2, 0] - X[1, 0], X[0, 0] - X[2, 0], X[1, 0] - X[0, 0]])
        self.dN = np.column_stack([b, c]) / (2 * signed_area)

        self.N = QUADRATURE_POINTS.copy()
        self.JxW = QUADRATURE_WEIGHTS * self.area
        self.q_points = QUADRATURE_POINTS @ X

    @property
    def n_q_points(self) -> int:
        return len(self.JxW)

    def symmetric_gradient(self, u_e: np.ndarray) -> np.ndarray:
        """
        Strain tensor from nodal displacements.

        Args:
            u_e: shape (3, 2), nodal displacements

        Returns:
            ε: shape (2, 2)
        """
        grad_u = np.asarray(u_e).reshape(3, 2).T @ self.dN
        return 0.5 * (grad_u + grad_u.T)

    def values_at_quadrature(self, nodal: np.ndarray) -> np.ndarray:
        """Interpolate scalar nodal values to quadrature points, shape (n_q,)."""
        return self.N @ np.asarray(nodal)

    def gradient(self, nodal: np.ndarray) -> np.ndarray:
        """Gradient of a scalar nodal field, shape (2,)."""
        return np.asarray(nodal) @ self.dN

    def barycentric(self, point) -> np.ndarray:
        """Barycentric coordinates of a point (the shape function values)."""
        X = self.nodes
        p = np.asarray(point, dtype=np.float64)
        lam = np.empty(3)
        for a in range(3):
            lam[a] = 1 / 3 + self.dN[a] @ (p - X.mean(axis=0))
        return lam

    def lumped_mass(self) -> np.ndarray:
        """Row-sum lumped scalar mass, shape (3,)."""
        return np.full(3, self.area / 3)
