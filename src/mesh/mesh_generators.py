"""
Mesh Generators
===============

Structured triangle meshes for tests and benchmarks.
"""

import numpy as np
from typing import Optional
from .triangle_mesh import TriangleMesh

PATTERNS = ('right', 'left', 'alternating')


def create_rectangle_mesh(Lx: float, Ly: float, nx: int, ny: int,
                          pattern: str = 'right',
                          origin=(0.0, 0.0)) -> TriangleMesh:
    """
    Structured mesh of [x0, x0+Lx] × [y0, y0+Ly], two triangles per cell.

    Args:
        Lx, Ly: domain dimensions
        nx, ny: number of cells in x and y
        pattern: cell diagonal
            'right': lower-left to upper-right
            'left': lower-right to upper-left
            'alternating': checkerboard of both
        origin: lower-left corner

    Returns:
        TriangleMesh instance
    """
    if nx < 1 or ny < 1:
        raise ValueError(f"nx and ny must be positive, got {nx}, {ny}")
    if pattern not in PATTERNS:
        raise ValueError(f"Unknown pattern: {pattern}")

    xs = origin[0] + np.linspace(0.0, Lx, nx + 1)
    ys = origin[1] + np.linspace(0.0, Ly, ny + 1)
    X, Y = np.meshgrid(xs, ys)
    nodes = np.column_stack([X.ravel(), Y.ravel()])

    I, J = np.meshgrid(np.arange(nx), np.arange(ny))
    I, J = I.ravel(), J.ravel()
    n00 = J * (nx + 1) + I
    n10 = n00 + 1
    n01 = n00 + nx + 1
    n11 = n01 + 1

    if pattern == 'right':
        right = np.ones(len(I), dtype=bool)
    elif pattern == 'left':
        right = np.zeros(len(I), dtype=bool)
    else:
        right = (I + J) % 2 == 0
    right = right[:, None]

    first = np.where(right, np.column_stack([n00, n10, n11]),
                     np.column_stack([n00, n10, n01]))
    second = np.where(right, np.column_stack([n00, n11, n01]),
                      np.column_stack([n10, n11, n01]))
    elements = np.stack([first, second], axis=1).reshape(-1, 3)

    return TriangleMesh(nodes, elements)


def create_square_mesh(L: float, n: int, pattern: str = 'right') -> TriangleMesh:
    """Structured mesh of [0, L] × [0, L] with n cells per side."""
    return create_rectangle_mesh(L, L, n, n, pattern)


def create_single_element(node_coords: Optional[np.ndarray] = None) -> TriangleMesh:
    """
    One triangle, by default the unit right triangle (0,0), (1,0), (0,1).
    """
    if node_coords is None:
        node_coords = np.array([[0.0, 0.0], [1.0, 0.0], [0.0, 1.0]])
    return TriangleMesh(node_coords, np.array([[0, 1, 2]]))


def create_two_element_patch() -> TriangleMesh:
    """Unit square split along the (0,0)-(1,1) diagonal."""
    nodes = np.array([[0.0, 0.0], [1.0, 0.0], [1.0, 1.0], [0.0, 1.0]])
    return TriangleMesh(nodes, np.array([[0, 1, 2], [0, 2, 3]]))
