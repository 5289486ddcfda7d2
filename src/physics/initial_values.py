"""
Initial Values
==============

Initial phase-field profiles for pre-existing defects.
"""

import numpy as np
from typing import Sequence, Tuple

Segment = Tuple[Tuple[float, float], Tuple[float, float]]


def distance_to_segment(points: np.ndarray, start, end) -> np.ndarray:
    """
    Euclidean distance from points to a line segment.

    Args:
        points: shape (n, 2)
        start, end: segment endpoints

    Returns:
        distances: shape (n,)
    """
    points = np.atleast_2d(np.asarray(points, dtype=np.float64))
    a = np.asarray(start, dtype=np.float64)
    b = np.asarray(end, dtype=np.float64)
    ab = b - a
    length_sq = ab @ ab

    if length_sq == 0:
        return np.linalg.norm(points - a, axis=1)

    t = np.clip((points - a) @ ab / length_sq, 0.0, 1.0)
    closest = a + t[:, None] * ab
    return np.linalg.norm(points - closest, axis=1)


def defect_phase_field(points: np.ndarray, defects: Sequence[Segment],
                       width: float) -> np.ndarray:
    """
    Phase field with zeros along defect segments.

    φ = 0 at points closer than `width` to any defect, 1 elsewhere.

    Args:
        points: shape (n, 2), evaluation points (usually mesh nodes)
        defects: sequence of ((x0, y0), (x1, y1)) segments
        width: half-width of the initial crack band

    Returns:
        phi: shape (n,)
    """
    if width <= 0:
        raise ValueError(f"width must be positive, got {width}")

    points = np.atleast_2d(np.asarray(points, dtype=np.float64))
    phi = np.ones(len(points))
    for start, end in defects:
        phi[distance_to_segment(points, start, end) <= width] = 0.0
    return phi
