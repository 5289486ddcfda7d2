"""
Elements Module
===============

Linear triangle element with quadrature.
"""

from .p1_element import TriangleP1Element, QUADRATURE_POINTS, QUADRATURE_WEIGHTS

__all__ = ["TriangleP1Element", "QUADRATURE_POINTS", "QUADRATURE_WEIGHTS"]
