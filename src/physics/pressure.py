"""
Pressure Coupling
=================

Piecewise-constant fluid pressure inside the crack (hydraulic fracturing).

The pressure is staggered: it is derived from the previous converged phase
field and stays fixed while the Newton solver runs.
"""

import numpy as np
from typing import Callable, Optional, Union, TYPE_CHECKING

if TYPE_CHECKING:
    from mesh.triangle_mesh import TriangleMesh


def classify_elements(mesh: 'TriangleMesh', phase_field: np.ndarray,
                      threshold: float = 0.9) -> np.ndarray:
    """
    Crack/intact classification per element.

    An element is cracked when its mean phase field is below the threshold.

    Args:
        mesh: TriangleMesh instance
        phase_field: nodal phase-field values, shape (n_nodes,)
        threshold: classification threshold

    Returns:
        cracked: boolean array, shape (n_elements,)
    """
    phase_field = np.asarray(phase_field)
    if len(phase_field) != mesh.n_nodes:
        raise ValueError(f"phase_field has wrong size: {len(phase_field)} != {mesh.n_nodes}")
    mean_phi = phase_field[mesh.elements].mean(axis=1)
    return mean_phi < threshold


class PressureCoupling:
    """
    Coupling layer providing the per-element pressure load.

    The pressure in an element is magnitude(time) when the element is
    classified as cracked and zero otherwise.

    Attributes:
        magnitude: function(time) -> pressure value
        crack_threshold: mean-φ threshold for the crack classification
        cracked: current classification, shape (n_elements,)
        values: current per-element pressure, shape (n_elements,)
    """

    def __init__(self, magnitude: Union[float, Callable[[float], float]],
                 crack_threshold: float = 0.9):
        if callable(magnitude):
            self.magnitude = magnitude
        else:
            value = float(magnitude)
            self.magnitude = lambda t: value
        self.crack_threshold = crack_threshold
        self.cracked = np.zeros(0, dtype=bool)
        self.values = np.zeros(0)

    def update(self, mesh: 'TriangleMesh', phase_field: np.ndarray,
               time: float) -> np.ndarray:
        """
        Recompute the pressure field.

        Args:
            mesh: current mesh
            phase_field: previous converged nodal phase field
            time: physical time of the step being solved

        Returns:
            pressure: shape (n_elements,)
        """
        self.cracked = classify_elements(mesh, phase_field, self.crack_threshold)
        self.values = np.where(self.cracked, self.magnitude(time), 0.0)
        return self.values

    def is_cracked(self, element: int) -> bool:
        """Crack/intact query for a single element."""
        return bool(self.cracked[element])

    def n_cracked(self) -> int:
        """Number of elements currently classified as cracked."""
        return int(np.count_nonzero(self.cracked))


def linear_ramp(rate: float, offset: float = 0.0,
                maximum: Optional[float] = None) -> Callable[[float], float]:
    """
    Pressure magnitude p(t) = offset + rate·t, optionally capped.

    Args:
        rate: pressure increase per unit time
        offset: pressure at t = 0
        maximum: optional upper bound

    Returns:
        function(time) -> pressure
    """
    def magnitude(t: float) -> float:
        p = offset + rate * t
        if maximum is not None:
            p = min(p, maximum)
        return p
    return magnitude
