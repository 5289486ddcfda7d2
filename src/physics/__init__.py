"""
Physics Module
==============

Material parameters, anisotropic stress decomposition, initial defects
and the crack pressure coupling.
"""

from .material import PhaseFieldMaterial
from .stress_decomposition import (
    strain_plus,
    decompose,
    decompose_du,
    elastic_energy_split,
)
from .initial_values import defect_phase_field, distance_to_segment
from .pressure import PressureCoupling, classify_elements, linear_ramp

__all__ = [
    "PhaseFieldMaterial",
    "strain_plus",
    "decompose",
    "decompose_du",
    "elastic_energy_split",
    "defect_phase_field",
    "distance_to_segment",
    "PressureCoupling",
    "classify_elements",
    "linear_ramp",
]
