"""
Assembly Module
===============

DOF numbering, coupled residual/Jacobian assembly and boundary conditions.
"""

from .dof_handler import DofHandler, DIM, N_COMPONENTS, PHASE_COMPONENT
from .global_assembly import (
    assemble_coupled_system,
    extrapolated_phase_field,
    compute_element_stresses,
    compute_energies,
)
from .boundary_conditions import (
    DisplacementBC,
    BoundaryConditionManager,
    merge_bcs,
)

__all__ = [
    "DofHandler",
    "DIM",
    "N_COMPONENTS",
    "PHASE_COMPONENT",
    "assemble_coupled_system",
    "extrapolated_phase_field",
    "compute_element_stresses",
    "compute_energies",
    "DisplacementBC",
    "BoundaryConditionManager",
    "merge_bcs",
]
