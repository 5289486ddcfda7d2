"""
Phase-Field Fracture Framework
==============================

Monolithic active-set Newton solver for quasi-static brittle fracture with
an anisotropic stress split, crack pressure, adaptive time stepping and
crack-front mesh refinement.

Modules:
    mesh: Triangle mesh, generators, red-green refinement and mesh I/O
    elements: Linear triangle element with quadrature
    physics: Material, stress decomposition, initial defects, pressure coupling
    assembly: DOF handling, coupled residual/Jacobian and boundary conditions
    solvers: Active set, Newton solver, time stepping, mesh adaptation, run loop
    postprocess: Diagnostics, snapshots and plotting
    benchmarks: Pressurized crack and notched tension problems
"""

from . import mesh
from . import elements
from . import physics
from . import assembly
from . import solvers
from . import postprocess

__version__ = "0.1.0"
__all__ = ["mesh", "elements", "physics", "assembly", "solvers", "postprocess"]
