"""
Mesh Module
===========

Triangle mesh, structured generators, red-green refinement and mesh I/O.
"""

from .triangle_mesh import TriangleMesh
from .mesh_io import read_gmsh, write_vtu
from .mesh_generators import (
    create_rectangle_mesh,
    create_square_mesh,
    create_single_element,
    create_two_element_patch,
)
from .refinement import (
    MeshRefinement,
    refine_elements,
    refine_uniform,
    refine_global,
    refine_region,
)

__all__ = [
    "TriangleMesh",
    "read_gmsh",
    "write_vtu",
    "create_rectangle_mesh",
    "create_square_mesh",
    "create_single_element",
    "create_two_element_patch",
    "MeshRefinement",
    "refine_elements",
    "refine_uniform",
    "refine_global",
    "refine_region",
]
