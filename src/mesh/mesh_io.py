"""
Mesh I/O Functions
==================

Read meshes and write solution snapshots through meshio.
"""

import numpy as np
import meshio
from typing import Dict, Optional
from .triangle_mesh import TriangleMesh


def read_gmsh(filename: str) -> TriangleMesh:
    """
    Read Gmsh .msh file and return TriangleMesh.

    Args:
        filename: path to .msh file

    Returns:
        TriangleMesh instance
    """
    mesh_data = meshio.read(filename)
    nodes = mesh_data.points[:, :2]

    elements = None
    for cell_block in mesh_data.cells:
        if cell_block.type == "triangle":
            elements = cell_block.data
            break

    if elements is None:
        raise ValueError("No triangle elements found in mesh file")

    # Drop points that only belong to lower-dimensional entities
    used = np.unique(elements)
    renumber = -np.ones(len(nodes), dtype=np.int64)
    renumber[used] = np.arange(len(used))
    return TriangleMesh(nodes[used], renumber[elements])


def write_vtu(mesh: TriangleMesh, filename: str,
              point_data: Optional[Dict[str, np.ndarray]] = None,
              cell_data: Optional[Dict[str, np.ndarray]] = None) -> None:
    """
    Write VTU file for ParaView visualization.

    Args:
        mesh: TriangleMesh instance
        filename: output filename (.vtu)
        point_data: dict of node-based scalar/vector fields
        cell_data: dict of element-based scalar fields
    """
    points = np.column_stack([mesh.nodes, np.zeros(mesh.n_nodes)])

    point_data = dict(point_data) if point_data else {}
    for name, data in point_data.items():
        data = np.asarray(data)
        # ParaView expects 3-component vectors
        if data.ndim == 2 and data.shape[1] == 2:
            point_data[name] = np.column_stack([data, np.zeros(len(data))])

    cell_data_dict = {}
    if cell_data:
        cell_data_dict = {name: [np.asarray(data)] for name, data in cell_data.items()}
    cell_data_dict['level'] = [mesh.levels.astype(np.float64)]

    meshio_mesh = meshio.Mesh(
        points=points,
        cells=[("triangle", mesh.elements)],
        point_data=point_data,
        cell_data=cell_data_dict,
    )
    meshio.write(filename, meshio_mesh)
