"""
Tests for Mesh Module
=====================
"""

import numpy as np
import pytest
import sys
import os

import meshio

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from mesh.triangle_mesh import TriangleMesh
from mesh.mesh_generators import (
    create_rectangle_mesh, create_single_element,
    create_two_element_patch, create_square_mesh
)
from mesh.refinement import (
    refine_elements, refine_uniform, refine_global, refine_region
)
from mesh.mesh_io import read_gmsh, write_vtu


def assert_conforming(mesh, xlim=(0.0, 1.0), ylim=(0.0, 1.0)):
    """Every edge has one or two elements; single-element edges lie on the box."""
    for edge_idx, elems in enumerate(mesh.edge_to_elements):
        assert len(elems) in (1, 2)
        if len(elems) == 1:
            mid = mesh.nodes[mesh.edges[edge_idx]].mean(axis=0)
            on_box = (np.isclose(mid[0], xlim[0]) or np.isclose(mid[0], xlim[1]) or
                      np.isclose(mid[1], ylim[0]) or np.isclose(mid[1], ylim[1]))
            assert on_box, f"hanging edge {edge_idx} at {mid}"


class TestTriangleMesh:
    """Tests for TriangleMesh class."""

    def test_simple_triangle(self):
        """Single element - verify connectivity."""
        nodes = np.array([[0, 0], [1, 0], [0, 1]], dtype=float)
        mesh = TriangleMesh(nodes, np.array([[0, 1, 2]]))

        assert mesh.n_nodes == 3
        assert mesh.n_elements == 1
        assert mesh.n_edges == 3
        assert len(mesh.boundary_edges) == 3
        assert len(mesh.boundary_nodes) == 3
        assert list(mesh.levels) == [0]

    def test_two_triangles(self):
        """Two elements sharing an edge."""
        mesh = create_two_element_patch()

        assert mesh.n_edges == 5
        internal = [i for i, elems in enumerate(mesh.edge_to_elements) if len(elems) == 2]
        assert len(internal) == 1
        assert set(mesh.edges[internal[0]]) == {0, 2}
        assert mesh.edge_index(2, 0) == internal[0]

    def test_edge_convention(self):
        """Edge k is opposite to node k."""
        mesh = create_single_element()
        elem_edges = mesh.element_to_edges[0]
        assert set(mesh.edges[elem_edges[0]]) == {1, 2}
        assert set(mesh.edges[elem_edges[1]]) == {0, 2}
        assert set(mesh.edges[elem_edges[2]]) == {0, 1}

    def test_clockwise_input_is_reoriented(self):
        nodes = np.array([[0, 0], [1, 0], [0, 1]], dtype=float)
        mesh = TriangleMesh(nodes, np.array([[0, 2, 1]]))
        assert np.all(mesh._signed_areas() > 0)
        assert np.isclose(mesh.element_areas[0], 0.5)

    def test_invalid_input(self):
        with pytest.raises(ValueError):
            TriangleMesh(np.zeros((3, 3)), np.array([[0, 1, 2]]))
        with pytest.raises(ValueError):
            TriangleMesh(np.zeros((3, 2)), np.array([[0, 1, 3]]))
        with pytest.raises(ValueError):
            TriangleMesh(np.eye(2, 2).tolist() + [[0, 0]], np.array([[0, 1, 2]]),
                         levels=np.array([0, 1]))

    def test_edge_lengths_and_mesh_size(self):
        mesh = create_single_element()
        assert np.isclose(sorted(mesh.edge_lengths)[-1], np.sqrt(2))
        assert np.isclose(mesh.minimum_mesh_size(), 1.0)

    def test_regions(self):
        mesh = create_square_mesh(1.0, 4)
        left = mesh.get_nodes_in_region(lambda x, y: x < 1e-10)
        assert len(left) == 5
        lower = mesh.get_elements_in_region(lambda x, y: y < 0.25)
        assert len(lower) == 8

    def test_find_element(self):
        mesh = create_two_element_patch()
        assert mesh.find_element((0.9, 0.1)) == 0
        assert mesh.find_element((0.1, 0.9)) == 1
        assert mesh.find_element((1.5, 0.5)) == -1


class TestMeshGenerators:
    """Tests for mesh generation functions."""

    def test_rectangle_mesh_dimensions(self):
        mesh = create_rectangle_mesh(2.0, 1.0, 4, 2)
        assert mesh.n_nodes == 15
        assert mesh.n_elements == 16
        assert np.isclose(np.sum(mesh.element_areas), 2.0)

    @pytest.mark.parametrize("pattern", ["right", "left", "alternating"])
    def test_rectangle_mesh_patterns(self, pattern):
        mesh = create_rectangle_mesh(1.0, 1.0, 3, 3, pattern)
        assert mesh.n_elements == 18
        assert np.isclose(np.sum(mesh.element_areas), 1.0)
        assert_conforming(mesh)

    def test_unknown_pattern(self):
        with pytest.raises(ValueError):
            create_rectangle_mesh(1.0, 1.0, 2, 2, 'diagonal')

    def test_origin(self):
        mesh = create_rectangle_mesh(1.0, 1.0, 2, 2, origin=(-0.5, -0.5))
        assert np.allclose(mesh.nodes.min(axis=0), [-0.5, -0.5])
        assert np.allclose(mesh.nodes.max(axis=0), [0.5, 0.5])

    def test_single_element_custom(self):
        coords = np.array([[0, 0], [2, 0], [1, 1]], dtype=float)
        mesh = create_single_element(coords)
        assert np.isclose(mesh.element_areas[0], 1.0)

    def test_square_mesh(self):
        mesh = create_square_mesh(4.0, 5)
        assert mesh.n_nodes == 36
        assert np.isclose(np.sum(mesh.element_areas), 16.0)


class TestRefinement:
    """Tests for red-green refinement and solution transfer."""

    def test_uniform_refinement(self):
        mesh = create_square_mesh(1.0, 2)
        refinement = refine_uniform(mesh)
        fine = refinement.mesh

        assert fine.n_elements == 4 * mesh.n_elements
        assert fine.n_nodes == mesh.n_nodes + mesh.n_edges
        assert refinement.n_red == mesh.n_elements
        assert refinement.n_green == 0
        assert np.all(fine.levels == 1)
        assert np.isclose(np.sum(fine.element_areas), 1.0)
        assert_conforming(fine)

    def test_refine_global(self):
        mesh = refine_global(create_single_element(), 2)
        assert mesh.n_elements == 16
        assert np.all(mesh.levels == 2)
        assert np.isclose(mesh.minimum_mesh_size(), 0.25)

    def test_local_refinement_is_conforming(self):
        mesh = create_square_mesh(1.0, 3)
        refinement = refine_elements(mesh, [4])
        fine = refinement.mesh

        assert refinement.n_red >= 1
        assert refinement.n_green > 0
        assert np.isclose(np.sum(fine.element_areas), 1.0)
        assert_conforming(fine)

    def test_levels_after_local_refinement(self):
        mesh = create_square_mesh(1.0, 3)
        refinement = refine_elements(mesh, [0])
        fine = refinement.mesh
        # Red children get level 1, green children keep level 0
        assert np.count_nonzero(fine.levels == 1) == 4 * refinement.n_red
        n_untouched = mesh.n_elements - refinement.n_red - refinement.n_green
        assert np.count_nonzero(fine.levels == 0) == n_untouched + 2 * refinement.n_green
        assert fine.max_level == 1

    def test_max_level_caps_closure(self):
        mesh = refine_elements(create_square_mesh(1.0, 2), [0]).mesh
        coarse = np.where(mesh.levels == 0)[0]
        refinement = refine_elements(mesh, coarse, max_level=1)
        fine = refinement.mesh

        assert fine.max_level <= 1
        assert np.isclose(np.sum(fine.element_areas), 1.0)
        assert_conforming(fine)

    def test_max_level_reached_refines_nothing(self):
        mesh = create_square_mesh(1.0, 2)
        refinement = refine_elements(mesh, np.arange(mesh.n_elements), max_level=0)
        assert refinement.n_red == 0
        assert refinement.n_green == 0
        assert refinement.mesh.n_elements == mesh.n_elements

    def test_max_level_above_current_has_no_effect(self):
        mesh = create_square_mesh(1.0, 3)
        capped = refine_elements(mesh, [4], max_level=1)
        free = refine_elements(mesh, [4])
        assert capped.n_red == free.n_red
        assert capped.mesh.n_elements == free.mesh.n_elements

    def test_repeated_refinement_is_conforming(self):
        mesh = create_square_mesh(1.0, 2)
        for _ in range(3):
            centroids = mesh.element_centroids()
            closest = np.argmin(np.linalg.norm(centroids - 0.5, axis=1))
            mesh = refine_elements(mesh, [closest]).mesh
            assert_conforming(mesh)
        assert np.isclose(np.sum(mesh.element_areas), 1.0)

    def test_refine_region(self):
        mesh = create_square_mesh(1.0, 4)
        refinement = refine_region(mesh, (0.0, 0.5), (0.0, 0.25))
        assert refinement.n_red >= 4
        assert_conforming(refinement.mesh)

    def test_transfer_is_exact_for_linear_fields(self):
        mesh = create_square_mesh(1.0, 3)
        refinement = refine_elements(mesh, [2, 7])
        fine = refinement.mesh

        def fields(nodes):
            x, y = nodes[:, 0], nodes[:, 1]
            return np.column_stack([2 * x + 3 * y + 1, -x, 0.5 * y]).ravel()

        transferred = refinement.transfer(fields(mesh.nodes), 3)
        assert transferred.shape == (3 * fine.n_nodes,)
        assert np.allclose(transferred, fields(fine.nodes))

    def test_transfer_keeps_coarse_values(self):
        mesh = create_two_element_patch()
        refinement = refine_elements(mesh, [0])
        values = np.array([1.0, 2.0, 3.0, 4.0])
        transferred = refinement.transfer(values)
        assert np.allclose(transferred[:4], values)
        assert len(transferred) == refinement.mesh.n_nodes

    def test_transfer_wrong_size(self):
        refinement = refine_uniform(create_single_element())
        with pytest.raises(ValueError):
            refinement.transfer(np.zeros(5), 3)


class TestMeshIO:
    """Tests for meshio-based reading and writing."""

    def test_write_vtu(self, tmp_path):
        mesh = refine_elements(create_two_element_patch(), [0]).mesh
        phi = np.linspace(0.0, 1.0, mesh.n_nodes)
        u = np.column_stack([phi, -phi])
        filename = str(tmp_path / "state.vtu")

        write_vtu(mesh, filename,
                  point_data={'phase_field': phi, 'displacement': u},
                  cell_data={'pressure': np.ones(mesh.n_elements)})

        data = meshio.read(filename)
        assert len(data.points) == mesh.n_nodes
        assert np.allclose(data.point_data['phase_field'], phi)
        assert data.point_data['displacement'].shape == (mesh.n_nodes, 3)
        assert np.allclose(data.cell_data['level'][0], mesh.levels)

    def test_read_gmsh(self, tmp_path):
        points = np.array([[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [1.0, 1.0, 0.0],
                           [0.0, 1.0, 0.0], [5.0, 5.0, 0.0]])
        cells = [("triangle", np.array([[0, 1, 2], [0, 2, 3]]))]
        filename = str(tmp_path / "square.msh")
        meshio.write(filename, meshio.Mesh(points, cells), file_format="gmsh22",
                     binary=False)

        mesh = read_gmsh(filename)
        assert mesh.n_nodes == 4
        assert mesh.n_elements == 2
        assert np.isclose(np.sum(mesh.element_areas), 1.0)

    def test_read_without_triangles(self, tmp_path):
        points = np.array([[0.0, 0.0, 0.0], [1.0, 0.0, 0.0]])
        filename = str(tmp_path / "line.msh")
        meshio.write(filename, meshio.Mesh(points, [("line", np.array([[0, 1]]))]),
                     file_format="gmsh22", binary=False)
        with pytest.raises(ValueError):
            read_gmsh(filename)


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
