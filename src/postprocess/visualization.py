"""
Visualization
=============

Plotting functions for the mesh, phase field, active set and load curves.
"""

import numpy as np
import matplotlib.pyplot as plt
from matplotlib.tri import Triangulation
from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from mesh.triangle_mesh import TriangleMesh
    from .diagnostics import DiagnosticsRecorder


def _triangulation(mesh: 'TriangleMesh') -> Triangulation:
    return Triangulation(mesh.nodes[:, 0], mesh.nodes[:, 1], mesh.elements)


def plot_mesh(mesh: 'TriangleMesh',
              ax: Optional[plt.Axes] = None,
              show_levels: bool = False,
              **kwargs) -> plt.Axes:
    """
    Plot mesh triangulation.

    Args:
        mesh: TriangleMesh instance
        ax: matplotlib axes (created if None)
        show_levels: color elements by refinement level
        **kwargs: passed to triplot

    Returns:
        ax: matplotlib axes
    """
    if ax is None:
        fig, ax = plt.subplots(figsize=(8, 8))

    tri = _triangulation(mesh)
    if show_levels:
        tpc = ax.tripcolor(tri, facecolors=mesh.levels.astype(float), cmap='Blues',
                           alpha=0.6)
        plt.colorbar(tpc, ax=ax, label='Refinement level')
    ax.triplot(tri, 'k-', lw=0.5, **kwargs)

    ax.set_aspect('equal')
    ax.set_xlabel('x')
    ax.set_ylabel('y')

    return ax


def plot_phase_field(mesh: 'TriangleMesh',
                     phase_field: np.ndarray,
                     ax: Optional[plt.Axes] = None,
                     cmap: str = 'RdBu',
                     colorbar: bool = True,
                     **kwargs) -> plt.Axes:
    """
    Plot the nodal phase field (1 intact, 0 cracked).

    Args:
        mesh: TriangleMesh instance
        phase_field: shape (n_nodes,)
        ax: matplotlib axes
        cmap: colormap name
        colorbar: whether to show colorbar
        **kwargs: passed to tripcolor

    Returns:
        ax: matplotlib axes
    """
    if ax is None:
        fig, ax = plt.subplots(figsize=(10, 8))

    tcf = ax.tripcolor(_triangulation(mesh), phase_field, shading='gouraud',
                       cmap=cmap, vmin=0.0, vmax=1.0, **kwargs)
    ax.set_aspect('equal')

    if colorbar:
        plt.colorbar(tcf, ax=ax, label='Phase field')

    ax.set_xlabel('x')
    ax.set_ylabel('y')

    return ax


def plot_active_set(mesh: 'TriangleMesh',
                    active_nodes: np.ndarray,
                    ax: Optional[plt.Axes] = None,
                    **kwargs) -> plt.Axes:
    """
    Mark nodes whose phase-field DOF is in the active set.

    Args:
        mesh: TriangleMesh instance
        active_nodes: node indices
        ax: matplotlib axes
        **kwargs: passed to plot

    Returns:
        ax: matplotlib axes
    """
    if ax is None:
        fig, ax = plt.subplots(figsize=(8, 8))

    ax.triplot(_triangulation(mesh), color='0.7', lw=0.3)
    active_nodes = np.asarray(active_nodes, dtype=np.int64)
    ax.plot(mesh.nodes[active_nodes, 0], mesh.nodes[active_nodes, 1], 'r.', ms=4,
            label=f'active ({len(active_nodes)})', **kwargs)

    ax.set_aspect('equal')
    ax.legend()
    ax.set_xlabel('x')
    ax.set_ylabel('y')

    return ax


def plot_load_curve(recorder: 'DiagnosticsRecorder',
                    name: str,
                    component: str = 'y',
                    ax: Optional[plt.Axes] = None,
                    **kwargs) -> plt.Axes:
    """
    Plot a recorded boundary load against time.

    Args:
        recorder: DiagnosticsRecorder with the load recorded
        name: boundary condition name
        component: 'x' or 'y'
        ax: matplotlib axes
        **kwargs: passed to plot

    Returns:
        ax: matplotlib axes
    """
    if component not in ('x', 'y'):
        raise ValueError(f"Unknown component: {component}")
    if ax is None:
        fig, ax = plt.subplots(figsize=(8, 6))

    arrays = recorder.get_arrays()
    ax.plot(arrays['time'], arrays[f'{name}_{component}'], 'b-o', ms=3, **kwargs)
    ax.set_xlabel('Time')
    ax.set_ylabel(f'Load {component} ({name})')
    ax.grid(True, alpha=0.3)

    return ax


def plot_cod(recorder: 'DiagnosticsRecorder',
             ax: Optional[plt.Axes] = None) -> plt.Axes:
    """Crack opening displacement profiles, one curve per recorded step."""
    if ax is None:
        fig, ax = plt.subplots(figsize=(8, 6))

    for step, values in recorder.cod_history:
        ax.plot(recorder.cod_lines, values, label=f'step {step}')

    ax.set_xlabel('Position')
    ax.set_ylabel('COD')
    ax.grid(True, alpha=0.3)
    if recorder.cod_history:
        ax.legend(fontsize=8)

    return ax
