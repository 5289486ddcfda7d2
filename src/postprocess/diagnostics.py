"""
Diagnostics
===========

Scalar time series of a simulation: boundary loads, crack opening
displacement and solver statistics.
"""

import os
import numpy as np
from scipy.integrate import trapezoid
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple, TYPE_CHECKING

from assembly.dof_handler import DIM
from assembly.global_assembly import assemble_coupled_system

if TYPE_CHECKING:
    from physics.material import PhaseFieldMaterial
    from solvers.run_loop import PhaseFieldSimulation, StepRecord
    from solvers.state import SimulationState


def compute_boundary_load(state: 'SimulationState', material: 'PhaseFieldMaterial',
                          nodes: np.ndarray) -> np.ndarray:
    """
    Reaction force on a set of nodes.

    The displacement part of the residual at constrained nodes is the
    traction integrated over the adjacent boundary.

    Args:
        state: SimulationState (uses the current solution)
        material: PhaseFieldMaterial
        nodes: node indices, e.g. of a loaded boundary

    Returns:
        load: shape (2,), [F_x, F_y]
    """
    residual, _ = assemble_coupled_system(
        state.dof_handler, material,
        state.solution, state.old_solution, state.old_old_solution,
        time_steps=state.time_steps,
        include_pressure=False,
        assemble_matrix=False,
        use_old_time_step_phi=state.use_old_time_step_phi,
    )
    dof_handler = state.dof_handler
    return np.array([residual[dof_handler.nodal_dofs(nodes, c)].sum() for c in range(DIM)])


def cod_line_positions(start: float, end: float, n_lines: int) -> np.ndarray:
    """Equally spaced line positions from start to end."""
    if n_lines < 2:
        return np.array([start])
    return start + (end - start) / (n_lines - 1) * np.arange(n_lines)


def compute_cod(state: 'SimulationState', lines: Sequence[float],
                direction: int = 0, n_samples: int = 200) -> np.ndarray:
    """
    Crack opening displacement along straight lines crossing the crack.

        COD = | ∫ u · ∇φ ds |

    For direction 0 the lines are x = const (crack along x), for
    direction 1 they are y = const.

    Args:
        state: SimulationState
        lines: coordinates of the lines
        direction: axis the lines are normal to
        n_samples: sample points per line

    Returns:
        cod: shape (len(lines),)
    """
    if direction not in (0, 1):
        raise ValueError(f"direction must be 0 or 1, got {direction}")

    mesh = state.mesh
    dof_handler = state.dof_handler
    u_nodal = dof_handler.displacement_field(state.solution)
    phi_nodal = dof_handler.phase_field(state.solution)

    along = 1 - direction
    s = np.linspace(mesh.nodes[:, along].min(), mesh.nodes[:, along].max(), n_samples)

    cod = np.zeros(len(lines))
    for k, position in enumerate(lines):
        integrand = np.zeros(n_samples)
        for i, coord in enumerate(s):
            point = np.empty(2)
            point[direction] = position
            point[along] = coord
            elem_idx = mesh.find_element(point)
            if elem_idx < 0:
                continue
            elem = dof_handler.elements[elem_idx]
            nodes = mesh.elements[elem_idx]
            u = elem.barycentric(point) @ u_nodal[nodes]
            integrand[i] = u @ elem.gradient(phi_nodal[nodes])
        cod[k] = abs(trapezoid(integrand, s))
    return cod


@dataclass
class DiagnosticRecord:
    """Diagnostics of one accepted step."""
    step: int
    time: float
    time_step: float
    n_iterations: int
    active_set_size: int
    n_elements: int
    loads: Dict[str, np.ndarray] = field(default_factory=dict)


class DiagnosticsRecorder:
    """
    Collects diagnostics after each accepted step.

    Usable directly as a step callback of PhaseFieldSimulation.

    Attributes:
        boundary_loads: names of boundary conditions whose reaction is recorded
        cod_lines: line positions for the crack opening displacement
        cod_direction: axis the COD lines are normal to
        records: list of DiagnosticRecord
        cod_history: list of (step, cod values)
    """

    def __init__(self, boundary_loads: Sequence[str] = (),
                 cod_lines: Optional[Sequence[float]] = None,
                 cod_direction: int = 0):
        self.boundary_loads = list(boundary_loads)
        self.cod_lines = np.asarray(cod_lines) if cod_lines is not None else None
        self.cod_direction = cod_direction
        self.records: List[DiagnosticRecord] = []
        self.cod_history: List[Tuple[int, np.ndarray]] = []

    def __call__(self, simulation: 'PhaseFieldSimulation', record: 'StepRecord') -> None:
        state = simulation.state
        loads = {}
        for name in self.boundary_loads:
            nodes = simulation.bcs.boundary_nodes(state.mesh, name)
            loads[name] = compute_boundary_load(state, simulation.material, nodes)

        self.records.append(DiagnosticRecord(
            step=record.step,
            time=record.time,
            time_step=record.time_step,
            n_iterations=record.n_iterations,
            active_set_size=record.active_set_size,
            n_elements=record.n_elements,
            loads=loads,
        ))

        if self.cod_lines is not None and len(self.cod_lines) > 0:
            self.cod_history.append(
                (record.step, compute_cod(state, self.cod_lines, self.cod_direction)))

    def get_arrays(self) -> Dict[str, np.ndarray]:
        """
        Diagnostics as numpy arrays.

        Returns:
            Dictionary with keys 'step', 'time', 'time_step', 'iterations',
            'active_set', 'n_elements' and '<name>_x', '<name>_y' per load
        """
        arrays = {
            'step': np.array([r.step for r in self.records], dtype=np.int64),
            'time': np.array([r.time for r in self.records]),
            'time_step': np.array([r.time_step for r in self.records]),
            'iterations': np.array([r.n_iterations for r in self.records], dtype=np.int64),
            'active_set': np.array([r.active_set_size for r in self.records], dtype=np.int64),
            'n_elements': np.array([r.n_elements for r in self.records], dtype=np.int64),
        }
        for name in self.boundary_loads:
            values = np.array([r.loads[name] for r in self.records]).reshape(-1, DIM)
            arrays[f'{name}_x'] = values[:, 0]
            arrays[f'{name}_y'] = values[:, 1]
        return arrays

    def to_csv(self, filename: str) -> None:
        """
        Export the step series to a CSV file.

        Args:
            filename: output filename
        """
        arrays = self.get_arrays()
        keys = list(arrays.keys())
        with open(filename, 'w') as f:
            f.write(','.join(keys) + '\n')
            for i in range(len(self.records)):
                f.write(','.join(_format(arrays[key][i]) for key in keys) + '\n')

    def cod_to_csv(self, filename: str) -> None:
        """Export the COD history as rows of (step, line, cod)."""
        with open(filename, 'w') as f:
            f.write('step,line,cod\n')
            for step, values in self.cod_history:
                for line, value in zip(self.cod_lines, values):
                    f.write(f"{step},{line:.10e},{value:.10e}\n")

    def write(self, output_dir: str) -> None:
        """Write all series into a directory."""
        os.makedirs(output_dir, exist_ok=True)
        self.to_csv(os.path.join(output_dir, 'diagnostics.csv'))
        if self.cod_history:
            self.cod_to_csv(os.path.join(output_dir, 'cod.csv'))

    def get_summary(self) -> Dict:
        """Summary values of the recorded series."""
        if not self.records:
            return {}
        arrays = self.get_arrays()
        summary = {
            'n_steps': len(self.records),
            'final_time': arrays['time'][-1],
            'max_active_set': int(np.max(arrays['active_set'])),
            'total_iterations': int(np.sum(arrays['iterations'])),
        }
        for name in self.boundary_loads:
            summary[f'peak_{name}'] = float(np.max(np.hypot(arrays[f'{name}_x'],
                                                            arrays[f'{name}_y'])))
        return summary


def _format(value) -> str:
    if isinstance(value, (np.integer, int)):
        return str(int(value))
    return f"{float(value):.10e}"
