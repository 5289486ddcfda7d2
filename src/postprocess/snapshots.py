"""
Snapshots
=========

Per-step VTU output of the field state.
"""

import logging
import os
import numpy as np
from typing import TYPE_CHECKING

from assembly.dof_handler import N_COMPONENTS, PHASE_COMPONENT
from assembly.global_assembly import compute_element_stresses
from mesh.mesh_io import write_vtu

if TYPE_CHECKING:
    from solvers.run_loop import PhaseFieldSimulation, StepRecord

LOG = logging.getLogger(__name__)


class SnapshotWriter:
    """
    Writes solution-NNN.vtu files; usable as a step callback.

    Fields: displacement, phase_field, active_set (point data) and
    pressure, sigma_xx, sigma_yy (cell data).
    """

    def __init__(self, output_dir: str, interval: int = 1):
        self.output_dir = os.path.join(output_dir, 'vtu')
        self.interval = interval
        self.files = []
        os.makedirs(self.output_dir, exist_ok=True)

    def __call__(self, simulation: 'PhaseFieldSimulation', record: 'StepRecord') -> None:
        if self.interval <= 0 or record.step % self.interval != 0:
            return
        self.write(simulation, record.step)

    def write(self, simulation: 'PhaseFieldSimulation', step: int) -> str:
        state = simulation.state
        mesh = state.mesh
        dof_handler = state.dof_handler

        active = np.zeros(mesh.n_nodes)
        active_dofs = np.fromiter(simulation.newton.get_active_set(), dtype=np.int64)
        active[(active_dofs - PHASE_COMPONENT) // N_COMPONENTS] = 1.0

        if simulation.pressure is not None and len(simulation.pressure.values) == mesh.n_elements:
            pressure = simulation.pressure.values
        else:
            pressure = np.zeros(mesh.n_elements)

        stresses = compute_element_stresses(dof_handler, simulation.material, state.solution)

        filename = os.path.join(self.output_dir, f"solution-{step:03d}.vtu")
        write_vtu(mesh, filename,
                  point_data={
                      'displacement': state.displacement,
                      'phase_field': state.phase_field,
                      'active_set': active,
                  },
                  cell_data={
                      'pressure': pressure,
                      'sigma_xx': stresses[:, 0, 0],
                      'sigma_yy': stresses[:, 1, 1],
                  })
        self.files.append(filename)
        LOG.debug("Wrote %s", filename)
        return filename
