"""
Single Edge Notched Tension Benchmark
=====================================

Mode-I fracture of a unit square with a notch from the left edge to the
center, loaded by a prescribed vertical displacement of the top edge.

Boundary conditions:
    - Bottom (y=0): u_y = 0
    - Bottom-left corner: u_x = 0 to prevent rigid body motion
    - Top (y=L): u_y = rate * t
"""

import sys
from typing import Dict, Optional

from assembly.boundary_conditions import BoundaryConditionManager
from mesh.mesh_generators import create_square_mesh
from physics.material import PhaseFieldMaterial
from solvers.newton_solver import NewtonConfig
from solvers.run_loop import (
    AdaptivityConfig, OutputConfig, PhaseFieldSimulation, SimulationConfig
)
from solvers.time_stepping import TimeStepConfig


# Default parameters (kN, mm)
TENSION_PARAMS = {
    # Geometry
    'L': 1.0,
    'crack_length': 0.5,
    'n_cells': 20,

    # Material
    'lame_mu': 80.77,            # kN/mm²
    'lame_lambda': 121.15,       # kN/mm²
    'kappa': 1e-10,
    'gamma_c': 2.7e-3,           # kN/mm
    'epsilon_factor': 2.0,

    # Loading
    'displacement_rate': 1e-2,   # mm per unit time
    'end_time': 1.0,
    'time_step': 0.01,
    'minimum_time_step': 1e-8,

    # Adaptivity
    'initial_refinement_level': 0,
    'n_adaptive_steps': 1,
    'phi_refinement_value': 0.5,
}


def default_config(params: Optional[Dict] = None) -> SimulationConfig:
    """SimulationConfig for the notched tension test."""
    p = TENSION_PARAMS.copy()
    if params is not None:
        p.update(params)

    L = p['L']
    return SimulationConfig(
        material=PhaseFieldMaterial(p['lame_mu'], p['lame_lambda'], p['kappa'],
                                    p['gamma_c']),
        newton=NewtonConfig(),
        time_stepping=TimeStepConfig(end_time=p['end_time'],
                                     schedule=[(0.0, p['time_step'])],
                                     minimum_time_step=p['minimum_time_step']),
        adaptivity=AdaptivityConfig(
            initial_refinement_level=p['initial_refinement_level'],
            n_adaptive_steps=p['n_adaptive_steps'],
            phi_refinement_value=p['phi_refinement_value'],
            local_prerefinement_region=((0.0, L), (0.4 * L, 0.6 * L)),
        ),
        output=OutputConfig(boundary_loads=['top']),
        defects=[((0.0, 0.5 * L), (p['crack_length'], 0.5 * L))],
        epsilon_factor=p['epsilon_factor'],
    )


def build_tension(params: Optional[Dict] = None,
                  config: Optional[SimulationConfig] = None) -> PhaseFieldSimulation:
    """
    Set up the notched tension simulation.

    Args:
        params: overrides of TENSION_PARAMS
        config: full configuration (default: default_config(params))

    Returns:
        PhaseFieldSimulation
    """
    p = TENSION_PARAMS.copy()
    if params is not None:
        p.update(params)
    config = config or default_config(p)

    L = p['L']
    tol = 1e-10 * L
    rate = p['displacement_rate']
    mesh = create_square_mesh(L, p['n_cells'])

    bcs = BoundaryConditionManager()
    bcs.fix_region(lambda x, y: y < tol, 'y', name='bottom')
    bcs.prescribe_point((0.0, 0.0), 'x', 0.0, name='corner')
    bcs.prescribe_displacement(lambda x, y: y > L - tol, 'y',
                               lambda t: rate * t, name='top')

    return PhaseFieldSimulation(mesh, config, bcs)


def main(argv=None) -> int:
    """Command-line entry point for this benchmark."""
    from benchmarks.cli import main as cli_main
    return cli_main(['tension'] + list(argv or []))


if __name__ == '__main__':
    raise SystemExit(main(sys.argv[1:]))
