"""
Pressurized Crack Benchmark
===========================

Hydraulic fracture of a square block with a central pre-existing crack.

Geometry:
    - Square domain L x L, all outer edges clamped
    - Horizontal crack of length 2a through the center
    - Loading: crack pressure p(t) = rate * t acting in elements whose
      mean phase field is below 0.9

Expected Results:
    - The crack opens symmetrically; once the pressure reaches the
      critical value both tips propagate along the crack line
"""

import sys
from typing import Dict, Optional, Tuple

from assembly.boundary_conditions import BoundaryConditionManager
from mesh.mesh_generators import create_square_mesh
from physics.material import PhaseFieldMaterial
from physics.pressure import PressureCoupling, linear_ramp
from solvers.newton_solver import NewtonConfig
from solvers.run_loop import (
    AdaptivityConfig, OutputConfig, PhaseFieldSimulation, SimulationConfig
)
from solvers.time_stepping import TimeStepConfig


# Default parameters (reference material of the solver)
PRESSURIZED_PARAMS = {
    # Geometry
    'L': 4.0,                    # domain size
    'half_crack_length': 0.2,    # a
    'n_cells': 20,               # cells per side of the coarse mesh

    # Material
    'lame_mu': 1000.0,
    'lame_lambda': 1e6,
    'kappa': 1e-12,
    'gamma_c': 1.0,
    'epsilon_factor': 2.0,       # epsilon = factor * finest mesh size

    # Loading
    'pressure_rate': 1e3,        # pressure per unit time
    'end_time': 1.0,
    'time_step': 0.1,
    'minimum_time_step': 1e-8,

    # Adaptivity
    'initial_refinement_level': 0,
    'n_adaptive_steps': 2,
    'phi_refinement_value': 0.5,
}


def default_config(params: Optional[Dict] = None) -> SimulationConfig:
    """
    SimulationConfig for the pressurized crack.

    Args:
        params: overrides of PRESSURIZED_PARAMS

    Returns:
        SimulationConfig
    """
    p = PRESSURIZED_PARAMS.copy()
    if params is not None:
        p.update(params)

    L, a = p['L'], p['half_crack_length']
    center = 0.5 * L
    band = 4 * a

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
            local_prerefinement_region=((center - band, center + band),
                                        (center - band / 2, center + band / 2)),
        ),
        output=OutputConfig(cod_lines=11, cod_range=(center - a, center + a)),
        defects=[((center - a, center), (center + a, center))],
        epsilon_factor=p['epsilon_factor'],
    )


def build_pressurized_crack(params: Optional[Dict] = None,
                            config: Optional[SimulationConfig] = None
                            ) -> Tuple[PhaseFieldSimulation, PressureCoupling]:
    """
    Set up the pressurized crack simulation.

    Args:
        params: overrides of PRESSURIZED_PARAMS
        config: full configuration (default: default_config(params))

    Returns:
        simulation, pressure coupling
    """
    p = PRESSURIZED_PARAMS.copy()
    if params is not None:
        p.update(params)
    config = config or default_config(p)

    L = p['L']
    tol = 1e-10 * L
    mesh = create_square_mesh(L, p['n_cells'], pattern='alternating')

    bcs = BoundaryConditionManager()
    bcs.fix_region(lambda x, y: x < tol or x > L - tol or y < tol or y > L - tol,
                   'both', name='boundary')

    simulation = PhaseFieldSimulation(mesh, config, bcs)
    coupling = PressureCoupling(linear_ramp(p['pressure_rate']))
    simulation.register_pressure(coupling)
    return simulation, coupling


def main(argv=None) -> int:
    """Command-line entry point for this benchmark."""
    from benchmarks.cli import main as cli_main
    return cli_main(['pressurized'] + list(argv or []))


if __name__ == '__main__':
    raise SystemExit(main(sys.argv[1:]))
