"""
Pressurized Crack Example
=========================

Runs the pressurized crack benchmark on a coarse mesh and plots the
final phase field and the crack opening profiles.
"""

import logging
import sys
import os

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

import matplotlib.pyplot as plt

from benchmarks.cli import build_simulation, run_simulation
from postprocess import plot_phase_field, plot_cod


def run_pressurized_crack(output_dir: str = 'results_pressurized'):
    """Run the benchmark with a short loading history."""
    print("=" * 60)
    print("Phase-Field Fracture: Pressurized Crack")
    print("=" * 60)

    simulation = build_simulation('pressurized', {
        'params': {'n_cells': 16, 'n_adaptive_steps': 1, 'end_time': 0.5},
    })
    state = simulation.state
    print(f"\nMesh: {state.mesh.n_nodes} nodes, {state.mesh.n_elements} elements")
    print(f"epsilon = {simulation.material.epsilon:.3e}")

    status, recorder = run_simulation(simulation, output_dir)
    print(f"\nFinished with status {status}")
    for key, value in simulation.get_results_summary().items():
        print(f"  {key}: {value}")

    fig, axes = plt.subplots(1, 2, figsize=(14, 6))
    plot_phase_field(simulation.state.mesh, simulation.state.phase_field, ax=axes[0])
    axes[0].set_title('Phase field')
    plot_cod(recorder, ax=axes[1])
    axes[1].set_title('Crack opening displacement')
    fig.tight_layout()
    fig.savefig(os.path.join(output_dir, 'pressurized_crack.png'), dpi=150)
    print(f"Saved figure to {output_dir}/pressurized_crack.png")
    return status


if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO)
    sys.exit(run_pressurized_crack())
