"""
Integration Tests
=================

End-to-end runs of the benchmark setups and the command line interface.
"""

import json
import numpy as np
import pytest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from benchmarks.cli import build_simulation, main, parse_args, run_simulation
from benchmarks.pressurized_crack import build_pressurized_crack, default_config
from benchmarks.tension import build_tension, TENSION_PARAMS
from physics.pressure import PressureCoupling


SMALL_TENSION = {
    'params': {'n_cells': 4, 'n_adaptive_steps': 0,
               'end_time': 0.02, 'time_step': 0.01},
    'newton': {'jacobian': 'exact'},
    'defect_width': 0.1,
}


@pytest.fixture
def config_file(tmp_path):
    def write(data):
        filename = tmp_path / 'overrides.json'
        with open(filename, 'w') as f:
            json.dump(data, f)
        return str(filename)
    return write


class TestTensionBenchmark:
    """Setup of the notched tension test."""

    def test_setup(self):
        sim = build_tension({'n_cells': 4, 'n_adaptive_steps': 0})
        state = sim.state

        assert state.mesh.n_elements == 32
        assert np.isclose(sim.material.epsilon, 2 * sim.minimum_mesh_size)
        assert sim.adaptation is None

        # Notch from the left edge to the center
        phi = state.phase_field
        notch = (np.isclose(state.mesh.nodes[:, 1], 0.5) &
                 (state.mesh.nodes[:, 0] <= TENSION_PARAMS['crack_length'] + 1e-12))
        assert np.allclose(phi[notch], 0.0)
        right_corners = np.isclose(state.mesh.nodes[:, 0], 1.0) & (
            np.isclose(state.mesh.nodes[:, 1], 0.0) | np.isclose(state.mesh.nodes[:, 1], 1.0))
        assert np.allclose(phi[right_corners], 1.0)

    def test_local_prerefinement(self):
        coarse = build_tension({'n_cells': 4, 'n_adaptive_steps': 0})
        fine = build_tension({'n_cells': 4, 'n_adaptive_steps': 1})
        assert fine.state.mesh.n_elements > coarse.state.mesh.n_elements
        assert fine.adaptation is not None
        assert np.isclose(fine.minimum_mesh_size, coarse.minimum_mesh_size / 2)

    def test_build_with_overrides(self):
        sim = build_simulation('tension', SMALL_TENSION)
        assert sim.config.newton.jacobian == 'exact'
        assert sim.config.defect_width == 0.1
        assert sim.config.time_stepping.end_time == 0.02

    def test_short_run(self):
        sim = build_simulation('tension', SMALL_TENSION)
        status, recorder = run_simulation(sim)

        assert status == 0
        arrays = recorder.get_arrays()
        assert list(arrays['step']) == [1, 2]
        # Load grows with the prescribed displacement
        assert 0 < arrays['top_y'][0] < arrays['top_y'][1]
        assert np.all(sim.state.phase_field <= 1.0 + 1e-12)


class TestPressurizedBenchmark:
    """Setup of the pressurized crack."""

    def test_setup(self):
        sim, coupling = build_pressurized_crack({'n_cells': 8, 'n_adaptive_steps': 0})

        assert isinstance(coupling, PressureCoupling)
        assert sim.pressure is coupling
        assert len(sim.bcs.boundary_nodes(sim.state.mesh, 'boundary')) == 32

        nodes = sim.state.mesh.nodes
        center = np.all(np.isclose(nodes, 2.0), axis=1)
        assert np.allclose(sim.state.phase_field[center], 0.0)
        assert np.min(sim.state.phase_field) < 0.1

    def test_pressure_acts_on_crack(self):
        sim, coupling = build_pressurized_crack({'n_cells': 8, 'n_adaptive_steps': 0})
        values = coupling.update(sim.state.mesh, sim.state.phase_field, 0.1)
        assert coupling.n_cracked() > 0
        assert np.allclose(values[coupling.cracked], 100.0)
        assert np.allclose(values[~coupling.cracked], 0.0)

    def test_cod_output(self):
        config = default_config({'n_cells': 8})
        assert config.output.cod_lines == 11
        assert np.allclose(config.output.cod_range, (1.8, 2.2))

    def test_short_run(self):
        sim = build_simulation('pressurized', {
            'params': {'n_cells': 8, 'n_adaptive_steps': 1,
                       'end_time': 0.3, 'time_step': 0.1},
        })
        status, recorder = run_simulation(sim)

        assert status == 0
        assert [r.step for r in sim.records] == [1, 2, 3]
        assert np.isclose(sim.state.time, 0.3)
        assert sim.get_results_summary()['n_time_step_cuts'] == 0
        assert all(r.n_cracked > 0 for r in sim.records)
        assert len(recorder.cod_history) == 3
        assert all(np.all(np.isfinite(values)) for _, values in recorder.cod_history)
        assert np.all(sim.state.phase_field <= 1.0)
        assert np.min(sim.state.phase_field) < 0.1


class TestCommandLine:
    """Tests for the CLI."""

    def test_parse_args(self):
        args = parse_args(['pressurized', '--output-dir', 'out', '--verbose'])
        assert args.benchmark == 'pressurized'
        assert args.output_dir == 'out'
        assert args.verbose
        assert not args.quiet
        assert args.config is None

    def test_unknown_benchmark(self):
        with pytest.raises(SystemExit):
            parse_args(['sent'])

    def test_run_writes_output(self, tmp_path, config_file):
        output_dir = tmp_path / 'results'
        status = main(['tension', '--config', config_file(SMALL_TENSION),
                       '--output-dir', str(output_dir), '--quiet'])

        assert status == 0
        with open(output_dir / 'diagnostics.csv') as f:
            lines = f.read().splitlines()
        assert len(lines) == 3
        assert 'top_y' in lines[0].split(',')
        assert sorted(os.listdir(output_dir / 'vtu')) == ['solution-001.vtu',
                                                          'solution-002.vtu']

    def test_abort_returns_error_status(self, tmp_path, config_file):
        overrides = json.loads(json.dumps(SMALL_TENSION))
        overrides['params']['minimum_time_step'] = 5e-3
        overrides['newton']['max_iterations'] = 1

        output_dir = tmp_path / 'results'
        status = main(['tension', '--config', config_file(overrides),
                       '--output-dir', str(output_dir), '--quiet'])

        assert status == 1
        with open(output_dir / 'diagnostics.csv') as f:
            assert len(f.read().splitlines()) == 1


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
