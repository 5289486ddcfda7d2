"""
Command Line Interface
======================

Run a benchmark, write snapshots and diagnostics.

    python -m benchmarks.cli pressurized --output-dir results
    python -m benchmarks.cli tension --config overrides.json --verbose

The JSON file may contain a "params" dictionary of benchmark parameters
and any SimulationConfig sections to override, e.g.

    {"params": {"n_cells": 10},
     "newton": {"max_iterations": 50},
     "time_stepping": {"end_time": 0.5}}

Exit status is 0 on success and 1 if the time step became too small.
"""

import argparse
import json
import logging
import sys
from typing import Optional, Sequence, Tuple

from postprocess.diagnostics import DiagnosticsRecorder, cod_line_positions
from postprocess.snapshots import SnapshotWriter
from solvers.exceptions import TimeStepTooSmallError
from solvers.run_loop import PhaseFieldSimulation
from . import pressurized_crack, tension

LOG = logging.getLogger(__name__)

BENCHMARKS = {
    'pressurized': pressurized_crack,
    'tension': tension,
}


def build_simulation(name: str, overrides: Optional[dict] = None) -> PhaseFieldSimulation:
    """
    Build a benchmark simulation with optional overrides.

    Args:
        name: 'pressurized' or 'tension'
        overrides: {"params": {...}, <config section>: {...}}

    Returns:
        PhaseFieldSimulation
    """
    module = BENCHMARKS[name]
    overrides = dict(overrides or {})
    params = overrides.pop('params', None)

    config = module.default_config(params)
    if overrides:
        config = config.updated(overrides)

    if name == 'pressurized':
        simulation, _ = module.build_pressurized_crack(params, config)
        return simulation
    return module.build_tension(params, config)


def run_simulation(simulation: PhaseFieldSimulation,
                   output_dir: Optional[str] = None) -> Tuple[int, DiagnosticsRecorder]:
    """
    Run with diagnostics (and snapshots if output_dir is given).

    Diagnostics written so far are flushed even when the run aborts.

    Returns:
        exit status, DiagnosticsRecorder
    """
    output = simulation.config.output
    cod_lines = None
    if output.cod_lines > 0:
        cod_lines = cod_line_positions(output.cod_range[0], output.cod_range[1],
                                       output.cod_lines)
    recorder = DiagnosticsRecorder(output.boundary_loads, cod_lines)
    simulation.add_step_callback(recorder)

    output_dir = output_dir or output.output_dir
    if output_dir and output.snapshot_interval > 0:
        simulation.add_step_callback(SnapshotWriter(output_dir, output.snapshot_interval))

    status = 0
    try:
        simulation.run()
    except TimeStepTooSmallError as exc:
        LOG.error("Simulation aborted: %s", exc)
        status = 1
    finally:
        if output_dir:
            recorder.write(output_dir)

    summary = simulation.get_results_summary()
    for key, value in summary.items():
        LOG.info("  %s: %s", key, value)
    return status, recorder


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Phase-field fracture benchmarks")
    parser.add_argument('benchmark', choices=sorted(BENCHMARKS))
    parser.add_argument('--config', help="JSON file with parameter/config overrides")
    parser.add_argument('--output-dir', help="directory for snapshots and diagnostics")
    parser.add_argument('--verbose', action='store_true',
                        help="log the Newton iteration table")
    parser.add_argument('--quiet', action='store_true', help="only log warnings")
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)

    level = logging.WARNING if args.quiet else logging.INFO
    logging.basicConfig(level=level, format="%(asctime)s %(name)s %(levelname)s: %(message)s")

    overrides = {}
    if args.config:
        with open(args.config) as f:
            overrides = json.load(f)
    if args.verbose:
        overrides.setdefault('newton', {})['verbose'] = True

    simulation = build_simulation(args.benchmark, overrides)
    status, _ = run_simulation(simulation, args.output_dir)
    return status


if __name__ == '__main__':
    sys.exit(main())
