"""
Postprocess Module
==================

Diagnostics time series, VTU snapshots and plotting.
"""

from .diagnostics import (
    compute_boundary_load,
    compute_cod,
    cod_line_positions,
    DiagnosticRecord,
    DiagnosticsRecorder,
)
from .snapshots import SnapshotWriter
from .visualization import (
    plot_mesh,
    plot_phase_field,
    plot_active_set,
    plot_load_curve,
    plot_cod,
)

__all__ = [
    "compute_boundary_load",
    "compute_cod",
    "cod_line_positions",
    "DiagnosticRecord",
    "DiagnosticsRecorder",
    "SnapshotWriter",
    "plot_mesh",
    "plot_phase_field",
    "plot_active_set",
    "plot_load_curve",
    "plot_cod",
]
