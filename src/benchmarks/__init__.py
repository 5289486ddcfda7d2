"""
Benchmarks
==========

Benchmark problems for the phase-field fracture solver.
"""

from .pressurized_crack import (
    PRESSURIZED_PARAMS,
    build_pressurized_crack,
)
from .tension import (
    TENSION_PARAMS,
    build_tension,
)

__all__ = [
    "PRESSURIZED_PARAMS",
    "build_pressurized_crack",
    "TENSION_PARAMS",
    "build_tension",
]
