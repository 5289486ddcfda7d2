"""
Run Loop
========

Time loop of a phase-field fracture simulation.

Every step is attempted until neither retry condition fires:

    ADVANCE          Newton converged and no refinement was needed
    RETRY_TIME_STEP  Newton diverged; same step with a smaller time step
    RETRY_MESH       the crack front was refined; same step on the new mesh
    ABORT            the time step fell below its minimum
"""

import logging
import numpy as np
from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Callable, List, Optional, Sequence, Tuple, TYPE_CHECKING

from mesh.refinement import refine_global, refine_region
from physics.initial_values import defect_phase_field
from physics.material import PhaseFieldMaterial
from .exceptions import TimeStepTooSmallError
from .mesh_adaptation import MeshAdaptationTrigger
from .newton_solver import NewtonConfig, NewtonResult, NewtonSolver
from .state import SimulationState
from .time_stepping import TimeStepConfig, TimeStepController

if TYPE_CHECKING:
    from assembly.boundary_conditions import BoundaryConditionManager
    from mesh.triangle_mesh import TriangleMesh
    from physics.pressure import PressureCoupling

LOG = logging.getLogger(__name__)


class StepAction(Enum):
    ADVANCE = "advance"
    RETRY_TIME_STEP = "retry_time_step"
    RETRY_MESH = "retry_mesh"
    ABORT = "abort"


@dataclass
class AdaptivityConfig:
    """Mesh preparation and crack-front refinement."""
    initial_refinement_level: int = 0    # Uniform refinements of the input mesh
    n_adaptive_steps: int = 0            # Extra levels allowed near the crack
    phi_refinement_value: float = 0.5    # Crack-front threshold
    local_prerefinement_region: Optional[Tuple[Tuple[float, float],
                                               Tuple[float, float]]] = None

    def __post_init__(self):
        if self.initial_refinement_level < 0:
            raise ValueError("initial_refinement_level must be non-negative")
        if self.n_adaptive_steps < 0:
            raise ValueError("n_adaptive_steps must be non-negative")

    @property
    def max_refinement_level(self) -> int:
        return self.initial_refinement_level + self.n_adaptive_steps


@dataclass
class OutputConfig:
    """Where and what to write."""
    output_dir: Optional[str] = None
    snapshot_interval: int = 1                       # 0 disables snapshots
    boundary_loads: List[str] = field(default_factory=list)  # BC names
    cod_lines: int = 0                                # 0 disables COD
    cod_range: Tuple[float, float] = (0.0, 1.0)       # x-range of COD lines


@dataclass
class SimulationConfig:
    """
    Complete configuration of a simulation.

    Attributes:
        material: PhaseFieldMaterial
        newton: NewtonConfig
        time_stepping: TimeStepConfig
        adaptivity: AdaptivityConfig
        output: OutputConfig
        defects: initial crack segments ((x0, y0), (x1, y1))
        defect_width: half-width of the initial crack band
                      (default: twice the minimum mesh size)
        epsilon_factor: if set, epsilon = factor * minimum mesh size
        extrapolate_phase_field: degrade with the extrapolated φ after
                                 accepted steps instead of φ_old
    """
    material: PhaseFieldMaterial = field(default_factory=PhaseFieldMaterial.reference)
    newton: NewtonConfig = field(default_factory=NewtonConfig)
    time_stepping: TimeStepConfig = field(default_factory=TimeStepConfig)
    adaptivity: AdaptivityConfig = field(default_factory=AdaptivityConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    defects: List = field(default_factory=list)
    defect_width: Optional[float] = None
    epsilon_factor: Optional[float] = None
    extrapolate_phase_field: bool = True

    @classmethod
    def from_dict(cls, data: dict) -> 'SimulationConfig':
        """
        Build a configuration from nested dictionaries (e.g. parsed JSON).

        Unknown keys raise TypeError from the dataclass constructors.
        """
        data = dict(data)
        sections = {
            'material': PhaseFieldMaterial,
            'newton': NewtonConfig,
            'time_stepping': TimeStepConfig,
            'adaptivity': AdaptivityConfig,
            'output': OutputConfig,
        }
        kwargs = {}
        for key, section_cls in sections.items():
            if key in data:
                kwargs[key] = section_cls(**data.pop(key))
        kwargs.update(data)
        return cls(**kwargs)

    def to_dict(self) -> dict:
        return asdict(self)

    def updated(self, overrides: dict) -> 'SimulationConfig':
        """Copy with nested overrides applied."""
        merged = self.to_dict()
        for key, value in overrides.items():
            if isinstance(value, dict) and isinstance(merged.get(key), dict):
                merged[key].update(value)
            else:
                merged[key] = value
        return SimulationConfig.from_dict(merged)


@dataclass
class StepRecord:
    """Summary of one accepted time step."""
    step: int
    time: float
    time_step: float
    n_iterations: int
    residual_norm: float
    active_set_size: int
    n_time_step_retries: int
    n_mesh_retries: int
    n_elements: int
    n_cracked: int = 0


def prepare_mesh(mesh: 'TriangleMesh', adaptivity: AdaptivityConfig) -> 'TriangleMesh':
    """Global refinement followed by local pre-refinement."""
    mesh = refine_global(mesh, adaptivity.initial_refinement_level)
    region = adaptivity.local_prerefinement_region
    if region is not None:
        for _ in range(adaptivity.n_adaptive_steps):
            LOG.info("Local pre-refinement")
            mesh = refine_region(mesh, tuple(region[0]), tuple(region[1])).mesh
    return mesh


class PhaseFieldSimulation:
    """
    Quasi-static phase-field fracture simulation.

    Attributes:
        config: SimulationConfig
        material: material actually used (epsilon may be mesh dependent)
        state: SimulationState
        newton: NewtonSolver
        controller: TimeStepController
        adaptation: MeshAdaptationTrigger, or None without adaptivity
        bcs: BoundaryConditionManager or None
        pressure: PressureCoupling or None
        records: list of StepRecord, one per accepted step
        last_action: StepAction of the last attempt
    """

    def __init__(self, mesh: 'TriangleMesh', config: Optional[SimulationConfig] = None,
                 bcs: Optional['BoundaryConditionManager'] = None):
        self.config = config or SimulationConfig()
        adaptivity = self.config.adaptivity

        # Smallest cell size reachable by refinement
        self.minimum_mesh_size = (mesh.minimum_mesh_size()
                                  / 2 ** adaptivity.max_refinement_level)

        self.material = self.config.material
        if self.config.epsilon_factor is not None:
            self.material = self.material.with_epsilon(
                self.config.epsilon_factor * self.minimum_mesh_size)

        mesh = prepare_mesh(mesh, adaptivity)
        self.schedule = self.config.time_stepping.make_schedule()
        self.state = SimulationState(mesh, time_step=self.schedule.get_time_step(0.0))
        self._set_initial_values()

        self.newton = NewtonSolver(self.material, self.config.newton)
        self.controller = TimeStepController.from_config(self.config.time_stepping)
        if adaptivity.n_adaptive_steps > 0:
            self.adaptation = MeshAdaptationTrigger(adaptivity.phi_refinement_value,
                                                    adaptivity.max_refinement_level)
        else:
            self.adaptation = None

        self.bcs = bcs
        self.pressure: Optional['PressureCoupling'] = None
        self.records: List[StepRecord] = []
        self.last_result: Optional[NewtonResult] = None
        self.last_action = StepAction.ADVANCE
        self._callbacks: List[Callable[['PhaseFieldSimulation', StepRecord], None]] = []

    def _set_initial_values(self) -> None:
        if not self.config.defects:
            return
        width = self.config.defect_width or 2 * self.minimum_mesh_size
        phi = defect_phase_field(self.state.mesh.nodes, self.config.defects, width)
        initial = self.state.dof_handler.make_vector(phase_field=phi)
        self.state.rebuild(self.state.mesh, initial, initial.copy(), initial.copy())

    def register_pressure(self, coupling: 'PressureCoupling') -> None:
        """Use a pressure coupling for the crack load."""
        self.pressure = coupling

    def add_step_callback(self, callback: Callable[['PhaseFieldSimulation', StepRecord], None]) -> None:
        """Call callback(simulation, record) after every accepted step."""
        self._callbacks.append(callback)

    def _attempt(self) -> StepAction:
        """One Newton attempt at the current step and the resulting action."""
        state = self.state
        pressure = None
        if self.pressure is not None:
            pressure = self.pressure.update(state.mesh, state.old_phase_field, state.time)

        result = self.newton.advance_time_step(state, pressure, state.time_steps, self.bcs)
        self.last_result = result

        if not result.converged:
            new_time_step = self.controller.on_diverged(state.time, state.time_step)
            state.cut_time_step(new_time_step)
            return StepAction.RETRY_TIME_STEP

        if self.adaptation is not None and self.adaptation.adapt(state) is not None:
            LOG.info("Redo time step on the refined mesh")
            return StepAction.RETRY_MESH

        return StepAction.ADVANCE

    def run_step(self) -> StepRecord:
        """
        Advance by one accepted time step.

        Raises:
            TimeStepTooSmallError: if the step cannot be completed
        """
        state = self.state
        state.begin_step(self.schedule.get_time_step(state.time))

        n_time_step_retries = 0
        n_mesh_retries = 0
        while True:
            LOG.info("Time: %.6e\tStep: %.3e", state.time, state.time_step)
            try:
                action = self._attempt()
            except TimeStepTooSmallError:
                self.last_action = StepAction.ABORT
                raise
            self.last_action = action

            if action == StepAction.ADVANCE:
                break
            if action == StepAction.RETRY_TIME_STEP:
                n_time_step_retries += 1
            else:
                n_mesh_retries += 1

        result = self.last_result
        record = StepRecord(
            step=state.step + 1,
            time=state.time,
            time_step=state.time_step,
            n_iterations=result.n_iterations,
            residual_norm=result.residual_norm,
            active_set_size=result.active_set_size,
            n_time_step_retries=n_time_step_retries,
            n_mesh_retries=n_mesh_retries,
            n_elements=state.mesh.n_elements,
            n_cracked=self.pressure.n_cracked() if self.pressure is not None else 0,
        )

        self.controller.on_converged(state.time_step)
        state.accept()
        if not self.config.extrapolate_phase_field:
            state.use_old_time_step_phi = True

        self.records.append(record)
        for callback in self._callbacks:
            callback(self, record)
        return record

    def run(self) -> List[StepRecord]:
        """
        Run until the end time.

        Returns:
            list of StepRecord

        Raises:
            TimeStepTooSmallError: on step-size exhaustion
        """
        end_time = self.config.time_stepping.end_time
        LOG.info("Starting simulation: %d elements, %d DOFs, epsilon = %.3e",
                 self.state.mesh.n_elements, self.state.n_dofs, self.material.epsilon)
        while self.state.time < end_time - 1e-12 * max(1.0, end_time):
            self.run_step()
        return self.records

    def get_results_summary(self) -> dict:
        """Summary statistics of the accepted steps."""
        if not self.records:
            return {}
        return {
            'n_steps': len(self.records),
            'final_time': self.records[-1].time,
            'total_newton_iterations': sum(r.n_iterations for r in self.records),
            'n_time_step_cuts': self.controller.n_cuts,
            'n_mesh_adaptations': self.adaptation.n_adaptations if self.adaptation else 0,
            'final_n_elements': self.state.mesh.n_elements,
            'min_phase_field': float(np.min(self.state.phase_field)),
        }
