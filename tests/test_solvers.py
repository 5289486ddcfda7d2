"""
Tests for Solvers Module
========================
"""

import warnings

import numpy as np
import pytest
from scipy.sparse import csr_matrix, diags
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from mesh.mesh_generators import create_single_element, create_two_element_patch
from physics.material import PhaseFieldMaterial
from assembly.dof_handler import DofHandler
from assembly.boundary_conditions import BoundaryConditionManager
from solvers.active_set import ActiveSetManager
from solvers.exceptions import LinearSolverError, TimeStepTooSmallError
from solvers.linear_solver import solve_constrained
from solvers.newton_solver import NewtonConfig, NewtonSolver, NewtonStatus
from solvers.state import SimulationState
from solvers.time_stepping import (
    StepState, TimeStepConfig, TimeStepController, TimeStepSchedule
)


def uniaxial_bcs(load):
    """
    Prescribe u_x = 0.5 * load(t) * x and u_y = 0 at every node of the unit square.

    The resulting strain is homogeneous, ε_xx = 0.5 * load(t).
    """
    bcs = BoundaryConditionManager()
    bcs.fix_region(lambda x, y: x < 0.5, 'both', name='left')
    bcs.fix_region(lambda x, y: x > 0.5, 'y', name='right_y')
    bcs.prescribe_displacement(lambda x, y: x > 0.5, 'x',
                               lambda t: 0.5 * load(t), name='right')
    return bcs


@pytest.fixture
def soft_material():
    return PhaseFieldMaterial(lame_mu=1.0, lame_lambda=1.0, kappa=1e-10,
                              gamma_c=1.0, epsilon=0.1)


class TestActiveSet:
    """Tests for the irreversibility active set."""

    @pytest.fixture
    def dof_handler(self):
        return DofHandler(create_two_element_patch())

    def test_healing_tendency_is_active(self, dof_handler):
        x = dof_handler.make_vector(phase_field=np.full(4, 0.5))
        residual = np.zeros(dof_handler.n_dofs)
        residual[dof_handler.phase_dofs] = [-1.0, 0.0, 1.0, -1e-3]
        manager = ActiveSetManager()
        active = manager.classify(dof_handler, x, x, residual)
        assert list(active) == [2, 11]

    def test_decreasing_phase_field_is_inactive(self, dof_handler):
        old = dof_handler.make_vector(phase_field=np.full(4, 0.8))
        x = dof_handler.make_vector(phase_field=np.full(4, 0.7))
        residual = np.zeros(dof_handler.n_dofs)
        residual[dof_handler.phase_dofs] = -1.0
        assert len(ActiveSetManager().classify(dof_handler, x, old, residual)) == 0

    def test_exceeding_old_value_is_active(self, dof_handler):
        old = dof_handler.make_vector(phase_field=np.full(4, 0.5))
        x = dof_handler.make_vector(phase_field=np.array([0.5, 0.6, 0.5, 0.5]))
        residual = np.zeros(dof_handler.n_dofs)
        residual[dof_handler.phase_dofs] = 1.0
        active = ActiveSetManager().classify(dof_handler, x, old, residual)
        assert list(active) == [5]

    def test_update_reports_changes(self, dof_handler):
        x = dof_handler.make_vector()
        residual = np.zeros(dof_handler.n_dofs)
        residual[dof_handler.phase_dofs] = [-1.0, 1.0, 1.0, 1.0]
        manager = ActiveSetManager()

        assert manager.update(dof_handler, x, x, residual)
        assert not manager.update(dof_handler, x, x, residual)
        assert manager.size == 1
        assert manager.as_set() == {2}

        manager.reset()
        assert manager.size == 0

    def test_constraint_values(self, dof_handler):
        old = dof_handler.make_vector(phase_field=np.full(4, 0.5))
        x = dof_handler.make_vector(phase_field=np.array([0.7, 0.5, 0.5, 0.4]))
        residual = np.zeros(dof_handler.n_dofs)
        manager = ActiveSetManager()
        manager.update(dof_handler, x, old, residual)
        assert list(manager.indices) == [2]
        assert np.allclose(manager.constraint_values(x, old), [-0.2])

    def test_roundoff_increment_is_ignored(self, dof_handler):
        old = dof_handler.make_vector(phase_field=np.full(4, 0.5))
        x = old.copy()
        x[dof_handler.phase_dofs] += np.array([1e-16, 1e-13, 0.0, 1e-6])
        residual = np.zeros(dof_handler.n_dofs)
        active = ActiveSetManager().classify(dof_handler, x, old, residual)
        assert list(active) == [11]

    def test_project_clips_roundoff_excess(self, dof_handler):
        old = dof_handler.make_vector(phase_field=np.full(4, 0.5))
        x = old.copy()
        x[dof_handler.phase_dofs] += np.array([1e-16, -1e-3, 1e-6, 0.0])
        manager = ActiveSetManager()

        assert manager.project(dof_handler, x, old) == 1
        phi = dof_handler.phase_field(x)
        assert phi[0] == 0.5
        assert phi[1] < 0.5
        assert phi[2] > 0.5

    def test_invalid_constant(self):
        with pytest.raises(ValueError):
            ActiveSetManager(constant=0.0)
        with pytest.raises(ValueError):
            ActiveSetManager(increment_tolerance=-1.0)


class TestLinearSolver:
    """Tests for the constrained linear solve."""

    @pytest.fixture
    def system(self):
        A = csr_matrix(np.array([[4.0, -1.0, 0.0, 0.0],
                                 [-1.0, 4.0, -1.0, 0.0],
                                 [0.0, -1.0, 4.0, -1.0],
                                 [0.0, 0.0, -1.0, 3.0]]))
        b = np.array([1.0, 2.0, 0.0, 1.0])
        return A, b

    @pytest.mark.parametrize("method", ["direct", "gmres"])
    def test_constrained_solve(self, system, method):
        A, b = system
        x, n_iterations = solve_constrained(A, b, np.array([0]), np.array([0.5]),
                                            method=method)
        assert x[0] == 0.5
        dense = A.toarray()
        assert np.allclose(dense[1:] @ x, b[1:], atol=1e-8)
        if method == 'direct':
            assert n_iterations == 1

    def test_unconstrained_matches_dense(self, system):
        A, b = system
        x, _ = solve_constrained(A, b, np.array([], dtype=np.int64), np.array([]))
        assert np.allclose(x, np.linalg.solve(A.toarray(), b))

    def test_everything_constrained(self, system):
        A, b = system
        x, n_iterations = solve_constrained(A, b, np.arange(4), np.ones(4))
        assert np.allclose(x, 1.0)
        assert n_iterations == 0

    def test_singular_matrix(self):
        A = csr_matrix(np.array([[1.0, 1.0], [1.0, 1.0]]))
        with warnings.catch_warnings():
            warnings.simplefilter('ignore')
            with pytest.raises(LinearSolverError):
                solve_constrained(A, np.array([1.0, 0.0]), np.array([], dtype=np.int64),
                                  np.array([]))

    def test_unknown_method(self, system):
        A, b = system
        with pytest.raises(ValueError):
            solve_constrained(A, b, np.array([0]), np.array([0.0]), method='cg')

    def test_gmres_on_diagonal_system(self):
        A = diags(np.arange(1.0, 11.0)).tocsr()
        x, _ = solve_constrained(A, np.ones(10), np.array([9]), np.array([0.0]),
                                 method='gmres')
        assert np.allclose(x[:9], 1.0 / np.arange(1.0, 10.0))


class TestSimulationState:
    """Tests for the solution generations and clock."""

    def test_initial_state(self):
        state = SimulationState(create_two_element_patch(), time_step=0.1)
        assert state.n_dofs == 12
        assert np.allclose(state.phase_field, 1.0)
        assert state.time == 0.0
        assert state.time_steps == (0.1, 0.1)

    def test_wrong_initial_size(self):
        with pytest.raises(ValueError):
            SimulationState(create_two_element_patch(), initial=np.zeros(5))

    def test_accept_shifts_generations(self):
        state = SimulationState(create_two_element_patch(), time_step=0.1)
        first = state.solution.copy()
        state.begin_step(0.2)
        state.solution[2] = 0.5
        state.accept()

        assert state.step == 1
        assert np.isclose(state.time, 0.2)
        assert state.old_time_step == 0.2
        assert state.old_solution[2] == 0.5
        assert np.allclose(state.old_old_solution, first)

    def test_cut_time_step(self):
        state = SimulationState(create_two_element_patch(), time_step=1.0)
        state.begin_step(1.0)
        state.solution[:] = 7.0
        state.cut_time_step(0.1)

        assert np.isclose(state.time, 0.1)
        assert state.time_step == 0.1
        assert state.use_old_time_step_phi
        assert np.allclose(state.solution, state.old_solution)

        state.accept()
        assert not state.use_old_time_step_phi

    def test_rebuild_validates_all_sizes(self):
        state = SimulationState(create_two_element_patch())
        mesh = create_single_element()
        good = np.zeros(9)
        with pytest.raises(ValueError):
            state.rebuild(mesh, good, good, np.zeros(12))
        assert state.mesh.n_nodes == 4
        assert state.n_dofs == 12

        state.rebuild(mesh, good, good, good)
        assert state.n_dofs == 9


class TestTimeStepping:
    """Tests for the schedule and the step-cutting controller."""

    def test_schedule(self):
        schedule = TimeStepSchedule([(0.5, 0.01), (0.0, 0.1)])
        assert schedule.get_time_step(0.0) == 0.1
        assert schedule.get_time_step(0.4) == 0.1
        assert schedule.get_time_step(0.5) == 0.01
        assert schedule.get_time_step(2.0) == 0.01
        assert TimeStepSchedule.constant(0.2).get_time_step(5.0) == 0.2

    def test_invalid_schedule(self):
        with pytest.raises(ValueError):
            TimeStepSchedule([])
        with pytest.raises(ValueError):
            TimeStepSchedule([(0.0, 0.0)])

    def test_config_validation(self):
        with pytest.raises(ValueError):
            TimeStepConfig(end_time=0.0)
        with pytest.raises(ValueError):
            TimeStepConfig(cut_factor=1.0)
        config = TimeStepConfig(schedule=[[0.0, 0.5]])
        assert config.make_schedule().get_time_step(0.0) == 0.5

    def test_cuts_until_minimum(self):
        controller = TimeStepController(cut_factor=10.0, minimum_time_step=5e-4)
        dt = 1.0
        for expected in (0.1, 0.01, 0.001):
            dt = controller.on_diverged(1.0, dt)
            assert np.isclose(dt, expected)
            assert controller.state == StepState.RETRY_SMALLER

        with pytest.raises(TimeStepTooSmallError) as excinfo:
            controller.on_diverged(1.0, dt)
        assert controller.state == StepState.ABORT
        assert controller.n_cuts == 3
        assert excinfo.value.minimum_time_step == 5e-4

    def test_converged(self):
        controller = TimeStepController()
        assert controller.on_converged(0.1) == StepState.ADVANCE
        assert controller.accepted_time_step == 0.1


class TestNewtonSolver:
    """Tests for the active-set Newton solver."""

    def test_config_validation(self):
        with pytest.raises(ValueError):
            NewtonConfig(tolerance=0.0)
        with pytest.raises(ValueError):
            NewtonConfig(relative_tolerance=-1e-8)
        with pytest.raises(ValueError):
            NewtonConfig(max_iterations=0)
        with pytest.raises(ValueError):
            NewtonConfig(jacobian='secant')
        with pytest.raises(ValueError):
            NewtonConfig(linear_solver='cg')

    def test_unloaded_state_converges_immediately(self):
        mesh = create_single_element()
        state = SimulationState(mesh)
        bcs = BoundaryConditionManager()
        bcs.fix_nodes(np.array([0]), 'both')
        bcs.fix_nodes(np.array([1]), 'y')

        solver = NewtonSolver(PhaseFieldMaterial.reference())
        state.begin_step(1.0)
        result = solver.advance_time_step(state, bcs=bcs)

        assert result.status == NewtonStatus.CONVERGED
        assert result.converged
        assert result.n_iterations == 1
        assert result.active_set_size == 0
        assert result.residual_norm < 1e-10
        assert np.allclose(state.phase_field, 1.0)
        assert np.allclose(state.displacement, 0.0)

    def test_repeated_step_at_constant_load(self, soft_material):
        state = SimulationState(create_two_element_patch())
        bcs = uniaxial_bcs(lambda t: 1.0)
        solver = NewtonSolver(soft_material)

        state.begin_step(1.0)
        assert solver.advance_time_step(state, bcs=bcs).converged
        state.accept()

        # The previous equilibrium is accepted again without switching any DOF
        state.begin_step(1.0)
        result = solver.advance_time_step(state, bcs=bcs)
        assert result.converged
        assert result.n_iterations == 1
        assert result.active_set_size == 0
        dh = state.dof_handler
        assert np.all(dh.phase_field(state.solution) <= dh.phase_field(state.old_solution))

    def test_relative_tolerance_below_roundoff_floor(self, soft_material):
        # An absolute tolerance no residual can reach; the relative one still applies
        state = SimulationState(create_two_element_patch())
        solver = NewtonSolver(soft_material, NewtonConfig(tolerance=1e-300))
        state.begin_step(1.0)
        result = solver.advance_time_step(state, bcs=uniaxial_bcs(lambda t: 1.0))

        assert result.converged
        assert np.allclose(state.phase_field, soft_material.homogeneous_phase_field(0.375))

    @pytest.mark.parametrize("jacobian", ["frozen", "exact"])
    def test_damage_onset(self, soft_material, jacobian):
        mesh = create_two_element_patch()
        state = SimulationState(mesh)
        bcs = uniaxial_bcs(lambda t: 1.0)
        solver = NewtonSolver(soft_material, NewtonConfig(jacobian=jacobian))

        state.begin_step(1.0)
        result = solver.advance_time_step(state, bcs=bcs)

        # ε_xx = 0.5: ψ⁺ = ½λ(0.5)² + μ(0.5)² = 0.375
        phi_star = soft_material.homogeneous_phase_field(0.375)
        assert result.converged
        assert result.active_set_size == 0
        assert np.allclose(state.phase_field, phi_star)
        assert np.all(state.phase_field < 1.0)
        assert np.allclose(state.displacement[:, 0], 0.5 * mesh.nodes[:, 0])

    def test_unloading_keeps_damage(self, soft_material):
        mesh = create_two_element_patch()
        state = SimulationState(mesh)
        bcs = uniaxial_bcs(lambda t: 1.0 if t <= 1.0 else 0.0)
        solver = NewtonSolver(soft_material)

        state.begin_step(1.0)
        assert solver.advance_time_step(state, bcs=bcs).converged
        damaged = state.phase_field.copy()
        state.accept()

        state.begin_step(1.0)
        result = solver.advance_time_step(state, bcs=bcs)

        assert result.converged
        assert result.active_set_size == mesh.n_nodes
        assert solver.get_active_set() == set(int(i) for i in state.dof_handler.phase_dofs)
        assert np.allclose(state.phase_field, damaged)
        assert np.allclose(state.displacement, 0.0)

    def test_old_generations_untouched(self, soft_material):
        state = SimulationState(create_two_element_patch())
        old = state.old_solution.copy()
        state.begin_step(1.0)
        NewtonSolver(soft_material).advance_time_step(state, bcs=uniaxial_bcs(lambda t: 1.0))
        assert np.array_equal(state.old_solution, old)
        assert np.array_equal(state.old_old_solution, old)

    def test_iteration_budget_exhausted(self, soft_material):
        state = SimulationState(create_two_element_patch())
        solver = NewtonSolver(soft_material, NewtonConfig(max_iterations=1))
        state.begin_step(1.0)
        result = solver.advance_time_step(state, bcs=uniaxial_bcs(lambda t: 1.0))
        assert result.status == NewtonStatus.DIVERGED
        assert not result.converged
        assert solver.status == NewtonStatus.DIVERGED

    def test_gmres_solver(self, soft_material):
        state = SimulationState(create_two_element_patch())
        solver = NewtonSolver(soft_material, NewtonConfig(linear_solver='gmres'))
        state.begin_step(1.0)
        result = solver.advance_time_step(state, bcs=uniaxial_bcs(lambda t: 1.0))
        assert result.converged
        assert np.allclose(state.phase_field,
                           soft_material.homogeneous_phase_field(0.375), atol=1e-8)


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
