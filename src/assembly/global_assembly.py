"""
Global Assembly
===============

Residual and Jacobian of the monolithic displacement/phase-field system.

Per quadrature point, with test functions ε_i (displacement) and ξ_i (phase):

    R_i = g(φ_e) σ⁺:ε_i + σ⁻:ε_i - p div(u_i)
        + (1-κ) φ (σ⁺:ε) ξ_i
        + γ_c ( -(1/e)(1-φ) ξ_i + e ∇φ·∇ξ_i )

where g(φ) = (1-κ)φ² + κ and φ_e is the phase field extrapolated from
the two previous converged steps.
"""

import numpy as np
from scipy.sparse import coo_matrix, csr_matrix
from typing import Dict, Optional, Tuple, TYPE_CHECKING

from physics.stress_decomposition import (
    decompose, decompose_du, elastic_energy_split, JACOBIAN_VARIANTS
)
from .dof_handler import DIM, N_COMPONENTS

if TYPE_CHECKING:
    from physics.material import PhaseFieldMaterial
    from .dof_handler import DofHandler

# Local DOF positions inside a 9×9 element block (node-major)
LOCAL_U = np.array([N_COMPONENTS * a + c for a in range(3) for c in range(DIM)])
LOCAL_PHI = np.array([N_COMPONENTS * a + DIM for a in range(3)])


def extrapolated_phase_field(old_phi: np.ndarray, old_old_phi: np.ndarray,
                             time_steps: Tuple[float, float],
                             use_old_time_step_phi: bool = False) -> np.ndarray:
    """
    Second-order extrapolation of the phase field to the new time.

        φ_e = φ_old + (Δt / Δt_old)(φ_old - φ_old_old), clipped to [0, 1]

    Args:
        old_phi: phase field of the last converged step
        old_old_phi: phase field two steps back
        time_steps: (time_step, old_time_step)
        use_old_time_step_phi: use φ_old without extrapolation

    Returns:
        phi_e: same shape as old_phi
    """
    time_step, old_time_step = time_steps
    if use_old_time_step_phi or old_time_step <= 0:
        return np.array(old_phi, dtype=np.float64)
    ratio = time_step / old_time_step
    return np.clip(old_phi + ratio * (old_phi - old_old_phi), 0.0, 1.0)


def _strain_directions(dN: np.ndarray) -> np.ndarray:
    """Symmetric gradients of the six displacement shape functions, (6, 2, 2)."""
    directions = np.zeros((3 * DIM, 2, 2))
    for b in range(3):
        for d in range(DIM):
            H = directions[DIM * b + d]
            H[d, :] += 0.5 * dN[b]
            H[:, d] += 0.5 * dN[b]
    return directions


def assemble_coupled_system(dof_handler: 'DofHandler',
                            material: 'PhaseFieldMaterial',
                            solution: np.ndarray,
                            old_solution: np.ndarray,
                            old_old_solution: np.ndarray,
                            pressure: Optional[np.ndarray] = None,
                            time_steps: Tuple[float, float] = (1.0, 1.0),
                            include_pressure: bool = True,
                            assemble_matrix: bool = True,
                            jacobian: str = 'frozen',
                            use_old_time_step_phi: bool = False
                            ) -> Tuple[np.ndarray, Optional[csr_matrix]]:
    """
    Assemble the global residual and, optionally, the Jacobian.

    Args:
        dof_handler: DofHandler of the current mesh
        material: PhaseFieldMaterial
        solution: trial state, shape (n_dofs,)
        old_solution: last converged state
        old_old_solution: state two steps back
        pressure: per-element pressure, shape (n_elements,), or None
        time_steps: (time_step, old_time_step)
        include_pressure: add the pressure term
        assemble_matrix: also build the Jacobian
        jacobian: 'frozen' keeps the tension/compression projector fixed,
                  'exact' differentiates through the spectral split
        use_old_time_step_phi: degrade with φ_old instead of the extrapolation

    Returns:
        residual: shape (n_dofs,)
        matrix: CSR Jacobian, shape (n_dofs, n_dofs), or None
    """
    if jacobian not in JACOBIAN_VARIANTS:
        raise ValueError(f"Unknown Jacobian variant: {jacobian}")

    mesh = dof_handler.mesh
    n_local = dof_handler.dofs_per_cell

    use_pressure = include_pressure and pressure is not None
    if use_pressure and len(pressure) != mesh.n_elements:
        raise ValueError(f"pressure has wrong size: {len(pressure)} != {mesh.n_elements}")

    mu, lam = material.lame_mu, material.lame_lambda
    kappa, gamma_c, e = material.kappa, material.gamma_c, material.epsilon

    u_nodal = dof_handler.displacement_field(solution)
    phi_nodal = dof_handler.phase_field(solution)
    phi_e_nodal = extrapolated_phase_field(dof_handler.phase_field(old_solution),
                                           dof_handler.phase_field(old_old_solution),
                                           time_steps, use_old_time_step_phi)

    residual = np.zeros(dof_handler.n_dofs)
    if assemble_matrix:
        local_matrices = np.zeros((mesh.n_elements, n_local, n_local))

    for e_idx, elem in enumerate(dof_handler.elements):
        nodes = mesh.elements[e_idx]
        dN = elem.dN

        strain = elem.symmetric_gradient(u_nodal[nodes])
        stress_plus, stress_minus = decompose(strain, mu, lam)
        energy_plus = np.sum(stress_plus * strain)  # σ⁺:ε = 2ψ⁺

        # Interpolating 1 - φ keeps the intact state (φ = 1) exactly residual free
        damage_nodal = 1.0 - phi_nodal[nodes]
        phi_q = elem.values_at_quadrature(phi_nodal[nodes])
        damage_q = elem.values_at_quadrature(damage_nodal)
        g_q = material.degradation(elem.values_at_quadrature(phi_e_nodal[nodes]))
        grad_phi = -elem.gradient(damage_nodal)
        p = pressure[e_idx] if use_pressure else 0.0

        local_rhs = np.zeros((3, N_COMPONENTS))
        for q in range(elem.n_q_points):
            jxw = elem.JxW[q]
            N_q = elem.N[q]
            stress = g_q[q] * stress_plus + stress_minus

            local_rhs[:, :DIM] += (dN @ stress - p * dN) * jxw
            local_rhs[:, DIM] += (
                (1 - kappa) * phi_q[q] * energy_plus * N_q
                + gamma_c * (-1 / e * damage_q[q] * N_q + e * (dN @ grad_phi))
            ) * jxw

        residual[dof_handler.element_dofs(e_idx)] += local_rhs.ravel()

        if not assemble_matrix:
            continue

        local_matrix = local_matrices[e_idx]
        g_weight = np.sum(g_q * elem.JxW)

        # Displacement-displacement block
        for col, H in zip(LOCAL_U, _strain_directions(dN)):
            dstress_plus, dstress_minus = decompose_du(strain, H, mu, lam, jacobian)
            local_matrix[LOCAL_U, col] = (
                dN @ (g_weight * dstress_plus + elem.area * dstress_minus)
            ).ravel()

        # Phase-displacement block: d(σ⁺:ε)[h] = 2σ⁺:h
        coupling = 2 * (1 - kappa) * (elem.N.T @ (phi_q * elem.JxW))
        local_matrix[np.ix_(LOCAL_PHI, LOCAL_U)] = np.outer(coupling,
                                                           (dN @ stress_plus).ravel())

        # Phase-phase block
        reaction = ((1 - kappa) * energy_plus + gamma_c / e) * elem.JxW
        local_matrix[np.ix_(LOCAL_PHI, LOCAL_PHI)] = (
            (elem.N.T * reaction) @ elem.N + gamma_c * e * elem.area * (dN @ dN.T)
        )

    if not assemble_matrix:
        return residual, None

    matrix = coo_matrix((local_matrices.ravel(),
                         (dof_handler.sparsity_rows, dof_handler.sparsity_cols)),
                        shape=(dof_handler.n_dofs, dof_handler.n_dofs)).tocsr()
    return residual, matrix


def compute_element_stresses(dof_handler: 'DofHandler',
                             material: 'PhaseFieldMaterial',
                             solution: np.ndarray,
                             degradation_phi: Optional[np.ndarray] = None) -> np.ndarray:
    """
    Degraded stress per element, σ = g(φ̄) σ⁺ + σ⁻.

    Args:
        dof_handler: DofHandler
        material: PhaseFieldMaterial
        solution: global solution vector
        degradation_phi: nodal φ used in g (default: the solution's φ)

    Returns:
        stresses: shape (n_elements, 2, 2)
    """
    mesh = dof_handler.mesh
    u_nodal = dof_handler.displacement_field(solution)
    if degradation_phi is None:
        degradation_phi = dof_handler.phase_field(solution)

    stresses = np.zeros((mesh.n_elements, 2, 2))
    for e_idx, elem in enumerate(dof_handler.elements):
        nodes = mesh.elements[e_idx]
        strain = elem.symmetric_gradient(u_nodal[nodes])
        stress_plus, stress_minus = decompose(strain, material.lame_mu, material.lame_lambda)
        g = material.degradation(np.mean(degradation_phi[nodes]))
        stresses[e_idx] = g * stress_plus + stress_minus

    return stresses


def compute_energies(dof_handler: 'DofHandler',
                     material: 'PhaseFieldMaterial',
                     solution: np.ndarray) -> Dict[str, float]:
    """
    Elastic and fracture energies of a state.

        E_el = ∫ g(φ) ψ⁺ + ψ⁻
        E_fr = γ_c ∫ (1-φ)²/(2e) + (e/2)|∇φ|²

    Returns:
        dict with 'elastic', 'fracture', 'total'
    """
    mesh = dof_handler.mesh
    u_nodal = dof_handler.displacement_field(solution)
    phi_nodal = dof_handler.phase_field(solution)
    e = material.epsilon

    elastic = 0.0
    fracture = 0.0
    for e_idx, elem in enumerate(dof_handler.elements):
        nodes = mesh.elements[e_idx]
        strain = elem.symmetric_gradient(u_nodal[nodes])
        psi_plus, psi_minus = elastic_energy_split(strain, material.lame_mu,
                                                   material.lame_lambda)
        phi_q = elem.values_at_quadrature(phi_nodal[nodes])
        grad_phi = elem.gradient(phi_nodal[nodes])

        elastic += np.sum((material.degradation(phi_q) * psi_plus + psi_minus) * elem.JxW)
        fracture += material.gamma_c * np.sum(
            ((1 - phi_q) ** 2 / (2 * e) + 0.5 * e * (grad_phi @ grad_phi)) * elem.JxW
        )

    return {'elastic': elastic, 'fracture': fracture, 'total': elastic + fracture}
