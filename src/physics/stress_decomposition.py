"""
Stress Decomposition
====================

Anisotropic tension-compression split of the linear elastic stress.
Only the tensile part is degraded by the phase field, so cracks do not
grow under compression.

All tensors are full 2×2 symmetric arrays.
"""

import numpy as np
from typing import Tuple

IDENTITY = np.eye(2)

JACOBIAN_VARIANTS = ('frozen', 'exact')


def strain_plus(strain: np.ndarray) -> np.ndarray:
    """
    Positive-semidefinite part of a strain tensor.

        ε⁺ = Σ <ε_a>₊ n_a ⊗ n_a

    Args:
        strain: shape (2, 2), symmetric strain tensor

    Returns:
        eps_plus: shape (2, 2)
    """
    eigenvalues, eigenvectors = np.linalg.eigh(strain)
    lam_plus = np.maximum(eigenvalues, 0.0)
    return (eigenvectors * lam_plus) @ eigenvectors.T


def decompose(strain: np.ndarray, lame_mu: float,
              lame_lambda: float) -> Tuple[np.ndarray, np.ndarray]:
    """
    Split the stress into tensile and compressive parts.

        σ⁺ = 2μ ε⁺ + λ <tr ε>₊ I
        σ⁻ = 2μ (ε - ε⁺) + λ (tr ε - <tr ε>₊) I

    σ⁺ + σ⁻ = 2μ ε + λ tr(ε) I holds exactly.

    Args:
        strain: shape (2, 2), symmetric strain tensor
        lame_mu: shear modulus μ
        lame_lambda: Lamé parameter λ

    Returns:
        stress_plus, stress_minus: shape (2, 2) each
    """
    eps_plus = strain_plus(strain)
    trace_eps = strain[0, 0] + strain[1, 1]
    trace_eps_pos = max(trace_eps, 0.0)

    stress_plus = 2 * lame_mu * eps_plus + lame_lambda * trace_eps_pos * IDENTITY
    stress_minus = (2 * lame_mu * (strain - eps_plus)
                    + lame_lambda * (trace_eps - trace_eps_pos) * IDENTITY)
    return stress_plus, stress_minus


def _ramp_divided_differences(eigenvalues: np.ndarray, variant: str) -> np.ndarray:
    """
    Coefficients Γ_ab of the derivative of ε ↦ ε⁺ in the eigenbasis.

    'exact': Γ_ab = (f(λ_a) - f(λ_b)) / (λ_a - λ_b), f'(λ_a) on the diagonal
             and for coincident eigenvalues, with f(x) = max(x, 0).
    'frozen': Γ_ab = H(λ_a) H(λ_b), i.e. the positive eigenspace projector
              is held fixed.
    """
    positive = (eigenvalues > 0).astype(float)
    if variant == 'frozen':
        return np.outer(positive, positive)
    if variant != 'exact':
        raise ValueError(f"Unknown Jacobian variant: {variant}")

    f = np.maximum(eigenvalues, 0.0)
    gamma = np.empty((2, 2))
    for a in range(2):
        for b in range(2):
            gap = eigenvalues[a] - eigenvalues[b]
            scale = max(abs(eigenvalues[a]), abs(eigenvalues[b]), 1.0)
            if abs(gap) > 1e-12 * scale:
                gamma[a, b] = (f[a] - f[b]) / gap
            else:
                gamma[a, b] = 0.5 * (positive[a] + positive[b])
    return gamma


def decompose_du(strain: np.ndarray, direction: np.ndarray,
                 lame_mu: float, lame_lambda: float,
                 variant: str = 'frozen') -> Tuple[np.ndarray, np.ndarray]:
    """
    Directional derivative of the stress split.

    Returns (dσ⁺[h], dσ⁻[h]) for a strain increment h. The sum always
    equals the elastic tangent 2μ h + λ tr(h) I.

    Args:
        strain: shape (2, 2), current strain
        direction: shape (2, 2), symmetric strain increment h
        lame_mu, lame_lambda: Lamé parameters
        variant: 'frozen' or 'exact'

    Returns:
        dstress_plus, dstress_minus: shape (2, 2) each
    """
    eigenvalues, Q = np.linalg.eigh(strain)
    gamma = _ramp_divided_differences(eigenvalues, variant)

    h_rot = Q.T @ direction @ Q
    deps_plus = Q @ (gamma * h_rot) @ Q.T

    trace_eps = strain[0, 0] + strain[1, 1]
    trace_h = direction[0, 0] + direction[1, 1]
    heaviside = 1.0 if trace_eps > 0 else 0.0

    dstress_plus = 2 * lame_mu * deps_plus + lame_lambda * heaviside * trace_h * IDENTITY
    dstress_full = 2 * lame_mu * direction + lame_lambda * trace_h * IDENTITY
    return dstress_plus, dstress_full - dstress_plus


def elastic_energy_split(strain: np.ndarray, lame_mu: float,
                         lame_lambda: float) -> Tuple[float, float]:
    """
    Tensile and compressive strain energy densities.

        ψ⁺ = ½λ<tr ε>₊² + μ ε⁺:ε⁺
        ψ⁻ = ½λ<tr ε>₋² + μ ε⁻:ε⁻

    Note σ⁺:ε = 2ψ⁺.
    """
    eps_plus = strain_plus(strain)
    eps_minus = strain - eps_plus
    trace_eps = strain[0, 0] + strain[1, 1]
    psi_plus = (0.5 * lame_lambda * max(trace_eps, 0.0) ** 2
                + lame_mu * np.sum(eps_plus * eps_plus))
    psi_minus = (0.5 * lame_lambda * min(trace_eps, 0.0) ** 2
                 + lame_mu * np.sum(eps_minus * eps_minus))
    return psi_plus, psi_minus


def voigt_to_tensor(eps_voigt: np.ndarray) -> np.ndarray:
    """[ε_xx, ε_yy, γ_xy] → 2×2 tensor."""
    eps_xx, eps_yy, gamma_xy = eps_voigt
    return np.array([[eps_xx, gamma_xy / 2],
                     [gamma_xy / 2, eps_yy]])


def tensor_to_voigt(tensor: np.ndarray, engineering_shear: bool = True) -> np.ndarray:
    """2×2 tensor → [t_xx, t_yy, t_xy] (shear doubled for strains)."""
    factor = 2.0 if engineering_shear else 1.0
    return np.array([tensor[0, 0], tensor[1, 1], factor * tensor[0, 1]])
