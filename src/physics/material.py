"""
Material Models
===============

Material parameters for the anisotropic phase-field fracture model.
"""

import numpy as np
from dataclasses import dataclass


@dataclass
class PhaseFieldMaterial:
    """
    Linear elastic material with phase-field fracture parameters.

    Attributes:
        lame_mu: second Lamé parameter μ (shear modulus)
        lame_lambda: first Lamé parameter λ
        kappa: residual stiffness, keeps the system solvable at φ = 0
        gamma_c: critical energy release rate (fracture energy)
        epsilon: phase-field regularization length
    """
    lame_mu: float
    lame_lambda: float
    kappa: float = 1e-12
    gamma_c: float = 1.0
    epsilon: float = 1e-2

    def __post_init__(self):
        """Validate material parameters."""
        if self.lame_mu <= 0:
            raise ValueError(f"Shear modulus must be positive, got {self.lame_mu}")
        if self.lame_lambda + self.lame_mu <= 0:
            raise ValueError(f"λ + μ must be positive, got {self.lame_lambda + self.lame_mu}")
        if not 0 <= self.kappa < 1:
            raise ValueError(f"kappa must be in [0, 1), got {self.kappa}")
        if self.gamma_c <= 0:
            raise ValueError(f"gamma_c must be positive, got {self.gamma_c}")
        if self.epsilon <= 0:
            raise ValueError(f"epsilon must be positive, got {self.epsilon}")

    @classmethod
    def from_engineering(cls, E: float, nu: float, **kwargs) -> 'PhaseFieldMaterial':
        """
        Create material from Young's modulus and Poisson's ratio.

        λ = E·ν / ((1+ν)(1-2ν)),  μ = E / (2(1+ν))

        Args:
            E: Young's modulus
            nu: Poisson's ratio
            **kwargs: kappa, gamma_c, epsilon

        Returns:
            PhaseFieldMaterial instance
        """
        if E <= 0:
            raise ValueError(f"Young's modulus must be positive, got {E}")
        if not -1 < nu < 0.5:
            raise ValueError(f"Poisson's ratio must be in (-1, 0.5), got {nu}")
        lam = E * nu / ((1 + nu) * (1 - 2 * nu))
        mu = E / (2 * (1 + nu))
        return cls(lame_mu=mu, lame_lambda=lam, **kwargs)

    @classmethod
    def reference(cls) -> 'PhaseFieldMaterial':
        """Reference parameter set (μ = 1e3, λ = 1e6, κ = 1e-12, γ_c = 1, e = 1e-6)."""
        return cls(lame_mu=1000.0, lame_lambda=1e6, kappa=1e-12,
                   gamma_c=1.0, epsilon=1e-6)

    @property
    def youngs_modulus(self) -> float:
        """E = μ(3λ + 2μ) / (λ + μ)"""
        lam, mu = self.lame_lambda, self.lame_mu
        return mu * (3 * lam + 2 * mu) / (lam + mu)

    @property
    def poisson_ratio(self) -> float:
        """ν = λ / (2(λ + μ))"""
        return self.lame_lambda / (2 * (self.lame_lambda + self.lame_mu))

    def degradation(self, phi) -> np.ndarray:
        """
        Stiffness degradation g(φ) = (1-κ)φ² + κ applied to the tensile stress.

        Args:
            phi: phase-field values, any shape

        Returns:
            g(φ), same shape as phi
        """
        phi = np.asarray(phi)
        return (1 - self.kappa) * phi ** 2 + self.kappa

    def with_epsilon(self, epsilon: float) -> 'PhaseFieldMaterial':
        """Return a copy with a different regularization length."""
        return PhaseFieldMaterial(self.lame_mu, self.lame_lambda,
                                  self.kappa, self.gamma_c, epsilon)

    def homogeneous_phase_field(self, psi_plus: float) -> float:
        """
        Phase field of a homogeneous state with tensile energy density ψ⁺.

        Solves (1-κ)φ·2ψ⁺ - (γ_c/e)(1-φ) = 0:
            φ = (γ_c/e) / (γ_c/e + 2(1-κ)ψ⁺)
        """
        a = self.gamma_c / self.epsilon
        return a / (a + 2 * (1 - self.kappa) * psi_plus)
