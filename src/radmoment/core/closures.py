"""
Problem-specific closures for the radiation-moment integrator.

A problem is defined by four customization points, bundled into a
single :class:`RadProblem` strategy object that is handed to the system
at construction:

    - Opacity: Planck and Rosseland mean opacities κ_P(ρ, T), κ_R(ρ, T)
    - EquationOfState: T(ρ, e), e(ρ, T) and heat capacity ∂e/∂T
    - BoundaryPolicy: fills the ghost cells on both ends of the grid
    - RadiationSource: prescribed volumetric radiation-energy source

All closures are vectorized: they take and return numpy arrays over
cells. Opacities have units of cm²/g (absorption coefficient ρκ).
"""

import numpy as np
from abc import ABC, abstractmethod
from typing import Optional

from .rad_system import (
    RAD_ENERGY, X1_RAD_FLUX, RAD_FLUX, GAS_ENERGY, GAS_DENSITY,
    X1_GAS_MOMENTUM, GAS_MOMENTUM, NGHOST,
)


# ============================================================================
# Opacity
# ============================================================================

class Opacity(ABC):
    """Planck and Rosseland mean opacities as functions of (ρ, T)."""

    @abstractmethod
    def planck_opacity(self, rho: np.ndarray, Tgas: np.ndarray) -> np.ndarray:
        """Planck-mean opacity κ_P (used for emission/absorption)."""

    def rosseland_opacity(self, rho: np.ndarray, Tgas: np.ndarray) -> np.ndarray:
        """Rosseland-mean opacity κ_R (used for flux damping)."""
        return self.planck_opacity(rho, Tgas)


class ConstantOpacity(Opacity):
    """Constant κ (absorption coefficient ρκ grows with density)."""

    def __init__(self, kappa: float, kappa_rosseland: Optional[float] = None):
        self.kappa = float(kappa)
        self.kappa_rosseland = float(kappa if kappa_rosseland is None else kappa_rosseland)

    def planck_opacity(self, rho, Tgas):
        return np.full(np.broadcast(rho, Tgas).shape, self.kappa)

    def rosseland_opacity(self, rho, Tgas):
        return np.full(np.broadcast(rho, Tgas).shape, self.kappa_rosseland)

    def __repr__(self) -> str:
        return f"ConstantOpacity(kappa={self.kappa}, kappa_R={self.kappa_rosseland})"


class ConstantSpecificOpacity(Opacity):
    """
    κ = κ₀/ρ, i.e. a constant absorption coefficient ρκ = κ₀.

    Used by the Su & Olson problems, which are posed in terms of a
    fixed total matter opacity χ = ρκ.
    """

    def __init__(self, kappa: float):
        self.kappa = float(kappa)

    def planck_opacity(self, rho, Tgas):
        rho, _ = np.broadcast_arrays(np.asarray(rho, dtype=np.float64), Tgas)
        return self.kappa / rho

    def __repr__(self) -> str:
        return f"ConstantSpecificOpacity(kappa={self.kappa})"


class PowerLawOpacity(Opacity):
    """
    Power-law opacity κ = κ₀ ρ^a T^b.

    The temperature is floored at T_floor so that negative exponents
    (Kramers-like b = -3.5) stay finite in cold cells.
    """

    def __init__(
        self,
        kappa0: float,
        rho_exponent: float = 0.0,
        T_exponent: float = 0.0,
        T_floor: float = 1.0e-10,
    ):
        self.kappa0 = float(kappa0)
        self.rho_exponent = float(rho_exponent)
        self.T_exponent = float(T_exponent)
        self.T_floor = float(T_floor)

    def planck_opacity(self, rho, Tgas):
        T = np.maximum(Tgas, self.T_floor)
        return self.kappa0 * np.power(rho, self.rho_exponent) * np.power(T, self.T_exponent)

    def __repr__(self) -> str:
        return (
            f"PowerLawOpacity(kappa0={self.kappa0}, a={self.rho_exponent}, "
            f"b={self.T_exponent})"
        )


# ============================================================================
# Equation of state
# ============================================================================

class EquationOfState(ABC):
    """
    Gas internal energy <-> temperature.

    gas_temperature and gas_energy must be exact inverses for the same
    density, and heat_capacity must equal ∂(gas_energy)/∂T.
    """

    @abstractmethod
    def gas_temperature(self, rho: np.ndarray, Egas: np.ndarray) -> np.ndarray:
        pass

    @abstractmethod
    def gas_energy(self, rho: np.ndarray, Tgas: np.ndarray) -> np.ndarray:
        pass

    @abstractmethod
    def heat_capacity(self, rho: np.ndarray, Tgas: np.ndarray) -> np.ndarray:
        pass


class IdealGasEOS(EquationOfState):
    """
    Ideal gas with constant heat capacity.

    e = ρ k_B T / (μ (γ - 1))
    """

    def __init__(
        self,
        gamma: float = 5.0 / 3.0,
        mean_molecular_mass: float = 1.0,
        boltzmann_constant: float = 1.0,
    ):
        self.gamma = float(gamma)
        self.mean_molecular_mass = float(mean_molecular_mass)
        self.boltzmann_constant = float(boltzmann_constant)

    @classmethod
    def from_constants(cls, constants) -> 'IdealGasEOS':
        """Build from a RadConstants bundle."""
        return cls(
            gamma=constants.gamma,
            mean_molecular_mass=constants.mean_molecular_mass,
            boltzmann_constant=constants.boltzmann_constant,
        )

    def _cv(self, rho):
        """Volumetric heat capacity ρc_v."""
        return (np.asarray(rho, dtype=np.float64) * self.boltzmann_constant
                / (self.mean_molecular_mass * (self.gamma - 1.0)))

    def gas_temperature(self, rho, Egas):
        return Egas / self._cv(rho)

    def gas_energy(self, rho, Tgas):
        return self._cv(rho) * Tgas

    def heat_capacity(self, rho, Tgas):
        cv = self._cv(rho)
        return cv * np.ones(np.broadcast(cv, Tgas).shape)

    def __repr__(self) -> str:
        return (
            f"IdealGasEOS(gamma={self.gamma:.4f}, mu={self.mean_molecular_mass}, "
            f"k_B={self.boltzmann_constant})"
        )


class QuarticEOS(EquationOfState):
    """
    Gas with heat capacity ∝ T³: e = αT⁴/4, ∂e/∂T = αT³.

    Not a physical gas. Su & Olson (1997) choose α = 4a/ε so that the
    non-equilibrium transport problem becomes linear in aT⁴ and has a
    closed-form solution.
    """

    def __init__(self, alpha: float):
        self.alpha = float(alpha)

    def gas_temperature(self, rho, Egas):
        return np.power(4.0 * np.asarray(Egas, dtype=np.float64) / self.alpha, 0.25)

    def gas_energy(self, rho, Tgas):
        Tgas = np.asarray(Tgas, dtype=np.float64)
        return 0.25 * self.alpha * Tgas**4

    def heat_capacity(self, rho, Tgas):
        Tgas = np.asarray(Tgas, dtype=np.float64)
        return self.alpha * Tgas**3

    def __repr__(self) -> str:
        return f"QuarticEOS(alpha={self.alpha})"


# ============================================================================
# Boundary conditions
# ============================================================================

def ghost_indices(nx: int, side: str) -> np.ndarray:
    """Column indices of the ghost cells on one side, nearest-first."""
    if side == 'left':
        return np.arange(NGHOST - 1, -1, -1)
    if side == 'right':
        return np.arange(NGHOST + nx, 2 * NGHOST + nx)
    raise ValueError(f"side must be 'left' or 'right', got {side!r}")


def _mirror_indices(nx: int, side: str) -> np.ndarray:
    """Interior cells mirrored into the ghost cells, nearest-first."""
    if side == 'left':
        return np.arange(NGHOST, 2 * NGHOST)
    return np.arange(NGHOST + nx - 1, nx - 1, -1)


def _inward(side: str) -> float:
    """Sign of a flux pointing from the boundary into the domain."""
    return 1.0 if side == 'left' else -1.0


class BoundaryCondition(ABC):
    """Fills the ghost cells on one side of the grid."""

    @abstractmethod
    def fill(self, U: np.ndarray, system, side: str) -> None:
        """Overwrite the ghost cells of U on `side` ('left' or 'right')."""


class ReflectingBoundary(BoundaryCondition):
    """
    Mirror boundary: zero net flux through the wall.

    Ghost cells mirror the adjacent interior cells; normal (x1) flux
    and momentum change sign.
    """

    def fill(self, U, system, side):
        ghost = ghost_indices(system.nx, side)
        mirror = _mirror_indices(system.nx, side)
        U[:, ghost] = U[:, mirror]
        U[X1_RAD_FLUX, ghost] = -U[X1_RAD_FLUX, mirror]
        U[X1_GAS_MOMENTUM, ghost] = -U[X1_GAS_MOMENTUM, mirror]

    def __repr__(self) -> str:
        return "ReflectingBoundary()"


class MarshakBoundary(BoundaryCondition):
    """
    Incident-flux boundary for an external blackbody (hohlraum).

    Ghost radiation energy is a T_H⁴ and the ghost flux is the
    free-streaming inward flux c E / 4. Gas variables are copied from
    the nearest interior cell.
    """

    def __init__(self, T_hohlraum: float):
        self.T_hohlraum = float(T_hohlraum)

    def fill(self, U, system, side):
        c = system.constants
        E_inc = c.radiation_constant * self.T_hohlraum**4
        F_inc = c.c_light * E_inc / 4.0

        ghost = ghost_indices(system.nx, side)
        mirror = _mirror_indices(system.nx, side)
        nearest = mirror[0]

        U[:, ghost] = U[:, [nearest]]
        U[RAD_ENERGY, ghost] = E_inc
        U[RAD_FLUX, ghost] = 0.0
        U[X1_RAD_FLUX, ghost] = _inward(side) * F_inc

    def __repr__(self) -> str:
        return f"MarshakBoundary(T_hohlraum={self.T_hohlraum})"


class FixedStateBoundary(BoundaryCondition):
    """
    Ghost cells held at a fixed (floor) state.

    Used where the solution is asymptotically flat at the domain edge,
    e.g. the Gaussian pulse. Fields left as None are copied from the
    nearest interior cell.
    """

    def __init__(
        self,
        Erad: float,
        Egas: Optional[float] = None,
        Frad: float = 0.0,
        rho: Optional[float] = None,
        momentum: float = 0.0,
    ):
        self.Erad = float(Erad)
        self.Egas = Egas
        self.Frad = float(Frad)
        self.rho = rho
        self.momentum = float(momentum)

    @classmethod
    def at_temperature(cls, T: float, rho: float, eos: EquationOfState,
                       radiation_constant: float = 1.0) -> 'FixedStateBoundary':
        """Equilibrium state at temperature T."""
        return cls(
            Erad=radiation_constant * T**4,
            Egas=float(eos.gas_energy(rho, T)),
            rho=rho,
        )

    def fill(self, U, system, side):
        ghost = ghost_indices(system.nx, side)
        nearest = _mirror_indices(system.nx, side)[0]

        U[:, ghost] = U[:, [nearest]]
        U[RAD_ENERGY, ghost] = self.Erad
        U[RAD_FLUX, ghost] = 0.0
        U[X1_RAD_FLUX, ghost] = self.Frad
        U[GAS_MOMENTUM, ghost] = 0.0
        U[X1_GAS_MOMENTUM, ghost] = self.momentum
        if self.rho is not None:
            U[GAS_DENSITY, ghost] = self.rho
        if self.Egas is not None:
            rho = U[GAS_DENSITY, ghost]
            U[GAS_ENERGY, ghost] = self.Egas + 0.5 * self.momentum**2 / rho

    def __repr__(self) -> str:
        return f"FixedStateBoundary(Erad={self.Erad:.3e}, Egas={self.Egas})"


class BoundaryPolicy:
    """Left and right boundary conditions applied together."""

    def __init__(self, left: BoundaryCondition, right: BoundaryCondition):
        self.left = left
        self.right = right

    def fill(self, U: np.ndarray, system) -> None:
        """Overwrite all ghost cells of U; interior cells are never touched."""
        self.left.fill(U, system, 'left')
        self.right.fill(U, system, 'right')

    def __repr__(self) -> str:
        return f"BoundaryPolicy(left={self.left!r}, right={self.right!r})"


# ============================================================================
# External radiation source
# ============================================================================

class RadiationSource(ABC):
    """Prescribed volumetric source added to the radiation energy equation."""

    @abstractmethod
    def evaluate(self, x_left: np.ndarray, x_right: np.ndarray, t: float) -> np.ndarray:
        """Source rate for each cell [x_left, x_right] at time t."""


class NoSource(RadiationSource):

    def evaluate(self, x_left, x_right, t):
        return np.zeros_like(x_left, dtype=np.float64)

    def __repr__(self) -> str:
        return "NoSource()"


class SlabSource(RadiationSource):
    """
    Uniform source of given strength on [0, x0), switched off at t_cutoff.

    A cell straddling x0 receives the strength times the covered
    fraction of its width.
    """

    def __init__(self, strength: float, x0: float, t_cutoff: float = np.inf):
        self.strength = float(strength)
        self.x0 = float(x0)
        self.t_cutoff = float(t_cutoff)

    def evaluate(self, x_left, x_right, t):
        x_left = np.asarray(x_left, dtype=np.float64)
        x_right = np.asarray(x_right, dtype=np.float64)
        if t >= self.t_cutoff:
            return np.zeros_like(x_left)
        frac = np.clip((self.x0 - x_left) / (x_right - x_left), 0.0, 1.0)
        return self.strength * frac

    def __repr__(self) -> str:
        return (
            f"SlabSource(strength={self.strength}, x0={self.x0}, "
            f"t_cutoff={self.t_cutoff})"
        )


# ============================================================================
# Problem strategy
# ============================================================================

class RadProblem:
    """
    Bundle of the four closures that define a radiation problem.

    Attributes:
        opacity: Opacity closure (default: κ = 1)
        eos: EquationOfState (default: ideal gas from the constants)
        boundary: BoundaryPolicy (default: reflecting on both sides)
        source: RadiationSource (default: none)
        name: Problem label
    """

    def __init__(
        self,
        opacity: Optional[Opacity] = None,
        eos: Optional[EquationOfState] = None,
        boundary: Optional[BoundaryPolicy] = None,
        source: Optional[RadiationSource] = None,
        name: str = 'custom',
    ):
        self.opacity = opacity if opacity is not None else ConstantOpacity(1.0)
        self.eos = eos
        self.boundary = boundary if boundary is not None else BoundaryPolicy(
            ReflectingBoundary(), ReflectingBoundary()
        )
        self.source = source if source is not None else NoSource()
        self.name = name

    def bind(self, constants) -> 'RadProblem':
        """Return a copy whose missing EOS is built from the constants."""
        if self.eos is not None:
            return self
        return RadProblem(
            opacity=self.opacity,
            eos=IdealGasEOS.from_constants(constants),
            boundary=self.boundary,
            source=self.source,
            name=self.name,
        )

    def _require_eos(self) -> EquationOfState:
        if self.eos is None:
            raise ValueError("RadProblem has no EOS; bind() it to constants first")
        return self.eos

    def planck_opacity(self, rho, Tgas):
        return self.opacity.planck_opacity(rho, Tgas)

    def rosseland_opacity(self, rho, Tgas):
        return self.opacity.rosseland_opacity(rho, Tgas)

    def gas_temperature(self, rho, Egas):
        return self._require_eos().gas_temperature(rho, Egas)

    def gas_energy(self, rho, Tgas):
        return self._require_eos().gas_energy(rho, Tgas)

    def heat_capacity(self, rho, Tgas):
        return self._require_eos().heat_capacity(rho, Tgas)

    def fill_ghost_zones(self, U: np.ndarray, system) -> None:
        self.boundary.fill(U, system)

    def rad_energy_source(self, x_left, x_right, t):
        return self.source.evaluate(x_left, x_right, t)

    def __repr__(self) -> str:
        return (
            f"RadProblem(name={self.name!r}, opacity={self.opacity!r}, "
            f"eos={self.eos!r}, boundary={self.boundary!r}, source={self.source!r})"
        )
