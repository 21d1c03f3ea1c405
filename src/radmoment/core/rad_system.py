"""
1D Radiation-Matter System Definition (two-moment / M1 closure).

The two-moment equations of radiative transfer, with a reduced speed of
light ĉ, coupled to the internal energy of a static gas:

    ∂E/∂t + ∂F/∂x = ĉρκ_P (aT⁴ - E) + S            (radiation energy)
    ∂F/∂t + ĉ² ∂(χE)/∂x = -ĉρκ_R F                  (radiation flux)
    ∂e/∂t = -ĉρκ_P (aT⁴ - E)                        (gas internal energy)

where:
    E = radiation energy density
    F = radiation flux
    χ(f) = Eddington factor of the reduced flux f = F/(ĉE)
    e = gas internal energy density, T = T(ρ, e) from the EOS closure
    S = prescribed external source

Conserved state U[k, i] (named row indices below):
    U[RAD_ENERGY]       = E
    U[X1_RAD_FLUX..]    = F₁, F₂, F₃
    U[GAS_ENERGY]       = e + |p|²/(2ρ)  (total gas energy)
    U[GAS_DENSITY]      = ρ
    U[X1_GAS_MOMENTUM..]= p₁, p₂, p₃

Column i runs over nx interior cells bordered by NGHOST ghost cells on each
side. Ghost cells are owned by the boundary policy and refilled before every
flux evaluation.

References:
    Levermore, C. D. (1984). Relating Eddington factors to flux limiters.
        JQSRT, 31(2), 149-160.
    Su, B., & Olson, G. L. (1997). An analytical benchmark for non-equilibrium
        radiative transfer in an isotropically scattering medium.
        Ann. Nucl. Energy, 24(13), 1035-1055.
"""

import numpy as np
from typing import Tuple, Optional, Dict, Any
from dataclasses import dataclass, asdict

from .exceptions import ConfigurationError


# State layout
RAD_ENERGY = 0
X1_RAD_FLUX = 1
X2_RAD_FLUX = 2
X3_RAD_FLUX = 3
GAS_ENERGY = 4
GAS_DENSITY = 5
X1_GAS_MOMENTUM = 6
X2_GAS_MOMENTUM = 7
X3_GAS_MOMENTUM = 8
NVAR = 9

RAD_FLUX = slice(X1_RAD_FLUX, X3_RAD_FLUX + 1)
GAS_MOMENTUM = slice(X1_GAS_MOMENTUM, X3_GAS_MOMENTUM + 1)

# Two ghost cells are needed by the piecewise-linear reconstruction
NGHOST = 2

VARIABLE_NAMES = (
    'radEnergy', 'x1RadFlux', 'x2RadFlux', 'x3RadFlux',
    'gasEnergy', 'gasDensity',
    'x1GasMomentum', 'x2GasMomentum', 'x3GasMomentum',
)


@dataclass(frozen=True)
class RadConstants:
    """
    Immutable bundle of physical constants for one problem.

    All benchmark problems run in dimensionless code units, so the
    defaults are unity.

    Attributes:
        c_light: Speed of light
        c_hat: Reduced speed of light (fastest signal in the moment system)
        radiation_constant: a, with E_blackbody = aT⁴
        mean_molecular_mass: μ (ideal-gas EOS)
        boltzmann_constant: k_B (ideal-gas EOS)
        gamma: Adiabatic index
        erad_floor: Lower bound on radiation energy density
        compute_v_over_c_terms: Include O(v/c) matter-radiation terms
    """
    c_light: float = 1.0
    c_hat: float = 1.0
    radiation_constant: float = 1.0
    mean_molecular_mass: float = 1.0
    boltzmann_constant: float = 1.0
    gamma: float = 5.0 / 3.0
    erad_floor: float = 0.0
    compute_v_over_c_terms: bool = False

    def __post_init__(self):
        """Reject unphysical constants."""
        if not self.c_light > 0:
            raise ConfigurationError(f"c_light must be > 0, got {self.c_light}")
        if not 0 < self.c_hat <= self.c_light:
            raise ConfigurationError(
                f"c_hat must be in (0, c_light], got {self.c_hat}"
            )
        if not self.radiation_constant > 0:
            raise ConfigurationError("radiation_constant must be > 0")
        if not (self.mean_molecular_mass > 0 and self.boltzmann_constant > 0):
            raise ConfigurationError(
                "mean_molecular_mass and boltzmann_constant must be > 0"
            )
        if not self.gamma > 1:
            raise ConfigurationError(f"gamma must be > 1, got {self.gamma}")
        if not (np.isfinite(self.erad_floor) and self.erad_floor >= 0):
            raise ConfigurationError(f"erad_floor must be >= 0, got {self.erad_floor}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)


class RadSystem:
    """
    1D radiation-matter system on a uniform grid with ghost cells.

    Owns the conserved state array and the problem strategy (opacity,
    EOS, boundary and source closures). Time advancement is done by
    :class:`~radmoment.core.integrator.RadIntegrator`.

    Attributes:
        constants: RadConstants for this problem
        problem: RadProblem bundling the closures
        U: Conserved variables [NVAR, nx + 2*NGHOST]
        dx: Cell width
        x: Interior cell centres

    Example:
        >>> from radmoment.core.closures import RadProblem
        >>> system = RadSystem(nx=100, Lx=1.0, problem=RadProblem())
        >>> system.init_equilibrium(T=1.0, rho=1.0)
    """

    def __init__(
        self,
        nx: int,
        Lx: float,
        constants: Optional[RadConstants] = None,
        problem=None,
    ):
        """
        Initialize the grid and a zero state.

        Args:
            nx: Number of interior cells
            Lx: Domain length (domain is [0, Lx])
            constants: Physical constants (defaults to unit code units)
            problem: RadProblem strategy (defaults to RadProblem())
        """
        if int(nx) < NGHOST:
            raise ConfigurationError(f"nx must be >= {NGHOST}, got {nx}")
        if not (np.isfinite(Lx) and Lx > 0):
            raise ConfigurationError(f"Lx must be > 0, got {Lx}")

        if problem is None:
            from .closures import RadProblem
            problem = RadProblem()

        self.constants = constants if constants is not None else RadConstants()
        # Closures that depend on the constants (ideal-gas EOS) are bound here
        self.problem = problem.bind(self.constants)

        self._nx = int(nx)
        self._Lx = float(Lx)
        self.dx = self._Lx / self._nx
        self.x = (np.arange(self._nx) + 0.5) * self.dx

        self.U = np.zeros((NVAR, self._nx + 2 * NGHOST), dtype=np.float64)
        self.interior = slice(NGHOST, NGHOST + self._nx)

        self._initialized = False
        self._init_type = None

    @property
    def nx(self) -> int:
        return self._nx

    @property
    def Lx(self) -> float:
        return self._Lx

    @property
    def nghost(self) -> int:
        return NGHOST

    @property
    def x_edges(self) -> Tuple[np.ndarray, np.ndarray]:
        """Left and right edge coordinates of the interior cells."""
        left = np.arange(self._nx) * self.dx
        return left, left + self.dx

    # ------------------------------------------------------------------
    # Per-cell read accessors (interior cells only)
    # ------------------------------------------------------------------

    @property
    def Erad(self) -> np.ndarray:
        return self.U[RAD_ENERGY, self.interior]

    @property
    def Frad(self) -> np.ndarray:
        """x1 radiation flux."""
        return self.U[X1_RAD_FLUX, self.interior]

    @property
    def Egas(self) -> np.ndarray:
        return self.U[GAS_ENERGY, self.interior]

    @property
    def rho(self) -> np.ndarray:
        return self.U[GAS_DENSITY, self.interior]

    @property
    def momentum(self) -> np.ndarray:
        """Gas momentum components [3, nx]."""
        return self.U[GAS_MOMENTUM, self.interior]

    # ------------------------------------------------------------------
    # Initialization
    # ------------------------------------------------------------------

    def set_interior(
        self,
        Erad,
        Egas,
        rho,
        Frad=0.0,
        momentum=0.0,
        init_type: str = 'custom',
    ):
        """
        Write every interior cell.

        Scalars are broadcast over the grid. Frad and momentum may be
        given as x1 components [nx] or full vectors [3, nx].

        Args:
            Erad: Radiation energy density
            Egas: Total gas energy density
            rho: Gas density (must be > 0)
            Frad: Radiation flux
            momentum: Gas momentum
            init_type: Label recorded for describe()
        """
        n = self._nx
        rho = np.broadcast_to(np.asarray(rho, dtype=np.float64), (n,))
        if np.any(rho <= 0) or not np.all(np.isfinite(rho)):
            raise ConfigurationError("Gas density must be finite and > 0")

        U = self.U
        ii = self.interior
        U[RAD_ENERGY, ii] = np.broadcast_to(Erad, (n,))
        U[GAS_ENERGY, ii] = np.broadcast_to(Egas, (n,))
        U[GAS_DENSITY, ii] = rho

        Frad = np.asarray(Frad, dtype=np.float64)
        U[RAD_FLUX, ii] = 0.0
        if Frad.ndim == 2:
            U[RAD_FLUX, ii] = Frad
        else:
            U[X1_RAD_FLUX, ii] = np.broadcast_to(Frad, (n,))

        momentum = np.asarray(momentum, dtype=np.float64)
        U[GAS_MOMENTUM, ii] = 0.0
        if momentum.ndim == 2:
            U[GAS_MOMENTUM, ii] = momentum
        else:
            U[X1_GAS_MOMENTUM, ii] = np.broadcast_to(momentum, (n,))

        if not np.all(np.isfinite(U[:, ii])):
            raise ConfigurationError("Initial state contains non-finite values")

        self._initialized = True
        self._init_type = init_type

    def init_uniform(self, Erad: float, Egas: float, rho: float = 1.0):
        """Initialize a uniform state at rest with zero flux."""
        self.set_interior(Erad=Erad, Egas=Egas, rho=rho, init_type='uniform')

    def init_equilibrium(self, T, rho=1.0):
        """
        Initialize radiation and gas in thermal equilibrium.

        Erad = aT⁴ and Egas = EOS(ρ, T), zero flux and momentum.

        Args:
            T: Temperature (scalar or [nx])
            rho: Gas density (scalar or [nx])
        """
        n = self._nx
        T = np.broadcast_to(np.asarray(T, dtype=np.float64), (n,))
        rho = np.broadcast_to(np.asarray(rho, dtype=np.float64), (n,))
        a_rad = self.constants.radiation_constant
        self.set_interior(
            Erad=a_rad * T**4,
            Egas=self.problem.gas_energy(rho, T),
            rho=rho,
            init_type='equilibrium',
        )

    # ------------------------------------------------------------------
    # Derived quantities
    # ------------------------------------------------------------------

    def internal_energy(self, U: Optional[np.ndarray] = None) -> np.ndarray:
        """Gas internal energy density e = Egas - |p|²/(2ρ) (interior)."""
        if U is None:
            U = self.U
        ii = self.interior
        rho = U[GAS_DENSITY, ii]
        p2 = np.sum(U[GAS_MOMENTUM, ii]**2, axis=0)
        return U[GAS_ENERGY, ii] - 0.5 * p2 / rho

    def gas_temperature(self, U: Optional[np.ndarray] = None) -> np.ndarray:
        """Gas temperature from the EOS closure (interior)."""
        if U is None:
            U = self.U
        return self.problem.gas_temperature(
            U[GAS_DENSITY, self.interior], self.internal_energy(U)
        )

    def radiation_temperature(self, U: Optional[np.ndarray] = None) -> np.ndarray:
        """Radiation temperature (E/a)^(1/4) (interior)."""
        if U is None:
            U = self.U
        Erad = np.maximum(U[RAD_ENERGY, self.interior], 0.0)
        return (Erad / self.constants.radiation_constant)**0.25

    def reduced_flux(self, U: Optional[np.ndarray] = None) -> np.ndarray:
        """|F| / (ĉE) per interior cell."""
        if U is None:
            U = self.U
        ii = self.interior
        Fmag = np.sqrt(np.sum(U[RAD_FLUX, ii]**2, axis=0))
        Erad = U[RAD_ENERGY, ii]
        with np.errstate(divide='ignore', invalid='ignore'):
            return np.where(Erad > 0, Fmag / (self.constants.c_hat * Erad), 0.0)

    def total_radiation_energy(self, U: Optional[np.ndarray] = None) -> float:
        """Integral of Erad over interior cells (ghosts excluded)."""
        if U is None:
            U = self.U
        return float(np.sum(U[RAD_ENERGY, self.interior]) * self.dx)

    def total_gas_energy(self, U: Optional[np.ndarray] = None) -> float:
        """Integral of Egas over interior cells (ghosts excluded)."""
        if U is None:
            U = self.U
        return float(np.sum(U[GAS_ENERGY, self.interior]) * self.dx)

    def describe(self) -> str:
        """Return detailed description of the system."""
        c = self.constants
        return f"""
1D Two-Moment Radiation-Matter System
=====================================
Grid: nx = {self.nx} cells (+{NGHOST} ghost cells per side)
Domain: [0, {self.Lx:.6g}], dx = {self.dx:.6e}

Physical Constants:
  c       = {c.c_light:.6g}
  c_hat   = {c.c_hat:.6g}
  a_rad   = {c.radiation_constant:.6g}
  mu      = {c.mean_molecular_mass:.6g}
  k_B     = {c.boltzmann_constant:.6g}
  gamma   = {c.gamma:.4f}
  Erad_floor = {c.erad_floor:.3e}
  v/c terms  = {c.compute_v_over_c_terms}

Problem: {self.problem!r}
Initialization: {self._init_type if self._initialized else 'Not initialized'}

Governing Equations:
  ∂E/∂t + ∂F/∂x = ĉρκ_P(aT⁴ - E) + S
  ∂F/∂t + ĉ²∂(χE)/∂x = -ĉρκ_R F
  ∂e/∂t = -ĉρκ_P(aT⁴ - E)
"""

    def __repr__(self) -> str:
        return (
            f"RadSystem(nx={self.nx}, Lx={self.Lx:.4g}, "
            f"init={self._init_type})"
        )

    def __str__(self) -> str:
        return self.__repr__()
