"""
JAX-accelerated integrator for 1D two-moment (M1) radiation transport.

Implements an operator-split finite volume method with:
    - HLL (Harten-Lax-van Leer) flux for the M1 moment system
    - Piecewise-linear reconstruction (MC limiter) of E and the reduced
      flux f = F/(ĉE), which keeps |F| <= ĉE at interfaces
    - Levermore (1984) Eddington factor χ(f)
    - Optical-depth correction of the HLL wave speeds so the scheme
      recovers the diffusion limit (Skinner et al. 2019)
    - RK2 (Heun's method) time integration of the transport operator
    - Implicit (backward Euler, Newton) radiation-matter energy exchange
    - CFL time step limited by the reduced speed of light

The exchange term ĉρκ_P(aT⁴ - E) is stiff whenever ĉρκ_P Δt >> 1, so it is
solved per cell after the transport update rather than inside the
explicit stencil.

References:
    Harten, A., Lax, P. D., & van Leer, B. (1983). SIAM Review, 25(1), 35-61.
    Levermore, C. D. (1984). JQSRT, 31(2), 149-160.
    Skinner, M. A., et al. (2019). ApJS, 241(2), 26.
    Wibking, B. D., & Krumholz, M. R. (2022). MNRAS, 512(1), 1430-1449.
"""

import logging
import jax
import jax.numpy as jnp
from jax import jit
from functools import partial
from typing import Tuple, Optional, Dict, Any
import numpy as np
from tqdm import tqdm

from .rad_system import (
    RAD_ENERGY, X1_RAD_FLUX, RAD_FLUX, GAS_ENERGY, GAS_DENSITY,
    GAS_MOMENTUM, NGHOST, NVAR,
)
from .exceptions import (
    ConfigurationError,
    InvalidTimestepError,
    ClosureError,
    ReactionConvergenceError,
    CausalityViolationError,
)

# Energy conservation tests need double precision
jax.config.update("jax_enable_x64", True)


# ============================================================================
# Numerical Parameters
# ============================================================================

# Below this cell optical depth the wave-speed correction is exactly 1
TAU_MIN = 1.0e-6

FLUX_POLICIES = ('clamp', 'raise')


# ============================================================================
# M1 Closure
# ============================================================================

@jit
def _eddington_factor(f: jnp.ndarray) -> jnp.ndarray:
    """
    Levermore (1984) Eddington factor.

    χ(f) = (3 + 4f²) / (5 + 2√(4 - 3f²))

    χ = 1/3 for isotropic radiation (f = 0) and χ = 1 for free
    streaming (|f| = 1).
    """
    f2 = jnp.minimum(f * f, 1.0)
    return (3.0 + 4.0 * f2) / (5.0 + 2.0 * jnp.sqrt(4.0 - 3.0 * f2))


@jit
def _m1_flux(E: jnp.ndarray, F: jnp.ndarray, c_hat: float) -> Tuple[jnp.ndarray, jnp.ndarray]:
    """
    Physical flux of the 1D moment system.

    Returns (F, ĉ²χE): the fluxes of E and of F.
    """
    f = jnp.where(E > 0.0, F / (c_hat * E), 0.0)
    chi = _eddington_factor(f)
    return F, c_hat * c_hat * chi * E


# ============================================================================
# Reconstruction
# ============================================================================

@jit
def _mc_slope(q: jnp.ndarray) -> jnp.ndarray:
    """
    Monotonized-central limited slope, zero in the outermost cells.

    slope = minmod(2ΔL, 2ΔR, (ΔL + ΔR)/2)
    """
    dL = q[1:-1] - q[:-2]
    dR = q[2:] - q[1:-1]
    dC = 0.5 * (dL + dR)
    limited = jnp.minimum(jnp.abs(dC), 2.0 * jnp.minimum(jnp.abs(dL), jnp.abs(dR)))
    slope = jnp.where(dL * dR > 0.0, jnp.sign(dC) * limited, 0.0)
    return jnp.pad(slope, 1)


@partial(jit, static_argnums=(1,))
def _reconstruct(q: jnp.ndarray, nghost: int) -> Tuple[jnp.ndarray, jnp.ndarray]:
    """
    Left/right interface states at the nx + 1 faces of the interior.

    Face k separates cells nghost - 1 + k and nghost + k.
    """
    nx = q.shape[0] - 2 * nghost
    slope = _mc_slope(q)
    qL = q[nghost - 1:nghost + nx] + 0.5 * slope[nghost - 1:nghost + nx]
    qR = q[nghost:nghost + nx + 1] - 0.5 * slope[nghost:nghost + nx + 1]
    return qL, qR


# ============================================================================
# HLL Riemann Solver
# ============================================================================

@jit
def _hll_flux(EL: jnp.ndarray, FL: jnp.ndarray,
              ER: jnp.ndarray, FR: jnp.ndarray,
              s_corr: jnp.ndarray, c_hat: float) -> Tuple[jnp.ndarray, jnp.ndarray]:
    """
    HLL interface flux for (E, F).

    F^HLL = (S+ F^L - S- F^R + S+ S- (U^R - U^L)) / (S+ - S-)

    The M1 eigenvalues are bounded by ±ĉ; both are scaled by the
    optical-depth factor s_corr in (0, 1].
    """
    SL = -c_hat * s_corr
    SR = c_hat * s_corr

    fluxE_L, fluxF_L = _m1_flux(EL, FL, c_hat)
    fluxE_R, fluxF_R = _m1_flux(ER, FR, c_hat)

    denom = SR - SL
    flux_E = (SR * fluxE_L - SL * fluxE_R + SL * SR * (ER - EL)) / denom
    flux_F = (SR * fluxF_L - SL * fluxF_R + SL * SR * (FR - FL)) / denom

    return flux_E, flux_F


# ============================================================================
# Right-Hand Side Computation
# ============================================================================

@partial(jit, static_argnums=(3,))
def _compute_rhs(E: jnp.ndarray, F: jnp.ndarray, s_corr: jnp.ndarray,
                 nghost: int, dx: float, c_hat: float) -> jnp.ndarray:
    """
    Flux divergence of the moment system for every interior cell.

    dU/dt = -(F_{i+1/2} - F_{i-1/2}) / Δx

    E and the reduced flux f = F/(ĉE) are reconstructed, so interface
    fluxes satisfy |F| <= ĉE whenever the cell averages do.

    Args:
        E, F: Radiation energy and x1 flux including ghost cells
        s_corr: Wave-speed correction at the nx + 1 faces
        nghost: Number of ghost cells per side (static for JIT)
        dx: Cell width
        c_hat: Reduced speed of light

    Returns:
        Right-hand side array [2, nx] for (E, F)
    """
    f = jnp.where(E > 0.0, F / (c_hat * E), 0.0)

    EL, ER = _reconstruct(E, nghost)
    fL, fR = _reconstruct(f, nghost)

    EL = jnp.maximum(EL, 0.0)
    ER = jnp.maximum(ER, 0.0)
    FL = c_hat * jnp.clip(fL, -1.0, 1.0) * EL
    FR = c_hat * jnp.clip(fR, -1.0, 1.0) * ER

    flux_E, flux_F = _hll_flux(EL, FL, ER, FR, s_corr, c_hat)

    rhs_E = -(flux_E[1:] - flux_E[:-1]) / dx
    rhs_F = -(flux_F[1:] - flux_F[:-1]) / dx

    return jnp.stack([rhs_E, rhs_F])


def _optical_depth_correction(tau: np.ndarray) -> np.ndarray:
    """
    Wave-speed factor √(1 - exp(-τ²)) / τ at each face.

    Tends to 1 for optically thin faces and to 1/τ for thick ones.
    """
    tau_safe = np.maximum(tau, TAU_MIN)
    corr = np.sqrt(-np.expm1(-tau_safe**2)) / tau_safe
    return np.where(tau > TAU_MIN, corr, 1.0)


def _check_closure(values, name: str) -> np.ndarray:
    """Closures must return finite, non-negative values."""
    values = np.asarray(values, dtype=np.float64)
    if not np.all(np.isfinite(values)):
        raise ClosureError(f"{name} returned non-finite values")
    if np.any(values < 0.0):
        raise ClosureError(f"{name} returned negative values (min={values.min():.3e})")
    return values


# ============================================================================
# Main Integrator Class
# ============================================================================

class RadIntegrator:
    """
    Radiation-matter integrator for a :class:`RadSystem`.

    Features:
        - HLL flux with M1 closure and PLM reconstruction
        - RK2 transport with a ghost-zone fill before each stage
        - Implicit Newton solve for the radiation-matter exchange
        - Energy floor and flux causality enforcement
        - All-or-nothing steps: a failed advance leaves the state untouched

    Example:
        >>> from radmoment.core.benchmarks import setup_gaussian_pulse
        >>> system = setup_gaussian_pulse(nx=100)
        >>> integrator = RadIntegrator(system, cfl=0.4)
        >>> dt = integrator.advance(1e-5)

    Attributes:
        system: RadSystem advanced in place
        cfl: CFL number (fraction of Δx/ĉ)
        max_iter: Newton iteration budget of the exchange solve
        reaction_rtol: Energy-residual tolerance relative to local total energy
        flux_tolerance: Allowed relative excess of |F| over ĉE
        flux_policy: 'clamp' (rescale and warn) or 'raise'
        backend: 'gpu' or 'cpu'
    """

    def __init__(
        self,
        system,
        cfl: float = 0.4,
        max_iter: int = 400,
        reaction_rtol: float = 1.0e-10,
        flux_tolerance: float = 1.0e-6,
        flux_policy: str = 'clamp',
        t0: float = 0.0,
        use_gpu: bool = False,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize the integrator.

        Args:
            system: RadSystem with initialized state
            cfl: CFL number in (0, 1]
            max_iter: Maximum Newton iterations per exchange solve
            reaction_rtol: Newton convergence tolerance
            flux_tolerance: Tolerance on the causality bound
            flux_policy: Action on causality violation
            t0: Initial simulation time
            use_gpu: Whether to use GPU acceleration
            logger: Logger (default: 'radmoment.integrator')
        """
        if not 0 < cfl <= 1:
            raise ConfigurationError(f"cfl must be in (0, 1], got {cfl}")
        if int(max_iter) < 1:
            raise ConfigurationError(f"max_iter must be >= 1, got {max_iter}")
        if not reaction_rtol > 0:
            raise ConfigurationError("reaction_rtol must be > 0")
        if flux_policy not in FLUX_POLICIES:
            raise ConfigurationError(
                f"flux_policy must be one of {FLUX_POLICIES}, got {flux_policy!r}"
            )

        self.system = system
        self.cfl = float(cfl)
        self.max_iter = int(max_iter)
        self.reaction_rtol = float(reaction_rtol)
        self.flux_tolerance = float(flux_tolerance)
        self.flux_policy = flux_policy
        self.use_gpu = use_gpu
        self.logger = logger if logger is not None else logging.getLogger('radmoment.integrator')

        self._time = float(t0)
        self._last_dt = 0.0
        self._step_count = 0
        self._newton_iterations = 0
        self._injected_energy = 0.0

        # Configure JAX device
        if use_gpu:
            try:
                jax.devices('gpu')
                self.backend = 'gpu'
            except RuntimeError:
                self.logger.warning("GPU not available, using CPU")
                self.backend = 'cpu'
        else:
            self.backend = 'cpu'

    # ------------------------------------------------------------------
    # Read accessors
    # ------------------------------------------------------------------

    @property
    def time(self) -> float:
        return self._time

    @property
    def last_dt(self) -> float:
        return self._last_dt

    @property
    def step_count(self) -> int:
        return self._step_count

    @property
    def newton_iterations(self) -> int:
        """Newton iterations used by the most recent exchange solve."""
        return self._newton_iterations

    @property
    def injected_energy(self) -> float:
        """Energy added by the external source over all committed steps."""
        return self._injected_energy

    def total_radiation_energy(self) -> float:
        return self.system.total_radiation_energy()

    def total_gas_energy(self) -> float:
        return self.system.total_gas_energy()

    # ------------------------------------------------------------------
    # Time step
    # ------------------------------------------------------------------

    def max_stable_dt(self) -> float:
        """Δt_CFL = CFL * Δx / ĉ."""
        return self.cfl * self.system.dx / self.system.constants.c_hat

    def compute_dt(self, dt_requested: float) -> float:
        """
        Admissible time step for a requested upper bound.

        Δt = min(Δt_requested, CFL * Δx / ĉ)
        """
        if not np.isfinite(dt_requested) or dt_requested <= 0:
            raise InvalidTimestepError(
                f"Requested timestep must be positive and finite, got {dt_requested}"
            )
        dt_cfl = self.max_stable_dt()
        if not (np.isfinite(dt_cfl) and dt_cfl > 0):
            raise ConfigurationError(f"CFL-limited timestep is not positive: {dt_cfl}")
        return min(float(dt_requested), dt_cfl)

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _face_correction(self, U: np.ndarray) -> np.ndarray:
        """Optical-depth wave-speed correction at the nx + 1 faces."""
        system = self.system
        rho = U[GAS_DENSITY, system.interior]
        T = _check_closure(system.gas_temperature(U), "gas_temperature")
        kappa_R = _check_closure(
            system.problem.rosseland_opacity(rho, T), "rosseland_opacity"
        )
        tau = system.dx * rho * kappa_R
        tau_pad = np.concatenate([tau[:1], tau, tau[-1:]])
        tau_face = 0.5 * (tau_pad[:-1] + tau_pad[1:])
        return _optical_depth_correction(tau_face)

    def _source_rate(self, t: float) -> np.ndarray:
        """External radiation-energy source of every interior cell at time t."""
        x_left, x_right = self.system.x_edges
        source = np.asarray(
            self.system.problem.rad_energy_source(x_left, x_right, t), dtype=np.float64
        )
        if source.shape != (self.system.nx,) or not np.all(np.isfinite(source)):
            raise ClosureError("rad_energy_source must return nx finite values")
        return source

    def _compute_rhs(self, U: np.ndarray, source: np.ndarray) -> np.ndarray:
        """
        Spatial operator L(U) plus the external source for the interior cells.

        U must have freshly filled ghost cells.
        """
        system = self.system
        c_hat = system.constants.c_hat

        s_corr = self._face_correction(U)
        rhs = np.asarray(_compute_rhs(
            jnp.asarray(U[RAD_ENERGY]),
            jnp.asarray(U[X1_RAD_FLUX]),
            jnp.asarray(s_corr),
            NGHOST,
            system.dx,
            c_hat,
        ))

        L = np.zeros((NVAR, system.nx), dtype=np.float64)
        L[RAD_ENERGY] = rhs[0] + source
        L[X1_RAD_FLUX] = rhs[1]
        return L

    def _apply_floors(self, U: np.ndarray) -> int:
        """Clamp interior Erad to the floor; returns number of floored cells."""
        ii = self.system.interior
        floor = self.system.constants.erad_floor
        below = U[RAD_ENERGY, ii] < floor
        n_floored = int(np.count_nonzero(below))
        if n_floored:
            U[RAD_ENERGY, ii] = np.maximum(U[RAD_ENERGY, ii], floor)
        return n_floored

    def _limit_flux(self, U: np.ndarray, policy: str = 'clamp') -> int:
        """
        Enforce |F| <= ĉE on interior cells.

        Returns the number of cells that exceeded the bound beyond
        flux_tolerance.
        """
        ii = self.system.interior
        c_hat = self.system.constants.c_hat
        E = U[RAD_ENERGY, ii]
        F = U[RAD_FLUX, ii]
        Fmag = np.sqrt(np.sum(F**2, axis=0))
        bound = c_hat * np.maximum(E, 0.0)

        violated = Fmag > bound * (1.0 + self.flux_tolerance)
        n_violated = int(np.count_nonzero(violated))
        if n_violated == 0:
            return 0

        max_ratio = float(np.max(Fmag[violated] / np.maximum(bound[violated], 1e-300)))
        if policy == 'raise':
            raise CausalityViolationError(
                f"|F| > c_hat*Erad in {n_violated} cells (max |F|/(c_hat E) = {max_ratio:.6f})"
            )

        scale = np.where(violated, bound / np.maximum(Fmag, 1e-300), 1.0)
        U[RAD_FLUX, ii] = F * scale
        return n_violated

    # ------------------------------------------------------------------
    # Radiation-matter exchange
    # ------------------------------------------------------------------

    def _reaction_update(self, U: np.ndarray, dt: float) -> None:
        """
        Implicit radiation-matter energy exchange, local to each cell.

        Solves, with E + e = const per cell,

            e - e₀ + ĉΔt ρκ_P(T) (aT⁴ - E) = 0,    E = E₀ + e₀ - e(T)

        by Newton iteration in T, using the EOS heat capacity as the
        Jacobian. The flux is then damped implicitly,

            F ← F / (1 + ĉΔt ρκ_R).

        Raises:
            ReactionConvergenceError: if any cell fails to converge
                within max_iter iterations
        """
        system = self.system
        problem = system.problem
        consts = system.constants
        ii = system.interior
        a_rad = consts.radiation_constant
        c_hat = consts.c_hat

        rho = U[GAS_DENSITY, ii]
        E0 = U[RAD_ENERGY, ii]
        mom = U[GAS_MOMENTUM, ii]
        e_kin = 0.5 * np.sum(mom**2, axis=0) / rho
        e0 = U[GAS_ENERGY, ii] - e_kin
        E_tot = E0 + e0

        T = _check_closure(problem.gas_temperature(rho, e0), "gas_temperature")
        # Start cold cells from the radiation temperature
        T_rad = (np.maximum(E0, 0.0) / a_rad)**0.25
        T = np.where(T > 0.0, T, T_rad)

        tol = self.reaction_rtol * np.abs(E_tot)
        converged = np.zeros(system.nx, dtype=bool)
        resid = np.zeros(system.nx)

        for n_iter in range(self.max_iter):
            e = _check_closure(problem.gas_energy(rho, T), "gas_energy")
            kappa_P = _check_closure(problem.planck_opacity(rho, T), "planck_opacity")
            coupling = dt * c_hat * rho * kappa_P
            E = E_tot - e

            resid = e - e0 + coupling * (a_rad * T**4 - E)
            # Residual scales with the stiffness 1 + coupling
            converged = np.abs(resid) <= tol * (1.0 + coupling)
            if np.all(converged):
                break

            cv = _check_closure(problem.heat_capacity(rho, T), "heat_capacity")
            jac = cv + coupling * (4.0 * a_rad * T**3 + cv)
            dT = np.where(converged | (jac <= 0.0), 0.0, -resid / np.where(jac > 0.0, jac, 1.0))
            T_new = T + dT
            T = np.where(T_new > 0.0, T_new, 0.5 * T)
        else:
            n_failed = int(np.count_nonzero(~converged))
            scaled = np.abs(resid) / ((1.0 + coupling) * np.maximum(np.abs(E_tot), 1e-300))
            max_resid = float(np.max(scaled[~converged]))
            raise ReactionConvergenceError(
                f"Radiation-matter exchange did not converge in {self.max_iter} "
                f"iterations ({n_failed} cells, max relative residual {max_resid:.3e})",
                n_failed=n_failed,
                max_residual=max_resid,
            )

        self._newton_iterations = n_iter

        e_new = problem.gas_energy(rho, T)
        E_new = E_tot - e_new

        kappa_P = _check_closure(problem.planck_opacity(rho, T), "planck_opacity")
        kappa_R = _check_closure(problem.rosseland_opacity(rho, T), "rosseland_opacity")
        damping = 1.0 + dt * c_hat * rho * kappa_R
        F_new = U[RAD_FLUX, ii] / damping

        if consts.compute_v_over_c_terms:
            E_new, e_new, F_new = self._v_over_c_terms(
                dt, rho, mom, T, E_new, e_new, F_new, kappa_P, kappa_R, damping
            )

        U[RAD_ENERGY, ii] = E_new
        U[GAS_ENERGY, ii] = e_new + e_kin
        U[RAD_FLUX, ii] = F_new

    def _v_over_c_terms(self, dt, rho, mom, T, E, e, F, kappa_P, kappa_R, damping):
        """
        O(v/c) mixed-frame exchange terms for moving gas (explicit).

        Energy: radiation gains -ĉρ(κ_R - 2κ_P)(v·F)/c², gas loses the same.
        Flux:   gains ĉρ[κ_P aT⁴ + κ_R(1 + χ)E] v/c, damped like F.

        Gas momentum is not updated: the gas is static in this model.
        """
        consts = self.system.constants
        c, c_hat, a_rad = consts.c_light, consts.c_hat, consts.radiation_constant

        v = mom / rho
        vF = np.sum(v * F, axis=0)
        work = -dt * c_hat * rho * (kappa_R - 2.0 * kappa_P) * vF / c**2
        E = E + work
        e = e - work

        Fmag = np.sqrt(np.sum(F**2, axis=0))
        f = np.where(E > 0.0, Fmag / (c_hat * np.maximum(E, 1e-300)), 0.0)
        chi = np.asarray(_eddington_factor(jnp.asarray(f)))
        drive = dt * c_hat * rho * (kappa_P * a_rad * T**4 + kappa_R * (1.0 + chi) * E) / c
        F = F + drive * v / damping
        return E, e, F

    # ------------------------------------------------------------------
    # Time stepping
    # ------------------------------------------------------------------

    def advance(self, dt_requested: float) -> float:
        """
        Advance the system by one time step.

        Stage 1:  fill ghosts(U);  U* = U + Δt L(U, t)
        Stage 2:  fill ghosts(U*); U' = U + Δt/2 (L(U, t) + L(U*, t+Δt))
        Exchange: implicit radiation-matter coupling on U'
        Floors:   Erad >= floor, |F| <= ĉE

        The step is computed on copies and committed only if every
        stage succeeds.

        Args:
            dt_requested: Upper bound on the time step

        Returns:
            Time step actually used
        """
        system = self.system
        if not system._initialized:
            raise ConfigurationError("Radiation system not initialized. Call set_interior/init_* first.")

        dt = self.compute_dt(dt_requested)
        problem = system.problem
        ii = system.interior
        t = self._time

        U0 = system.U.copy()

        # Stage 1: Forward Euler predictor
        problem.fill_ghost_zones(U0, system)
        S0 = self._source_rate(t)
        L0 = self._compute_rhs(U0, S0)
        U_star = U0.copy()
        U_star[:, ii] += dt * L0

        # Apply floors to intermediate state
        self._apply_floors(U_star)
        self._limit_flux(U_star, policy='clamp')

        # Stage 2: Corrector
        problem.fill_ghost_zones(U_star, system)
        S1 = self._source_rate(t + dt)
        L1 = self._compute_rhs(U_star, S1)
        U_new = U0.copy()
        U_new[:, ii] += 0.5 * dt * (L0 + L1)
        self._apply_floors(U_new)

        # Radiation-matter exchange
        self._reaction_update(U_new, dt)

        n_floored = self._apply_floors(U_new)
        if n_floored:
            self.logger.debug(f"Erad floored in {n_floored} cells at t={t + dt:.6e}")
        n_clamped = self._limit_flux(U_new, policy=self.flux_policy)
        if n_clamped:
            self.logger.warning(
                f"|F| > c_hat*Erad in {n_clamped} cells at t={t + dt:.6e}; flux clamped"
            )

        # Commit
        system.U[...] = U_new
        self._time = t + dt
        self._last_dt = dt
        self._step_count += 1
        self._injected_energy += 0.5 * dt * float(np.sum(S0 + S1)) * system.dx

        return dt

    def run(
        self,
        t_end: float,
        dt_max: float,
        dt_initial: Optional[float] = None,
        max_steps: int = 1_000_000,
        save_dt: Optional[float] = None,
        verbose: bool = True
    ) -> Dict[str, Any]:
        """
        Advance until t_end or max_steps.

        Args:
            t_end: Final simulation time
            dt_max: Upper bound on every time step after the first
            dt_initial: Upper bound on the first time step (default dt_max)
            max_steps: Step budget
            save_dt: Time interval for saving snapshots (None: only final)
            verbose: Show a progress bar

        Returns:
            Dictionary with simulation results
        """
        system = self.system
        if not system._initialized:
            raise ValueError("Radiation system not initialized. Call set_interior/init_* first.")

        # Storage
        snapshots = [(self._time, system.U[:, system.interior].copy())]
        times = [self._time]
        radiation_energy = [system.total_radiation_energy()]
        gas_energy = [system.total_gas_energy()]
        dts = []
        next_save = self._time + save_dt if save_dt else np.inf
        steps = 0

        # Progress bar
        if verbose:
            pbar = tqdm(total=max(t_end - self._time, 0.0), desc="      Simulating",
                        unit="t", bar_format="{l_bar}{bar}| {n:.4g}/{total:.4g} [{elapsed}]")

        while self._time < t_end and steps < max_steps:
            dt_bound = dt_initial if (steps == 0 and dt_initial) else dt_max

            # Don't overshoot
            dt_bound = min(dt_bound, t_end - self._time)

            dt = self.advance(dt_bound)
            steps += 1
            dts.append(dt)
            times.append(self._time)
            radiation_energy.append(system.total_radiation_energy())
            gas_energy.append(system.total_gas_energy())

            if self._time >= next_save:
                snapshots.append((self._time, system.U[:, system.interior].copy()))
                while next_save <= self._time:
                    next_save += save_dt

            if verbose:
                pbar.update(dt)

        if verbose:
            pbar.close()

        if snapshots[-1][0] != self._time:
            snapshots.append((self._time, system.U[:, system.interior].copy()))

        return {
            'snapshots': snapshots,
            'system': system,
            'times': np.array(times),
            'radiation_energy': np.array(radiation_energy),
            'gas_energy': np.array(gas_energy),
            'dt': np.array(dts),
            't_end': t_end,
            't_final': self._time,
            'reached_t_end': self._time >= t_end,
            'total_steps': steps,
            'injected_energy': self._injected_energy,
            'backend': self.backend,
        }

    def __repr__(self) -> str:
        return (
            f"RadIntegrator(cfl={self.cfl}, backend='{self.backend}', "
            f"solver='HLL-M1', flux_policy='{self.flux_policy}')"
        )
