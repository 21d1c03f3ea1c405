"""
Benchmark problems for the radiation-moment integrator.

Three classical verification problems, all in dimensionless units
(a = c = 1, lengths in mean free paths, times in mean free times):

    - Su & Olson (1997) source problem: a slab source of radiation in
      |x| < x0 switched off at t0, non-equilibrium transport through a
      medium with heat capacity ∝ T³. Tabulated transport solution.
    - Su & Olson Marshak wave: a hohlraum at T_H drives a wave into a
      cold slab through an incident-flux boundary.
    - Gaussian diffusion pulse: optically thick pulse whose width grows
      as σ² + Dt with D = c/(3ρκ).

References:
    Su, B., & Olson, G. L. (1997). Ann. Nucl. Energy, 24(13), 1035-1055.
    Olson, G. L., Auer, L. H., & Hall, M. L. (2000). JQSRT, 64(6), 619-634.
"""

import numpy as np
from typing import Dict, Any, Optional

from .rad_system import RadSystem, RadConstants
from .metrics import compare_profiles
from .closures import (
    RadProblem,
    BoundaryPolicy,
    ReflectingBoundary,
    MarshakBoundary,
    FixedStateBoundary,
    ConstantOpacity,
    ConstantSpecificOpacity,
    QuarticEOS,
    IdealGasEOS,
    SlabSource,
)


# ============================================================================
# Su & Olson (1997) parameters
# ============================================================================

SUOLSON_EPSILON = 1.0
SUOLSON_T_HOHLRAUM = 1.0
SUOLSON_X0 = 0.5
SUOLSON_T0 = 10.0

# Tabulated transport solution (Su & Olson 1997, Tables 1-2), ε = 1
SUOLSON_X = np.array([
    0.01, 0.1, 0.17783, 0.31623, 0.45, 0.5, 0.56234, 0.75, 1.0,
    1.33352, 1.77828, 3.16228, 5.62341,
])

SUOLSON_ERAD_TRANSPORT = {
    1.0: np.array([
        0.64308, 0.63585, 0.61958, 0.56187, 0.44711, 0.35801, 0.25374,
        0.11430, 0.03648, 0.00291, 0.0, 0.0, 0.0,
    ]),
    10.0: np.array([
        2.23575, 2.21944, 2.18344, 2.06448, 1.86072, 1.73178, 1.57496,
        1.27398, 0.98782, 0.70822, 0.45016, 0.09673, 0.00375,
    ]),
}

SUOLSON_EGAS_TRANSPORT = {
    1.0: np.array([
        0.27126, 0.26839, 0.26261, 0.23978, 0.18826, 0.14187, 0.08838,
        0.03014, 0.00625, 0.00017, 0.0, 0.0, 0.0,
    ]),
    10.0: np.array([
        2.11186, 2.09585, 2.06052, 1.94365, 1.74291, 1.61536, 1.46027,
        1.16591, 0.88992, 0.62521, 0.38688, 0.07642, 0.00253,
    ]),
}

# P1 (diffusion) solution at t = 10, for comparison plots
SUOLSON_ERAD_DIFFUSION = {
    10.0: np.array([
        1.86585, 1.85424, 1.82889, 1.74866, 1.62824, 1.57237, 1.50024,
        1.29758, 1.06011, 0.79696, 0.52980, 0.12187, 0.00445,
    ]),
}

# Gaussian pulse parameters
PULSE_KAPPA = 200.0
PULSE_SIGMA = 0.025
PULSE_T_FLOOR = 1.0e-5
PULSE_INITIAL_TIME = 0.01


def suolson_alpha(radiation_constant: float = 1.0, epsilon: float = SUOLSON_EPSILON) -> float:
    """Heat-capacity coefficient α = 4a/ε of the Su & Olson problems."""
    return 4.0 * radiation_constant / epsilon


def suolson_reference(t: float = 10.0) -> Dict[str, np.ndarray]:
    """
    Tabulated Su & Olson transport solution at t = 1 or t = 10.

    Returns:
        Dictionary with 'x', 'Erad', 'Egas' and 'Tgas' arrays
    """
    if t not in SUOLSON_ERAD_TRANSPORT:
        raise KeyError(f"No tabulated Su & Olson solution at t={t}; "
                       f"available: {sorted(SUOLSON_ERAD_TRANSPORT)}")

    Egas = SUOLSON_EGAS_TRANSPORT[t]
    eos = QuarticEOS(suolson_alpha())
    return {
        'x': SUOLSON_X.copy(),
        'Erad': SUOLSON_ERAD_TRANSPORT[t].copy(),
        'Egas': Egas.copy(),
        'Tgas': eos.gas_temperature(1.0, Egas),
    }


def gaussian_pulse_solution(x, t: float, kappa: float = PULSE_KAPPA,
                            rho: float = 1.0, c_light: float = 1.0,
                            sigma: float = PULSE_SIGMA) -> np.ndarray:
    """
    Diffusion-limit radiation energy of a Gaussian pulse centred on x = 0.

    E(x, t) = exp(-x² / (4w)) / (2√(πw)),  w = σ² + Dt,  D = c/(3ρκ)

    Args:
        x: Distance from the pulse centre
        t: Time since the pulse had width σ
    """
    D = c_light / (3.0 * rho * kappa)
    width_sq = sigma**2 + D * t
    normfac = 1.0 / (2.0 * np.sqrt(np.pi * width_sq))
    return normfac * np.exp(-np.asarray(x)**2 / (4.0 * width_sq))


# ============================================================================
# Problem set-ups
# ============================================================================

def setup_suolson_source(
    nx: int = 600,
    Lx: float = 30.0,
    T_hohlraum: float = SUOLSON_T_HOHLRAUM,
    x0: float = SUOLSON_X0,
    t0: float = SUOLSON_T0,
) -> RadSystem:
    """
    Su & Olson radiating-source problem.

    Source S = Q a T_H⁴ with Q = 1/(2x₀) in [0, x₀) for t < t₀, reflecting
    at x = 0 (symmetry plane) and at x = Lx. The initial state and the
    energy floor are 10⁻¹⁰ of the equilibrium state at T_H.

    Args:
        nx: Number of cells
        Lx: Domain length (must be well beyond the wave front)
        T_hohlraum: Source temperature
        x0: Source half-width
        t0: Source switch-off time

    Returns:
        Initialized RadSystem
    """
    a_rad = 1.0
    E_H = a_rad * T_hohlraum**4
    Q = 1.0 / (2.0 * x0)

    eos = QuarticEOS(suolson_alpha(a_rad))
    problem = RadProblem(
        opacity=ConstantSpecificOpacity(1.0),
        eos=eos,
        boundary=BoundaryPolicy(ReflectingBoundary(), ReflectingBoundary()),
        source=SlabSource(strength=Q * E_H, x0=x0, t_cutoff=t0),
        name='suolson',
    )
    constants = RadConstants(radiation_constant=a_rad, c_light=1.0, c_hat=1.0,
                             erad_floor=1e-10 * E_H)

    system = RadSystem(nx=nx, Lx=Lx, constants=constants, problem=problem)
    system.set_interior(
        Erad=1e-10 * E_H,
        Egas=1e-10 * eos.gas_energy(1.0, T_hohlraum),
        rho=1.0,
        init_type='suolson_source',
    )
    return system


def setup_marshak_wave(
    nx: int = 1500,
    Lz: float = 100.0,
    T_hohlraum: float = SUOLSON_T_HOHLRAUM,
    kappa: float = 1.0,
    rho: float = 1.0,
) -> RadSystem:
    """
    Su & Olson Marshak wave.

    Incident blackbody flux at x = 0, reflecting wall at x = Lx = Lz/(ρκ).
    Cold initial state at 10⁻¹⁰ of equilibrium, which is also the floor.

    Args:
        nx: Number of cells
        Lz: Domain length in mean free paths
        T_hohlraum: Hohlraum temperature
        kappa: Opacity
        rho: Density
    """
    a_rad = 1.0
    chi = rho * kappa
    Lx = Lz / chi

    eos = QuarticEOS(suolson_alpha(a_rad))
    problem = RadProblem(
        opacity=ConstantOpacity(kappa),
        eos=eos,
        boundary=BoundaryPolicy(MarshakBoundary(T_hohlraum), ReflectingBoundary()),
        name='marshak',
    )
    initial_Erad = 1e-10 * a_rad * T_hohlraum**4
    constants = RadConstants(radiation_constant=a_rad, c_light=1.0, c_hat=1.0,
                             erad_floor=initial_Erad)

    system = RadSystem(nx=nx, Lx=Lx, constants=constants, problem=problem)
    system.set_interior(
        Erad=initial_Erad,
        Egas=1e-10 * eos.gas_energy(rho, T_hohlraum),
        rho=rho,
        init_type='marshak_wave',
    )
    return system


def setup_gaussian_pulse(
    nx: int = 100,
    Lx: float = 1.0,
    kappa: float = PULSE_KAPPA,
    rho: float = 1.0,
    initial_time: float = PULSE_INITIAL_TIME,
    mean_molecular_mass: float = 1.0e6,
) -> RadSystem:
    """
    Gaussian radiation pulse in an optically thick medium.

    The pulse is initialized with the diffusion solution at
    `initial_time`, centred on Lx/2, with gas and radiation in
    equilibrium. Ghost cells are held at the floor temperature.

    A large mean molecular mass makes the gas heat capacity negligible,
    so the radiation obeys the pure diffusion equation and
    :func:`gaussian_pulse_solution` is exact in the diffusion limit.
    """
    a_rad = 1.0
    constants = RadConstants(
        radiation_constant=a_rad,
        c_light=1.0,
        c_hat=1.0,
        mean_molecular_mass=mean_molecular_mass,
        boltzmann_constant=1.0,
        erad_floor=a_rad * PULSE_T_FLOOR**4,
    )
    eos = IdealGasEOS.from_constants(constants)
    problem = RadProblem(
        opacity=ConstantOpacity(kappa),
        eos=eos,
        boundary=BoundaryPolicy(
            FixedStateBoundary.at_temperature(PULSE_T_FLOOR, rho, eos, a_rad),
            FixedStateBoundary.at_temperature(PULSE_T_FLOOR, rho, eos, a_rad),
        ),
        name='pulse',
    )

    system = RadSystem(nx=nx, Lx=Lx, constants=constants, problem=problem)
    x0 = Lx / 2.0
    Erad = gaussian_pulse_solution(system.x - x0, initial_time, kappa=kappa, rho=rho)
    T_eq = (Erad / a_rad)**0.25
    system.init_equilibrium(T=T_eq, rho=rho)
    system._init_type = 'gaussian_pulse'
    return system


# ============================================================================
# Scenario registry
# ============================================================================

BENCHMARKS: Dict[str, Dict[str, Any]] = {
    'suolson': {
        'name': 'Su-Olson Source',
        'setup': setup_suolson_source,
        'setup_kwargs': {'nx': 600, 'Lx': 30.0},
        't_end': 10.0,
        'dt_initial': 1e-9,
        'dt_max': 1e-2,
        'max_steps': 12000,
        'error_norm': 'L1',
        'error_tol': 0.03,
    },
    'marshak': {
        'name': 'Su-Olson Marshak Wave',
        'setup': setup_marshak_wave,
        'setup_kwargs': {'nx': 1500, 'Lz': 100.0},
        't_end': 10.0,
        'dt_initial': 1e-9,
        'dt_max': 1e-2,
        'max_steps': 200000,
        'error_norm': 'L2',
        'error_tol': 0.003,
    },
    'pulse': {
        'name': 'Gaussian Pulse',
        'setup': setup_gaussian_pulse,
        'setup_kwargs': {'nx': 100},
        't_end': 0.03,
        'dt_initial': 1e-6,
        'dt_max': 1e-5,
        'max_steps': 20000,
        'error_norm': 'L1',
        'error_tol': 0.01,
    },
}


def get_benchmark(name: str, overrides: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Benchmark definition with optional overrides of its run settings.

    Keys of `overrides` that name setup arguments (e.g. 'nx') update
    'setup_kwargs'; the rest replace run settings.
    """
    if name not in BENCHMARKS:
        raise KeyError(f"Unknown benchmark {name!r}; available: {sorted(BENCHMARKS)}")

    bench = dict(BENCHMARKS[name])
    bench['setup_kwargs'] = dict(bench['setup_kwargs'])
    for key, value in (overrides or {}).items():
        if key in ('nx', 'Lx', 'Lz', 'kappa', 'rho', 'T_hohlraum'):
            bench['setup_kwargs'][key] = value
        else:
            bench[key] = value
    return bench


# ============================================================================
# Validation
# ============================================================================

def evaluate_benchmark(
    name: str,
    system: RadSystem,
    t: float,
    reference: Optional[Dict[str, np.ndarray]] = None,
) -> Optional[Dict[str, Any]]:
    """
    Compare the state of a benchmark run with its reference solution.

    - 'suolson': gas temperature against the tabulated transport
      solution (relative L1), available at t = 1 and t = 10
    - 'marshak': radiation temperature against a user-supplied table
      with keys 'x' and 'Trad' (relative squared L2). The table uses
      √3-scaled positions, so cell positions are scaled by √3 and
      energies by 1/√3 before comparison.
    - 'pulse': radiation energy against the diffusion solution at
      PULSE_INITIAL_TIME + t (relative L1)

    Returns:
        Result of compare_profiles with 'tolerance' and 'passed' added,
        or None when no reference is available
    """
    bench = BENCHMARKS[name]
    a_rad = system.constants.radiation_constant

    if name == 'suolson':
        times = [t_ref for t_ref in SUOLSON_ERAD_TRANSPORT if np.isclose(t, t_ref, rtol=1e-6)]
        if not times:
            return None
        ref = suolson_reference(times[0])
        comparison = compare_profiles(system.x, system.gas_temperature(),
                                      ref['x'], ref['Tgas'], norm=bench['error_norm'])
    elif name == 'marshak':
        if reference is None:
            return None
        x = np.sqrt(3.0) * system.x
        Trad = (np.maximum(system.Erad, 0.0) / np.sqrt(3.0) / a_rad)**0.25
        comparison = compare_profiles(x, Trad, reference['x'], reference['Trad'],
                                      norm=bench['error_norm'])
    elif name == 'pulse':
        problem_kappa = system.problem.opacity.planck_opacity(1.0, 1.0)
        exact = gaussian_pulse_solution(
            system.x - system.Lx / 2.0, PULSE_INITIAL_TIME + t,
            kappa=float(problem_kappa), rho=float(system.rho[0]),
            c_light=system.constants.c_light,
        )
        comparison = compare_profiles(system.x, system.Erad, system.x, exact,
                                      norm=bench['error_norm'])
    else:
        raise KeyError(f"Unknown benchmark {name!r}")

    comparison['tolerance'] = bench['error_tol']
    comparison['passed'] = bool(np.isfinite(comparison['error'])
                                and comparison['error'] <= bench['error_tol'])
    return comparison
