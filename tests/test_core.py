"""
Tests for the radmoment core: system, closures, integrator and benchmarks.

Tests verify:
    - State layout, constants and initialization of RadSystem
    - Opacity, EOS, boundary and source closures
    - Time step selection and error handling of RadIntegrator
    - Energy conservation, floors and causality enforcement
    - Benchmark set-ups and reference solutions
    - Configuration files, data output and the command-line interface
"""

import logging
import tempfile
import warnings
from pathlib import Path

import numpy as np
import pytest
import jax.numpy as jnp

from radmoment import (
    RadSystem,
    RadConstants,
    RadProblem,
    RadIntegrator,
    ConfigManager,
    DataHandler,
    ConfigurationError,
    InvalidTimestepError,
    ClosureError,
    ReactionConvergenceError,
    CausalityViolationError,
)
from radmoment.core.rad_system import (
    RAD_ENERGY, X1_RAD_FLUX, GAS_ENERGY, GAS_DENSITY, X1_GAS_MOMENTUM,
    NGHOST, NVAR,
)
from radmoment.core.closures import (
    ConstantOpacity,
    ConstantSpecificOpacity,
    PowerLawOpacity,
    IdealGasEOS,
    QuarticEOS,
    ReflectingBoundary,
    MarshakBoundary,
    FixedStateBoundary,
    BoundaryPolicy,
    RadiationSource,
    SlabSource,
    NoSource,
    ghost_indices,
)
from radmoment.core.integrator import _eddington_factor, _optical_depth_correction
from radmoment.core.benchmarks import (
    BENCHMARKS,
    get_benchmark,
    evaluate_benchmark,
    suolson_reference,
    gaussian_pulse_solution,
    setup_suolson_source,
    setup_marshak_wave,
    setup_gaussian_pulse,
    PULSE_T_FLOOR,
)


class TestRadConstants:
    """Test physical constant validation."""

    def test_defaults_are_code_units(self):
        """Test default constants are unity."""
        c = RadConstants()

        assert c.c_light == 1.0
        assert c.c_hat == 1.0
        assert c.radiation_constant == 1.0
        assert c.gamma == pytest.approx(5.0 / 3.0)
        assert c.compute_v_over_c_terms is False

    def test_reduced_speed_above_light_rejected(self):
        """Test c_hat > c_light is rejected."""
        with pytest.raises(ConfigurationError, match="c_hat"):
            RadConstants(c_light=1.0, c_hat=2.0)

    def test_negative_floor_rejected(self):
        """Test a negative energy floor is rejected."""
        with pytest.raises(ConfigurationError, match="erad_floor"):
            RadConstants(erad_floor=-1.0)

    def test_to_dict(self):
        """Test conversion to dictionary."""
        d = RadConstants(c_hat=0.5).to_dict()

        assert d['c_hat'] == 0.5
        assert 'radiation_constant' in d


class TestRadSystem:
    """Test radiation system grid and state."""

    def test_grid(self):
        """Test grid spacing, centres and state shape."""
        system = RadSystem(nx=10, Lx=2.0)

        assert system.dx == pytest.approx(0.2)
        assert system.x[0] == pytest.approx(0.1)
        assert system.x[-1] == pytest.approx(1.9)
        assert system.U.shape == (NVAR, 10 + 2 * NGHOST)

    def test_cell_edges(self):
        """Test left and right cell edges."""
        system = RadSystem(nx=4, Lx=1.0)
        left, right = system.x_edges

        np.testing.assert_allclose(left, [0.0, 0.25, 0.5, 0.75])
        np.testing.assert_allclose(right, [0.25, 0.5, 0.75, 1.0])

    def test_invalid_grid(self):
        """Test invalid grid parameters are rejected."""
        with pytest.raises(ConfigurationError):
            RadSystem(nx=1, Lx=1.0)
        with pytest.raises(ConfigurationError):
            RadSystem(nx=10, Lx=0.0)

    def test_default_problem_gets_ideal_gas(self):
        """Test default problem binds an ideal-gas EOS from the constants."""
        system = RadSystem(nx=8, Lx=1.0, constants=RadConstants(gamma=1.4))

        assert isinstance(system.problem.eos, IdealGasEOS)
        assert system.problem.eos.gamma == pytest.approx(1.4)

    def test_equilibrium_initialization(self, equilibrium_system):
        """Test equilibrium state has Erad = aT⁴ and Tgas = Trad."""
        np.testing.assert_allclose(equilibrium_system.Erad, 1.0)
        np.testing.assert_allclose(equilibrium_system.Frad, 0.0)
        np.testing.assert_allclose(equilibrium_system.gas_temperature(), 1.0)
        np.testing.assert_allclose(equilibrium_system.radiation_temperature(), 1.0)

    def test_set_interior_broadcasts(self):
        """Test scalar fields are broadcast and ghosts stay untouched."""
        system = RadSystem(nx=6, Lx=1.0)
        system.set_interior(Erad=2.0, Egas=3.0, rho=0.5, Frad=0.1, momentum=0.2)

        np.testing.assert_allclose(system.Erad, 2.0)
        np.testing.assert_allclose(system.rho, 0.5)
        np.testing.assert_allclose(system.momentum[0], 0.2)
        np.testing.assert_allclose(system.momentum[1:], 0.0)
        assert np.all(system.U[:, :NGHOST] == 0.0)

    def test_kinetic_energy_excluded_from_temperature(self):
        """Test gas temperature uses internal energy only."""
        system = RadSystem(nx=4, Lx=1.0)
        # cv = 1.5 for unit density, v = 1
        system.set_interior(Erad=1.0, Egas=1.5 + 0.5, rho=1.0, momentum=1.0)

        np.testing.assert_allclose(system.internal_energy(), 1.5)
        np.testing.assert_allclose(system.gas_temperature(), 1.0)

    def test_non_positive_density_rejected(self):
        """Test zero density is rejected."""
        system = RadSystem(nx=4, Lx=1.0)
        with pytest.raises(ConfigurationError, match="density"):
            system.set_interior(Erad=1.0, Egas=1.0, rho=0.0)

    def test_reduced_flux_of_empty_cell(self):
        """Test cells with zero radiation energy report zero reduced flux."""
        system = RadSystem(nx=4, Lx=1.0)
        system.set_interior(Erad=[1.0, 0.0, 0.0, 1.0], Egas=1.0, rho=1.0, Frad=0.0)

        with warnings.catch_warnings():
            warnings.simplefilter("error")
            f = system.reduced_flux()

        np.testing.assert_array_equal(f, 0.0)

    def test_total_energies_exclude_ghosts(self, equilibrium_system):
        """Test integrated energies sum over interior cells only."""
        equilibrium_system.U[RAD_ENERGY, :NGHOST] = 1e6

        assert equilibrium_system.total_radiation_energy() == pytest.approx(1.0)
        assert equilibrium_system.total_gas_energy() == pytest.approx(1.5)

    def test_describe(self, equilibrium_system):
        """Test system description."""
        desc = equilibrium_system.describe()

        assert "Two-Moment" in desc
        assert "equilibrium" in desc


class TestClosures:
    """Test opacity, EOS, boundary and source closures."""

    def test_constant_opacity(self):
        """Test constant Planck and Rosseland opacities."""
        opacity = ConstantOpacity(2.0, kappa_rosseland=3.0)
        rho = np.ones(5)
        T = np.linspace(1, 2, 5)

        np.testing.assert_allclose(opacity.planck_opacity(rho, T), 2.0)
        np.testing.assert_allclose(opacity.rosseland_opacity(rho, T), 3.0)

    def test_constant_specific_opacity(self):
        """Test ρκ is constant."""
        opacity = ConstantSpecificOpacity(1.0)
        rho = np.array([0.5, 1.0, 2.0])

        np.testing.assert_allclose(rho * opacity.planck_opacity(rho, np.ones(3)), 1.0)

    def test_power_law_opacity(self):
        """Test power-law opacity and its temperature floor."""
        opacity = PowerLawOpacity(2.0, rho_exponent=1.0, T_exponent=-1.0, T_floor=0.5)

        assert opacity.planck_opacity(3.0, 2.0) == pytest.approx(3.0)
        assert opacity.planck_opacity(1.0, 0.0) == pytest.approx(4.0)

    @pytest.mark.parametrize("eos", [
        IdealGasEOS(gamma=5.0 / 3.0, mean_molecular_mass=2.0),
        QuarticEOS(alpha=4.0),
    ])
    def test_eos_inverse(self, eos):
        """Test gas_energy and gas_temperature are inverses."""
        rho = np.array([0.5, 1.0, 2.0])
        T = np.array([0.1, 1.0, 3.0])

        e = eos.gas_energy(rho, T)
        np.testing.assert_allclose(eos.gas_temperature(rho, e), T, rtol=1e-12)

    @pytest.mark.parametrize("eos", [
        IdealGasEOS(gamma=1.4),
        QuarticEOS(alpha=4.0),
    ])
    def test_heat_capacity_is_derivative(self, eos):
        """Test heat capacity matches a finite difference of gas_energy."""
        rho = np.array([1.0, 2.0])
        T = np.array([0.7, 1.3])
        h = 1e-6

        fd = (eos.gas_energy(rho, T + h) - eos.gas_energy(rho, T - h)) / (2 * h)
        np.testing.assert_allclose(eos.heat_capacity(rho, T), fd, rtol=1e-6)

    def test_ghost_indices(self):
        """Test ghost columns are listed nearest-first."""
        np.testing.assert_array_equal(ghost_indices(10, 'left'), [1, 0])
        np.testing.assert_array_equal(ghost_indices(10, 'right'), [12, 13])
        with pytest.raises(ValueError):
            ghost_indices(10, 'top')

    def test_reflecting_boundary(self):
        """Test reflecting ghosts mirror the interior with flipped flux."""
        system = RadSystem(nx=6, Lx=1.0)
        system.set_interior(Erad=np.arange(1.0, 7.0), Egas=1.0, rho=1.0, Frad=0.3)
        U = system.U.copy()
        interior_before = U[:, system.interior].copy()

        system.problem.fill_ghost_zones(U, system)

        assert U[RAD_ENERGY, 1] == U[RAD_ENERGY, 2]
        assert U[RAD_ENERGY, 0] == U[RAD_ENERGY, 3]
        assert U[RAD_ENERGY, 8] == U[RAD_ENERGY, 7]
        assert U[RAD_ENERGY, 9] == U[RAD_ENERGY, 6]
        np.testing.assert_allclose(U[X1_RAD_FLUX, :NGHOST], -0.3)
        np.testing.assert_allclose(U[X1_RAD_FLUX, -NGHOST:], -0.3)
        np.testing.assert_array_equal(U[:, system.interior], interior_before)

    def test_marshak_boundary(self):
        """Test incident blackbody state in the left ghosts."""
        problem = RadProblem(boundary=BoundaryPolicy(MarshakBoundary(2.0), ReflectingBoundary()))
        system = RadSystem(nx=6, Lx=1.0, problem=problem)
        system.init_equilibrium(T=0.1)
        U = system.U.copy()

        system.problem.fill_ghost_zones(U, system)

        np.testing.assert_allclose(U[RAD_ENERGY, :NGHOST], 16.0)
        np.testing.assert_allclose(U[X1_RAD_FLUX, :NGHOST], 4.0)
        np.testing.assert_allclose(U[GAS_DENSITY, :NGHOST], 1.0)

    def test_fixed_state_boundary(self):
        """Test ghosts held at the equilibrium state of a temperature."""
        eos = IdealGasEOS()
        bc = FixedStateBoundary.at_temperature(0.5, 2.0, eos)
        problem = RadProblem(eos=eos, boundary=BoundaryPolicy(bc, bc))
        system = RadSystem(nx=6, Lx=1.0, problem=problem)
        system.init_equilibrium(T=1.0, rho=2.0)
        U = system.U.copy()

        system.problem.fill_ghost_zones(U, system)

        np.testing.assert_allclose(U[RAD_ENERGY, -NGHOST:], 0.0625)
        np.testing.assert_allclose(U[GAS_ENERGY, :NGHOST], eos.gas_energy(2.0, 0.5))
        np.testing.assert_allclose(U[X1_RAD_FLUX, :NGHOST], 0.0)

    def test_slab_source_prorates_partial_cell(self):
        """Test a cell straddling x0 gets the covered fraction."""
        source = SlabSource(strength=2.0, x0=0.25, t_cutoff=1.0)
        left = np.array([0.0, 0.1, 0.2, 0.3])
        right = left + 0.1

        np.testing.assert_allclose(source.evaluate(left, right, 0.5), [2.0, 2.0, 1.0, 0.0])
        np.testing.assert_allclose(source.evaluate(left, right, 1.0), 0.0)

    def test_no_source(self):
        """Test the default source is zero."""
        left = np.zeros(3)

        np.testing.assert_array_equal(NoSource().evaluate(left, left + 1, 0.0), 0.0)


class TestKernels:
    """Test JIT-compiled M1 kernels."""

    def test_eddington_factor_limits(self):
        """Test χ = 1/3 when isotropic and χ = 1 when free streaming."""
        chi = np.asarray(_eddington_factor(jnp.array([0.0, 1.0, -1.0])))

        np.testing.assert_allclose(chi, [1.0 / 3.0, 1.0, 1.0], rtol=1e-12)

    def test_eddington_factor_monotone(self):
        """Test χ increases with |f|."""
        chi = np.asarray(_eddington_factor(jnp.linspace(0.0, 1.0, 50)))

        assert np.all(np.diff(chi) > 0)

    def test_optical_depth_correction(self):
        """Test wave-speed factor tends to 1 (thin) and 1/τ (thick)."""
        corr = _optical_depth_correction(np.array([0.0, 1e-8, 100.0]))

        assert corr[0] == 1.0
        assert corr[1] == 1.0
        assert corr[2] == pytest.approx(0.01, rel=1e-10)


class TestRadIntegrator:
    """Test time step selection and integrator settings."""

    def test_initialization(self, equilibrium_system, default_simulation_params):
        """Test integrator defaults."""
        integrator = RadIntegrator(equilibrium_system, **default_simulation_params)

        assert integrator.cfl == 0.4
        assert integrator.backend == 'cpu'
        assert integrator.time == 0.0
        assert integrator.step_count == 0
        assert 'HLL' in repr(integrator)

    def test_invalid_settings(self, equilibrium_system):
        """Test invalid CFL and flux policy are rejected."""
        with pytest.raises(ConfigurationError, match="cfl"):
            RadIntegrator(equilibrium_system, cfl=1.5)
        with pytest.raises(ConfigurationError, match="flux_policy"):
            RadIntegrator(equilibrium_system, flux_policy='ignore')

    def test_compute_dt_cfl_limited(self, equilibrium_system):
        """Test Δt = min(requested, CFL Δx / ĉ)."""
        integrator = RadIntegrator(equilibrium_system, cfl=0.4)
        dt_cfl = 0.4 * equilibrium_system.dx

        assert integrator.max_stable_dt() == pytest.approx(dt_cfl)
        assert integrator.compute_dt(1.0) == pytest.approx(dt_cfl)
        assert integrator.compute_dt(1e-5) == pytest.approx(1e-5)

    @pytest.mark.parametrize("dt", [0.0, -1e-3, np.nan, np.inf])
    def test_invalid_timestep(self, equilibrium_system, dt):
        """Test non-positive or non-finite time steps are rejected."""
        integrator = RadIntegrator(equilibrium_system)

        with pytest.raises(InvalidTimestepError):
            integrator.advance(dt)
        assert integrator.step_count == 0

    def test_uninitialized_system_error(self):
        """Test integrator refuses an uninitialized system."""
        integrator = RadIntegrator(RadSystem(nx=10, Lx=1.0))

        with pytest.raises(ConfigurationError, match="not initialized"):
            integrator.advance(1e-3)
        with pytest.raises(ValueError, match="not initialized"):
            integrator.run(t_end=0.1, dt_max=1e-2, verbose=False)


class TestAdvance:
    """Test single steps of the operator-split scheme."""

    def test_equilibrium_is_steady(self, equilibrium_system):
        """Test a uniform equilibrium state does not change."""
        integrator = RadIntegrator(equilibrium_system)
        U0 = equilibrium_system.U[:, equilibrium_system.interior].copy()

        for _ in range(5):
            integrator.advance(1e-2)

        np.testing.assert_allclose(equilibrium_system.U[:, equilibrium_system.interior],
                                   U0, rtol=1e-12, atol=1e-14)
        assert integrator.step_count == 5
        assert integrator.time == pytest.approx(5e-2)

    def test_advance_returns_dt_used(self, equilibrium_system):
        """Test advance returns the CFL-limited step."""
        integrator = RadIntegrator(equilibrium_system, cfl=0.4)

        dt = integrator.advance(10.0)

        assert dt == pytest.approx(integrator.max_stable_dt())
        assert integrator.last_dt == dt

    def test_flux_damping(self):
        """Test uniform flux is damped as F / (1 + ĉΔtρκ_R)."""
        system = RadSystem(nx=32, Lx=1.0)
        system.set_interior(Erad=1.0, Egas=1.5, rho=1.0, Frad=0.5)
        integrator = RadIntegrator(system)

        dt = integrator.advance(1e-2)

        centre = system.nx // 2
        assert system.Frad[centre] == pytest.approx(0.5 / (1.0 + dt), rel=1e-10)
        assert system.Erad[centre] == pytest.approx(1.0, rel=1e-10)

    def test_exchange_drives_toward_equilibrium(self):
        """Test hot radiation heats cold gas without changing total energy."""
        system = RadSystem(nx=16, Lx=1.0)
        system.set_interior(Erad=1.0, Egas=1e-3, rho=1.0)
        integrator = RadIntegrator(system)
        E_total0 = system.total_radiation_energy() + system.total_gas_energy()

        for _ in range(10):
            integrator.advance(1e-2)

        E_total = system.total_radiation_energy() + system.total_gas_energy()
        assert E_total == pytest.approx(E_total0, rel=1e-10)
        assert np.all(system.Egas > 1e-3)
        assert np.all(system.Erad < 1.0)
        assert integrator.newton_iterations >= 1

    def test_stiff_exchange_converges(self):
        """Test a very optically thick cell equilibrates in one step."""
        problem = RadProblem(opacity=ConstantOpacity(1e8))
        system = RadSystem(nx=8, Lx=1.0, problem=problem)
        system.set_interior(Erad=1.0, Egas=1e-6, rho=1.0)
        integrator = RadIntegrator(system)
        E_total0 = system.total_radiation_energy() + system.total_gas_energy()

        integrator.advance(1e-2)

        E_total = system.total_radiation_energy() + system.total_gas_energy()
        assert E_total == pytest.approx(E_total0, rel=1e-10)
        np.testing.assert_allclose(system.gas_temperature(),
                                   system.radiation_temperature(), rtol=1e-6)

    def test_energy_conserved_with_source(self, small_suolson):
        """Test closed-domain energy changes only by the injected energy."""
        integrator = RadIntegrator(small_suolson)
        E0 = small_suolson.total_radiation_energy() + small_suolson.total_gas_energy()

        for _ in range(10):
            integrator.advance(1e-2)

        E = small_suolson.total_radiation_energy() + small_suolson.total_gas_energy()
        # Q = 1 over [0, 0.5)
        assert integrator.injected_energy == pytest.approx(0.5 * integrator.time, rel=1e-12)
        assert E - E0 == pytest.approx(integrator.injected_energy, rel=1e-8)

    def test_pulse_conservation_and_symmetry(self, small_pulse):
        """Test the pulse conserves energy, spreads and stays symmetric."""
        integrator = RadIntegrator(small_pulse)
        E0 = small_pulse.total_radiation_energy() + small_pulse.total_gas_energy()
        peak0 = small_pulse.Erad.max()

        for _ in range(20):
            integrator.advance(1e-5)

        E = small_pulse.total_radiation_energy() + small_pulse.total_gas_energy()
        assert abs(E - E0) / E0 < 1e-8
        assert small_pulse.Erad.max() < peak0
        np.testing.assert_allclose(small_pulse.Erad, small_pulse.Erad[::-1],
                                   rtol=1e-8, atol=1e-12)
        np.testing.assert_allclose(small_pulse.Frad, -small_pulse.Frad[::-1],
                                   rtol=1e-6, atol=1e-12)

    def test_floor_enforced(self, small_pulse):
        """Test Erad never drops below the floor."""
        integrator = RadIntegrator(small_pulse)

        for _ in range(5):
            integrator.advance(1e-5)

        assert np.all(small_pulse.Erad >= small_pulse.constants.erad_floor)
        assert small_pulse.constants.erad_floor == pytest.approx(PULSE_T_FLOOR**4)

    def test_v_over_c_terms(self):
        """Test moving gas drives flux while conserving total energy."""
        constants = RadConstants(compute_v_over_c_terms=True)
        system = RadSystem(nx=16, Lx=1.0, constants=constants)
        system.set_interior(Erad=1.0, Egas=1.5 + 0.5 * 0.01, rho=1.0, momentum=0.1)
        integrator = RadIntegrator(system)
        E_total0 = system.total_radiation_energy() + system.total_gas_energy()

        for _ in range(5):
            integrator.advance(1e-2)

        E_total = system.total_radiation_energy() + system.total_gas_energy()
        assert E_total == pytest.approx(E_total0, rel=1e-10)
        assert system.Frad[system.nx // 2] > 0.0
        np.testing.assert_allclose(system.U[X1_GAS_MOMENTUM, system.interior], 0.1)


class TestFailureModes:
    """Test that failed steps leave the state untouched."""

    def test_reaction_convergence_failure(self):
        """Test Newton failure raises and does not commit the step."""
        system = RadSystem(nx=10, Lx=1.0)
        system.set_interior(Erad=1.0, Egas=1e-3, rho=1.0)
        integrator = RadIntegrator(system, max_iter=1)
        U0 = system.U.copy()

        with pytest.raises(ReactionConvergenceError) as excinfo:
            integrator.advance(1e-2)

        assert excinfo.value.n_failed == system.nx
        assert excinfo.value.max_residual > 0
        np.testing.assert_array_equal(system.U, U0)
        assert integrator.time == 0.0
        assert integrator.step_count == 0

    def test_causality_raise(self, streaming_system):
        """Test |F| > ĉE raises under the 'raise' policy."""
        integrator = RadIntegrator(streaming_system, flux_policy='raise')
        U0 = streaming_system.U.copy()

        with pytest.raises(CausalityViolationError):
            integrator.advance(1e-3)

        np.testing.assert_array_equal(streaming_system.U, U0)
        assert integrator.time == 0.0
        assert integrator.last_dt == 0.0

    def test_causality_clamp(self, streaming_system, caplog):
        """Test |F| is rescaled to ĉE under the 'clamp' policy."""
        integrator = RadIntegrator(streaming_system, flux_policy='clamp')

        with caplog.at_level(logging.WARNING, logger='radmoment.integrator'):
            integrator.advance(1e-3)

        assert np.all(streaming_system.reduced_flux() <= 1.0 + integrator.flux_tolerance)
        assert any("clamped" in rec.getMessage() for rec in caplog.records)
        assert integrator.step_count == 1

    def test_negative_opacity_rejected(self):
        """Test a negative closure value raises ClosureError."""
        system = RadSystem(nx=8, Lx=1.0, problem=RadProblem(opacity=ConstantOpacity(-1.0)))
        system.init_equilibrium(T=1.0)
        integrator = RadIntegrator(system)
        U0 = system.U.copy()

        with pytest.raises(ClosureError):
            integrator.advance(1e-3)
        np.testing.assert_array_equal(system.U, U0)

    def test_non_finite_source_rejected(self):
        """Test a non-finite source raises ClosureError."""

        class BrokenSource(RadiationSource):
            def evaluate(self, x_left, x_right, t):
                return np.full_like(x_left, np.nan)

        system = RadSystem(nx=8, Lx=1.0, problem=RadProblem(source=BrokenSource()))
        system.init_equilibrium(T=1.0)
        integrator = RadIntegrator(system)

        with pytest.raises(ClosureError, match="rad_energy_source"):
            integrator.advance(1e-3)
        assert integrator.step_count == 0


class TestRun:
    """Test multi-step runs."""

    def test_run_result(self, small_pulse):
        """Test run output structure."""
        integrator = RadIntegrator(small_pulse)

        result = integrator.run(t_end=1e-4, dt_max=1e-5, save_dt=5e-5, verbose=False)

        for key in ('snapshots', 'system', 'times', 'radiation_energy', 'gas_energy',
                    'dt', 't_final', 'reached_t_end', 'total_steps', 'injected_energy'):
            assert key in result
        assert result['reached_t_end']
        assert result['t_final'] == pytest.approx(1e-4)
        assert len(result['times']) == result['total_steps'] + 1
        assert len(result['dt']) == result['total_steps']
        assert np.all(np.diff(result['times']) > 0)
        assert len(result['snapshots']) >= 3
        assert result['snapshots'][0][1].shape == (NVAR, small_pulse.nx)

    def test_run_respects_max_steps(self, small_pulse):
        """Test run stops after max_steps."""
        integrator = RadIntegrator(small_pulse)

        result = integrator.run(t_end=1.0, dt_max=1e-5, max_steps=3, verbose=False)

        assert result['total_steps'] == 3
        assert not result['reached_t_end']

    def test_first_step_uses_dt_initial(self, small_pulse):
        """Test dt_initial bounds the first step only."""
        integrator = RadIntegrator(small_pulse)

        result = integrator.run(t_end=3e-5, dt_max=1e-5, dt_initial=1e-7, verbose=False)

        assert result['dt'][0] == pytest.approx(1e-7)
        assert result['dt'][1] == pytest.approx(1e-5)

    def test_marshak_wave_propagates(self):
        """Test the Marshak wave heats the slab from the left."""
        system = setup_marshak_wave(nx=200, Lz=20.0)
        integrator = RadIntegrator(system)

        integrator.run(t_end=1.0, dt_max=1e-2, verbose=False)

        Trad = system.radiation_temperature()
        Tgas = system.gas_temperature()
        assert Trad[0] > Trad[system.nx // 2]
        assert Tgas[0] > Tgas[-1]
        assert Trad.max() < 1.05
        assert Tgas.max() < 1.05
        assert np.all(system.reduced_flux() <= 1.0 + 1e-6)

    def test_snapshots_keep_cadence_after_long_step(self, small_pulse):
        """Test a step longer than save_dt does not bunch later snapshots."""
        integrator = RadIntegrator(small_pulse)
        save_dt = 1e-5

        result = integrator.run(t_end=1e-4, dt_max=1e-6, dt_initial=5e-5,
                                save_dt=save_dt, verbose=False)

        times = np.array([t for t, _ in result['snapshots']])
        assert times[1] == pytest.approx(5e-5)
        # The final state is always appended, so leave it out
        assert np.all(np.diff(times[1:-1]) > 0.5 * save_dt)

    def test_long_marshak_run_stays_bounded(self):
        """Test ten thousand CFL-limited steps stay finite, floored and causal."""
        system = setup_marshak_wave(nx=100, Lz=20.0)
        integrator = RadIntegrator(system)

        for _ in range(10000):
            integrator.advance(1.0)

        assert integrator.step_count == 10000
        assert np.all(np.isfinite(system.U[:, system.interior]))
        assert np.all(system.Erad >= system.constants.erad_floor)
        assert np.all(system.reduced_flux() <= 1.0 + integrator.flux_tolerance)


class TestBenchmarks:
    """Test benchmark set-ups and reference solutions."""

    def test_registry(self):
        """Test all three benchmarks are registered."""
        assert set(BENCHMARKS) == {'suolson', 'marshak', 'pulse'}
        for bench in BENCHMARKS.values():
            assert bench['error_norm'] in ('L1', 'L2')
            assert bench['error_tol'] > 0

    def test_get_benchmark_overrides(self):
        """Test overrides split into setup arguments and run settings."""
        bench = get_benchmark('pulse', {'nx': 50, 't_end': 0.01})

        assert bench['setup_kwargs']['nx'] == 50
        assert bench['t_end'] == 0.01
        assert BENCHMARKS['pulse']['setup_kwargs']['nx'] == 100

        with pytest.raises(KeyError):
            get_benchmark('sedov')

    def test_suolson_setup(self):
        """Test Su & Olson initial state sits on the floor."""
        system = setup_suolson_source(nx=60, Lx=3.0)

        np.testing.assert_allclose(system.Erad, 1e-10)
        assert system.constants.erad_floor == pytest.approx(1e-10)
        assert isinstance(system.problem.eos, QuarticEOS)

    def test_suolson_reference(self):
        """Test tabulated solution at t = 10."""
        ref = suolson_reference(10.0)

        assert len(ref['x']) == len(ref['Erad']) == len(ref['Tgas'])
        assert ref['Erad'][0] == pytest.approx(2.23575)
        with pytest.raises(KeyError):
            suolson_reference(5.0)

    def test_gaussian_solution_normalized(self):
        """Test the diffusion solution integrates to one."""
        x = np.linspace(-1.0, 1.0, 4001)
        E = gaussian_pulse_solution(x, 0.01)

        assert np.sum(E) * (x[1] - x[0]) == pytest.approx(1.0, rel=1e-6)

    def test_pulse_setup_matches_solution(self, small_pulse):
        """Test initial pulse is the diffusion solution at t = 0.01."""
        exact = gaussian_pulse_solution(small_pulse.x - 0.5, 0.01)

        np.testing.assert_allclose(small_pulse.Erad, exact, rtol=1e-10)
        np.testing.assert_allclose(small_pulse.gas_temperature(),
                                   small_pulse.radiation_temperature(), rtol=1e-10)

    def test_evaluate_without_reference(self, small_suolson):
        """Test no comparison is available off the tabulated times."""
        assert evaluate_benchmark('suolson', small_suolson, 3.0) is None
        assert evaluate_benchmark('marshak', setup_marshak_wave(nx=20, Lz=2.0), 1.0) is None

    def test_evaluate_pulse_at_start(self, small_pulse):
        """Test the initial pulse matches its own reference."""
        comparison = evaluate_benchmark('pulse', small_pulse, 0.0)

        assert comparison['error'] == pytest.approx(0.0, abs=1e-10)
        assert comparison['passed']

    @pytest.mark.slow
    def test_suolson_full(self):
        """Test Su & Olson gas temperature against the transport solution."""
        bench = BENCHMARKS['suolson']
        system = bench['setup'](**bench['setup_kwargs'])
        integrator = RadIntegrator(system)

        integrator.run(t_end=bench['t_end'], dt_max=bench['dt_max'],
                       dt_initial=bench['dt_initial'], max_steps=bench['max_steps'],
                       verbose=False)

        comparison = evaluate_benchmark('suolson', system, integrator.time)
        assert comparison['error'] < 0.03

    @pytest.mark.slow
    def test_pulse_full(self):
        """Test the Gaussian pulse against the diffusion solution."""
        bench = BENCHMARKS['pulse']
        system = bench['setup'](**bench['setup_kwargs'])
        integrator = RadIntegrator(system)

        integrator.run(t_end=bench['t_end'], dt_max=bench['dt_max'],
                       dt_initial=bench['dt_initial'], max_steps=bench['max_steps'],
                       verbose=False)

        comparison = evaluate_benchmark('pulse', system, integrator.time)
        assert comparison['error'] < 0.01


class TestConfigManager:
    """Test configuration file handling."""

    def test_load_config(self):
        """Test loading configuration from file."""
        with tempfile.NamedTemporaryFile(mode='w', suffix='.txt', delete=False) as f:
            f.write("# Test config\n")
            f.write("scenario = pulse\n")
            f.write("nx = 128\n")
            f.write("t_end = 0.02   # shorter run\n")
            f.write("dt_max = 1e-5\n")
            f.write("save_dt = none\n")
            f.write("use_gpu = false\n")
            f.write("scenario_name = Test Scenario\n")
            config_path = f.name

        config = ConfigManager.load(config_path)

        assert config['scenario'] == 'pulse'
        assert config['nx'] == 128
        assert config['t_end'] == pytest.approx(0.02)
        assert config['dt_max'] == pytest.approx(1e-5)
        assert config['save_dt'] is None
        assert config['use_gpu'] == False
        assert config['scenario_name'] == 'Test Scenario'

        Path(config_path).unlink()

    def test_default_config(self):
        """Test default configuration follows the benchmark."""
        config = ConfigManager.get_default_config('marshak')

        assert config['scenario'] == 'marshak'
        assert config['nx'] == 1500
        assert config['error_tol'] == pytest.approx(0.003)
        assert ConfigManager.validate_config(config) == True

        with pytest.raises(ConfigurationError):
            ConfigManager.get_default_config('sedov')

    def test_save_config(self, tmp_path):
        """Test saving and reloading configuration."""
        config = {'nx': 256, 'dt_max': 1e-5, 'use_gpu': True, 'reference_file': None}
        path = tmp_path / 'config.txt'

        ConfigManager.save(config, path)

        loaded = ConfigManager.load(path)
        assert loaded['nx'] == 256
        assert loaded['dt_max'] == pytest.approx(1e-5)
        assert loaded['use_gpu'] == True
        assert loaded['reference_file'] is None

    def test_validate_config_invalid_cfl(self):
        """Test validation catches invalid CFL."""
        config = ConfigManager.get_default_config('pulse')
        config['cfl'] = 1.5

        with pytest.raises(ConfigurationError, match="cfl"):
            ConfigManager.validate_config(config)

    def test_validate_config_missing_key(self):
        """Test validation catches missing parameters."""
        config = ConfigManager.get_default_config('pulse')
        del config['dt_max']

        with pytest.raises(ValueError, match="dt_max"):
            ConfigManager.validate_config(config)


class TestDataHandler:
    """Test data saving functionality."""

    def test_save_profile_csv(self, equilibrium_system, tmp_path):
        """Test saving the current profile to CSV."""
        import pandas as pd
        filepath = tmp_path / 'profile.csv'

        DataHandler.save_profile_csv(filepath, equilibrium_system)

        df = pd.read_csv(filepath)
        assert list(df.columns) == ['x', 'Erad', 'Frad', 'Egas', 'rho',
                                    'Tgas', 'Trad', 'reduced_flux']
        assert len(df) == equilibrium_system.nx
        np.testing.assert_allclose(df['Tgas'], 1.0)

    def test_save_history_csv(self, small_pulse, tmp_path):
        """Test saving the energy history of a run."""
        import pandas as pd
        result = RadIntegrator(small_pulse).run(t_end=3e-5, dt_max=1e-5, verbose=False)
        filepath = tmp_path / 'history.csv'

        DataHandler.save_history_csv(filepath, result)

        df = pd.read_csv(filepath)
        assert len(df) == result['total_steps'] + 1
        assert np.isnan(df['dt'].iloc[0])
        np.testing.assert_allclose(df['total_energy'],
                                   df['radiation_energy'] + df['gas_energy'], rtol=1e-7)

    def test_save_final_metrics_csv(self, tmp_path):
        """Test saving final metrics to CSV."""
        metrics = {'total_energy': 1.0, 'causality_satisfied': True, 'note': 'ok',
                   'array': np.zeros(3)}
        filepath = tmp_path / 'metrics.csv'

        DataHandler.save_final_metrics_csv(filepath, metrics)

        import pandas as pd
        df = pd.read_csv(filepath)
        assert set(df['Metric']) == {'total_energy', 'causality_satisfied', 'note'}

    def test_load_reference_table(self, tmp_path):
        """Test reading a whitespace-separated table."""
        filepath = tmp_path / 'table.dat'
        filepath.write_text(
            "i x a b Trad Tmat\n"
            "0 0.0 0 0 0.9 0.8\n"
            "1 1.0 0 0 0.5 0.4\n"
        )

        table = DataHandler.load_reference_table(filepath, 1, [4, 5], x_scale=2.0)

        np.testing.assert_allclose(table['x'], [0.0, 2.0])
        np.testing.assert_allclose(table[4], [0.9, 0.5])
        np.testing.assert_allclose(table[5], [0.8, 0.4])

        with pytest.raises(ValueError, match="out of range"):
            DataHandler.load_reference_table(filepath, 1, [7])
        with pytest.raises(FileNotFoundError):
            DataHandler.load_reference_table(tmp_path / 'missing.dat', 1, [4])

    def test_netcdf_roundtrip(self, small_pulse, tmp_path):
        """Test saving and loading a run in NetCDF."""
        result = RadIntegrator(small_pulse).run(t_end=3e-5, dt_max=1e-5,
                                                save_dt=1e-5, verbose=False)
        filepath = tmp_path / 'run.nc'
        config = {'scenario_name': 'Test', 'cfl': 0.4}

        DataHandler.save_netcdf(filepath, result, config, {'total_energy': 1.0})

        data = DataHandler.load_netcdf(filepath)
        assert data['U'].shape[0] == len(result['snapshots'])
        assert data['U'].shape[1:] == (NVAR, small_pulse.nx)
        np.testing.assert_allclose(data['radiation_energy'][-1], small_pulse.Erad)
        np.testing.assert_allclose(data['x'], small_pulse.x)
        assert data['c_hat'] == pytest.approx(1.0)
        assert data['scenario_name'] == 'Test'
        assert data['final_total_energy'] == pytest.approx(1.0)


class TestCLI:
    """Test the command-line interface."""

    def test_requires_scenario(self):
        """Test the parser rejects a call without scenario."""
        from radmoment.cli import main

        with pytest.raises(SystemExit):
            main([])

    def test_build_config(self):
        """Test command-line overrides."""
        from radmoment.cli import build_config

        config = build_config('pulse', nx=50, t_end=1e-3)

        assert config['nx'] == 50
        assert config['t_end'] == pytest.approx(1e-3)
        assert config['use_gpu'] is False

    def test_load_marshak_reference(self, tmp_path):
        """Test Marshak table columns and √3 scaling."""
        from radmoment.cli import load_marshak_reference

        filepath = tmp_path / 'marshak.dat'
        filepath.write_text(
            "i x a b Trad Tmat\n"
            "0 1.0 0 0 0.9 0.8\n"
        )

        ref = load_marshak_reference(filepath)

        assert ref['x'][0] == pytest.approx(np.sqrt(3.0))
        assert ref['Trad'][0] == pytest.approx(0.9)
        assert ref['Tgas'][0] == pytest.approx(0.8)

    def test_short_pulse_run(self, tmp_path):
        """Test a short pulse run writes all outputs."""
        from radmoment.cli import main

        out_dir = tmp_path / 'out'
        log_dir = tmp_path / 'logs'

        code = main(['pulse', '--t-end', '5e-5', '-o', str(out_dir),
                     '--log-dir', str(log_dir)])

        assert code == 0
        assert (out_dir / 'pulse_nx100.nc').exists()
        assert (out_dir / 'pulse_nx100_profile.csv').exists()
        assert (out_dir / 'pulse_nx100_history.csv').exists()
        assert (out_dir / 'pulse_nx100_profiles.png').exists()
        assert (log_dir / 'pulse_nx100.log').exists()


class TestVisualization:
    """Test plotting and animation output."""

    def test_profile_and_history_plots(self, small_pulse, tmp_path):
        """Test profile and history PNGs are written."""
        from radmoment.visualization.animator import Animator

        result = RadIntegrator(small_pulse).run(t_end=2e-5, dt_max=1e-5, verbose=False)
        animator = Animator(dpi=50)
        profile_png = tmp_path / 'profile.png'
        history_png = tmp_path / 'history.png'

        animator.create_profile_plot(small_pulse, profile_png, t=2e-5,
                                     reference={'x': small_pulse.x, 'Erad': small_pulse.Erad})
        animator.create_history_plot(result, history_png)

        assert profile_png.exists()
        assert history_png.exists()

    def test_animation(self, small_pulse, tmp_path):
        """Test GIF animation of saved snapshots."""
        from radmoment.visualization.animator import Animator

        result = RadIntegrator(small_pulse).run(t_end=3e-5, dt_max=1e-5,
                                                save_dt=1e-5, verbose=False)
        gif = tmp_path / 'pulse.gif'

        Animator(fps=5, dpi=50).create_animation(result, str(gif))

        assert gif.exists()
