"""Pytest configuration and fixtures for radmoment tests."""

import pytest
import numpy as np


def pytest_addoption(parser):
    parser.addoption(
        "--runslow", action="store_true", default=False,
        help="run full-resolution benchmark tests"
    )


def pytest_collection_modifyitems(config, items):
    if config.getoption("--runslow"):
        return
    skip_slow = pytest.mark.skip(reason="need --runslow option to run")
    for item in items:
        if "slow" in item.keywords:
            item.add_marker(skip_slow)


@pytest.fixture(scope="session")
def random_seed():
    """Set random seed for reproducibility."""
    np.random.seed(42)
    return 42


@pytest.fixture
def default_simulation_params():
    """Default integrator parameters."""
    return {
        'cfl': 0.4,
        'max_iter': 400,
        'reaction_rtol': 1e-10,
        'flux_tolerance': 1e-6,
    }


@pytest.fixture
def equilibrium_system():
    """Uniform equilibrium at T = 1 with the default problem."""
    from radmoment import RadSystem

    system = RadSystem(nx=32, Lx=1.0)
    system.init_equilibrium(T=1.0, rho=1.0)
    return system


@pytest.fixture
def small_suolson():
    """Short Su & Olson domain for quick tests."""
    from radmoment.core.benchmarks import setup_suolson_source

    return setup_suolson_source(nx=100, Lx=10.0)


@pytest.fixture
def small_pulse():
    """Gaussian pulse on the default 100-cell grid."""
    from radmoment.core.benchmarks import setup_gaussian_pulse

    return setup_gaussian_pulse(nx=100)


@pytest.fixture
def streaming_system():
    """Transparent medium with |F| = 2ĉE, i.e. acausal flux."""
    from radmoment import RadSystem, RadProblem
    from radmoment.core.closures import ConstantOpacity

    system = RadSystem(nx=20, Lx=1.0, problem=RadProblem(opacity=ConstantOpacity(0.0)))
    system.set_interior(Erad=1.0, Egas=1.0, rho=1.0, Frad=2.0)
    return system
