"""
radmoment: JAX-Accelerated 1D Two-Moment Radiation Transport

A Python library for integrating the two-moment (M1) equations of
radiative transfer coupled to the internal energy of a static gas, with
the classical Su & Olson and Gaussian-pulse verification problems.

The moment equations with a reduced speed of light ĉ:
    ∂E/∂t + ∂F/∂x = ĉρκ_P(aT⁴ - E) + S
    ∂F/∂t + ĉ²∂(χE)/∂x = -ĉρκ_R F
    ∂e/∂t = -ĉρκ_P(aT⁴ - E)

where χ(f) is the Levermore Eddington factor of f = F/(ĉE).

Features:
    - JAX-compiled HLL transport kernels
    - Implicit radiation-matter energy exchange
    - Pluggable opacity, EOS, boundary and source closures
    - Su & Olson source, Marshak wave and Gaussian pulse benchmarks
    - Multiple output formats (CSV, NetCDF, PNG)


License: MIT
"""

__version__ = "0.1.0"
__license__ = "MIT"

from .core.rad_system import RadSystem, RadConstants
from .core.closures import RadProblem
from .core.integrator import RadIntegrator
from .core.exceptions import (
    RadMomentError,
    ConfigurationError,
    InvalidTimestepError,
    ClosureError,
    ReactionConvergenceError,
    CausalityViolationError,
)
from .core.metrics import (
    compute_conservation_metrics,
    compute_stability_metrics,
    compute_all_metrics,
    compare_profiles,
    relative_l1_error,
    relative_l2_error,
)
from .io.config_manager import ConfigManager
from .io.data_handler import DataHandler

__all__ = [
    # Core classes
    "RadSystem",
    "RadConstants",
    "RadProblem",
    "RadIntegrator",
    # Errors
    "RadMomentError",
    "ConfigurationError",
    "InvalidTimestepError",
    "ClosureError",
    "ReactionConvergenceError",
    "CausalityViolationError",
    # Config and data
    "ConfigManager",
    "DataHandler",
    # Metrics functions
    "compute_conservation_metrics",
    "compute_stability_metrics",
    "compute_all_metrics",
    "compare_profiles",
    "relative_l1_error",
    "relative_l2_error",
]
