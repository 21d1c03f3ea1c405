"""
radmoment Core Module.

1D two-moment (M1) radiation transport coupled to gas energy, with JAX
acceleration.

Components:
    - RadSystem, RadConstants: Grid, conserved state and physical constants
    - closures: Opacity, EOS, boundary and source customization points
    - RadIntegrator: HLL transport, RK2 stepping and implicit exchange
    - benchmarks: Su & Olson and Gaussian pulse problem set-ups
    - metrics: Conservation, stability and error-norm diagnostics

Example:
    >>> from radmoment.core import RadIntegrator
    >>> from radmoment.core.benchmarks import setup_marshak_wave
    >>> system = setup_marshak_wave(nx=200, Lz=10.0)
    >>> integrator = RadIntegrator(system, cfl=0.4)
    >>> result = integrator.run(t_end=1.0, dt_max=1e-2)
"""

from .rad_system import RadSystem, RadConstants
from .closures import RadProblem
from .integrator import RadIntegrator
from .exceptions import (
    RadMomentError,
    ConfigurationError,
    InvalidTimestepError,
    ClosureError,
    ReactionConvergenceError,
    CausalityViolationError,
)
from . import benchmarks
from . import closures
from . import metrics

__all__ = [
    'RadSystem',
    'RadConstants',
    'RadProblem',
    'RadIntegrator',
    'RadMomentError',
    'ConfigurationError',
    'InvalidTimestepError',
    'ClosureError',
    'ReactionConvergenceError',
    'CausalityViolationError',
    'benchmarks',
    'closures',
    'metrics',
]
