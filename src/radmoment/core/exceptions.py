"""Exceptions raised by the radiation-moment integrator."""


class RadMomentError(Exception):
    """Base exception for radmoment errors."""


class ConfigurationError(RadMomentError, ValueError):
    """Invalid constants, grid or integrator settings."""


class InvalidTimestepError(RadMomentError, ValueError):
    """Requested timestep is not a positive finite number."""


class ClosureError(RadMomentError, ValueError):
    """An opacity or EOS closure returned non-finite or negative values."""


class ReactionConvergenceError(RadMomentError, RuntimeError):
    """Implicit radiation-matter exchange did not converge."""

    def __init__(self, message: str, n_failed: int = 0, max_residual: float = float('nan')):
        super().__init__(message)
        self.n_failed = n_failed
        self.max_residual = max_residual


class CausalityViolationError(RadMomentError, ArithmeticError):
    """Radiation flux exceeds c_hat * Erad beyond tolerance."""


__all__ = [
    'RadMomentError',
    'ConfigurationError',
    'InvalidTimestepError',
    'ClosureError',
    'ReactionConvergenceError',
    'CausalityViolationError',
]
