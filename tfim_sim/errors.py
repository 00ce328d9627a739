# tfim_sim/errors.py


class TfimError(Exception):
    """Base class for every error raised by tfim_sim."""


class InvalidParameter(TfimError, ValueError):
    """Bad chain length, field, time, or a state that does not match its basis."""


class ResourceExceeded(TfimError, MemoryError):
    """Requested basis/Hamiltonian would exceed the configured size guard."""


class NumericInvariantViolation(TfimError, AssertionError):
    """An internal numeric invariant (normalization, symmetry, |m_i| <= 1) failed."""


class SolverFailure(TfimError, RuntimeError):
    """The eigensolver or matrix exponential failed or returned garbage."""
