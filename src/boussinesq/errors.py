__all__ = [
    "BoussinesqError",
    "ValidationError",
    "PreconditionerError",
    "SolverError",
    "LinearSolverDidNotConverge",
]


class BoussinesqError(Exception):
    """Base class for all boussinesq-related errors."""

    pass


class ValidationError(BoussinesqError, ValueError):
    """Raised when input data or configuration fails validation checks."""

    pass


class PreconditionerError(BoussinesqError):
    """Raised when a preconditioner cannot be built for the system matrix."""

    pass


class SolverError(BoussinesqError):
    """Base class for linear solver failures."""

    pass


class LinearSolverDidNotConverge(SolverError):
    """
    Raised when the linear solver exhausts its iteration/tolerance budget.

    Fatal to the enclosing Newton step. The driver does not retry.
    """

    pass
