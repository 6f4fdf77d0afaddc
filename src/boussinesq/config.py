import math
import typing
from contextlib import contextmanager
from contextvars import ContextVar

import attrs
import numpy as np

from boussinesq.types import (
    ConvergenceCriterion,
    IterativeSolver,
    JacobianStrategy,
    Preconditioner,
)

__all__ = ["Config", "get_dtype", "with_precision"]

_float_dtype: ContextVar[np.typing.DTypeLike] = ContextVar(
    "boussinesq_float_dtype", default=np.float64
)


def get_dtype() -> np.typing.DTypeLike:
    """Float dtype given to mesh fields and driver work arrays built in the current context."""
    return _float_dtype.get()


@contextmanager
def with_precision(dtype: np.typing.DTypeLike) -> typing.Iterator[None]:
    """
    Build meshes and drivers with another float dtype, e.g. `np.float32` for
    memory-bound meshes. Arrays keep the dtype they were created with once the
    context exits.

    :param dtype: Float dtype to use inside the context.
    """
    token = _float_dtype.set(dtype)
    try:
        yield
    finally:
        _float_dtype.reset(token)


def _freeze_solvers(value: typing.Any) -> typing.Any:
    if isinstance(value, str) or callable(value):
        return value
    try:
        return tuple(value)
    except TypeError:
        return value


@attrs.frozen
class Config:
    """Simulation run configuration and parameters."""

    time_step_size: float = attrs.field(default=1.0, validator=attrs.validators.gt(0))
    """Fixed time step size (deltat)."""
    simulation_time: float = attrs.field(default=2.0, validator=attrs.validators.ge(0))
    """Total simulated time. Time advances from 0 to this value in steps of `time_step_size`."""
    convergence_tolerance: float = attrs.field(
        default=1e-5, validator=attrs.validators.gt(0)
    )
    """Tolerance on the maximum absolute residual of the Newton loop."""
    newton_iteration_threshold: int = attrs.field(
        default=4, validator=attrs.validators.ge(1)
    )
    """
    Iteration count used by the Newton continuation test.

    With the "literal" criterion this is a minimum: the loop always runs at least
    this many iterations and has no ceiling while the residual stays above tolerance.
    With the "bounded" criterion this is a ceiling on the number of iterations.
    """
    convergence_criterion: ConvergenceCriterion = attrs.field(
        default="literal", validator=attrs.validators.in_(("literal", "bounded"))
    )
    """Newton continuation test ('literal', 'bounded')."""
    jacobian_strategy: JacobianStrategy = attrs.field(
        default="positional",
        validator=attrs.validators.in_(("positional", "mirrored")),
    )
    """Source of the off-diagonal Jacobian entries ('positional', 'mirrored')."""
    iterative_solver: typing.Union[
        IterativeSolver, typing.Iterable[IterativeSolver]
    ] = attrs.field(default="cg", converter=_freeze_solvers)
    """
    Solver(s) for the linear system of each Newton iteration.

    If an iterable is given, solvers are tried in order until one converges.
    It is stored as a tuple, so generators and sets can be reused across solves.
    """
    preconditioner: typing.Optional[Preconditioner] = "diagonal"
    """Preconditioner to use for iterative solvers."""
    linear_max_iterations: int = attrs.field(
        default=250,
        validator=attrs.validators.and_(
            attrs.validators.ge(1), attrs.validators.le(10_000)
        ),
    )
    """Maximum number of iterations allowed for each linear solve."""
    linear_rtol: float = attrs.field(default=1e-10, validator=attrs.validators.gt(0))
    """Relative tolerance of the linear solver."""
    linear_atol: float = attrs.field(default=1e-12, validator=attrs.validators.ge(0))
    """Absolute tolerance of the linear solver."""
    fallback_to_direct: bool = False
    """
    Whether to fall back to a direct sparse solve when all iterative solvers fail.

    Not suitable for large meshes due to memory use.
    """
    log_interval: int = attrs.field(default=1, validator=attrs.validators.ge(1))
    """Interval (in time steps) at which to log simulation progress."""

    @property
    def time_step_count(self) -> int:
        """Number of fixed time steps needed to cover `simulation_time`."""
        # Rounding absorbs floating point noise such as 1.0 / 0.1 = 10.000000000000002
        return max(0, math.ceil(round(self.simulation_time / self.time_step_size, 9)))
