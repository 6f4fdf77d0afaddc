import typing

import attrs

from boussinesq.mesh import MeshTopology
from boussinesq.types import OneDimensionalGrid


__all__ = ["StepResult", "ModelState"]


@attrs.frozen(slots=True, eq=False)
class StepResult:
    """Result from advancing the head field by one time step."""

    step: int
    """Index of the time step (1-based, 0 is the initial condition)."""
    time: float
    """Simulated time at the end of the step."""
    head: OneDimensionalGrid
    """Head field at the end of the step (copy, safe to keep)."""
    newton_iterations: int
    """Number of Newton iterations run during the step."""
    max_residual: float
    """Largest absolute residual at the reported head field."""
    converged: bool
    """Whether the residual is within tolerance at the reported head field."""


@attrs.frozen(slots=True, eq=False)
class ModelState:
    """Snapshot of the mesh at a given time step."""

    step: int
    """Index of the time step (0 for the initial condition)."""
    time: float
    """Simulated time of the snapshot."""
    mesh: MeshTopology
    """Mesh carrying the head field of the snapshot."""
    result: typing.Optional[StepResult] = None
    """Step result that produced the snapshot, None for the initial condition."""
