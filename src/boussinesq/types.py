import typing

import numpy as np
from scipy.sparse import csr_array, csr_matrix
from scipy.sparse.linalg import LinearOperator
from typing_extensions import TypeAlias


__all__ = [
    "OneDimensionalGrid",
    "IndexArray",
    "SlotArray",
    "ConvergenceCriterion",
    "JacobianStrategy",
    "Preconditioner",
    "PreconditionerFactory",
    "IterativeSolver",
    "IterativeSolverFunc",
]

T = typing.TypeVar("T")

OneDimensionalGrid: TypeAlias = np.typing.NDArray[np.floating]
"""Per-cell field, one value per cell of the mesh."""
SlotArray: TypeAlias = np.typing.NDArray[np.floating]
"""Values aligned with the sparse pattern of the mesh, one value per slot."""
IndexArray: TypeAlias = np.typing.NDArray[np.integer]
"""Integer array (row pointers, column indices, edge ids, slot offsets)."""

ConvergenceCriterion = typing.Literal["literal", "bounded"]
"""
How the Newton loop decides to run another iteration.

- "literal": continue while the residual is above tolerance OR fewer than
  `newton_iteration_threshold` iterations ran (minimum iteration count, no ceiling).
- "bounded": continue while the residual is above tolerance AND fewer than
  `newton_iteration_threshold` iterations ran (the threshold is a ceiling).
"""

JacobianStrategy = typing.Literal["positional", "mirrored"]
"""
Source of the off-diagonal Jacobian entries.

- "positional": the conductance entry at the same flattened slot.
- "mirrored": the conductance entry of the neighbour's row pointing back at the cell.
"""

PreconditionerStr = typing.Literal["ilu", "amg", "diagonal"]
PreconditionerFactory = typing.Callable[
    [typing.Union[csr_array, csr_matrix]], LinearOperator
]
Preconditioner = typing.Union[
    LinearOperator, PreconditionerStr, PreconditionerFactory, str
]

IterativeSolverStr = typing.Literal[
    "cg", "bicgstab", "gmres", "lgmres", "tfqmr", "cgs", "direct"
]


class IterativeSolverFunc(typing.Protocol):
    """
    Protocol for an iterative solver function.

    Returns the solution and an info flag (0 on success), like SciPy's solvers.
    """

    def __call__(
        self,
        A: typing.Any,
        b: typing.Any,
        x0: typing.Optional[typing.Any],
        *,
        rtol: float,
        atol: float,
        maxiter: typing.Optional[int],
        M: typing.Optional[typing.Any],
        callback: typing.Optional[typing.Callable[[np.typing.NDArray], None]],
    ) -> typing.Tuple[np.typing.NDArray, int]: ...


IterativeSolver = typing.Union[IterativeSolverFunc, IterativeSolverStr, str]
