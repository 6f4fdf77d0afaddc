"""
Sparse linear solves for the Newton update system Jr · Δ = R.

The Jacobian shares the mesh pattern, so it reaches SciPy as a CSR matrix built
over `MeshTopology.row_pointers`/`column_indices` without copying values.
Solvers and preconditioners are chosen by name from `SOLVERS` and
`PRECONDITIONERS`; callables following the same conventions are accepted too.
"""

import logging
import typing

import numpy as np
import pyamg  # type: ignore[import-untyped]
from scipy.sparse import csc_matrix, csr_array, csr_matrix  # type: ignore[import-untyped]
from scipy.sparse.linalg import (  # type: ignore[import-untyped]
    LinearOperator,
    bicgstab,
    cg,
    cgs,
    gmres,
    lgmres,
    spilu,
    spsolve,
    tfqmr,
)

from boussinesq.config import Config
from boussinesq.errors import (
    LinearSolverDidNotConverge,
    PreconditionerError,
    ValidationError,
)
from boussinesq.mesh import MeshTopology
from boussinesq.types import (
    IterativeSolver,
    IterativeSolverFunc,
    OneDimensionalGrid,
    Preconditioner,
    PreconditionerFactory,
    SlotArray,
)

logger = logging.getLogger(__name__)


__all__ = [
    "SOLVERS",
    "PRECONDITIONERS",
    "solve_linear_system",
    "solve_newton_update_system",
]

SystemMatrix = typing.Union[csr_array, csr_matrix]


def _jacobi(A: SystemMatrix) -> LinearOperator:
    """
    Inverse-diagonal preconditioner.

    The Jacobian diagonal is `T_diag + p`, strictly positive on any wet mesh.
    Entries that vanish (an isolated cell with zero storage) are left unscaled.
    """
    diagonal = np.asarray(A.diagonal(), dtype=float)
    scale = np.ones_like(diagonal)
    nonzero = np.abs(diagonal) > np.finfo(diagonal.dtype).tiny
    scale[nonzero] = 1.0 / diagonal[nonzero]
    return LinearOperator(
        shape=A.shape, matvec=lambda x: scale * np.ravel(x), dtype=diagonal.dtype
    )


def _incomplete_lu(A: SystemMatrix) -> LinearOperator:
    """
    Incomplete LU factorization of the Jacobian.

    Not symmetric: pair it with "bicgstab", "gmres" or "lgmres" rather than "cg".
    """
    factor = spilu(csc_matrix(A), drop_tol=1e-4, fill_factor=10)
    return LinearOperator(shape=A.shape, matvec=factor.solve, dtype=A.dtype)


def _smoothed_aggregation(A: SystemMatrix) -> LinearOperator:
    """
    One V-cycle of smoothed-aggregation AMG.

    PyAMG's kernels take 32-bit CSR indices in canonical order, while the mesh
    stores 64-bit ones, so the hierarchy is built on a re-indexed copy.
    """
    A = csr_matrix(A)
    hierarchy_matrix = csr_matrix(
        (
            np.array(A.data, dtype=float),
            A.indices.astype(np.int32),
            A.indptr.astype(np.int32),
        ),
        shape=A.shape,
    )
    hierarchy_matrix.sort_indices()
    hierarchy = pyamg.smoothed_aggregation_solver(hierarchy_matrix)
    logger.debug(f"AMG hierarchy: {len(hierarchy.levels)} levels")
    return hierarchy.aspreconditioner(cycle="V")


def _direct(
    A: typing.Any,
    b: typing.Any,
    x0: typing.Optional[typing.Any] = None,
    *,
    rtol: float,
    atol: float,
    maxiter: typing.Optional[int],
    M: typing.Optional[typing.Any],
    callback: typing.Optional[typing.Callable[[np.typing.NDArray], None]],
) -> typing.Tuple[np.typing.NDArray, int]:
    """
    Sparse LU solve. A singular Jacobian comes back from SuperLU as NaNs,
    which is reported as failure (info 1).
    """
    x = spsolve(csc_matrix(A), b)
    if not np.all(np.isfinite(x)):
        return x, 1
    return x, 0


def _lgmres(
    A: typing.Any,
    b: typing.Any,
    x0: typing.Optional[typing.Any] = None,
    *,
    rtol: float,
    atol: float,
    maxiter: typing.Optional[int],
    M: typing.Optional[typing.Any],
    callback: typing.Optional[typing.Callable[[np.typing.NDArray], None]],
) -> typing.Tuple[np.typing.NDArray, int]:
    # Longer inner cycles than SciPy's default; Jacobians of wide meshes are
    # poorly conditioned when the time step is large
    return lgmres(
        A, b, x0=x0, M=M, rtol=rtol, atol=atol, maxiter=maxiter, inner_m=50
    )


SOLVERS: typing.Dict[str, IterativeSolverFunc] = {
    "cg": cg,
    "bicgstab": bicgstab,
    "gmres": gmres,
    "lgmres": _lgmres,
    "tfqmr": tfqmr,
    "cgs": cgs,
    "direct": _direct,
}
"""Linear solvers available by name."""

PRECONDITIONERS: typing.Dict[str, PreconditionerFactory] = {
    "diagonal": _jacobi,
    "ilu": _incomplete_lu,
    "amg": _smoothed_aggregation,
}
"""Preconditioner builders available by name."""


def _solver_name(solver: IterativeSolverFunc) -> str:
    return getattr(solver, "__name__", repr(solver))


def _resolve_solvers(
    solver: typing.Union[IterativeSolver, typing.Iterable[IterativeSolver]],
) -> typing.List[IterativeSolverFunc]:
    if isinstance(solver, str) or callable(solver):
        candidates: typing.List[typing.Any] = [solver]
    else:
        try:
            candidates = list(solver)
        except TypeError:
            raise ValidationError(
                f"`solver` must be a name, a callable or an iterable of those, got {solver!r}."
            ) from None

    resolved = []
    for candidate in candidates:
        if isinstance(candidate, str):
            if candidate not in SOLVERS:
                raise ValidationError(
                    f"Unknown linear solver {candidate!r}. Available solvers: {sorted(SOLVERS)}"
                )
            resolved.append(SOLVERS[candidate])
        elif callable(candidate):
            resolved.append(candidate)
        else:
            raise ValidationError(f"Invalid linear solver: {candidate!r}")

    if not resolved:
        raise ValidationError("At least one linear solver is required.")
    return resolved


def _build_preconditioner(
    A: SystemMatrix, preconditioner: typing.Optional[Preconditioner]
) -> typing.Optional[LinearOperator]:
    if preconditioner is None or isinstance(preconditioner, LinearOperator):
        return preconditioner
    if isinstance(preconditioner, str):
        if preconditioner not in PRECONDITIONERS:
            raise ValidationError(
                f"Unknown preconditioner {preconditioner!r}. "
                f"Available preconditioners: {sorted(PRECONDITIONERS)}"
            )
        build = PRECONDITIONERS[preconditioner]
    elif callable(preconditioner):
        build = preconditioner
    else:
        raise ValidationError(f"Invalid preconditioner: {preconditioner!r}")

    try:
        return build(A)
    except Exception as exc:
        raise PreconditionerError(
            f"Could not build preconditioner {preconditioner!r}: {exc}"
        ) from exc


def solve_linear_system(
    A_csr: SystemMatrix,
    b: np.typing.NDArray,
    max_iterations: int,
    rtol: float = 1e-10,
    atol: float = 1e-12,
    solver: typing.Union[IterativeSolver, typing.Iterable[IterativeSolver]] = "cg",
    preconditioner: typing.Optional[Preconditioner] = "diagonal",
    fallback_to_direct: bool = False,
) -> np.typing.NDArray:
    """
    Solve A · x = b.

    Each solver is tried in turn, sharing one preconditioner, until one reports
    success (info == 0). The preconditioner is not built when every solver is
    "direct".

    :param A_csr: System matrix in CSR form.
    :param b: Right-hand side.
    :param max_iterations: Iteration cap handed to each iterative solver.
    :param rtol: Relative tolerance of the iterative solvers.
    :param atol: Absolute tolerance of the iterative solvers.
    :param solver: Name from `SOLVERS`, a callable with SciPy's solver
        signature, or an iterable of those.
    :param preconditioner: Name from `PRECONDITIONERS`, a callable building a
        `LinearOperator` from the matrix, a `LinearOperator`, or None.
    :param fallback_to_direct: Attempt a sparse LU solve once every solver failed.
    :return: The solution vector.
    :raises ValidationError: If a solver or preconditioner name is unknown.
    :raises PreconditionerError: If the preconditioner cannot be built.
    :raises LinearSolverDidNotConverge: If no solver succeeds.
    """
    solvers = _resolve_solvers(solver)
    if all(func is _direct for func in solvers):
        M = None
    else:
        M = _build_preconditioner(A_csr, preconditioner)

    for func in solvers:
        x, info = func(
            A_csr,
            b,
            x0=None,
            rtol=rtol,
            atol=atol,
            maxiter=max_iterations,
            M=M,
            callback=None,
        )
        if info == 0:
            return np.ascontiguousarray(x)
        logger.warning(
            f"Linear solver {_solver_name(func)!r} failed with info={info} "
            f"(iteration cap {max_iterations})"
        )

    if fallback_to_direct and _direct not in solvers:
        logger.info("Falling back to a direct sparse solve")
        x, info = _direct(
            A_csr, b, rtol=rtol, atol=atol, maxiter=None, M=None, callback=None
        )
        if info == 0:
            return np.ascontiguousarray(x)
        logger.error("Direct sparse solve failed: singular system")

    raise LinearSolverDidNotConverge(
        f"No linear solver converged for the {A_csr.shape[0]}-cell system."
    )


def solve_newton_update_system(
    mesh: MeshTopology,
    jacobian: SlotArray,
    residual: OneDimensionalGrid,
    config: Config,
) -> OneDimensionalGrid:
    """
    Solve Jr · Δ = R for the Newton update Δ.

    :param mesh: Mesh topology providing the sparse pattern `(Np, Mp, Mi)`.
    :param jacobian: Slot-aligned Jacobian values (Jr).
    :param residual: Residual vector (R), the right-hand side.
    :param config: Run configuration with the linear solver settings.
    :return: The update vector Δ, length Np.
    :raises LinearSolverDidNotConverge: If the linear solve fails.
    """
    return solve_linear_system(
        mesh.as_csr(jacobian),
        residual,
        max_iterations=config.linear_max_iterations,
        rtol=config.linear_rtol,
        atol=config.linear_atol,
        solver=config.iterative_solver,
        preconditioner=config.preconditioner,
        fallback_to_direct=config.fallback_to_direct,
    )
