import numba  # type: ignore[import-untyped]
import numpy as np

from boussinesq.mesh import MeshTopology
from boussinesq.types import IndexArray, OneDimensionalGrid, SlotArray


__all__ = ["assemble_residual", "max_abs_residual"]


@numba.njit(cache=True)
def _assemble_residual(
    row_pointers: IndexArray,
    column_indices: IndexArray,
    head: OneDimensionalGrid,
    conductance: SlotArray,
    rhs: OneDimensionalGrid,
    storage: OneDimensionalGrid,
    datum: OneDimensionalGrid,
    residual_out: OneDimensionalGrid,
) -> None:
    cell_count = row_pointers.shape[0] - 1
    for i in range(cell_count):
        flux = 0.0
        for j in range(row_pointers[i], row_pointers[i + 1]):
            flux += conductance[j] * head[column_indices[j]]
        residual_out[i] = storage[i] * (head[i] - datum[i]) + flux - rhs[i]


def assemble_residual(
    mesh: MeshTopology,
    head: OneDimensionalGrid,
    conductance: SlotArray,
    rhs: OneDimensionalGrid,
    storage: OneDimensionalGrid,
    datum: OneDimensionalGrid,
    residual_out: OneDimensionalGrid,
) -> None:
    """
    Evaluate the discrete nonlinear mass-balance residual for a head field.

        R[i] = p[i] * (eta[i] - z[i]) + sum_j T[j] * eta[Mi[j]] - b[i]

    where the sum runs over every slot of row i, diagonal included.

    `conductance` and `rhs` must have been assembled for the head field the
    caller intends to pair them with; nothing here checks that.

    :param mesh: Mesh topology.
    :param head: Head field to evaluate the residual at.
    :param conductance: Slot-aligned conductance values (T).
    :param rhs: Explicit right-hand side per cell (b).
    :param storage: Storage term per cell (p).
    :param datum: Datum elevation per cell (z).
    :param residual_out: Per-cell array receiving R, overwritten in place.
    """
    _assemble_residual(
        mesh.row_pointers,
        mesh.column_indices,
        head,
        conductance,
        rhs,
        storage,
        datum,
        residual_out,
    )


def max_abs_residual(residual: OneDimensionalGrid) -> float:
    """Largest absolute residual entry, 0.0 for an empty mesh."""
    if residual.size == 0:
        return 0.0
    return float(np.max(np.abs(residual)))
