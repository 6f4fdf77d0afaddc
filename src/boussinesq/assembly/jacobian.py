"""
Approximate Jacobian of the Boussinesq residual.

Only the storage term is differentiated; the flux terms contribute the
conductance entries unchanged (weak-dependence approximation). The result is
an approximate Newton Jacobian, giving fast but linearly convergent updates
once the conductance itself depends on head.
"""

import numba  # type: ignore[import-untyped]

from boussinesq.errors import ValidationError
from boussinesq.mesh import MeshTopology
from boussinesq.types import (
    IndexArray,
    JacobianStrategy,
    OneDimensionalGrid,
    SlotArray,
)


__all__ = ["assemble_jacobian"]


@numba.njit(cache=True)
def _assemble_jacobian_positional(
    row_pointers: IndexArray,
    diagonal_slots: IndexArray,
    conductance: SlotArray,
    storage: OneDimensionalGrid,
    jacobian_out: SlotArray,
) -> None:
    cell_count = row_pointers.shape[0] - 1
    for i in range(cell_count):
        diagonal_slot = diagonal_slots[i]
        for j in range(row_pointers[i], row_pointers[i + 1]):
            if j == diagonal_slot:
                jacobian_out[j] = conductance[j] + storage[i]
            else:
                jacobian_out[j] = conductance[j]


@numba.njit(cache=True)
def _assemble_jacobian_mirrored(
    row_pointers: IndexArray,
    diagonal_slots: IndexArray,
    mirror_slots: IndexArray,
    conductance: SlotArray,
    storage: OneDimensionalGrid,
    jacobian_out: SlotArray,
) -> None:
    cell_count = row_pointers.shape[0] - 1
    for i in range(cell_count):
        diagonal_slot = diagonal_slots[i]
        for j in range(row_pointers[i], row_pointers[i + 1]):
            if j == diagonal_slot:
                jacobian_out[j] = conductance[j] + storage[i]
            else:
                jacobian_out[j] = conductance[mirror_slots[j]]


def assemble_jacobian(
    mesh: MeshTopology,
    conductance: SlotArray,
    storage: OneDimensionalGrid,
    jacobian_out: SlotArray,
    strategy: JacobianStrategy = "positional",
) -> None:
    """
    Assemble the approximate Jacobian Jr with the sparsity pattern of T.

    The diagonal slot of row i is `T[diag] + p[i]`. Off-diagonal slots copy a
    conductance entry, chosen by `strategy`:

    - "positional": the entry at the same flattened slot, `T[j]`.
    - "mirrored": the entry of the neighbour's row pointing back at row i,
      `T[mirror_slots[j]]`.

    The two coincide whenever T is symmetric, which is the case for meshes whose
    two slots of an edge carry the same edge id.

    :param mesh: Mesh topology.
    :param conductance: Slot-aligned conductance values (T).
    :param storage: Storage term per cell (p).
    :param jacobian_out: Slot-aligned array receiving Jr, overwritten in place.
    :param strategy: Source of the off-diagonal entries.
    :raises ValidationError: If the strategy is unknown.
    """
    if strategy == "positional":
        _assemble_jacobian_positional(
            mesh.row_pointers, mesh.diagonal_slots, conductance, storage, jacobian_out
        )
    elif strategy == "mirrored":
        _assemble_jacobian_mirrored(
            mesh.row_pointers,
            mesh.diagonal_slots,
            mesh.mirror_slots,
            conductance,
            storage,
            jacobian_out,
        )
    else:
        raise ValidationError(
            f"Unknown Jacobian strategy: {strategy!r}. Available strategies: ['positional', 'mirrored']"
        )
