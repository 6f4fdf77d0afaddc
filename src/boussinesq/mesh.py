"""Read-only mesh topology and the per-cell/per-edge fields attached to it."""

import typing

import attrs
import numba  # type: ignore[import-untyped]
import numpy as np
from scipy.sparse import csr_array  # type: ignore[import-untyped]
from typing_extensions import Self

from boussinesq.config import get_dtype
from boussinesq.types import IndexArray, OneDimensionalGrid, SlotArray


__all__ = ["DIAGONAL_SENTINEL", "MeshTopology"]

DIAGONAL_SENTINEL = -1
"""Edge id marking the slot that holds a row's own diagonal entry."""


def _as_index_array(value: typing.Any) -> IndexArray:
    return np.ascontiguousarray(value, dtype=np.int64)


def _as_float_array(value: typing.Any) -> OneDimensionalGrid:
    return np.array(value, dtype=get_dtype(), copy=True)


@numba.njit(cache=True)
def locate_diagonal_slots(
    row_pointers: IndexArray, edge_ids: IndexArray
) -> IndexArray:
    """
    Find, for every row, the slot carrying the diagonal sentinel.

    A row without a sentinel keeps -1, which makes assemblers write its diagonal
    into the last slot of the pattern. Malformed topology is not detected.

    :param row_pointers: CSR row pointer array (length Np + 1).
    :param edge_ids: Edge id per slot, `DIAGONAL_SENTINEL` on diagonal slots.
    :return: Diagonal slot offset per row (length Np).
    """
    cell_count = row_pointers.shape[0] - 1
    diagonal_slots = np.full(cell_count, -1, dtype=np.int64)
    for i in range(cell_count):
        for j in range(row_pointers[i], row_pointers[i + 1]):
            if edge_ids[j] == DIAGONAL_SENTINEL:
                diagonal_slots[i] = j
    return diagonal_slots


@numba.njit(cache=True)
def locate_mirror_slots(
    row_pointers: IndexArray, column_indices: IndexArray
) -> IndexArray:
    """
    Find, for every slot (i, k), the slot (k, i) of the neighbour's row.

    Diagonal slots mirror onto themselves. Slots with no counterpart in the
    neighbour's row (asymmetric pattern) also mirror onto themselves.

    :param row_pointers: CSR row pointer array (length Np + 1).
    :param column_indices: Column (neighbour cell) index per slot.
    :return: Mirror slot offset per slot (length SIZE).
    """
    cell_count = row_pointers.shape[0] - 1
    size = column_indices.shape[0]
    mirror_slots = np.arange(size)
    for i in range(cell_count):
        for j in range(row_pointers[i], row_pointers[i + 1]):
            neighbour = column_indices[j]
            for m in range(row_pointers[neighbour], row_pointers[neighbour + 1]):
                if column_indices[m] == i:
                    mirror_slots[j] = m
                    break
    return mirror_slots


@attrs.frozen(slots=True, eq=False)
class MeshTopology:
    """
    Unstructured polygonal mesh as seen by the assemblers and the Newton driver.

    The sparse adjacency is stored in compressed row form: the slots of row `i`
    are `row_pointers[i]:row_pointers[i + 1]`, `column_indices[j]` is the cell the
    slot points to and `edge_ids[j]` is the edge shared with that cell, or
    `DIAGONAL_SENTINEL` for the row's own diagonal slot. Every slot-aligned
    array (conductance, Jacobian) shares this pattern.

    The mesh is built by an external collaborator and is read-only to the core.
    Each row must hold exactly one diagonal slot and the per-edge arrays must be
    indexable by every non-sentinel edge id; neither is checked here.
    """

    row_pointers: IndexArray = attrs.field(converter=_as_index_array)
    """CSR row pointers (Mp), length Np + 1, nondecreasing, last entry = SIZE."""
    column_indices: IndexArray = attrs.field(converter=_as_index_array)
    """Neighbour cell index per slot (Mi), length SIZE."""
    edge_ids: IndexArray = attrs.field(converter=_as_index_array)
    """Edge id per slot (Ml), length SIZE. `DIAGONAL_SENTINEL` on diagonal slots."""

    head: OneDimensionalGrid = attrs.field(converter=_as_float_array)
    """Piezometric head / water-table elevation (eta) per cell."""
    bottom_elevation: OneDimensionalGrid = attrs.field(converter=_as_float_array)
    """Bedrock elevation per cell."""
    top_elevation: OneDimensionalGrid = attrs.field(converter=_as_float_array)
    """Ground surface elevation per cell."""
    plan_area: OneDimensionalGrid = attrs.field(converter=_as_float_array)
    """Plan area of each cell."""
    source_sink: OneDimensionalGrid = attrs.field(converter=_as_float_array)
    """Source (positive) or sink (negative) rate per unit area and time."""

    center_distance: OneDimensionalGrid = attrs.field(converter=_as_float_array)
    """Euclidean distance between the centers of the two cells sharing each edge."""
    hydraulic_conductivity: OneDimensionalGrid = attrs.field(
        converter=_as_float_array
    )
    """Saturated hydraulic conductivity of each edge."""
    edge_length: OneDimensionalGrid = attrs.field(converter=_as_float_array)
    """Length of each edge."""

    storage_coefficient: OneDimensionalGrid = attrs.field(
        default=attrs.Factory(lambda self: self.plan_area, takes_self=True),
        converter=_as_float_array,
    )
    """Storage term per cell (p). Defaults to the plan area."""
    datum_elevation: OneDimensionalGrid = attrs.field(
        default=attrs.Factory(lambda self: self.bottom_elevation, takes_self=True),
        converter=_as_float_array,
    )
    """Datum the storage term is measured from (z). Defaults to the bottom elevation."""

    diagonal_slots: IndexArray = attrs.field(
        init=False,
        repr=False,
        default=attrs.Factory(
            lambda self: locate_diagonal_slots(self.row_pointers, self.edge_ids),
            takes_self=True,
        ),
    )
    """Slot offset of each row's diagonal entry."""
    mirror_slots: IndexArray = attrs.field(
        init=False,
        repr=False,
        default=attrs.Factory(
            lambda self: locate_mirror_slots(self.row_pointers, self.column_indices),
            takes_self=True,
        ),
    )
    """Slot offset of the transposed entry of each slot."""

    @property
    def cell_count(self) -> int:
        """Number of cells (Np)."""
        return int(self.row_pointers.shape[0] - 1)

    @property
    def size(self) -> int:
        """Number of slots in the sparse pattern (SIZE)."""
        return int(self.column_indices.shape[0])

    @property
    def edge_count(self) -> int:
        """Number of edges with per-edge properties."""
        return int(self.center_distance.shape[0])

    def as_csr(self, values: SlotArray) -> csr_array:
        """
        View slot-aligned values as a sparse matrix sharing the mesh pattern.

        :param values: Array of length SIZE (e.g. conductance or Jacobian values).
        :return: `scipy.sparse.csr_array` of shape (Np, Np).
        """
        n = self.cell_count
        return csr_array(
            (values, self.column_indices, self.row_pointers), shape=(n, n)
        )

    def with_head(self, head: OneDimensionalGrid) -> Self:
        """
        Return a copy of the mesh carrying a new head field.

        :param head: New head per cell.
        :return: New `MeshTopology`.
        """
        return attrs.evolve(self, head=head)
