"""Convenience constructors for mesh topologies."""

import typing

import numpy as np

from boussinesq.config import get_dtype
from boussinesq.errors import ValidationError
from boussinesq.mesh import DIAGONAL_SENTINEL, MeshTopology
from boussinesq.types import OneDimensionalGrid

__all__ = ["build_mesh_topology"]

FieldLike = typing.Union[float, typing.Sequence[float], OneDimensionalGrid]


def _broadcast_field(name: str, value: FieldLike, length: int) -> OneDimensionalGrid:
    array = np.asarray(value, dtype=get_dtype())
    if array.ndim == 0:
        return np.full(length, array, dtype=get_dtype())
    if array.shape != (length,):
        raise ValidationError(
            f"`{name}` has shape {array.shape}, expected ({length},) or a scalar."
        )
    return array.copy()


def build_mesh_topology(
    head: FieldLike,
    bottom_elevation: FieldLike,
    top_elevation: FieldLike,
    plan_area: FieldLike,
    edges: typing.Sequence[typing.Tuple[int, int]],
    center_distance: FieldLike,
    hydraulic_conductivity: FieldLike,
    edge_length: FieldLike,
    source_sink: FieldLike = 0.0,
    storage_coefficient: typing.Optional[FieldLike] = None,
    datum_elevation: typing.Optional[FieldLike] = None,
    cell_count: typing.Optional[int] = None,
) -> MeshTopology:
    """
    Build a `MeshTopology` from per-cell fields and an undirected edge list.

    Edge `e = (a, b)` connects cells `a` and `b`; both slots it produces carry
    edge id `e`, so per-edge properties are shared by the two cells and the
    assembled conductance matrix is symmetric. Every row lists its diagonal slot
    first, followed by its neighbours in ascending cell order.

    Per-cell and per-edge fields accept a scalar, broadcast to every cell/edge.

    :param head: Initial head per cell.
    :param bottom_elevation: Bedrock elevation per cell.
    :param top_elevation: Ground surface elevation per cell.
    :param plan_area: Plan area per cell.
    :param edges: Sequence of `(a, b)` cell index pairs, one per edge.
    :param center_distance: Distance between the two cell centers of each edge.
    :param hydraulic_conductivity: Saturated hydraulic conductivity of each edge.
    :param edge_length: Length of each edge.
    :param source_sink: Source/sink rate per cell.
    :param storage_coefficient: Storage term per cell. Defaults to the plan area.
    :param datum_elevation: Storage datum per cell. Defaults to the bottom elevation.
    :param cell_count: Number of cells. Inferred from `head` when not given.
    :return: A `MeshTopology`.
    :raises ValidationError: If shapes or edge indices are inconsistent.
    """
    if cell_count is None:
        cell_count = int(np.size(head))
    if cell_count < 1:
        raise ValidationError("A mesh needs at least one cell.")

    edge_array = np.asarray(edges, dtype=np.int64).reshape(-1, 2)
    edge_count = edge_array.shape[0]
    if edge_count and (edge_array.min() < 0 or edge_array.max() >= cell_count):
        raise ValidationError(
            f"Edge cell indices must lie in [0, {cell_count - 1}]."
        )
    if np.any(edge_array[:, 0] == edge_array[:, 1]):
        raise ValidationError("Edges must connect two distinct cells.")

    neighbours: typing.List[typing.List[typing.Tuple[int, int]]] = [
        [] for _ in range(cell_count)
    ]
    seen: typing.Set[typing.Tuple[int, int]] = set()
    for edge_id, (a, b) in enumerate(edge_array.tolist()):
        key = (min(a, b), max(a, b))
        if key in seen:
            raise ValidationError(f"Duplicate edge between cells {a} and {b}.")
        seen.add(key)
        neighbours[a].append((b, edge_id))
        neighbours[b].append((a, edge_id))

    row_pointers = [0]
    column_indices: typing.List[int] = []
    edge_ids: typing.List[int] = []
    for i in range(cell_count):
        column_indices.append(i)
        edge_ids.append(DIAGONAL_SENTINEL)
        for neighbour, edge_id in sorted(neighbours[i]):
            column_indices.append(neighbour)
            edge_ids.append(edge_id)
        row_pointers.append(len(column_indices))

    center_distance = _broadcast_field("center_distance", center_distance, edge_count)
    if np.any(center_distance <= 0):
        raise ValidationError("`center_distance` must be positive for every edge.")

    plan_area = _broadcast_field("plan_area", plan_area, cell_count)
    bottom_elevation = _broadcast_field("bottom_elevation", bottom_elevation, cell_count)
    return MeshTopology(
        row_pointers=row_pointers,
        column_indices=column_indices,
        edge_ids=edge_ids,
        head=_broadcast_field("head", head, cell_count),
        bottom_elevation=bottom_elevation,
        top_elevation=_broadcast_field("top_elevation", top_elevation, cell_count),
        plan_area=plan_area,
        source_sink=_broadcast_field("source_sink", source_sink, cell_count),
        center_distance=center_distance,
        hydraulic_conductivity=_broadcast_field(
            "hydraulic_conductivity", hydraulic_conductivity, edge_count
        ),
        edge_length=_broadcast_field("edge_length", edge_length, edge_count),
        storage_coefficient=(
            plan_area
            if storage_coefficient is None
            else _broadcast_field("storage_coefficient", storage_coefficient, cell_count)
        ),
        datum_elevation=(
            bottom_elevation
            if datum_elevation is None
            else _broadcast_field("datum_elevation", datum_elevation, cell_count)
        ),
    )
