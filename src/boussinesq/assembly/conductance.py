"""
Conductance (flux) matrix and explicit right-hand side of the Boussinesq equation.
"""

import logging

import numba  # type: ignore[import-untyped]
import numpy as np

from boussinesq.mesh import MeshTopology
from boussinesq.types import IndexArray, OneDimensionalGrid, SlotArray


__all__ = ["assemble_conductance", "compute_upwind_thickness"]

logger = logging.getLogger(__name__)


@numba.njit(cache=True, inline="always")
def compute_upwind_thickness(
    head: float,
    bottom_elevation: float,
    neighbour_head: float,
    neighbour_bottom_elevation: float,
) -> float:
    """
    Saturated thickness at the edge shared by a cell and its neighbour.

    Picks the larger of the two adjacent saturated thicknesses, biasing the
    flux towards the wetter side. A dry side (head at or below bedrock) does
    not pull the edge thickness down.

    :param head: Head in the cell.
    :param bottom_elevation: Bedrock elevation of the cell.
    :param neighbour_head: Head in the neighbouring cell.
    :param neighbour_bottom_elevation: Bedrock elevation of the neighbouring cell.
    :return: Upwinded saturated thickness.
    """
    return max(neighbour_head - neighbour_bottom_elevation, head - bottom_elevation)


@numba.njit(cache=True)
def _assemble_conductance(
    row_pointers: IndexArray,
    column_indices: IndexArray,
    edge_ids: IndexArray,
    diagonal_slots: IndexArray,
    head: OneDimensionalGrid,
    bottom_elevation: OneDimensionalGrid,
    plan_area: OneDimensionalGrid,
    source_sink: OneDimensionalGrid,
    center_distance: OneDimensionalGrid,
    hydraulic_conductivity: OneDimensionalGrid,
    edge_length: OneDimensionalGrid,
    time_step_size: float,
    conductance_out: SlotArray,
    rhs_out: OneDimensionalGrid,
) -> None:
    cell_count = row_pointers.shape[0] - 1
    for i in range(cell_count):
        saturated_thickness = head[i] - bottom_elevation[i]
        # Prior-step storage plus source contribution
        rhs_out[i] = (
            saturated_thickness * plan_area[i]
            + time_step_size * plan_area[i] * source_sink[i]
        )

        diagonal_slot = diagonal_slots[i]
        row_sum = 0.0
        for j in range(row_pointers[i], row_pointers[i + 1]):
            if j == diagonal_slot:
                continue
            edge = edge_ids[j]
            neighbour = column_indices[j]
            thickness = compute_upwind_thickness(
                head[i],
                bottom_elevation[i],
                head[neighbour],
                bottom_elevation[neighbour],
            )
            value = (
                -time_step_size
                * (1.0 / center_distance[edge])
                * hydraulic_conductivity[edge]
                * edge_length[edge]
                * thickness
            )
            conductance_out[j] = value
            row_sum -= value

        # Rows sum to zero: T is a discrete divergence operator
        conductance_out[diagonal_slot] = row_sum


def assemble_conductance(
    mesh: MeshTopology,
    head: OneDimensionalGrid,
    time_step_size: float,
    conductance_out: SlotArray,
    rhs_out: OneDimensionalGrid,
) -> None:
    """
    Assemble the conductance matrix T and the explicit right-hand side b for a trial head field.

    For every off-diagonal slot j of row i (neighbour k, edge e):

        T[j] = -dt * (1 / distance[e]) * K[e] * length[e] * max(eta[k] - bottom[k], eta[i] - bottom[i])

    and the diagonal slot receives the negated sum of the row's off-diagonal entries.
    At the same time:

        b[i] = (eta[i] - bottom[i]) * area[i] + dt * area[i] * source[i]

    Both outputs are overwritten in place; calling twice with identical inputs
    gives identical results.

    :param mesh: Mesh topology and properties.
    :param head: Trial head field (one value per cell).
    :param time_step_size: Time step size (dt).
    :param conductance_out: Slot-aligned array (length SIZE) receiving T.
    :param rhs_out: Per-cell array (length Np) receiving b.
    """
    _assemble_conductance(
        mesh.row_pointers,
        mesh.column_indices,
        mesh.edge_ids,
        mesh.diagonal_slots,
        head,
        mesh.bottom_elevation,
        mesh.plan_area,
        mesh.source_sink,
        mesh.center_distance,
        mesh.hydraulic_conductivity,
        mesh.edge_length,
        float(time_step_size),
        conductance_out,
        rhs_out,
    )
