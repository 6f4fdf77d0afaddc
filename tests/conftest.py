import numpy as np
import pytest

from boussinesq import DIAGONAL_SENTINEL, MeshTopology, build_mesh_topology


@pytest.fixture
def single_cell_mesh():
    """One isolated cell: no neighbours, only a diagonal slot."""
    return MeshTopology(
        row_pointers=[0, 1],
        column_indices=[0],
        edge_ids=[DIAGONAL_SENTINEL],
        head=[5.0],
        bottom_elevation=[1.0],
        top_elevation=[10.0],
        plan_area=[2.0],
        source_sink=[0.5],
        center_distance=np.empty(0),
        hydraulic_conductivity=np.empty(0),
        edge_length=np.empty(0),
    )


@pytest.fixture
def flat_pair_mesh():
    """Two cells at the same head with no sources."""
    return build_mesh_topology(
        head=[5.0, 5.0],
        bottom_elevation=0.0,
        top_elevation=10.0,
        plan_area=1.0,
        edges=[(0, 1)],
        center_distance=1.0,
        hydraulic_conductivity=1.0,
        edge_length=1.0,
    )


@pytest.fixture
def chain_mesh():
    """Three cells in a row, head decreasing along the chain."""
    return build_mesh_topology(
        head=[6.0, 5.0, 4.0],
        bottom_elevation=0.0,
        top_elevation=10.0,
        plan_area=1.0,
        edges=[(0, 1), (1, 2)],
        center_distance=1.0,
        hydraulic_conductivity=1.0,
        edge_length=1.0,
    )


@pytest.fixture
def square_mesh():
    """Four cells of uneven size and bedrock, with a diagonal connection."""
    return build_mesh_topology(
        head=[12.0, 9.5, 8.0, 10.5],
        bottom_elevation=[1.0, 0.5, 2.0, 0.0],
        top_elevation=20.0,
        plan_area=[2.0, 1.5, 1.0, 3.0],
        edges=[(0, 1), (1, 2), (2, 3), (3, 0), (0, 2)],
        center_distance=[1.0, 2.0, 1.5, 1.0, 2.5],
        hydraulic_conductivity=[0.5, 1.0, 2.0, 0.8, 0.3],
        edge_length=[1.0, 1.2, 0.8, 1.0, 0.5],
        source_sink=[0.1, 0.0, -0.05, 0.0],
    )


@pytest.fixture
def asymmetric_pair_mesh():
    """
    Two cells whose connecting slots carry distinct edge ids, so the
    conductance of each direction differs.
    """
    return MeshTopology(
        row_pointers=[0, 2, 4],
        column_indices=[0, 1, 1, 0],
        edge_ids=[DIAGONAL_SENTINEL, 0, DIAGONAL_SENTINEL, 1],
        head=[5.0, 3.0],
        bottom_elevation=[0.0, 0.0],
        top_elevation=[10.0, 10.0],
        plan_area=[1.0, 1.0],
        source_sink=[0.0, 0.0],
        center_distance=[1.0, 1.0],
        hydraulic_conductivity=[1.0, 2.0],
        edge_length=[1.0, 1.0],
    )


@pytest.fixture
def long_chain_mesh():
    """Thirty cells in a row with a sloping water table, enough for AMG to coarsen."""
    cell_count = 30
    return build_mesh_topology(
        head=np.linspace(9.0, 6.0, cell_count),
        bottom_elevation=0.0,
        top_elevation=12.0,
        plan_area=4.0,
        edges=[(i, i + 1) for i in range(cell_count - 1)],
        center_distance=2.0,
        hydraulic_conductivity=1.5,
        edge_length=2.0,
        source_sink=np.where(np.arange(cell_count) == 5, 0.01, 0.0),
    )
