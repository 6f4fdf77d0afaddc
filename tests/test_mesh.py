"""Tests for the mesh topology and its factory."""

import numpy as np
import pytest

from boussinesq import (
    DIAGONAL_SENTINEL,
    MeshTopology,
    ValidationError,
    build_mesh_topology,
    with_precision,
)


class TestBuildMeshTopology:
    def test_chain_pattern(self, chain_mesh):
        np.testing.assert_array_equal(chain_mesh.row_pointers, [0, 2, 5, 7])
        np.testing.assert_array_equal(chain_mesh.column_indices, [0, 1, 1, 0, 2, 2, 1])
        np.testing.assert_array_equal(chain_mesh.edge_ids, [-1, 0, -1, 0, 1, -1, 1])
        assert chain_mesh.cell_count == 3
        assert chain_mesh.size == 7
        assert chain_mesh.edge_count == 2

    def test_scalars_are_broadcast(self, chain_mesh):
        np.testing.assert_array_equal(chain_mesh.plan_area, [1.0, 1.0, 1.0])
        np.testing.assert_array_equal(chain_mesh.edge_length, [1.0, 1.0])
        np.testing.assert_array_equal(chain_mesh.source_sink, [0.0, 0.0, 0.0])

    def test_storage_defaults(self, square_mesh):
        np.testing.assert_array_equal(
            square_mesh.storage_coefficient, square_mesh.plan_area
        )
        np.testing.assert_array_equal(
            square_mesh.datum_elevation, square_mesh.bottom_elevation
        )

    def test_explicit_storage(self):
        mesh = build_mesh_topology(
            head=[1.0, 2.0],
            bottom_elevation=0.0,
            top_elevation=5.0,
            plan_area=4.0,
            edges=[(0, 1)],
            center_distance=1.0,
            hydraulic_conductivity=1.0,
            edge_length=1.0,
            storage_coefficient=[0.2, 0.3],
            datum_elevation=-1.0,
        )
        np.testing.assert_array_equal(mesh.storage_coefficient, [0.2, 0.3])
        np.testing.assert_array_equal(mesh.datum_elevation, [-1.0, -1.0])

    def test_isolated_cells(self):
        mesh = build_mesh_topology(
            head=[1.0, 2.0, 3.0],
            bottom_elevation=0.0,
            top_elevation=5.0,
            plan_area=1.0,
            edges=[],
            center_distance=1.0,
            hydraulic_conductivity=1.0,
            edge_length=1.0,
        )
        np.testing.assert_array_equal(mesh.row_pointers, [0, 1, 2, 3])
        np.testing.assert_array_equal(mesh.edge_ids, [DIAGONAL_SENTINEL] * 3)
        assert mesh.edge_count == 0

    @pytest.mark.parametrize(
        "edges",
        [[(0, 3)], [(-1, 0)], [(1, 1)], [(0, 1), (1, 0)]],
        ids=["out-of-range", "negative", "self-loop", "duplicate"],
    )
    def test_invalid_edges(self, edges):
        with pytest.raises(ValidationError):
            build_mesh_topology(
                head=[1.0, 2.0, 3.0],
                bottom_elevation=0.0,
                top_elevation=5.0,
                plan_area=1.0,
                edges=edges,
                center_distance=1.0,
                hydraulic_conductivity=1.0,
                edge_length=1.0,
            )

    def test_shape_mismatch(self):
        with pytest.raises(ValidationError):
            build_mesh_topology(
                head=[1.0, 2.0],
                bottom_elevation=[0.0, 0.0, 0.0],
                top_elevation=5.0,
                plan_area=1.0,
                edges=[(0, 1)],
                center_distance=1.0,
                hydraulic_conductivity=1.0,
                edge_length=1.0,
            )

    def test_non_positive_distance(self):
        with pytest.raises(ValidationError):
            build_mesh_topology(
                head=[1.0, 2.0],
                bottom_elevation=0.0,
                top_elevation=5.0,
                plan_area=1.0,
                edges=[(0, 1)],
                center_distance=0.0,
                hydraulic_conductivity=1.0,
                edge_length=1.0,
            )

    def test_validation_error_is_value_error(self):
        with pytest.raises(ValueError):
            build_mesh_topology(
                head=[],
                bottom_elevation=0.0,
                top_elevation=5.0,
                plan_area=1.0,
                edges=[],
                center_distance=1.0,
                hydraulic_conductivity=1.0,
                edge_length=1.0,
            )


class TestMeshTopology:
    def test_diagonal_slots(self, chain_mesh):
        np.testing.assert_array_equal(chain_mesh.diagonal_slots, [0, 2, 5])

    def test_diagonal_slot_anywhere_in_row(self):
        mesh = MeshTopology(
            row_pointers=[0, 2, 4],
            column_indices=[1, 0, 0, 1],
            edge_ids=[0, DIAGONAL_SENTINEL, 0, DIAGONAL_SENTINEL],
            head=[1.0, 1.0],
            bottom_elevation=[0.0, 0.0],
            top_elevation=[2.0, 2.0],
            plan_area=[1.0, 1.0],
            source_sink=[0.0, 0.0],
            center_distance=[1.0],
            hydraulic_conductivity=[1.0],
            edge_length=[1.0],
        )
        np.testing.assert_array_equal(mesh.diagonal_slots, [1, 3])

    def test_mirror_slots(self, chain_mesh):
        # Slot (0 -> 1) is 1, its mirror (1 -> 0) is 3; (1 -> 2) is 4, mirrored at 6
        np.testing.assert_array_equal(chain_mesh.mirror_slots, [0, 3, 2, 1, 6, 5, 4])

    def test_inputs_are_copied(self):
        head = np.array([1.0, 2.0])
        mesh = build_mesh_topology(
            head=head,
            bottom_elevation=0.0,
            top_elevation=5.0,
            plan_area=1.0,
            edges=[(0, 1)],
            center_distance=1.0,
            hydraulic_conductivity=1.0,
            edge_length=1.0,
        )
        head[0] = 100.0
        assert mesh.head[0] == 1.0

    def test_as_csr(self, chain_mesh):
        values = np.arange(chain_mesh.size, dtype=float)
        dense = chain_mesh.as_csr(values).toarray()
        expected = np.array(
            [
                [0.0, 1.0, 0.0],
                [3.0, 2.0, 4.0],
                [0.0, 6.0, 5.0],
            ]
        )
        np.testing.assert_array_equal(dense, expected)

    def test_with_head(self, chain_mesh):
        updated = chain_mesh.with_head([1.0, 2.0, 3.0])
        np.testing.assert_array_equal(updated.head, [1.0, 2.0, 3.0])
        np.testing.assert_array_equal(chain_mesh.head, [6.0, 5.0, 4.0])
        np.testing.assert_array_equal(updated.column_indices, chain_mesh.column_indices)

    def test_precision_context(self):
        with with_precision(np.float32):
            mesh = build_mesh_topology(
                head=[1.0, 2.0],
                bottom_elevation=0.0,
                top_elevation=5.0,
                plan_area=1.0,
                edges=[(0, 1)],
                center_distance=1.0,
                hydraulic_conductivity=1.0,
                edge_length=1.0,
            )
        assert mesh.head.dtype == np.float32
        assert mesh.center_distance.dtype == np.float32
        assert mesh.row_pointers.dtype == np.int64
