"""Tests for the simulation workflow generator."""

import numpy as np
import pytest

from boussinesq import Config, run


def test_initial_state_then_one_state_per_step(chain_mesh):
    states = list(run(chain_mesh, Config(time_step_size=0.5, simulation_time=2.0)))
    assert [state.step for state in states] == [0, 1, 2, 3, 4]
    assert [state.time for state in states] == pytest.approx([0.0, 0.5, 1.0, 1.5, 2.0])

    initial = states[0]
    assert initial.result is None
    assert initial.mesh is chain_mesh

    for state in states[1:]:
        assert state.result is not None
        assert state.result.step == state.step
        np.testing.assert_array_equal(state.mesh.head, state.result.head)
        np.testing.assert_array_equal(state.mesh.row_pointers, chain_mesh.row_pointers)


def test_default_config(single_cell_mesh):
    states = list(run(single_cell_mesh))
    assert len(states) == 3
    np.testing.assert_allclose(
        [state.mesh.head[0] for state in states], [5.0, 5.5, 6.0]
    )
    np.testing.assert_array_equal(single_cell_mesh.head, [5.0])


def test_states_are_independent(chain_mesh):
    states = list(run(chain_mesh, Config(simulation_time=3.0)))
    heads = [state.mesh.head.copy() for state in states]
    for earlier, later in zip(heads, heads[1:]):
        assert not np.array_equal(earlier, later)
    # Earlier snapshots were not overwritten by later steps
    np.testing.assert_array_equal(states[0].mesh.head, [6.0, 5.0, 4.0])
    assert states[1].mesh.head[0] != states[3].mesh.head[0]
