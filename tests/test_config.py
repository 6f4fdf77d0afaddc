import pytest

from boussinesq import Config


def test_defaults():
    config = Config()
    assert config.time_step_size == 1.0
    assert config.simulation_time == 2.0
    assert config.convergence_tolerance == 1e-5
    assert config.newton_iteration_threshold == 4
    assert config.convergence_criterion == "literal"
    assert config.jacobian_strategy == "positional"
    assert config.iterative_solver == "cg"
    assert config.preconditioner == "diagonal"
    assert config.time_step_count == 2


@pytest.mark.parametrize(
    "time_step_size, simulation_time, expected",
    [(1.0, 2.0, 2), (0.1, 1.0, 10), (0.3, 1.0, 4), (2.0, 0.0, 0), (1.0, 0.5, 1)],
)
def test_time_step_count(time_step_size, simulation_time, expected):
    config = Config(time_step_size=time_step_size, simulation_time=simulation_time)
    assert config.time_step_count == expected


@pytest.mark.parametrize(
    "field, value",
    [
        ("time_step_size", 0.0),
        ("simulation_time", -1.0),
        ("convergence_tolerance", 0.0),
        ("newton_iteration_threshold", 0),
        ("convergence_criterion", "strict"),
        ("jacobian_strategy", "transposed"),
        ("linear_max_iterations", 0),
        ("log_interval", 0),
    ],
)
def test_invalid_values(field, value):
    with pytest.raises(ValueError):
        Config(**{field: value})


def test_frozen():
    config = Config()
    with pytest.raises(AttributeError):
        config.time_step_size = 2.0  # type: ignore[misc]


def test_solver_iterables_are_stored_as_tuples():
    config = Config(iterative_solver=(name for name in ("bicgstab", "cg")))
    assert config.iterative_solver == ("bicgstab", "cg")
    assert Config(iterative_solver=["gmres"]).iterative_solver == ("gmres",)
    assert Config(iterative_solver="cg").iterative_solver == "cg"
