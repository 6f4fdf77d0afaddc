"""Run a groundwater-flow simulation workflow on a mesh."""

import logging
import typing

from boussinesq.config import Config
from boussinesq.mesh import MeshTopology
from boussinesq.newton import NewtonDriver
from boussinesq.states import ModelState


__all__ = ["run"]

logger = logging.getLogger(__name__)


def run(
    mesh: MeshTopology,
    config: typing.Optional[Config] = None,
) -> typing.Generator[ModelState, None, None]:
    """
    Runs a transient simulation of the unconfined aquifer described by the mesh.

    Time advances from 0 to `config.simulation_time` in fixed steps of
    `config.time_step_size`; each step is solved with Newton-Raphson.

    :param mesh: Mesh topology and properties. Its head field is the initial condition.
    :param config: Simulation run configuration and parameters.
    :yield: The initial model state, then the model state after each time step.
    :raises LinearSolverDidNotConverge: If a linear solve fails.
    """
    if config is None:
        config = Config()

    logger.info("Starting groundwater simulation workflow...")
    logger.debug(f"Time step size: {config.time_step_size}")
    logger.debug(f"Total simulation time: {config.simulation_time}")
    logger.debug(f"Number of time steps: {config.time_step_count}")
    logger.debug(f"Convergence tolerance: {config.convergence_tolerance}")
    logger.debug(f"Convergence criterion: {config.convergence_criterion}")
    logger.debug(f"Jacobian strategy: {config.jacobian_strategy}")

    driver = NewtonDriver(mesh, config)
    logger.debug("Yielding initial model state")
    yield ModelState(step=0, time=0.0, mesh=mesh)

    for result in driver.run():
        yield ModelState(
            step=result.step,
            time=result.time,
            mesh=mesh.with_head(result.head),
            result=result,
        )
    logger.info("Simulation completed")
