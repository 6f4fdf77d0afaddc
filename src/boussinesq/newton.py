"""
Time stepping and Newton-Raphson control loop for the Boussinesq equation.
"""

import logging
import typing

import numpy as np

from boussinesq.config import get_dtype
from boussinesq.assembly import (
    assemble_conductance,
    assemble_jacobian,
    assemble_residual,
    max_abs_residual,
)
from boussinesq.config import Config
from boussinesq.mesh import MeshTopology
from boussinesq.solvers import solve_newton_update_system
from boussinesq.states import StepResult
from boussinesq.types import OneDimensionalGrid, SlotArray


__all__ = ["NewtonDriver"]

logger = logging.getLogger(__name__)


def _read_only(array: np.typing.NDArray) -> np.typing.NDArray:
    view = array.view()
    view.flags.writeable = False
    return view


class NewtonDriver:
    """
    Advances the head field of a mesh in fixed time steps, solving each step with Newton-Raphson.

    Per time step:

    1. assemble T and b from the current head, R at the current head, and Jr from T;
    2. repeat: solve Jr · Δ = R, set head_new = head_old - Δ, reassemble R at
       head_new, reassemble Jr, swap head_old and head_new;
    3. stop according to `Config.convergence_criterion`.

    T and b are held fixed through the inner loop of a step. The converged head
    is the initial condition of the next step.

    All work arrays are allocated once, sized by the mesh, and overwritten in
    place. The two head buffers are distinct arrays swapped by reference.

    Linear solver failures (`LinearSolverDidNotConverge`) propagate unhandled.

    Usage:
    ```python
    driver = NewtonDriver(mesh, Config(time_step_size=1.0, simulation_time=10.0))
    for result in driver.run():
        print(result.step, result.max_residual)
    ```
    """

    def __init__(self, mesh: MeshTopology, config: typing.Optional[Config] = None):
        """
        :param mesh: Mesh topology and properties. Its head field is the initial condition.
        :param config: Run configuration. Defaults to `Config()`.
        """
        self.mesh = mesh
        self.config = config if config is not None else Config()

        cell_count = mesh.cell_count
        size = mesh.size
        logger.info(f"Number of cells: {cell_count}")
        logger.info(f"Number of conductance entries: {size}")

        dtype = get_dtype()
        self._conductance = np.zeros(size, dtype=dtype)
        self._jacobian = np.zeros(size, dtype=dtype)
        self._rhs = np.zeros(cell_count, dtype=dtype)
        self._residual = np.zeros(cell_count, dtype=dtype)
        self._head_old = np.array(mesh.head, dtype=dtype, copy=True)
        self._head_new = np.zeros(cell_count, dtype=dtype)
        self._step = 0

    @property
    def step_count(self) -> int:
        """Number of time steps completed so far."""
        return self._step

    @property
    def time(self) -> float:
        """Simulated time reached so far."""
        return self._step * self.config.time_step_size

    @property
    def head(self) -> OneDimensionalGrid:
        """
        Current head field, as a copy.

        The two head buffers trade roles on every Newton iteration, so a view
        would show a scratch iterate after the next `step()`.
        """
        return self._head_old.copy()

    @property
    def residual(self) -> OneDimensionalGrid:
        """Residual at the current head field (read-only view)."""
        return _read_only(self._residual)

    @property
    def conductance(self) -> SlotArray:
        """Conductance values of the last assembled step (read-only view)."""
        return _read_only(self._conductance)

    @property
    def jacobian(self) -> SlotArray:
        """Jacobian values of the last Newton iteration (read-only view)."""
        return _read_only(self._jacobian)

    @property
    def rhs(self) -> OneDimensionalGrid:
        """Explicit right-hand side of the last assembled step (read-only view)."""
        return _read_only(self._rhs)

    def _should_continue(self, max_residual: float, iteration: int) -> bool:
        tolerance = self.config.convergence_tolerance
        threshold = self.config.newton_iteration_threshold
        if self.config.convergence_criterion == "literal":
            # At least `threshold` iterations, no ceiling while the residual stays high
            return max_residual > tolerance or iteration < threshold
        return max_residual > tolerance and iteration < threshold

    def _assemble_residual(self, head: OneDimensionalGrid) -> None:
        assemble_residual(
            self.mesh,
            head,
            self._conductance,
            self._rhs,
            storage=self.mesh.storage_coefficient,
            datum=self.mesh.datum_elevation,
            residual_out=self._residual,
        )

    def _assemble_jacobian(self) -> None:
        assemble_jacobian(
            self.mesh,
            self._conductance,
            storage=self.mesh.storage_coefficient,
            jacobian_out=self._jacobian,
            strategy=self.config.jacobian_strategy,
        )

    def step(self) -> StepResult:
        """
        Advance the head field by one time step.

        :return: `StepResult` for the completed step.
        :raises LinearSolverDidNotConverge: If a linear solve fails.
        """
        mesh = self.mesh
        config = self.config
        step = self._step + 1

        logger.debug(f"Assembling conductance matrix for time step {step}...")
        assemble_conductance(
            mesh,
            self._head_old,
            config.time_step_size,
            conductance_out=self._conductance,
            rhs_out=self._rhs,
        )
        self._assemble_residual(self._head_old)
        self._assemble_jacobian()
        logger.debug(
            f"Time step {step}: initial max residual = {max_abs_residual(self._residual):.4e}"
        )

        iteration = 0
        while True:
            update = solve_newton_update_system(
                mesh, self._jacobian, self._residual, config
            )
            np.subtract(self._head_old, update, out=self._head_new)
            self._assemble_residual(self._head_new)
            self._assemble_jacobian()
            iteration += 1
            self._head_old, self._head_new = self._head_new, self._head_old

            max_residual = max_abs_residual(self._residual)
            logger.debug(
                f"Time step {step}, iteration {iteration}: max residual = {max_residual:.4e}, "
                f"max update = {float(np.max(np.abs(update), initial=0.0)):.4e}"
            )
            if not np.isfinite(max_residual):
                logger.error(
                    f"Non-finite residual at time step {step}, iteration {iteration}. "
                    f"NaN count: {np.isnan(self._residual).sum()}, "
                    f"Inf count: {np.isinf(self._residual).sum()}"
                )
            if not self._should_continue(max_residual, iteration):
                break

        converged = bool(max_residual <= config.convergence_tolerance)
        if not converged:
            logger.warning(
                f"Time step {step} stopped after {iteration} Newton iterations with "
                f"max residual {max_residual:.4e} above tolerance {config.convergence_tolerance:.1e}"
            )

        self._step = step
        if step % config.log_interval == 0:
            logger.info(
                f"Time step {step}/{config.time_step_count} (t={self.time:.4g}): "
                f"{iteration} Newton iterations, max residual = {max_residual:.4e}"
            )
        return StepResult(
            step=step,
            time=self.time,
            head=self._head_old.copy(),
            newton_iterations=iteration,
            max_residual=max_residual,
            converged=converged,
        )

    def run(self) -> typing.Generator[StepResult, None, None]:
        """
        Advance time up to `Config.simulation_time`, one fixed step at a time.

        :yield: `StepResult` of each completed time step.
        :raises LinearSolverDidNotConverge: If a linear solve fails.
        """
        total = self.config.time_step_count
        while self._step < total:
            yield self.step()
        logger.info("Exit: simulation time reached")

    def solve(self) -> typing.Optional[StepResult]:
        """
        Run all remaining time steps.

        :return: Result of the last time step, or None if no step was run.
        :raises LinearSolverDidNotConverge: If a linear solve fails.
        """
        result = None
        for result in self.run():
            pass
        return result
