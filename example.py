import logging
import typing

import numpy as np

import boussinesq

np.set_printoptions(precision=4, suppress=True)

logging.basicConfig(level=logging.INFO)


def build_grid_edges(
    rows: int, columns: int
) -> typing.List[typing.Tuple[int, int]]:
    """Edges of a rectangular grid of cells numbered row by row."""
    edges = []
    for r in range(rows):
        for c in range(columns):
            cell = r * columns + c
            if c + 1 < columns:
                edges.append((cell, cell + 1))
            if r + 1 < rows:
                edges.append((cell, cell + columns))
    return edges


def example():
    rows, columns = 8, 12
    cell_size = 50.0  # Cell side length in metres
    cell_count = rows * columns
    edges = build_grid_edges(rows, columns)

    # Bedrock dips gently towards the last column
    bottom_elevation = np.tile(np.linspace(2.0, 0.0, columns), rows)
    # Water table starts flat, 8 m above datum
    head = np.full(cell_count, 8.0)

    # Recharge over a central patch, pumping at one cell near the outlet
    source_sink = np.zeros(cell_count)
    recharge_rows = slice(rows // 2 - 1, rows // 2 + 1)
    recharge_columns = slice(2, 5)
    source_sink.reshape(rows, columns)[recharge_rows, recharge_columns] = 2e-3
    source_sink[(rows // 2) * columns + columns - 2] = -5e-3

    mesh = boussinesq.build_mesh_topology(
        head=head,
        bottom_elevation=bottom_elevation,
        top_elevation=20.0,
        plan_area=cell_size**2,
        edges=edges,
        center_distance=cell_size,
        hydraulic_conductivity=5.0,  # m/day
        edge_length=cell_size,
        source_sink=source_sink,
    )

    config = boussinesq.Config(
        time_step_size=1.0,  # days
        simulation_time=30.0,
        convergence_criterion="bounded",
        newton_iteration_threshold=10,
        iterative_solver=["cg", "bicgstab"],
        preconditioner="amg",
        log_interval=5,
    )
    model_states = list(boussinesq.run(mesh, config))

    final = model_states[-1]
    print(f"Final time: {final.time} days")
    print(final.mesh.head.reshape(rows, columns))
    volume_change = np.sum(mesh.plan_area * (final.mesh.head - mesh.head))
    net_inflow = config.simulation_time * np.sum(mesh.plan_area * mesh.source_sink)
    print(f"Stored volume change: {volume_change:.4f} m3, net inflow: {net_inflow:.4f} m3")
    return model_states


if __name__ == "__main__":
    example()
