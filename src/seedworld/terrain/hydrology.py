"""Hydrology: D8 flow direction and flow accumulation.

Each cell drains all of its water to the single neighbour with the largest
height drop. Every edge strictly decreases height, so the drainage graph is
a forest and visiting cells from highest to lowest finalizes a cell's flow
before it is passed downstream.
"""

import numpy as np
from numpy.typing import NDArray

from .maps import FlowField, Heightmap

# D8 directions in scan order: NW, N, NE, W, E, SW, S, SE.
# Ties between equal drops go to the earliest direction.
D8_DY = np.array([-1, -1, -1, 0, 0, 1, 1, 1], dtype=np.int32)
D8_DX = np.array([-1, 0, 1, -1, 1, -1, 0, 1], dtype=np.int32)

# No-data value for flow direction
FLOW_NODATA = 255


def neighbor_stack(field: NDArray[np.float64], fill: float = np.nan) -> NDArray[np.float64]:
    """Stack the 8 neighbour values of every cell.

    Args:
        field: 2D array.
        fill: Value used for neighbours outside the grid.

    Returns:
        Array of shape (8, height, width) in D8 order.
    """
    height, width = field.shape
    padded = np.pad(field.astype(np.float64), 1, mode="constant", constant_values=fill)
    return np.stack(
        [
            padded[1 + dy : 1 + dy + height, 1 + dx : 1 + dx + width]
            for dy, dx in zip(D8_DY, D8_DX)
        ]
    )


def compute_d8_flow_direction(
    elevation: NDArray[np.float64],
    water_level: float | None = None,
) -> NDArray[np.uint8]:
    """Compute the steepest-descent neighbour of every cell.

    Args:
        elevation: Elevation field.
        water_level: Cells at or below this height get no direction.
            None routes every cell.

    Returns:
        Flow direction array (0-7 for D8 directions, 255 for no flow).
    """
    height, width = elevation.shape
    if height == 0 or width == 0:
        return np.zeros((height, width), dtype=np.uint8)

    # Out-of-bounds neighbours are NaN, which never yields a positive drop
    drops = elevation[np.newaxis, :, :] - neighbor_stack(elevation)
    drops = np.where(np.isnan(drops), -np.inf, drops)

    max_drop = np.max(drops, axis=0)
    flow_dir = np.argmax(drops, axis=0).astype(np.uint8)

    no_outflow = max_drop <= 0.0
    if water_level is not None:
        no_outflow |= elevation <= water_level
    flow_dir[no_outflow] = FLOW_NODATA

    return flow_dir


def downstream_index(flow_dir: NDArray[np.uint8]) -> NDArray[np.int64]:
    """Flat index of each cell's downslope neighbour, -1 where there is none."""
    height, width = flow_dir.shape
    flat_dir = flow_dir.ravel()
    has_target = flat_dir != FLOW_NODATA

    ys, xs = np.divmod(np.arange(height * width, dtype=np.int64), width)
    safe_dir = np.where(has_target, flat_dir, 0)
    targets = (ys + D8_DY[safe_dir]) * width + (xs + D8_DX[safe_dir])

    return np.where(has_target, targets, -1)


def compute_flow_accumulation(
    elevation: NDArray[np.float64],
    flow_dir: NDArray[np.uint8],
) -> NDArray[np.float64]:
    """Accumulate flow along D8 directions.

    Every cell contributes one unit. Cells are visited in order of
    descending elevation (stable, so equal heights keep scan order) and pass
    their accumulated flow to their downslope neighbour.

    Args:
        elevation: Elevation the directions were computed from.
        flow_dir: D8 flow direction array.

    Returns:
        Flow accumulation array, every value >= 1.
    """
    height, width = flow_dir.shape
    if height == 0 or width == 0:
        return np.zeros((height, width), dtype=np.float64)

    targets = downstream_index(flow_dir).tolist()
    order = np.argsort(-elevation.ravel(), kind="stable").tolist()

    flow = [1.0] * (height * width)
    for idx in order:
        target = targets[idx]
        if target >= 0:
            flow[target] += flow[idx]

    return np.asarray(flow, dtype=np.float64).reshape(height, width)


def accumulate_flow(
    elevation: NDArray[np.float64],
    water_level: float | None = None,
) -> NDArray[np.float64]:
    """Route and accumulate flow over an elevation field (unnormalized)."""
    flow_dir = compute_d8_flow_direction(elevation, water_level)
    return compute_flow_accumulation(elevation, flow_dir)


def normalize_flow(flow: NDArray[np.float64]) -> NDArray[np.float32]:
    """Scale flow into [0, 1] by its maximum."""
    if flow.size == 0:
        return flow.astype(np.float32)
    max_flow = float(np.max(flow))
    if max_flow <= 0.0:
        return np.zeros_like(flow, dtype=np.float32)
    return (flow / max_flow).astype(np.float32)


def flow_accumulation(heightmap: Heightmap, sea_level_normalized: float) -> FlowField:
    """Compute normalized river flow over a finished heightmap.

    Cells at or below sea level do not route flow; they still receive it.

    Args:
        heightmap: Normalized heightmap.
        sea_level_normalized: Sea level on the heightmap's [0, 1] scale.

    Returns:
        FlowField with values in [0, 1].
    """
    elevation = heightmap.values.astype(np.float64)
    flow = accumulate_flow(elevation, water_level=float(sea_level_normalized))
    return FlowField(normalize_flow(flow))
