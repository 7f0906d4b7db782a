"""Erosion stages over the raw elevation field.

Stages run in a fixed order: thermal erosion, flow carving, lake formation,
canyon carving, smoothing. Each works in raw elevation units and computes
its full set of changes from the field as it was at the start of the pass
before writing any of them.
"""

import math

import numpy as np
import structlog
from numpy.typing import NDArray
from scipy import ndimage

from ..config import (
    CanyonConfig,
    HeightmapConfig,
    HydraulicConfig,
    LakeConfig,
    SmoothingConfig,
    TerrainConfig,
    ThermalConfig,
)
from .fields import grid_coordinates
from .hydrology import D8_DX, D8_DY, accumulate_flow, neighbor_stack
from .noise import TerrainNoise

logger = structlog.get_logger()

_D8_DISTANCE = np.hypot(D8_DX, D8_DY)

_GAUSSIAN_3X3 = np.array([[1.0, 2.0, 1.0], [2.0, 4.0, 2.0], [1.0, 2.0, 1.0]]) / 16.0


def _scatter_to_neighbors(
    per_direction: NDArray[np.float64],
) -> NDArray[np.float64]:
    """Sum per-direction amounts into the neighbour each direction points at.

    Args:
        per_direction: Shape (8, height, width); entry d at a cell is the
            amount sent to its neighbour in direction d.

    Returns:
        Received amounts, shape (height, width). Amounts pointing outside the
        grid are dropped.
    """
    _, height, width = per_direction.shape
    received = np.zeros((height + 2, width + 2), dtype=np.float64)
    for d in range(8):
        dy, dx = D8_DY[d], D8_DX[d]
        received[1 + dy : 1 + dy + height, 1 + dx : 1 + dx + width] += per_direction[d]
    return received[1:-1, 1:-1]


def _water_level(heights: NDArray[np.float64], fraction: float) -> float:
    min_h = float(np.min(heights))
    max_h = float(np.max(heights))
    return min_h + max(max_h - min_h, 1e-6) * fraction


def apply_thermal_erosion(
    heights: NDArray[np.float64],
    iterations: int,
    config: ThermalConfig,
) -> NDArray[np.float64]:
    """Move material from steep cells to their lower neighbours.

    For each cell, neighbours lower by more than the talus threshold receive
    ``amount * diff`` each, so the cell loses ``amount`` times its total
    positive differential. Total mass is conserved.

    Args:
        heights: Raw elevation field.
        iterations: Number of passes.
        config: Thermal erosion parameters.

    Returns:
        Eroded elevation field (new array).
    """
    result = heights.astype(np.float64, copy=True)
    if result.size == 0:
        return result

    for _ in range(iterations):
        diffs = result[np.newaxis, :, :] - neighbor_stack(result)
        shares = np.where(diffs > config.talus, diffs, 0.0) * config.amount

        delta = _scatter_to_neighbors(shares) - shares.sum(axis=0)
        result += delta

    return result


def apply_flow_erosion(
    heights: NDArray[np.float64],
    config: HydraulicConfig,
    river_density: float = 1.0,
) -> NDArray[np.float64]:
    """Carve channels where accumulated flow is high.

    Cells above the estimated water level whose flow reaches the threshold
    are lowered by ``carve_strength * sqrt(flow / max_flow)``.

    Args:
        heights: Raw elevation field.
        config: Carving parameters.
        river_density: Divides the flow threshold; higher carves more cells.

    Returns:
        Carved elevation field (new array).
    """
    result = heights.astype(np.float64, copy=True)
    if result.size == 0:
        return result

    water_level = _water_level(result, config.water_level_fraction)
    flow = accumulate_flow(result)
    max_flow = float(np.max(flow))
    if max_flow <= 0.0:
        return result

    threshold = config.flow_threshold / max(river_density, 0.1)
    carve = (result > water_level) & (flow >= threshold)
    result[carve] -= config.carve_strength * np.sqrt(flow[carve] / max_flow)

    logger.debug(
        "flow_carving",
        carved_cells=int(np.count_nonzero(carve)),
        threshold=threshold,
        max_flow=max_flow,
    )
    return result


def find_depressions(heights: NDArray[np.float64]) -> NDArray[np.bool_]:
    """Interior cells strictly lower than all 8 neighbours."""
    neighbors = neighbor_stack(heights)
    minima = np.all(heights[np.newaxis, :, :] < neighbors, axis=0)
    # Edge cells have NaN neighbours and already fail the comparison
    return minima


def apply_lake_formation(
    heights: NDArray[np.float64],
    config: LakeConfig,
    noise: TerrainNoise,
) -> NDArray[np.float64]:
    """Partially fill pits to form lakes with soft banks.

    The fill level of a depression is the mean of its 8 neighbours. Accepted
    depressions are raised by ``fill_fraction`` of their depth; cells in the
    surrounding 5x5 block are blended toward the new level, closer cells more.

    Args:
        heights: Raw elevation field.
        config: Lake parameters.
        noise: Noise fields; ``lake_gate`` decides which depressions fill.

    Returns:
        Elevation with lakes (new array).
    """
    result = heights.astype(np.float64, copy=True)
    height, width = result.shape
    if height < 3 or width < 3 or not config.enabled:
        return result

    depth = np.nanmean(neighbor_stack(result), axis=0) - result

    fx, fy = grid_coordinates(width, height)
    gx = fx * config.gate_frequency + 0.29
    gy = fy * config.gate_frequency + 0.53
    gate = 0.5 * (noise.lake_gate.sample(gx, gy) + 1.0)
    accepted = (
        find_depressions(result)
        & (depth > config.min_depth)
        & (gate < config.probability)
    )

    # Where banks of several lakes overlap, the strongest single pull wins
    blend = np.zeros_like(result)
    target = result.copy()
    for y, x in zip(*np.nonzero(accepted)):
        level = result[y, x] + config.fill_fraction * depth[y, x]
        for dy in range(-2, 3):
            for dx in range(-2, 3):
                ny, nx = y + dy, x + dx
                if not (0 <= ny < height and 0 <= nx < width):
                    continue
                if dy == 0 and dx == 0:
                    weight = 1.0
                else:
                    weight = config.bank_blend * (1.0 - math.hypot(dx, dy) / 3.0)
                if weight > blend[ny, nx]:
                    blend[ny, nx] = weight
                    target[ny, nx] = level

    logger.debug("lake_formation", lakes=int(np.count_nonzero(accepted)))
    return result + (target - result) * blend


def apply_canyon_carving(
    heights: NDArray[np.float64],
    config: CanyonConfig,
    noise: TerrainNoise,
) -> NDArray[np.float64]:
    """Carve V-shaped canyons where two fault fields cross zero together.

    Args:
        heights: Raw elevation field.
        config: Canyon parameters.
        noise: Noise fields; ``fault`` and ``cross_fault`` define the faults.

    Returns:
        Carved elevation field (new array).
    """
    result = heights.astype(np.float64, copy=True)
    height, width = result.shape
    if result.size == 0 or not config.enabled:
        return result

    fx, fy = grid_coordinates(width, height)
    sx = fx * config.frequency
    sy = fy * config.frequency
    ridge_factor = 1.0 - np.abs(noise.fault.sample(sx + 0.31, sy + 0.47))
    cross_factor = 1.0 - np.abs(noise.cross_fault.sample(sx + 37.71, sy - 11.13))
    combined = (ridge_factor * cross_factor) ** config.sharpness

    guard = _water_level(result, config.shallow_water_fraction)
    above_guard = result > guard

    strength = np.clip(
        (combined - config.threshold) / max(1.0 - config.threshold, 1e-6), 0.0, 1.0
    )
    center = np.where(above_guard & (combined > config.threshold), config.depth * strength, 0.0)

    sides = np.stack(
        [center * (config.side_falloff / _D8_DISTANCE[d]) for d in range(8)]
    )
    carve = center + _scatter_to_neighbors(sides)
    carve[~above_guard] = 0.0

    logger.debug("canyon_carving", centers=int(np.count_nonzero(center)))
    return result - carve


def apply_smoothing(
    heights: NDArray[np.float64],
    config: SmoothingConfig,
) -> NDArray[np.float64]:
    """Blur interior cells with a 3x3 Gaussian kernel; border cells stay as-is."""
    front = heights.astype(np.float64, copy=True)
    height, width = front.shape
    if height < 3 or width < 3:
        return front

    back = np.empty_like(front)
    for _ in range(config.iterations):
        ndimage.convolve(front, _GAUSSIAN_3X3, output=back, mode="nearest")
        back[0, :] = front[0, :]
        back[-1, :] = front[-1, :]
        back[:, 0] = front[:, 0]
        back[:, -1] = front[:, -1]
        front, back = back, front

    return front


def run_erosion(
    heights: NDArray[np.float64],
    heightmap_config: HeightmapConfig,
    config: TerrainConfig,
    noise: TerrainNoise,
) -> NDArray[np.float64]:
    """Run every erosion stage in order.

    Args:
        heights: Raw elevation from synthesis.
        heightmap_config: Relief knobs (erosion iterations, river density).
        config: Stage constants.
        noise: Noise fields for this generation.

    Returns:
        Eroded raw elevation.
    """
    if heights.size == 0:
        return heights.astype(np.float64, copy=True)

    heights = apply_thermal_erosion(
        heights, max(heightmap_config.erosion_iterations, 0), config.thermal
    )
    heights = apply_flow_erosion(heights, config.hydraulic, heightmap_config.river_density)
    heights = apply_lake_formation(heights, config.lakes, noise)
    heights = apply_canyon_carving(heights, config.canyons, noise)
    heights = apply_smoothing(heights, config.smoothing)
    return heights
