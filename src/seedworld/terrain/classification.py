"""Nearest-match biome classification and majority smoothing."""

from dataclasses import dataclass

import numpy as np
import structlog
from numpy.typing import NDArray
from scipy import ndimage

from ..config import BiomeConfig, WorldConfig
from .climate import ClimateGrid, ClimateSample, derive_climate
from .maps import BiomeMap, Heightmap
from .noise import ClimateNoise

logger = structlog.get_logger()

# Deviation weights: temperature, humidity, elevation, precipitation
SCORE_WEIGHTS = (1.0, 1.0, 0.5, 0.25)

# Added once per dimension where a sample is strictly outside the range
OUT_OF_RANGE_PENALTIES = (0.5, 0.5, 0.3, 0.3)

# Floors on the half-range of each dimension
HALF_RANGE_FLOORS = (1.0, 0.05, 50.0, 50.0)

_MAJORITY_KERNEL = np.ones((3, 3), dtype=np.int32)


@dataclass(frozen=True)
class BiomeRanges:
    """Climate ranges of an ordered biome list, as arrays of shape (K, 4, 2).

    Dimension order is temperature, humidity, elevation, precipitation.
    """

    bounds: NDArray[np.float64]

    @classmethod
    def from_biomes(cls, biomes: list[BiomeConfig]) -> "BiomeRanges":
        rows = [
            [
                biome.climate_range.temperature_c,
                biome.climate_range.humidity,
                biome.climate_range.elevation_meters,
                biome.precipitation_range_mm_per_year,
            ]
            for biome in biomes
        ]
        bounds = np.asarray(rows, dtype=np.float64).reshape(len(biomes), 4, 2)
        return cls(bounds)

    def __len__(self) -> int:
        return self.bounds.shape[0]


def score_biomes(
    ranges: BiomeRanges,
    temperature_c: NDArray[np.float64],
    humidity: NDArray[np.float64],
    elevation_m: NDArray[np.float64],
    precipitation_mm: NDArray[np.float64],
) -> NDArray[np.float64]:
    """Score every biome against every sample; lower is a better match.

    Each dimension contributes ``weight * ((value - mid) / half_range)**2``,
    plus a fixed penalty when the value is strictly outside the range.

    Args:
        ranges: Biome ranges.
        temperature_c: Sample temperatures, any shape S.
        humidity: Sample humidities, shape S.
        elevation_m: Sample elevations above sea level, shape S.
        precipitation_mm: Sample precipitation, shape S.

    Returns:
        Scores of shape (K,) + S.
    """
    values = [
        np.asarray(temperature_c, dtype=np.float64),
        np.asarray(humidity, dtype=np.float64),
        np.asarray(elevation_m, dtype=np.float64),
        np.asarray(precipitation_mm, dtype=np.float64),
    ]
    shape = (len(ranges),) + values[0].shape
    expand = (slice(None),) + (np.newaxis,) * values[0].ndim

    scores = np.zeros(shape, dtype=np.float64)
    for dim, value in enumerate(values):
        low = ranges.bounds[:, dim, 0][expand]
        high = ranges.bounds[:, dim, 1][expand]
        mid = 0.5 * (low + high)
        half = np.maximum(0.5 * np.abs(high - low), HALF_RANGE_FLOORS[dim])

        deviation = (value[np.newaxis, ...] - mid) / half
        scores += SCORE_WEIGHTS[dim] * deviation * deviation

        outside = (value[np.newaxis, ...] < low) | (value[np.newaxis, ...] > high)
        scores += np.where(outside, OUT_OF_RANGE_PENALTIES[dim], 0.0)

    return scores


def choose_biome(
    biomes: list[BiomeConfig],
    sample: ClimateSample,
) -> tuple[int | None, float]:
    """Pick the best-scoring biome for one climate sample.

    Returns:
        (index, score); (None, inf) for an empty biome list. Ties go to the
        lower index.
    """
    if not biomes:
        return None, float("inf")

    scores = score_biomes(
        BiomeRanges.from_biomes(biomes),
        np.float64(sample.temperature_c),
        np.float64(sample.humidity),
        np.float64(sample.elevation_m),
        np.float64(sample.precipitation_mm_per_year),
    )
    best = int(np.argmin(scores))
    return best, float(scores[best])


def water_mask(
    heights: NDArray[np.float32],
    climate: ClimateGrid,
    config: WorldConfig,
) -> NDArray[np.bool_]:
    """Cells that carry no biome.

    A cell is water when its normalized height is within ``water_epsilon`` of
    the normalized sea level, or when its elevation in meters is below the
    climate model's meters sea level. The two thresholds are independent.
    """
    threshold = config.sea_level + config.classification.water_epsilon
    below_normalized = heights.astype(np.float64) <= threshold
    below_meters = climate.elevation_m < config.environment.climate_model.sea_level_meters
    return below_normalized | below_meters


def classify_cells(
    heights: NDArray[np.float32],
    climate: ClimateGrid,
    config: WorldConfig,
) -> tuple[NDArray[np.int16], NDArray[np.bool_]]:
    """Assign the best-matching biome to every land cell (before smoothing).

    Returns:
        (indices, none_mask). Indices under the mask are 0 and meaningless.
    """
    none_mask = water_mask(heights, climate, config)
    indices = np.zeros(heights.shape, dtype=np.int16)
    if not config.biomes:
        return indices, np.ones(heights.shape, dtype=bool)

    land = ~none_mask
    if not land.any():
        return indices, none_mask

    scores = score_biomes(
        BiomeRanges.from_biomes(config.biomes),
        climate.temperature_c[land],
        climate.humidity[land],
        climate.elevation_m[land],
        climate.precipitation_mm_per_year[land],
    )
    indices[land] = np.argmin(scores, axis=0).astype(np.int16)
    return indices, none_mask


def majority_filter(
    indices: NDArray[np.integer],
    none_mask: NDArray[np.bool_],
    biome_count: int,
    passes: int = 2,
) -> NDArray[np.int16]:
    """Replace each land cell with the most frequent biome in its 3x3 block.

    Water cells never change and do not vote. Every pass reads the previous
    pass's grid only. Ties go to the lowest biome index.

    Args:
        indices: Biome index per cell.
        none_mask: True where the cell has no biome.
        biome_count: Number of biomes indices refer to.
        passes: Number of filter passes.

    Returns:
        Smoothed index grid (new array).
    """
    front = np.array(indices, dtype=np.int16, copy=True)
    if front.size == 0 or biome_count == 0:
        return front

    land = ~none_mask
    # Water is not a candidate value: the water mask is fixed before smoothing,
    # so a land cell keeps a biome even when water surrounds it
    for _ in range(passes):
        counts = np.stack(
            [
                ndimage.convolve(
                    ((front == k) & land).astype(np.int32),
                    _MAJORITY_KERNEL,
                    mode="constant",
                    cval=0,
                )
                for k in range(biome_count)
            ]
        )
        back = np.argmax(counts, axis=0).astype(np.int16)
        front = np.where(land, back, front).astype(np.int16)

    return front


def classify_biomes(
    config: WorldConfig,
    heightmap: Heightmap,
    noise: ClimateNoise,
) -> BiomeMap:
    """Derive climate, classify every cell and smooth the result.

    Args:
        config: World config holding the biome list and climate model.
        heightmap: Finished heightmap.
        noise: Climate jitter fields.

    Returns:
        BiomeMap of the heightmap's dimensions.
    """
    heights = heightmap.values
    if heights.size == 0:
        return BiomeMap.from_optional(
            np.zeros(heights.shape, dtype=np.int16), np.ones(heights.shape, dtype=bool)
        )

    climate = derive_climate(heights, config, noise)
    indices, none_mask = classify_cells(heights, climate, config)
    smoothed = majority_filter(
        indices,
        none_mask,
        len(config.biomes),
        passes=config.classification.smoothing_passes,
    )

    logger.debug(
        "biome_classification",
        land_cells=int(np.count_nonzero(~none_mask)),
        changed_by_smoothing=int(np.count_nonzero((smoothed != indices) & ~none_mask)),
    )
    return BiomeMap.from_optional(smoothed, none_mask)
