"""Main terrain and biome generation orchestration."""

import time
from pathlib import Path

import numpy as np
import structlog
from numpy.typing import NDArray

from ..config import NormalizeConfig, WorldConfig
from .classification import classify_biomes
from .erosion import run_erosion
from .fields import make_raw_elevation
from .hydrology import flow_accumulation
from .maps import BiomeMap, FlowField, Heightmap
from .noise import ClimateNoise, TerrainNoise
from .persistence import save_map
from .validation import validate_biome_map, validate_config, validate_heightmap

logger = structlog.get_logger()


class GenerationResult:
    """Result of world generation: relief, biomes and river flow."""

    def __init__(
        self,
        heightmap: Heightmap,
        biome_map: BiomeMap,
        flow: FlowField,
        config: WorldConfig,
    ):
        self.heightmap = heightmap
        self.biome_map = biome_map
        self.flow = flow
        self.config = config

    @property
    def width(self) -> int:
        return self.heightmap.width

    @property
    def height(self) -> int:
        return self.heightmap.height


def normalize(raw: NDArray[np.float64], config: NormalizeConfig) -> NDArray[np.float32]:
    """Rescale raw elevation to [0, 1] and apply gamma.

    A field whose range is below ``epsilon`` is treated as flat and maps to
    all zeros.
    """
    if raw.size == 0:
        return raw.astype(np.float32)

    min_h = float(np.min(raw))
    max_h = float(np.max(raw))
    span = max_h - min_h
    if span < config.epsilon:
        return np.zeros(raw.shape, dtype=np.float32)

    scaled = np.clip((raw - min_h) / span, 0.0, 1.0) ** config.gamma
    return np.clip(scaled, 0.0, 1.0).astype(np.float32)


def generate_heightmap(
    config: WorldConfig,
    width: int,
    height: int,
    noise: TerrainNoise | None = None,
) -> Heightmap:
    """Generate a normalized heightmap.

    Args:
        config: World configuration.
        width: Grid width in cells.
        height: Grid height in cells.
        noise: Noise fields to use; derived from ``geology.heightmap.base_seed``
            when omitted.

    Returns:
        Heightmap with values in [0, 1].
    """
    if width <= 0 or height <= 0:
        return Heightmap(np.zeros((max(height, 0), max(width, 0)), dtype=np.float32))

    heightmap_config = config.geology.heightmap
    if noise is None:
        noise = TerrainNoise.from_seed(heightmap_config.base_seed)

    logger.info(
        "generating_heightmap",
        width=width,
        height=height,
        seed=heightmap_config.base_seed,
    )
    start = time.perf_counter()

    # Stage A: continents, ridges, detail
    raw = make_raw_elevation(
        width, height, heightmap_config, config.terrain.synthesis, noise
    )
    logger.debug(
        "stage_done",
        stage="synthesis",
        raw_min=float(raw.min()),
        raw_max=float(raw.max()),
    )

    # Stage B: erosion
    raw = run_erosion(raw, heightmap_config, config.terrain, noise)
    logger.debug("stage_done", stage="erosion", raw_min=float(raw.min()), raw_max=float(raw.max()))

    # Stage C: normalization
    heightmap = Heightmap(normalize(raw, config.terrain.normalize))

    logger.info(
        "heightmap_generated",
        elapsed_s=round(time.perf_counter() - start, 3),
        land_fraction=round(float(np.mean(heightmap.values > config.sea_level)), 4),
    )
    return heightmap


def generate_biome_map(
    config: WorldConfig,
    heightmap: Heightmap,
    noise: ClimateNoise | None = None,
) -> BiomeMap:
    """Classify every cell of a heightmap into a biome (or none).

    Args:
        config: World configuration holding the biome list.
        heightmap: Finished heightmap.
        noise: Climate noise to use; derived from ``world_seed`` when omitted.

    Returns:
        BiomeMap of the heightmap's dimensions.
    """
    if noise is None:
        noise = ClimateNoise.from_seed(config.world_seed)

    logger.info(
        "generating_biome_map",
        width=heightmap.width,
        height=heightmap.height,
        biomes=len(config.biomes),
    )
    return classify_biomes(config, heightmap, noise)


def generate_world(config: WorldConfig, width: int, height: int) -> GenerationResult:
    """Generate heightmap, biome map and river flow for a world.

    Validation warnings are logged; they never stop generation.

    Args:
        config: World configuration.
        width: Grid width in cells.
        height: Grid height in cells.

    Returns:
        GenerationResult with all three grids.
    """
    config_check = validate_config(config)
    for message in config_check.errors:
        logger.error("config_check", message=message)
    for message in config_check.warnings:
        logger.warning("config_check", message=message)

    heightmap = generate_heightmap(config, width, height)
    biome_map = generate_biome_map(config, heightmap)
    flow = flow_accumulation(heightmap, config.sea_level)

    for check in (
        validate_heightmap(heightmap),
        validate_biome_map(heightmap, biome_map, config.sea_level),
    ):
        for message in check.errors:
            logger.error("output_check", message=message)
        for message in check.warnings:
            logger.warning("output_check", message=message)

    _log_biome_stats(config, heightmap, biome_map)

    return GenerationResult(heightmap=heightmap, biome_map=biome_map, flow=flow, config=config)


def generate_and_save_world(
    config: WorldConfig,
    width: int,
    height: int,
    save_path: Path,
) -> GenerationResult:
    """Generate a world and save it as an ``.npz`` map.

    Args:
        config: World configuration.
        width: Grid width in cells.
        height: Grid height in cells.
        save_path: Destination path.

    Returns:
        The GenerationResult that was saved.
    """
    result = generate_world(config, width, height)

    save_path.parent.mkdir(parents=True, exist_ok=True)
    save_map(save_path, result)
    return result


def _log_biome_stats(config: WorldConfig, heightmap: Heightmap, biome_map: BiomeMap) -> None:
    """Log biome coverage statistics."""
    total = heightmap.values.size
    if total == 0:
        return

    water = int(np.count_nonzero(biome_map.none_mask))
    logger.info(
        "world_stats",
        cells=total,
        water_pct=round(water / total * 100, 1),
    )

    counts = biome_map.counts(len(config.biomes))
    for biome, count in zip(config.biomes, counts):
        logger.info(
            "biome_coverage",
            biome=biome.id,
            cells=int(count),
            pct=round(int(count) / total * 100, 1),
        )
