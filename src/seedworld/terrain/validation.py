"""Configuration checks and post-generation validation."""

from collections import Counter

import numpy as np
import structlog

from ..config import WorldConfig
from .maps import BiomeMap, Heightmap

logger = structlog.get_logger()

# Biome indices travel as uint8 with 255 reserved for "no biome"
MAX_BIOMES = 255

MIN_CONTINENTAL_SCALE_KM = 10.0


class ValidationResult:
    """Result of a validation run."""

    def __init__(self) -> None:
        self.errors: list[str] = []
        self.warnings: list[str] = []
        self.passed = True

    def add_error(self, message: str) -> None:
        """Add validation error."""
        self.errors.append(message)
        self.passed = False

    def add_warning(self, message: str) -> None:
        """Add validation warning."""
        self.warnings.append(message)


def validate_config(config: WorldConfig) -> ValidationResult:
    """Check a world configuration before generation.

    Errors mark configurations whose output cannot be stored or interpreted;
    warnings mark ones that generate but probably not as intended.

    Args:
        config: World configuration.

    Returns:
        ValidationResult with any errors/warnings.
    """
    result = ValidationResult()

    if not 0.0 <= config.sea_level <= 1.0:
        result.add_error(f"sea_level {config.sea_level} is outside [0, 1]")

    if len(config.biomes) > MAX_BIOMES:
        result.add_error(f"{len(config.biomes)} biomes exceed the limit of {MAX_BIOMES}")

    if not config.biomes:
        result.add_warning("No biomes configured; every cell will have no biome")

    duplicates = [bid for bid, n in Counter(b.id for b in config.biomes).items() if n > 1]
    if duplicates:
        result.add_warning(f"Duplicate biome ids: {', '.join(sorted(duplicates))}")

    for biome in config.biomes:
        ranges = {
            "temperature_c": biome.climate_range.temperature_c,
            "humidity": biome.climate_range.humidity,
            "elevation_meters": biome.climate_range.elevation_meters,
            "precipitation_range_mm_per_year": biome.precipitation_range_mm_per_year,
        }
        for name, (low, high) in ranges.items():
            if low > high:
                result.add_error(f"Biome '{biome.id}': {name} range [{low}, {high}] is inverted")

    scale = config.geology.heightmap.continental_scale_km
    if scale < MIN_CONTINENTAL_SCALE_KM:
        result.add_warning(
            f"continental_scale_km {scale} is below {MIN_CONTINENTAL_SCALE_KM} and will be raised"
        )

    sea_level_m = config.environment.climate_model.sea_level_meters
    if sea_level_m != 0.0:
        result.add_warning(
            f"climate_model.sea_level_meters ({sea_level_m}) is applied independently of "
            f"the normalized sea_level ({config.sea_level}); land below either has no biome"
        )

    return result


def validate_heightmap(heightmap: Heightmap) -> ValidationResult:
    """Check that a heightmap lies in [0, 1] and spans it unless flat."""
    result = ValidationResult()
    values = heightmap.values
    if values.size == 0:
        return result

    if not np.all(np.isfinite(values)):
        result.add_error("Heightmap contains non-finite values")
        return result

    min_h = float(values.min())
    max_h = float(values.max())
    if min_h < 0.0 or max_h > 1.0:
        result.add_error(f"Heightmap range [{min_h}, {max_h}] is outside [0, 1]")

    if max_h > min_h and (min_h != 0.0 or max_h != 1.0):
        result.add_warning(f"Heightmap spans [{min_h}, {max_h}] instead of [0, 1]")

    return result


def validate_biome_map(
    heightmap: Heightmap,
    biome_map: BiomeMap,
    sea_level: float,
) -> ValidationResult:
    """Check biome map shape and that no cell at or below sea level has a biome."""
    result = ValidationResult()

    if biome_map.indices.shape != heightmap.values.shape:
        result.add_error(
            f"Biome map shape {biome_map.indices.shape} does not match "
            f"heightmap shape {heightmap.values.shape}"
        )
        return result

    underwater_land = (heightmap.values <= sea_level) & ~biome_map.none_mask
    if underwater_land.any():
        result.add_error(
            f"{int(np.count_nonzero(underwater_land))} cells at or below sea level have a biome"
        )

    return result
