"""Shared test fixtures for seedworld tests."""

import numpy as np
import pytest
from numpy.typing import ArrayLike, NDArray

from seedworld.config import BiomeConfig, WorldConfig


class ConstantNoise:
    """Zero-variance noise field returning the same value everywhere."""

    def __init__(self, value: float = 0.0):
        self.value = value

    def sample(self, x: ArrayLike, y: ArrayLike) -> NDArray[np.float64]:
        shape = np.broadcast_shapes(np.shape(x), np.shape(y))
        return np.full(shape, self.value, dtype=np.float64)


def make_biome(
    biome_id: str,
    temperature: tuple[float, float] = (0.0, 20.0),
    humidity: tuple[float, float] = (0.2, 0.8),
    elevation: tuple[float, float] = (0.0, 2000.0),
    precipitation: tuple[float, float] = (200.0, 2000.0),
) -> BiomeConfig:
    """Build a biome definition from plain ranges."""
    return BiomeConfig(
        id=biome_id,
        display_name=biome_id.replace("_", " ").title(),
        climate_range={
            "temperature_c": temperature,
            "humidity": humidity,
            "elevation_meters": elevation,
        },
        precipitation_range_mm_per_year=precipitation,
    )


@pytest.fixture
def stock_biomes() -> list[BiomeConfig]:
    """Four biomes covering hot, temperate, cold and high ground."""
    return [
        make_biome(
            "temperate_forest",
            temperature=(5.0, 20.0),
            humidity=(0.45, 0.85),
            elevation=(0.0, 1500.0),
            precipitation=(600.0, 2000.0),
        ),
        make_biome(
            "hot_desert",
            temperature=(18.0, 40.0),
            humidity=(0.05, 0.35),
            elevation=(0.0, 1200.0),
            precipitation=(50.0, 400.0),
        ),
        make_biome(
            "cold_mountains",
            temperature=(-20.0, 8.0),
            humidity=(0.2, 0.8),
            elevation=(1500.0, 3500.0),
            precipitation=(200.0, 1500.0),
        ),
        make_biome(
            "tundra",
            temperature=(-25.0, 2.0),
            humidity=(0.2, 0.7),
            elevation=(0.0, 1500.0),
            precipitation=(100.0, 600.0),
        ),
    ]


@pytest.fixture
def world_config(stock_biomes: list[BiomeConfig]) -> WorldConfig:
    """Default world config with the stock biomes."""
    return WorldConfig(biomes=stock_biomes)


@pytest.fixture
def small_world_config(stock_biomes: list[BiomeConfig]) -> WorldConfig:
    """World config with small-map friendly constants.

    The negative sea bias puts land under every cell before normalization, so
    the heightmap always has relief regardless of seed.
    """
    config = WorldConfig(biomes=stock_biomes)
    config.geology.heightmap.continental_scale_km = 400.0
    config.geology.heightmap.erosion_iterations = 3
    config.terrain.synthesis.sea_bias = -1.0
    return config


@pytest.fixture
def constant_noise() -> type[ConstantNoise]:
    """Factory for zero-variance noise fields."""
    return ConstantNoise


@pytest.fixture
def biome_factory():
    """Factory for biome definitions."""
    return make_biome
