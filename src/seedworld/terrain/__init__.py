"""Procedural terrain and biome generation package.

This package turns a world config and a seed into a normalized heightmap
(continents, ridges, erosion, lakes, canyons) and a biome map classified
from a latitude and elevation driven climate model.
"""

from .classification import choose_biome, classify_biomes, majority_filter, score_biomes
from .climate import ClimateSample, derive_climate
from .generator import (
    GenerationResult,
    generate_and_save_world,
    generate_biome_map,
    generate_heightmap,
    generate_world,
    normalize,
)
from .hydrology import flow_accumulation
from .maps import BiomeMap, FlowField, Heightmap
from .noise import ClimateNoise, PerlinNoise, TerrainNoise
from .persistence import load_map, save_map
from .validation import (
    ValidationResult,
    validate_biome_map,
    validate_config,
    validate_heightmap,
)

__all__ = [
    "BiomeMap",
    "ClimateNoise",
    "ClimateSample",
    "FlowField",
    "GenerationResult",
    "Heightmap",
    "PerlinNoise",
    "TerrainNoise",
    "ValidationResult",
    "choose_biome",
    "classify_biomes",
    "derive_climate",
    "flow_accumulation",
    "generate_and_save_world",
    "generate_biome_map",
    "generate_heightmap",
    "generate_world",
    "load_map",
    "majority_filter",
    "normalize",
    "save_map",
    "score_biomes",
    "validate_biome_map",
    "validate_config",
    "validate_heightmap",
]
