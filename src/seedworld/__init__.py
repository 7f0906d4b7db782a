"""Seed-driven world generation: relief, erosion, climate and biomes."""

from .config import WorldConfig, find_config, list_configs, load_config
from .exceptions import ConfigError, MapFormatError, SeedWorldError

__version__ = "0.1.0"

__all__ = [
    "ConfigError",
    "MapFormatError",
    "SeedWorldError",
    "WorldConfig",
    "find_config",
    "list_configs",
    "load_config",
]
