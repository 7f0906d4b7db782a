"""Synthetic climate derived from latitude and elevation."""

from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray

from ..config import ClassificationConfig, WorldConfig
from .fields import grid_coordinates
from .noise import ClimateNoise


@dataclass(frozen=True)
class ClimateSample:
    """Climate of a single cell."""

    temperature_c: float
    humidity: float
    precipitation_mm_per_year: float
    elevation_m: float


@dataclass(frozen=True)
class ClimateGrid:
    """Per-cell climate arrays, each of shape (height, width)."""

    temperature_c: NDArray[np.float64]
    humidity: NDArray[np.float64]
    precipitation_mm_per_year: NDArray[np.float64]
    elevation_m: NDArray[np.float64]

    def sample(self, x: int, y: int) -> ClimateSample:
        """Climate of the cell at column x, row y."""
        return ClimateSample(
            temperature_c=float(self.temperature_c[y, x]),
            humidity=float(self.humidity[y, x]),
            precipitation_mm_per_year=float(self.precipitation_mm_per_year[y, x]),
            elevation_m=float(self.elevation_m[y, x]),
        )


def latitude_profile(height: int) -> NDArray[np.float64]:
    """Absolute latitude per row: 0 at the middle row (equator), 1 at the edges."""
    fy = np.arange(height, dtype=np.float64) / max(height - 1, 1)
    return np.abs(fy * 2.0 - 1.0)


def banded_humidity(lat_abs: NDArray[np.float64]) -> NDArray[np.float64]:
    """Wet equator, dry subtropical belt near 30 degrees, moderately wet poles."""
    lat_deg = lat_abs * 90.0
    subtropical_dryness = 0.6 * np.exp(-(((lat_deg - 30.0) / 12.0) ** 2))
    polar_dryness = 0.25 * np.clip((lat_deg - 50.0) / 40.0, 0.0, 1.0)
    return 0.85 - subtropical_dryness - polar_dryness


def falloff_humidity(lat_abs: NDArray[np.float64]) -> NDArray[np.float64]:
    """Humidity falling off linearly from the equator."""
    return 0.9 - 0.6 * lat_abs


def elevation_meters(
    heights: NDArray[np.float32],
    sea_level: float,
    max_relief_m: float,
) -> NDArray[np.float64]:
    """Meters above the normalized sea level; 0 at or below it."""
    span = max(1.0 - sea_level, 1e-6)
    relative = np.clip((heights.astype(np.float64) - sea_level) / span, 0.0, 1.0)
    return relative * max_relief_m


def derive_climate(
    heights: NDArray[np.float32],
    config: WorldConfig,
    noise: ClimateNoise,
) -> ClimateGrid:
    """Compute temperature, humidity, precipitation and elevation per cell.

    Args:
        heights: Normalized heightmap values, shape (height, width).
        config: World config (sea level, atmosphere, climate model).
        noise: Climate jitter fields.

    Returns:
        ClimateGrid of the same shape.
    """
    cls_cfg: ClassificationConfig = config.classification
    atmosphere = config.environment.atmosphere
    climate = config.environment.climate_model
    height, width = heights.shape

    elevation_m = elevation_meters(heights, config.sea_level, cls_cfg.max_relief_m)
    if heights.size == 0:
        empty = np.zeros((height, width), dtype=np.float64)
        return ClimateGrid(empty, empty.copy(), empty.copy(), elevation_m)

    lat_abs = latitude_profile(height)[:, np.newaxis]
    fx, fy = grid_coordinates(width, height)
    nx = fx * cls_cfg.climate_noise_frequency
    ny = fy * cls_cfg.climate_noise_frequency

    # Temperature (C): latitude profile, lapse rate, jitter
    equator_c = atmosphere.base_temperature_c + cls_cfg.equator_warming_c
    pole_c = atmosphere.base_temperature_c - cls_cfg.polar_cooling_c
    temperature = pole_c + (equator_c - pole_c) * (1.0 - lat_abs)
    temperature = temperature - elevation_m * climate.temperature_lapse_rate_c_per_km / 1000.0
    jitter = noise.temperature.sample(nx + 0.17, ny + 0.61)
    temperature = temperature + jitter * cls_cfg.temperature_jitter_c

    # Humidity (0..1)
    if climate.model_type == "banded":
        humidity = banded_humidity(lat_abs)
    else:
        humidity = falloff_humidity(lat_abs)
    humidity = np.clip(humidity, 0.1, 0.95)
    humidity = humidity + noise.humidity.sample(nx + 0.43, ny + 0.89) * cls_cfg.humidity_jitter
    elevation_fraction = elevation_m / max(cls_cfg.max_relief_m, 1e-6)
    humidity = humidity * (1.0 - cls_cfg.humidity_elevation_loss * elevation_fraction)
    humidity = np.clip(humidity, 0.05, 0.98)

    # Precipitation (mm/year)
    storm_boost = 1.0 + cls_cfg.storm_gain * climate.storm_frequency * climate.storm_intensity_mean
    precipitation = (
        humidity * cls_cfg.base_precipitation_mm * climate.precipitation_scale * storm_boost
    )
    low, high = cls_cfg.precipitation_range_mm
    precipitation = np.clip(precipitation, low, high)

    return ClimateGrid(
        temperature_c=np.broadcast_to(temperature, (height, width)).astype(np.float64),
        humidity=humidity,
        precipitation_mm_per_year=precipitation,
        elevation_m=elevation_m,
    )
