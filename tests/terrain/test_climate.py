"""Tests for climate derivation."""

import numpy as np

from seedworld.config import WorldConfig
from seedworld.terrain.climate import (
    ClimateSample,
    banded_humidity,
    derive_climate,
    elevation_meters,
    falloff_humidity,
    latitude_profile,
)
from seedworld.terrain.noise import ClimateNoise


class TestLatitude:
    """Tests for the row latitude profile."""

    def test_equator_and_poles(self) -> None:
        lat = latitude_profile(5)
        np.testing.assert_allclose(lat, [1.0, 0.5, 0.0, 0.5, 1.0])

    def test_single_row(self) -> None:
        assert latitude_profile(1)[0] == 1.0


class TestHumidityModels:
    """Tests for the humidity profiles."""

    def test_banded_dry_subtropics(self) -> None:
        lat = np.array([0.0, 30.0 / 90.0, 70.0 / 90.0])
        equator, subtropics, high = banded_humidity(lat)
        assert subtropics < equator
        assert subtropics < high

    def test_falloff_monotonic(self) -> None:
        values = falloff_humidity(np.linspace(0.0, 1.0, 10))
        assert np.all(np.diff(values) < 0)


class TestElevationMeters:
    """Tests for height to meters conversion."""

    def test_sea_level_is_zero(self) -> None:
        heights = np.array([[0.0, 0.35, 1.0]], dtype=np.float32)
        meters = elevation_meters(heights, 0.35, 3500.0)
        assert meters[0, 0] == 0.0
        assert meters[0, 1] == 0.0
        assert np.isclose(meters[0, 2], 3500.0)

    def test_sea_level_one_does_not_divide_by_zero(self) -> None:
        meters = elevation_meters(np.ones((2, 2), dtype=np.float32), 1.0, 3500.0)
        assert np.all(np.isfinite(meters))


class TestDeriveClimate:
    """Tests for per-cell climate."""

    def test_equator_warmer_than_poles(self, constant_noise) -> None:
        config = WorldConfig()
        heights = np.full((9, 4), 0.5, dtype=np.float32)
        grid = derive_climate(heights, config, ClimateNoise.uniform(constant_noise(0.0)))
        assert grid.temperature_c[4, 0] > grid.temperature_c[0, 0]
        assert grid.temperature_c[4, 0] > grid.temperature_c[8, 0]

    def test_temperature_profile_endpoints(self, constant_noise) -> None:
        """At sea level the equator reaches base + 13 and the poles base - 25."""
        config = WorldConfig(sea_level=0.5)
        heights = np.full((3, 2), 0.5, dtype=np.float32)
        grid = derive_climate(heights, config, ClimateNoise.uniform(constant_noise(0.0)))
        assert np.isclose(grid.temperature_c[1, 0], 28.0)
        assert np.isclose(grid.temperature_c[0, 0], -10.0)

    def test_lapse_rate(self, constant_noise) -> None:
        config = WorldConfig(sea_level=0.0)
        heights = np.zeros((3, 3), dtype=np.float32)
        heights[1, 2] = 1.0
        grid = derive_climate(heights, config, ClimateNoise.uniform(constant_noise(0.0)))
        drop = grid.temperature_c[1, 0] - grid.temperature_c[1, 2]
        assert np.isclose(drop, 3500.0 * 6.5 / 1000.0)

    def test_noise_jitter_bounded(self, constant_noise) -> None:
        config = WorldConfig()
        heights = np.full((5, 5), 0.6, dtype=np.float32)
        calm = derive_climate(heights, config, ClimateNoise.uniform(constant_noise(0.0)))
        hot = derive_climate(heights, config, ClimateNoise.uniform(constant_noise(1.0)))
        np.testing.assert_allclose(hot.temperature_c - calm.temperature_c, 3.0)

    def test_humidity_and_precipitation_ranges(self) -> None:
        config = WorldConfig()
        heights = np.random.default_rng(0).random((32, 32)).astype(np.float32)
        grid = derive_climate(heights, config, ClimateNoise.from_seed(5))
        assert grid.humidity.min() >= 0.05 and grid.humidity.max() <= 0.98
        assert grid.precipitation_mm_per_year.min() >= 50.0
        assert grid.precipitation_mm_per_year.max() <= 4000.0

    def test_storms_increase_precipitation(self, constant_noise) -> None:
        heights = np.full((5, 5), 0.5, dtype=np.float32)
        noise = ClimateNoise.uniform(constant_noise(0.0))
        calm = derive_climate(heights, WorldConfig(), noise)

        stormy_config = WorldConfig()
        stormy_config.environment.climate_model.storm_frequency = 1.0
        stormy_config.environment.climate_model.storm_intensity_mean = 1.0
        stormy = derive_climate(heights, stormy_config, noise)

        assert np.all(stormy.precipitation_mm_per_year >= calm.precipitation_mm_per_year)
        assert np.any(stormy.precipitation_mm_per_year > calm.precipitation_mm_per_year)

    def test_high_ground_is_drier(self, constant_noise) -> None:
        config = WorldConfig(sea_level=0.0)
        heights = np.zeros((3, 3), dtype=np.float32)
        heights[1, 2] = 1.0
        grid = derive_climate(heights, config, ClimateNoise.uniform(constant_noise(0.0)))
        assert grid.humidity[1, 2] < grid.humidity[1, 0]

    def test_sample_accessor(self, constant_noise) -> None:
        heights = np.full((3, 3), 0.5, dtype=np.float32)
        grid = derive_climate(heights, WorldConfig(), ClimateNoise.uniform(constant_noise(0.0)))
        sample = grid.sample(1, 2)
        assert isinstance(sample, ClimateSample)
        assert sample.temperature_c == grid.temperature_c[2, 1]

    def test_zero_area(self) -> None:
        heights = np.zeros((0, 4), dtype=np.float32)
        grid = derive_climate(heights, WorldConfig(), ClimateNoise.from_seed(1))
        assert grid.temperature_c.shape == (0, 4)
