"""End-to-end tests for heightmap and biome map generation."""

import numpy as np
import pytest
from structlog.testing import capture_logs

from seedworld.config import NormalizeConfig, WorldConfig
from seedworld.terrain.generator import (
    GenerationResult,
    generate_and_save_world,
    generate_biome_map,
    generate_heightmap,
    generate_world,
    normalize,
)
from seedworld.terrain.noise import ClimateNoise, TerrainNoise
from seedworld.terrain.persistence import load_map


class TestNormalize:
    """Tests for the final rescale."""

    def test_range_attained(self) -> None:
        raw = np.random.default_rng(0).random((10, 10)) * 5.0 - 1.0
        values = normalize(raw, NormalizeConfig())
        assert values.dtype == np.float32
        assert values.min() == 0.0
        assert values.max() == 1.0

    def test_gamma(self) -> None:
        raw = np.array([[0.0, 0.5, 1.0]])
        values = normalize(raw, NormalizeConfig(gamma=2.0))
        np.testing.assert_allclose(values, [[0.0, 0.25, 1.0]])

    def test_flat_field(self) -> None:
        values = normalize(np.full((4, 4), 3.7), NormalizeConfig())
        assert np.all(values == values[0, 0])
        assert np.all(np.isfinite(values))

    def test_nearly_flat_field(self) -> None:
        raw = np.full((4, 4), 3.7)
        raw[0, 0] += 1e-9
        values = normalize(raw, NormalizeConfig())
        assert np.all(values == values[0, 0])

    def test_empty(self) -> None:
        assert normalize(np.zeros((0, 3)), NormalizeConfig()).shape == (0, 3)


class TestGenerateHeightmap:
    """Tests for heightmap generation."""

    def test_dimensions(self, small_world_config) -> None:
        heightmap = generate_heightmap(small_world_config, 40, 24)
        assert heightmap.width == 40
        assert heightmap.height == 24

    def test_range_and_extremes(self, small_world_config) -> None:
        """Values lie in [0, 1] and both ends are attained."""
        heightmap = generate_heightmap(small_world_config, 48, 48)
        assert heightmap.values.min() == 0.0
        assert heightmap.values.max() == 1.0

    def test_deterministic(self, small_world_config) -> None:
        a = generate_heightmap(small_world_config, 32, 32)
        b = generate_heightmap(small_world_config, 32, 32)
        np.testing.assert_array_equal(a.values, b.values)

    def test_seed_sensitivity(self) -> None:
        """Different seeds on a 64x64 grid differ in at least one cell."""
        config_a = WorldConfig()
        config_a.terrain.synthesis.sea_bias = -1.0
        config_b = config_a.model_copy(deep=True)
        config_b.geology.heightmap.base_seed = config_a.geology.heightmap.base_seed + 1
        a = generate_heightmap(config_a, 64, 64)
        b = generate_heightmap(config_b, 64, 64)
        assert not np.array_equal(a.values, b.values)

    def test_default_tuning_seed_sensitivity(self) -> None:
        """With default tuning, some pair of seeds gives different worlds."""
        maps = []
        for seed in range(6):
            config = WorldConfig()
            config.geology.heightmap.base_seed = seed
            maps.append(generate_heightmap(config, 32, 32).values)
        assert any(not np.array_equal(maps[0], other) for other in maps[1:])

    def test_flat_only_when_no_land(self) -> None:
        """A heightmap either spans [0, 1] or is exactly uniform."""
        for seed in range(4):
            config = WorldConfig()
            config.geology.heightmap.base_seed = seed
            values = generate_heightmap(config, 24, 24).values
            if values.max() > values.min():
                assert values.min() == 0.0 and values.max() == 1.0
            else:
                assert np.all(values == 0.0)

    def test_read_only(self, small_world_config) -> None:
        heightmap = generate_heightmap(small_world_config, 8, 8)
        with pytest.raises(ValueError):
            heightmap.values[0, 0] = 0.5

    def test_get_accessor(self, small_world_config) -> None:
        heightmap = generate_heightmap(small_world_config, 8, 6)
        assert heightmap.get(7, 5) == float(heightmap.values[5, 7])

    @pytest.mark.parametrize("width,height", [(0, 0), (0, 5), (5, 0)])
    def test_zero_area(self, world_config, width: int, height: int) -> None:
        heightmap = generate_heightmap(world_config, width, height)
        assert heightmap.values.shape == (height, width)

    def test_single_cell(self, world_config) -> None:
        heightmap = generate_heightmap(world_config, 1, 1)
        assert heightmap.values.shape == (1, 1)
        assert 0.0 <= heightmap.get(0, 0) <= 1.0


class TestUniformScenario:
    """4x4 grid generated from zero-variance noise."""

    def test_flat_world_is_all_water(self, world_config, constant_noise) -> None:
        noise = TerrainNoise.uniform(constant_noise(0.4))
        heightmap = generate_heightmap(world_config, 4, 4, noise=noise)
        assert np.all(heightmap.values == heightmap.values[0, 0])

        biome_map = generate_biome_map(
            world_config, heightmap, noise=ClimateNoise.uniform(constant_noise(0.0))
        )
        assert np.all(biome_map.none_mask)

    def test_flat_world_above_sea_gets_one_biome(self, biome_factory, constant_noise) -> None:
        config = WorldConfig(
            sea_level=-0.5,
            biomes=[
                biome_factory("scrub", temperature=(-50.0, 50.0), humidity=(0.0, 1.0)),
                biome_factory("ice", temperature=(-80.0, -60.0), humidity=(0.0, 0.1)),
            ],
        )
        noise = TerrainNoise.uniform(constant_noise(0.4))
        heightmap = generate_heightmap(config, 4, 4, noise=noise)
        assert np.all(heightmap.values == heightmap.values[0, 0])

        biome_map = generate_biome_map(
            config, heightmap, noise=ClimateNoise.uniform(constant_noise(0.0))
        )
        assert not biome_map.none_mask.any()
        assert np.all(biome_map.indices.data == 0)


class TestGenerateBiomeMap:
    """Tests for biome map generation."""

    def test_water_has_no_biome(self, small_world_config) -> None:
        heightmap = generate_heightmap(small_world_config, 48, 48)
        biome_map = generate_biome_map(small_world_config, heightmap)
        water = heightmap.values <= small_world_config.sea_level
        assert np.all(biome_map.none_mask[water])
        for y, x in zip(*np.nonzero(water)):
            assert biome_map.get(int(x), int(y)) is None

    def test_land_has_valid_index(self, small_world_config) -> None:
        heightmap = generate_heightmap(small_world_config, 48, 48)
        biome_map = generate_biome_map(small_world_config, heightmap)
        land = ~biome_map.none_mask
        assert np.all(biome_map.indices.data[land] < len(small_world_config.biomes))

    def test_deterministic(self, small_world_config) -> None:
        heightmap = generate_heightmap(small_world_config, 32, 32)
        a = generate_biome_map(small_world_config, heightmap)
        b = generate_biome_map(small_world_config, heightmap)
        np.testing.assert_array_equal(a.indices.data, b.indices.data)
        np.testing.assert_array_equal(a.none_mask, b.none_mask)

    def test_empty_biome_list(self, small_world_config) -> None:
        small_world_config.biomes = []
        heightmap = generate_heightmap(small_world_config, 16, 16)
        biome_map = generate_biome_map(small_world_config, heightmap)
        assert np.all(biome_map.none_mask)


class TestGenerateWorld:
    """Tests for the bundled world generation."""

    def test_result(self, small_world_config) -> None:
        result = generate_world(small_world_config, 32, 24)
        assert isinstance(result, GenerationResult)
        assert (result.width, result.height) == (32, 24)
        assert result.flow.values.shape == (24, 32)
        assert result.flow.values.max() == 1.0
        assert result.config is small_world_config

    def test_generate_and_save(self, small_world_config, tmp_path) -> None:
        path = tmp_path / "maps" / "world.npz"
        result = generate_and_save_world(small_world_config, 16, 16, path)
        heightmap, biome_map, metadata = load_map(path)
        np.testing.assert_array_equal(heightmap.values, result.heightmap.values)
        np.testing.assert_array_equal(biome_map.none_mask, result.biome_map.none_mask)
        assert metadata["width"] == 16

    def test_config_errors_logged_as_errors(self, small_world_config, biome_factory) -> None:
        """Config errors are logged at error level, warnings at warning level."""
        small_world_config.biomes.append(biome_factory("upside_down", temperature=(20.0, 5.0)))
        small_world_config.environment.climate_model.sea_level_meters = 10.0
        with capture_logs() as logs:
            generate_world(small_world_config, 8, 8)

        checks = [entry for entry in logs if entry["event"] == "config_check"]
        errors = [entry["message"] for entry in checks if entry["log_level"] == "error"]
        warnings = [entry["message"] for entry in checks if entry["log_level"] == "warning"]
        assert any("upside_down" in message for message in errors)
        assert any("sea_level_meters" in message for message in warnings)
        assert not any("upside_down" in message for message in warnings)
