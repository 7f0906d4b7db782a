"""Tests for map save/load."""

import numpy as np
import pytest

from seedworld.config import WorldConfig
from seedworld.exceptions import MapFormatError
from seedworld.terrain.generator import GenerationResult
from seedworld.terrain.maps import BiomeMap, FlowField, Heightmap
from seedworld.terrain.persistence import (
    FORMAT_VERSION,
    NO_BIOME,
    decode_biomes,
    encode_biomes,
    load_flow,
    load_map,
    save_map,
)


def _result(config) -> GenerationResult:
    rng = np.random.default_rng(0)
    heights = rng.random((6, 8)).astype(np.float32)
    none_mask = heights <= config.sea_level
    indices = rng.integers(0, len(config.biomes), size=(6, 8))
    return GenerationResult(
        heightmap=Heightmap(heights),
        biome_map=BiomeMap.from_optional(indices, none_mask),
        flow=FlowField(rng.random((6, 8))),
        config=config,
    )


class TestBiomeEncoding:
    """Tests for the byte encoding of biome maps."""

    def test_sentinel_marks_no_biome(self) -> None:
        biome_map = BiomeMap.from_optional(np.array([[0, 3]]), np.array([[True, False]]))
        packed = encode_biomes(biome_map)
        assert packed.dtype == np.uint8
        assert packed.tolist() == [[NO_BIOME, 3]]

    def test_sentinel_index_rejected(self) -> None:
        """An assigned index of 255 would read back as no biome."""
        biome_map = BiomeMap.from_optional(np.array([[255, 1]]), np.array([[False, False]]))
        with pytest.raises(MapFormatError, match="255"):
            encode_biomes(biome_map)

    def test_wrapping_index_rejected(self) -> None:
        biome_map = BiomeMap.from_optional(np.array([[300]]), np.array([[False]]))
        with pytest.raises(MapFormatError):
            encode_biomes(biome_map)

    def test_large_index_under_mask_ignored(self) -> None:
        biome_map = BiomeMap.from_optional(np.array([[300, 254]]), np.array([[True, False]]))
        assert encode_biomes(biome_map).tolist() == [[NO_BIOME, 254]]

    def test_save_refuses_too_many_biomes(self, biome_factory, tmp_path) -> None:
        config = WorldConfig(biomes=[biome_factory(f"b{i}") for i in range(256)])
        result = GenerationResult(
            heightmap=Heightmap(np.ones((1, 2), dtype=np.float32)),
            biome_map=BiomeMap.from_optional(np.array([[255, 0]]), np.array([[False, False]])),
            flow=FlowField(np.ones((1, 2))),
            config=config,
        )
        path = tmp_path / "crowded.npz"
        with pytest.raises(MapFormatError):
            save_map(path, result)
        assert not path.exists()

    def test_decode(self) -> None:
        biome_map = decode_biomes(np.array([[NO_BIOME, 0, 7]], dtype=np.uint8))
        assert biome_map.get(0, 0) is None
        assert biome_map.get(1, 0) == 0
        assert biome_map.get(2, 0) == 7


class TestSaveLoad:
    """Tests for npz persistence."""

    def test_round_trip(self, world_config, tmp_path) -> None:
        result = _result(world_config)
        path = tmp_path / "world.npz"
        save_map(path, result)

        heightmap, biome_map, metadata = load_map(path)
        np.testing.assert_array_equal(heightmap.values, result.heightmap.values)
        np.testing.assert_array_equal(biome_map.none_mask, result.biome_map.none_mask)
        land = ~biome_map.none_mask
        np.testing.assert_array_equal(
            biome_map.indices.data[land], result.biome_map.indices.data[land]
        )

        flow = load_flow(path)
        np.testing.assert_array_equal(flow.values, result.flow.values)

    def test_metadata(self, world_config, tmp_path) -> None:
        path = tmp_path / "world.npz"
        save_map(path, _result(world_config))
        _, _, metadata = load_map(path)
        assert metadata["version"] == FORMAT_VERSION
        assert metadata["width"] == 8
        assert metadata["height"] == 6
        assert metadata["sea_level"] == world_config.sea_level
        assert metadata["base_seed"] == world_config.geology.heightmap.base_seed
        assert metadata["biome_ids"] == [b.id for b in world_config.biomes]
        assert "generated_at" in metadata

    def test_missing_file(self, tmp_path) -> None:
        with pytest.raises(FileNotFoundError):
            load_map(tmp_path / "nothing.npz")

    def test_missing_biomes(self, tmp_path) -> None:
        path = tmp_path / "partial.npz"
        np.savez_compressed(path, heightmap=np.zeros((2, 2), dtype=np.float32))
        with pytest.raises(MapFormatError, match="biomes"):
            load_map(path)

    def test_shape_mismatch(self, tmp_path) -> None:
        path = tmp_path / "skewed.npz"
        np.savez_compressed(
            path,
            heightmap=np.zeros((2, 2), dtype=np.float32),
            biomes=np.zeros((3, 3), dtype=np.uint8),
        )
        with pytest.raises(MapFormatError, match="shape"):
            load_map(path)

    def test_without_metadata_or_flow(self, tmp_path) -> None:
        path = tmp_path / "bare.npz"
        np.savez_compressed(
            path,
            heightmap=np.zeros((2, 2), dtype=np.float32),
            biomes=np.full((2, 2), NO_BIOME, dtype=np.uint8),
        )
        _, biome_map, metadata = load_map(path)
        assert metadata == {}
        assert np.all(biome_map.none_mask)
        assert load_flow(path) is None
