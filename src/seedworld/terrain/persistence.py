"""Map persistence: save and load generated worlds."""

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any

import numpy as np
import structlog
from numpy.typing import NDArray

from ..exceptions import MapFormatError
from .maps import BiomeMap, FlowField, Heightmap

if TYPE_CHECKING:
    from .generator import GenerationResult

logger = structlog.get_logger()

FORMAT_VERSION = 1

# Biome index stored for cells without a biome
NO_BIOME = 255


def encode_biomes(biome_map: BiomeMap) -> NDArray[np.uint8]:
    """Pack a biome map into bytes, 255 marking cells without a biome.

    Raises:
        MapFormatError: If an assigned index does not fit below the sentinel.
    """
    assigned = biome_map.indices.data[~biome_map.none_mask]
    if assigned.size and int(assigned.max()) >= NO_BIOME:
        raise MapFormatError(
            f"Biome index {int(assigned.max())} cannot be stored; "
            f"indices must be below {NO_BIOME}"
        )
    packed = np.asarray(biome_map.indices.data, dtype=np.uint8).copy()
    packed[biome_map.none_mask] = NO_BIOME
    return packed


def decode_biomes(packed: NDArray[np.uint8]) -> BiomeMap:
    """Inverse of encode_biomes."""
    packed = np.asarray(packed, dtype=np.uint8)
    none_mask = packed == NO_BIOME
    return BiomeMap.from_optional(np.where(none_mask, 0, packed).astype(np.int16), none_mask)


def save_map(path: Path, result: "GenerationResult") -> None:
    """Save a generated world to disk.

    Uses numpy's compressed .npz format for efficient storage.

    Args:
        path: Output path (should end with .npz).
        result: Generated world.
    """
    config = result.config
    metadata = {
        "version": FORMAT_VERSION,
        "world_id": config.world_id,
        "world_seed": config.world_seed,
        "base_seed": config.geology.heightmap.base_seed,
        "sea_level": config.sea_level,
        "width": result.width,
        "height": result.height,
        "biome_ids": [biome.id for biome in config.biomes],
        "generated_at": datetime.now(timezone.utc).isoformat(),
    }

    np.savez_compressed(
        path,
        heightmap=result.heightmap.values,
        biomes=encode_biomes(result.biome_map),
        flow=result.flow.values,
        metadata=json.dumps(metadata).encode("utf-8"),
    )

    file_size = path.stat().st_size / 1024
    logger.info("map_saved", path=str(path), size_kb=round(file_size, 1))


def load_map(path: Path) -> tuple[Heightmap, BiomeMap, dict[str, Any]]:
    """Load a map from disk.

    Args:
        path: Path to .npz file.

    Returns:
        Tuple of (Heightmap, BiomeMap, metadata dict).

    Raises:
        FileNotFoundError: If file doesn't exist.
        MapFormatError: If file format is invalid.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Map file not found: {path}")

    with np.load(path) as data:
        for key in ("heightmap", "biomes"):
            if key not in data:
                raise MapFormatError(f"Invalid map file: missing '{key}' array")
        heightmap = Heightmap(data["heightmap"])
        biome_map = decode_biomes(data["biomes"])

        if "metadata" in data:
            metadata = json.loads(data["metadata"].tobytes().decode("utf-8"))
        else:
            metadata = {}

    if biome_map.indices.shape != heightmap.values.shape:
        raise MapFormatError(
            f"Invalid map file: biome shape {biome_map.indices.shape} "
            f"does not match heightmap shape {heightmap.values.shape}"
        )

    logger.info("map_loaded", path=str(path), width=heightmap.width, height=heightmap.height)
    return heightmap, biome_map, metadata


def load_flow(path: Path) -> FlowField | None:
    """Load the stored flow field of a map, or None if it has none."""
    with np.load(Path(path)) as data:
        if "flow" not in data:
            return None
        return FlowField(data["flow"])
