"""Render heightmaps and biome maps to images."""

from pathlib import Path

import numpy as np
import structlog
from numpy.typing import NDArray
from PIL import Image

from ..config import WorldConfig
from .hydrology import flow_accumulation
from .maps import BiomeMap, FlowField, Heightmap

logger = structlog.get_logger()

# Colors for the stock biomes (RGB)
BIOME_COLORS = {
    "temperate_forest": (34, 139, 34),   # Dark green
    "hot_desert": (210, 180, 80),        # Sand
    "cold_mountains": (160, 160, 170),   # Stone gray
    "tundra": (150, 180, 160),           # Cold green
}

NO_BIOME_COLOR = (0, 0, 0)

SHALLOW_WATER = np.array([70.0, 140.0, 200.0])
DEEP_WATER = np.array([10.0, 30.0, 80.0])
RIVER_COLOR = np.array([30.0, 120.0, 220.0])
BEACH_COLOR = np.array([210.0, 190.0, 120.0])
SNOW_COLOR = np.array([255.0, 255.0, 255.0])

BEACH_WIDTH = 0.03
SNOW_HEIGHT_START = 0.7
SNOW_LATITUDE_START = 0.5
RIVER_FLOW_MIN = 0.1

LIGHT_DIRECTION = np.array([0.6, 0.6, 1.0]) / np.linalg.norm([0.6, 0.6, 1.0])
SLOPE_SCALE = 40.0
AMBIENT = 0.3


def _string_hash(text: str) -> int:
    h = 0
    for byte in text.encode("utf-8"):
        h = (h * 31 + byte) & 0xFFFFFFFF
    return h


def hashed_color(biome_id: str) -> tuple[int, int, int]:
    """Stable color for a biome id without a fixed color."""
    h = _string_hash(biome_id)
    r = 80 + (h & 0x7F)
    h >>= 7
    g = 80 + (h & 0x7F)
    h >>= 7
    b = 80 + (h & 0x7F)
    return r, g, b


def build_biome_palette(config: WorldConfig) -> NDArray[np.uint8]:
    """Color per configured biome, shape (K, 3)."""
    colors = [BIOME_COLORS.get(biome.id) or hashed_color(biome.id) for biome in config.biomes]
    return np.array(colors, dtype=np.uint8).reshape(len(colors), 3)


def heightmap_image(heightmap: Heightmap) -> Image.Image:
    """Grayscale image, white at height 1.0."""
    if heightmap.values.size == 0:
        return Image.new("L", (heightmap.width, heightmap.height))
    gray = (np.clip(heightmap.values, 0.0, 1.0) * 255.0).astype(np.uint8)
    return Image.fromarray(gray)


def _biome_colors(
    biome_map: BiomeMap,
    palette: NDArray[np.uint8],
    fallback: NDArray[np.float64],
) -> NDArray[np.float64]:
    """Per-cell palette color; ``fallback`` where there is no (known) biome."""
    indices = biome_map.indices.data.astype(np.int64)
    known = ~biome_map.none_mask & (indices < len(palette))

    colors = np.array(np.broadcast_to(fallback, indices.shape + (3,)), dtype=np.float64)
    if len(palette):
        colors[known] = palette[indices[known]]
    return colors


def biome_image(biome_map: BiomeMap, config: WorldConfig) -> Image.Image:
    """Palette image of a biome map; cells without a biome are black."""
    if biome_map.indices.size == 0:
        return Image.new("RGB", (biome_map.width, biome_map.height))
    colors = _biome_colors(
        biome_map, build_biome_palette(config), np.array(NO_BIOME_COLOR, dtype=np.float64)
    )
    return Image.fromarray(colors.astype(np.uint8))


def hillshade(values: NDArray[np.float32]) -> NDArray[np.float64]:
    """Lambert shading from central differences, clamped at the borders."""
    h = values.astype(np.float64)
    padded = np.pad(h, 1, mode="edge")
    dx = padded[1:-1, 2:] - padded[1:-1, :-2]
    dy = padded[2:, 1:-1] - padded[:-2, 1:-1]

    normal = np.stack([-dx * SLOPE_SCALE, -dy * SLOPE_SCALE, np.ones_like(h)])
    normal /= np.maximum(np.linalg.norm(normal, axis=0), 1e-6)

    dot = np.tensordot(LIGHT_DIRECTION, normal, axes=1)
    shade = AMBIENT + np.maximum(dot, 0.0) * (1.0 - AMBIENT)
    return np.clip(shade, 0.0, 1.0)


def _blend(
    base: NDArray[np.float64],
    color: NDArray[np.float64],
    weight: NDArray[np.float64],
) -> NDArray[np.float64]:
    w = weight[..., np.newaxis]
    return base * (1.0 - w) + color * w


def worldview_image(
    heightmap: Heightmap,
    biome_map: BiomeMap,
    config: WorldConfig,
    flow: FlowField | None = None,
) -> Image.Image:
    """Shaded world view: biomes, water depth, snow, beaches and rivers.

    Args:
        heightmap: Finished heightmap.
        biome_map: Biome map of the same dimensions.
        config: World config (sea level, biome ids).
        flow: River flow; computed against sea level when omitted.

    Returns:
        RGB image of the heightmap's dimensions.
    """
    h = heightmap.values.astype(np.float64)
    height, width = h.shape
    if h.size == 0:
        return Image.new("RGB", (width, height))

    sea_level = config.sea_level
    if flow is None:
        flow = flow_accumulation(heightmap, sea_level)

    # Water shades from shallow to deep with depth below sea level
    depth = np.clip(np.maximum(sea_level - h, 0.0) / max(sea_level, 1e-6), 0.0, 1.0)
    water = _blend(np.broadcast_to(SHALLOW_WATER, h.shape + (3,)), DEEP_WATER, depth)

    colors = _biome_colors(biome_map, build_biome_palette(config), np.zeros(3))
    known = ~biome_map.none_mask & (biome_map.indices.data < len(config.biomes))
    colors = np.where(known[..., np.newaxis], colors, water)

    # Snow caps on high ground toward the poles
    fy = np.arange(height, dtype=np.float64) / max(height - 1, 1)
    lat_abs = np.abs(fy * 2.0 - 1.0)[:, np.newaxis]
    height_factor = np.clip((h - SNOW_HEIGHT_START) / (1.0 - SNOW_HEIGHT_START), 0.0, 1.0)
    lat_factor = np.clip((lat_abs - SNOW_LATITUDE_START) / (1.0 - SNOW_LATITUDE_START), 0.0, 1.0)
    colors = _blend(colors, SNOW_COLOR, height_factor * lat_factor)

    above_sea = h > sea_level

    # Beaches fade out over BEACH_WIDTH above sea level
    rise = h - sea_level
    beach = np.where(above_sea & (rise < BEACH_WIDTH), 1.0 - rise / BEACH_WIDTH, 0.0)
    colors = _blend(colors, BEACH_COLOR, beach)

    # Rivers
    flow_values = flow.values.astype(np.float64)
    t = np.clip((flow_values - RIVER_FLOW_MIN) / (1.0 - RIVER_FLOW_MIN), 0.0, 1.0)
    river = np.where(above_sea & (flow.values > RIVER_FLOW_MIN), t**0.4, 0.0)
    colors = _blend(colors, RIVER_COLOR, river)

    shaded = np.clip(np.round(colors * hillshade(heightmap.values)[..., np.newaxis]), 0, 255)
    return Image.fromarray(shaded.astype(np.uint8))


def save_image(image: Image.Image, path: Path) -> None:
    """Write an image, creating parent directories."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    image.save(path)
    logger.info("image_saved", path=str(path), width=image.width, height=image.height)
