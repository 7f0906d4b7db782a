"""Continent and ridge synthesis: the raw, unbounded elevation field."""

import math

import numpy as np
from numpy.typing import NDArray

from ..config import HeightmapConfig, SynthesisConfig
from .noise import NoiseField, TerrainNoise, fbm


def seed_offset(seed: int) -> tuple[float, float]:
    """World-space origin offset so different seeds do not share an origin."""
    base = float(seed & 0xFFFFFFFF)
    return math.sin(base * 12_345.6789) * 1000.0, math.cos(base * 98_765.4321) * 1000.0


def grid_coordinates(width: int, height: int) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
    """Normalized [0, 1] cell coordinates, each of shape (height, width)."""
    fx = np.arange(width, dtype=np.float64) / max(width - 1, 1)
    fy = np.arange(height, dtype=np.float64) / max(height - 1, 1)
    return np.meshgrid(fx, fy)


def ridge_field(
    field: NoiseField,
    xw: NDArray[np.float64],
    yw: NDArray[np.float64],
    angle_deg: float,
    frequency: float,
    compression: float,
    exponent: float,
) -> NDArray[np.float64]:
    """Sharp ridges elongated along an oblique axis.

    Coordinates are projected onto the axis and its orthogonal, and the
    orthogonal coordinate is compressed so the field changes more slowly in
    that direction. Ridges sit on the zero-crossings of the noise.
    """
    theta = math.radians(angle_deg)
    cos_t, sin_t = math.cos(theta), math.sin(theta)

    u = (xw * cos_t + yw * sin_t) * frequency
    v = (-xw * sin_t + yw * cos_t) * frequency * compression

    source = field.sample(u, v)
    return np.maximum(1.0 - np.abs(source), 0.0) ** exponent


def make_raw_elevation(
    width: int,
    height: int,
    config: HeightmapConfig,
    synthesis: SynthesisConfig,
    noise: TerrainNoise,
) -> NDArray[np.float64]:
    """Compose continents, ridges and detail into raw elevation.

    Args:
        width: Grid width in cells.
        height: Grid height in cells.
        config: Relief knobs (seed, continental scale, mountain amplitude).
        synthesis: Synthesis constants.
        noise: Noise fields for this generation.

    Returns:
        Raw elevation, shape (height, width), every value >= 0.
    """
    if width == 0 or height == 0:
        return np.zeros((height, width), dtype=np.float64)

    continental_scale = max(config.continental_scale_km, 10.0)

    freq_cont = 0.5 / continental_scale
    freq_detail = 4.0 * freq_cont
    freq_ridge = 2.0 * freq_cont
    freq_warp = freq_cont

    offset_x, offset_y = seed_offset(config.base_seed)
    fx, fy = grid_coordinates(width, height)
    px = fx * continental_scale + offset_x
    py = fy * continental_scale + offset_y

    # Domain warp from two decorrelated samples of the warp field
    wx = noise.warp.sample(px * freq_warp, py * freq_warp)
    wy = noise.warp.sample((px + 100.0) * freq_warp, (py - 50.0) * freq_warp)
    warp_amount = synthesis.warp_strength * continental_scale
    xw = px + wx * warp_amount
    yw = py + wy * warp_amount

    # Continents
    cont_raw = noise.continent.sample(xw * freq_cont, yw * freq_cont)
    land = np.maximum(cont_raw - synthesis.sea_bias, 0.0)

    # Continental gradient gates mountain belts to active edges
    step = synthesis.gradient_step * continental_scale
    cont_dx = noise.continent.sample((xw + step) * freq_cont, yw * freq_cont) - cont_raw
    cont_dy = noise.continent.sample(xw * freq_cont, (yw + step) * freq_cont) - cont_raw
    grad_mag = np.sqrt(cont_dx * cont_dx + cont_dy * cont_dy)
    grad_factor = np.clip(grad_mag * synthesis.gradient_gain, 0.0, synthesis.gradient_cap)

    detail = synthesis.detail_amplitude * fbm(
        noise.detail, xw, yw, octaves=synthesis.detail_octaves, frequency=freq_detail
    )

    primary_angle, secondary_angle = synthesis.ridge_angles_deg
    ridge1 = ridge_field(
        noise.ridge_primary,
        xw,
        yw,
        primary_angle,
        freq_ridge,
        synthesis.ridge_compression,
        synthesis.ridge_exponent,
    )
    ridge2 = ridge_field(
        noise.ridge_secondary,
        xw,
        yw,
        secondary_angle,
        freq_ridge * 0.9,
        0.4 / 0.9,
        synthesis.ridge_exponent,
    )
    ridge = synthesis.ridge_blend * ridge1 + (1.0 - synthesis.ridge_blend) * ridge2

    mountain_scale = min(
        max(config.mountain_amplitude_meters / synthesis.reference_relief_m, 0.0), 2.0
    )
    mountain = np.clip(ridge * land * grad_factor, 0.0, synthesis.mountain_cap) * mountain_scale

    # Calm coastline: detail and ridges fade in over the first coastal_width of land
    coastal = np.clip(land / synthesis.coastal_width, 0.0, 1.0)

    elevation = (
        land**synthesis.land_exponent
        + detail * coastal
        + mountain * (synthesis.mountain_base + synthesis.mountain_inland_gain * coastal)
    )
    return np.maximum(elevation, 0.0)
