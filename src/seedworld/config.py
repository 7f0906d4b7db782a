"""World configuration models and loading from JSON or TOML documents.

World documents use camelCase keys (``continentalScaleKm``); every model
also accepts the snake_case field names. Sections of the document that the
terrain pipeline does not read (cosmos, catastrophes, civilizations, ...)
are ignored.
"""

import json
import tomllib
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from .exceptions import ConfigError


class CamelModel(BaseModel):
    """Base model reading camelCase document keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------- World document sections ----------


class MetaConfig(CamelModel):
    """Descriptive world metadata."""

    name: str = "Unnamed world"
    description: str = ""
    author: str = ""
    created_at: str = ""


class HeightmapConfig(CamelModel):
    """Relief generation knobs from the geology section."""

    generation_mode: str = Field(default="tectonic_erosion", description="Generation mode")
    base_seed: int = Field(default=42, description="Seed for all relief noise fields")
    continental_scale_km: float = Field(
        default=2000.0, description="Continental scale in km (floored at 10)"
    )
    mountain_amplitude_meters: float = Field(
        default=3500.0, description="Mountain amplitude, scales ridge contribution"
    )
    erosion_iterations: int = Field(default=8, description="Thermal erosion iterations")
    river_density: float = Field(
        default=1.0, description="Channel density, divides the carving flow threshold"
    )


class GeologyConfig(CamelModel):
    """Geology section."""

    heightmap: HeightmapConfig = Field(default_factory=HeightmapConfig)


class AtmosphereConfig(CamelModel):
    """Atmosphere parameters used by the climate model."""

    pressure_k_pa: float = 101.3
    base_temperature_c: float = Field(
        default=15.0, description="Global mean temperature at sea level"
    )
    humidity_global_mean: float = 0.5


class ClimateModelConfig(CamelModel):
    """Climate model parameters."""

    model_type: str = Field(
        default="banded", description="Humidity model: 'banded' or any other value for falloff"
    )
    sea_level_meters: float = Field(
        default=0.0, description="Meters threshold below which land gets no biome"
    )
    temperature_lapse_rate_c_per_km: float = Field(
        default=6.5, description="Temperature drop per km of elevation"
    )
    precipitation_scale: float = Field(default=1.0, description="Precipitation multiplier")
    wind_global_pattern: str = "westerlies"
    storm_frequency: float = Field(default=0.0, description="Storm frequency (0..1)")
    storm_intensity_mean: float = Field(default=0.0, description="Mean storm intensity (0..1)")


class EnvironmentConfig(CamelModel):
    """Environment section."""

    atmosphere: AtmosphereConfig = Field(default_factory=AtmosphereConfig)
    climate_model: ClimateModelConfig = Field(default_factory=ClimateModelConfig)


class BiomeClimateRangeConfig(CamelModel):
    """Climate envelope of a biome, each as a [min, max] pair."""

    temperature_c: tuple[float, float]
    humidity: tuple[float, float]
    elevation_meters: tuple[float, float]


class BiomeConfig(CamelModel):
    """A biome definition from the world document."""

    id: str
    display_name: str = ""
    climate_range: BiomeClimateRangeConfig
    precipitation_range_mm_per_year: tuple[float, float]
    base_material_id: str | None = None
    overlay_material_ids: list[str] | None = None
    dominant_materials: list[str] = []
    vegetation_density: float = 0.0
    fauna_profiles: list[str] = []
    allow_settlements: bool = False


# ---------- Pipeline tuning ----------


class SynthesisConfig(CamelModel):
    """Continent and ridge synthesis constants."""

    sea_bias: float = Field(default=0.1, description="Subtracted from continent noise")
    warp_strength: float = Field(
        default=0.5, description="Warp offset as a fraction of continental scale"
    )
    gradient_step: float = Field(
        default=0.5, description="Finite-difference step as a fraction of continental scale"
    )
    gradient_gain: float = Field(default=2.0, description="Gradient magnitude multiplier")
    gradient_cap: float = Field(default=1.5, description="Upper clamp of the gradient factor")
    detail_octaves: int = Field(default=3, description="Octaves of the detail field")
    detail_amplitude: float = Field(default=0.25, description="Detail field amplitude")
    ridge_exponent: float = Field(default=1.7, description="Ridge sharpening exponent")
    ridge_compression: float = Field(
        default=0.35, description="Orthogonal compression of the primary ridge axis"
    )
    ridge_angles_deg: tuple[float, float] = Field(
        default=(25.0, -40.0), description="Primary and secondary ridge axis angles"
    )
    ridge_blend: float = Field(default=0.6, description="Weight of the primary ridge field")
    mountain_cap: float = Field(default=2.0, description="Upper clamp of the mountain term")
    mountain_base: float = Field(default=0.6, description="Ridge weight at the coastline")
    mountain_inland_gain: float = Field(default=0.7, description="Extra ridge weight inland")
    coastal_width: float = Field(
        default=0.18, description="Land height over which detail and ridges fade in"
    )
    land_exponent: float = Field(default=1.2, description="Exponent of the land skeleton")
    reference_relief_m: float = Field(
        default=3500.0, description="Mountain amplitude giving an unscaled ridge term"
    )


class ThermalConfig(CamelModel):
    """Thermal erosion parameters."""

    talus: float = Field(default=0.03, description="Minimum height difference that moves material")
    amount: float = Field(default=0.15, description="Fraction of total differential moved")


class HydraulicConfig(CamelModel):
    """Flow-based channel carving parameters."""

    water_level_fraction: float = Field(
        default=0.25, description="Fraction of the height range treated as sea"
    )
    flow_threshold: float = Field(default=120.0, description="Accumulated flow needed to carve")
    carve_strength: float = Field(default=0.015, description="Carve depth at maximum flow")


class LakeConfig(CamelModel):
    """Lake formation parameters."""

    enabled: bool = True
    min_depth: float = Field(default=0.004, description="Minimum depression depth")
    probability: float = Field(default=0.6, description="Acceptance probability per depression")
    fill_fraction: float = Field(default=0.7, description="Fraction of depth filled")
    bank_blend: float = Field(default=0.5, description="Blend weight of the nearest bank ring")
    gate_frequency: float = Field(default=8.0, description="Gate noise cycles across the map")


class CanyonConfig(CamelModel):
    """Canyon carving parameters."""

    enabled: bool = True
    frequency: float = Field(default=5.0, description="Fault noise cycles across the map")
    sharpness: float = Field(default=2.0, description="Exponent applied to the fault product")
    threshold: float = Field(default=0.72, description="Fault value where carving starts")
    depth: float = Field(default=0.05, description="Center carve depth at full fault value")
    side_falloff: float = Field(default=0.5, description="Neighbour carve relative to center")
    shallow_water_fraction: float = Field(
        default=0.3, description="Height-range fraction below which cells are never carved"
    )


class SmoothingConfig(CamelModel):
    """Gaussian smoothing passes."""

    iterations: int = Field(default=2, description="Number of 3x3 blur passes")


class NormalizeConfig(CamelModel):
    """Final rescaling."""

    gamma: float = Field(default=1.05, description="Gamma applied after linear rescale")
    epsilon: float = Field(default=1e-6, description="Range floor for flat fields")


class TerrainConfig(CamelModel):
    """Constants of the synthesis and erosion pipeline."""

    synthesis: SynthesisConfig = Field(default_factory=SynthesisConfig)
    thermal: ThermalConfig = Field(default_factory=ThermalConfig)
    hydraulic: HydraulicConfig = Field(default_factory=HydraulicConfig)
    lakes: LakeConfig = Field(default_factory=LakeConfig)
    canyons: CanyonConfig = Field(default_factory=CanyonConfig)
    smoothing: SmoothingConfig = Field(default_factory=SmoothingConfig)
    normalize: NormalizeConfig = Field(default_factory=NormalizeConfig)


class ClassificationConfig(CamelModel):
    """Climate derivation and biome classification constants."""

    max_relief_m: float = Field(default=3500.0, description="Meters at normalized height 1.0")
    water_epsilon: float = Field(default=0.002, description="Margin above sea level kept as water")
    equator_warming_c: float = Field(
        default=13.0, description="Equator temperature above base temperature"
    )
    polar_cooling_c: float = Field(
        default=25.0, description="Pole temperature below base temperature"
    )
    temperature_jitter_c: float = Field(default=3.0, description="Temperature noise amplitude")
    humidity_jitter: float = Field(default=0.15, description="Humidity noise amplitude")
    climate_noise_frequency: float = Field(
        default=1.2, description="Climate noise cycles across the map"
    )
    humidity_elevation_loss: float = Field(
        default=0.4, description="Humidity fraction lost at maximum relief"
    )
    base_precipitation_mm: float = Field(
        default=1800.0, description="Precipitation at humidity 1.0"
    )
    storm_gain: float = Field(default=0.5, description="Boost per unit frequency x intensity")
    precipitation_range_mm: tuple[float, float] = Field(
        default=(50.0, 4000.0), description="Clamp of derived precipitation"
    )
    smoothing_passes: int = Field(default=2, description="Majority-filter passes")


# ---------- Root ----------


class WorldConfig(CamelModel):
    """Complete world configuration consumed by the terrain pipeline."""

    seed_version: str = "1"
    world_id: str = "world"
    world_seed: int = Field(default=42, description="Seed for climate noise")
    sea_level: float = Field(default=0.35, description="Normalized sea level (0..1)")
    meta: MetaConfig = Field(default_factory=MetaConfig)
    geology: GeologyConfig = Field(default_factory=GeologyConfig)
    environment: EnvironmentConfig = Field(default_factory=EnvironmentConfig)
    biomes: list[BiomeConfig] = []

    terrain: TerrainConfig = Field(default_factory=TerrainConfig)
    classification: ClassificationConfig = Field(default_factory=ClassificationConfig)


def load_config(config_path: Path) -> WorldConfig:
    """Load a world configuration from a JSON or TOML file.

    Args:
        config_path: Path to a ``.json`` or ``.toml`` document.

    Returns:
        Parsed WorldConfig.

    Raises:
        FileNotFoundError: If the config file doesn't exist.
        ConfigError: If the document is malformed or fails validation.
    """
    config_path = Path(config_path)
    try:
        if config_path.suffix == ".toml":
            with open(config_path, "rb") as f:
                data = tomllib.load(f)
        else:
            with open(config_path, encoding="utf-8") as f:
                data = json.load(f)
    except (json.JSONDecodeError, tomllib.TOMLDecodeError) as e:
        raise ConfigError(f"Cannot parse {config_path}: {e}") from e

    try:
        return WorldConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid world config {config_path}: {e}") from e


def _configs_dir() -> Path:
    return Path(__file__).parent.parent.parent / "configs"


def find_config(name: str) -> Path:
    """Find a config file by name.

    Searches in the following order:
    1. Exact path if name contains a path separator or a known suffix
    2. configs/{name}.json
    3. configs/{name}.toml

    Args:
        name: Config name or path.

    Returns:
        Path to the config file.

    Raises:
        FileNotFoundError: If config file is not found.
    """
    if "/" in name or name.endswith((".json", ".toml")):
        path = Path(name)
        if path.exists():
            return path
        raise FileNotFoundError(f"Config file not found: {name}")

    configs_dir = _configs_dir()
    for suffix in (".json", ".toml"):
        config_path = configs_dir / f"{name}{suffix}"
        if config_path.exists():
            return config_path

    raise FileNotFoundError(
        f"Config '{name}' not found in {configs_dir}. "
        f"Available configs: {list_configs()}"
    )


def list_configs() -> list[str]:
    """List available config names."""
    configs_dir = _configs_dir()
    if not configs_dir.exists():
        return []
    return sorted(
        {p.stem for p in configs_dir.iterdir() if p.suffix in (".json", ".toml")}
    )
