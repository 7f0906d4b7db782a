"""Command-line interface for world generation."""

import argparse
import logging
import time
from pathlib import Path

import structlog


def _configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
    )


def build_parser() -> argparse.ArgumentParser:
    """Argument parser for the ``seedworld`` command."""
    parser = argparse.ArgumentParser(
        description="Generate terrain and biome maps from a world config"
    )
    parser.add_argument(
        "--config",
        "-c",
        type=str,
        default="default",
        help="Config name from configs/ or path to a .json/.toml file (default: default)",
    )
    parser.add_argument(
        "--width", type=int, default=512, help="Map width in cells (default: 512)"
    )
    parser.add_argument(
        "--height", type=int, default=512, help="Map height in cells (default: 512)"
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Override geology.heightmap.baseSeed from the config",
    )
    parser.add_argument(
        "--heightmap-out", type=str, default=None, help="Grayscale heightmap PNG path"
    )
    parser.add_argument(
        "--biome-out", type=str, default=None, help="Biome map PNG path"
    )
    parser.add_argument(
        "--worldview-out",
        type=str,
        default=None,
        help="Shaded world view PNG path (biomes, water, snow, rivers)",
    )
    parser.add_argument(
        "--output", "-o", type=str, default=None, help="Save the map as .npz"
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Verbose logging"
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for world generation."""
    args = build_parser().parse_args(argv)
    _configure_logging(args.verbose)
    logger = structlog.get_logger()

    # Import here to avoid slow startup for --help
    from ..config import find_config, load_config
    from .generator import generate_biome_map, generate_heightmap, generate_world
    from .persistence import save_map
    from .render import biome_image, heightmap_image, save_image, worldview_image

    config_path = find_config(args.config)
    config = load_config(config_path)
    if args.seed is not None:
        config.geology.heightmap.base_seed = args.seed

    heightmap_config = config.geology.heightmap
    climate = config.environment.climate_model
    logger.info(
        "world_summary",
        config=str(config_path),
        world_id=config.world_id,
        name=config.meta.name,
        world_seed=config.world_seed,
        base_seed=heightmap_config.base_seed,
        continental_scale_km=heightmap_config.continental_scale_km,
        mountain_amplitude_m=heightmap_config.mountain_amplitude_meters,
        erosion_iterations=heightmap_config.erosion_iterations,
        river_density=heightmap_config.river_density,
        climate_model=climate.model_type,
        sea_level=config.sea_level,
        biomes=[biome.id for biome in config.biomes],
    )

    need_biomes = bool(args.biome_out or args.worldview_out or args.output)
    need_heightmap = bool(need_biomes or args.heightmap_out)
    if not need_heightmap:
        logger.info("nothing_to_generate")
        return

    start_time = time.time()
    if args.output or args.worldview_out:
        result = generate_world(config, args.width, args.height)
        heightmap, biome_map, flow = result.heightmap, result.biome_map, result.flow
    else:
        result = None
        flow = None
        heightmap = generate_heightmap(config, args.width, args.height)
        biome_map = generate_biome_map(config, heightmap) if need_biomes else None
    logger.info("generation_complete", elapsed_s=round(time.time() - start_time, 2))

    if args.heightmap_out:
        save_image(heightmap_image(heightmap), Path(args.heightmap_out))
    if args.biome_out:
        save_image(biome_image(biome_map, config), Path(args.biome_out))
    if args.worldview_out:
        save_image(worldview_image(heightmap, biome_map, config, flow), Path(args.worldview_out))
    if args.output:
        output_path = Path(args.output)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        save_map(output_path, result)


if __name__ == "__main__":
    main()
