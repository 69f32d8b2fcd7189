"""Command-line entry point: generate a map and print it."""

import argparse
import json
import logging
import random
from typing import List, Optional

from mathcash.core.challenges import format_challenge
from mathcash.core.difficulty import default_table
from mathcash.core.models import TileMap
from mathcash.core.tilemap import DEFAULT_MAP_SIZE, generate_tile_map


def configure_logging(verbose: bool = False) -> None:
    """Configure application-wide logging with a standard format."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def render_ascii(tile_map: TileMap) -> str:
    """One character per tile: S start, B boss, M mob, . open, # blocked."""
    mob_cells = {mob.position for mob in tile_map.active_mobs()}
    lines: List[str] = []
    for row in tile_map.tiles:
        chars = []
        for tile in row:
            if tile.position == tile_map.start_position:
                chars.append("S")
            elif tile.position == tile_map.boss_position:
                chars.append("B")
            elif tile.position in mob_cells:
                chars.append("M")
            elif tile.is_accessible:
                chars.append(".")
            else:
                chars.append("#")
        lines.append("".join(chars))
    return "\n".join(lines)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Generate a Math Cash maze map.")
    p.add_argument("--width", type=int, default=DEFAULT_MAP_SIZE, help=f"Map width (default: {DEFAULT_MAP_SIZE})")
    p.add_argument("--height", type=int, default=DEFAULT_MAP_SIZE, help=f"Map height (default: {DEFAULT_MAP_SIZE})")
    p.add_argument(
        "--difficulty",
        type=str,
        default=None,
        help="Difficulty tier key (default: the easiest tier).",
    )
    p.add_argument("--map-id", type=str, default="map-1", help="Id given to the map (default: map-1)")
    p.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Optional RNG seed for reproducible generation.",
    )
    p.add_argument("--json", action="store_true", help="Print the map as JSON instead of ASCII.")
    p.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    args = p.parse_args(argv)
    if args.width < 1 or args.height < 1:
        p.error("width and height must be >= 1")
    return args


def run(argv: Optional[List[str]] = None) -> None:
    """Parse arguments, generate one map and print it to stdout."""
    args = parse_args(argv)
    configure_logging(args.verbose)

    table = default_table()
    difficulty = table.resolve(args.difficulty) if args.difficulty else table.default
    rng = random.Random(args.seed)
    tile_map = generate_tile_map(args.map_id, args.width, args.height, difficulty, rng, table)

    if args.json:
        print(json.dumps(tile_map.to_dict(), indent=2))
        return

    tier = table.get(tile_map.difficulty)
    boss = tile_map.boss_tile.challenge
    print(f"{tile_map.id}: {tile_map.width}x{tile_map.height} {tier.name}, {len(tile_map.mobs)} mobs")
    print(render_ascii(tile_map))
    if boss is not None:
        print(f"Boss ({boss.difficulty}, {boss.reward} coins): {format_challenge(boss)}")
