"""Builds playable maps: a carved maze, a boss in the far corner, and mobs."""

from __future__ import annotations

import logging
import random
from typing import List, Optional, Tuple

from mathcash.core.challenges import generate_boss_challenge, generate_challenge, new_id
from mathcash.core.difficulty import DifficultyTable, default_table, get_next_difficulty
from mathcash.core.maze import carve
from mathcash.core.models import (
    MOB_KINDS,
    TILE_BLOCKED,
    TILE_BOSS,
    TILE_EMPTY,
    Mob,
    Position,
    Tile,
    TileMap,
)

__all__ = ["generate_tile_map", "get_next_difficulty", "place_mobs", "recommended_map_size"]

logger = logging.getLogger(__name__)

DEFAULT_MAP_SIZE = 16


def recommended_map_size(difficulty: str) -> Tuple[int, int]:
    """Every tier currently plays on the same square board."""
    return DEFAULT_MAP_SIZE, DEFAULT_MAP_SIZE


def generate_tile_map(
    map_id: str,
    width: int,
    height: int,
    difficulty: str,
    rng: Optional[random.Random] = None,
    table: Optional[DifficultyTable] = None,
) -> TileMap:
    """Generate a connected map with the start bottom-left and the boss top-right.

    Mobs carrying challenges at *difficulty* are scattered over open cells at
    the tier's density; the boss challenge is one tier harder.
    """
    if width < 1 or height < 1:
        raise ValueError(f"Map {map_id!r} needs a positive size, got {width}x{height}")
    rng = rng or random.Random()
    if table is None:
        table = default_table()
    difficulty = table.resolve(difficulty)
    tier = table.get(difficulty)

    start = Position(0, height - 1)
    boss = Position(width - 1, 0)
    maze = carve(width, height, start, boss, rng)

    tiles = [[Tile(position=Position(x, y), type=TILE_BLOCKED) for x in range(width)] for y in range(height)]
    open_positions: List[Position] = []
    for y, row in enumerate(maze):
        for x, is_open in enumerate(row):
            if is_open:
                tile = tiles[y][x]
                tile.type = TILE_EMPTY
                tile.is_accessible = True
                open_positions.append(tile.position)

    boss_tile = tiles[boss.y][boss.x]
    boss_tile.type = TILE_BOSS
    boss_tile.is_accessible = True
    boss_tile.challenge = generate_boss_challenge(difficulty, rng, table)

    mob_count = int(len(open_positions) * tier.density)
    mobs = place_mobs(open_positions, mob_count, difficulty, start, boss, rng, table)

    logger.debug(
        "Generated %s (%dx%d, %s): %d open cells, %d mobs",
        map_id, width, height, difficulty, len(open_positions), len(mobs),
    )
    return TileMap(
        id=map_id,
        width=width,
        height=height,
        tiles=tiles,
        difficulty=difficulty,
        start_position=start,
        boss_position=boss,
        mobs=mobs,
        is_completed=False,
    )


def place_mobs(
    open_positions: List[Position],
    count: int,
    difficulty: str,
    start: Position,
    boss: Position,
    rng: random.Random,
    table: DifficultyTable,
) -> List[Mob]:
    """Put up to *count* mobs on shuffled open cells, skipping start and boss."""
    candidates = [p for p in open_positions if p != start and p != boss]
    rng.shuffle(candidates)

    mobs: List[Mob] = []
    for position in candidates[:count]:
        mobs.append(
            Mob(
                id=new_id("mob", rng),
                position=position,
                challenge=generate_challenge(difficulty, rng, table),
                sprite_variant=rng.randrange(len(MOB_KINDS)),
            )
        )
    return mobs
