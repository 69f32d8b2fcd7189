"""Maze carving on a boolean grid where ``True`` means open.

The carve is a depth-first walk over every other cell, so corridors are one
tile wide with a wall cell between lattice points. After carving, the start
is checked against the end. A straight fallback corridor repairs them if
they are not connected. A sprinkling of extra openings then breaks up long
dead ends.
"""

from __future__ import annotations

import logging
import random
from collections import deque
from typing import Deque, Iterator, List, Optional, Set, Tuple

from mathcash.core.models import Position

logger = logging.getLogger(__name__)

Grid = List[List[bool]]

CARVE_STEPS = ((0, -2), (2, 0), (0, 2), (-2, 0))
NEIGHBOURS = ((0, -1), (1, 0), (0, 1), (-1, 0))
EXTRA_OPENING_RATIO = 0.1


def _in_bounds(maze: Grid, x: int, y: int) -> bool:
    return 0 <= y < len(maze) and 0 <= x < len(maze[0])


def _lattice_coord(v: int, size: int) -> int:
    """Nearest odd coordinate to *v* that still fits in *size*."""
    if v % 2 == 1:
        return v
    if v + 1 < size:
        return v + 1
    return v - 1 if v >= 1 else v


def _shuffled_steps(rng: random.Random) -> Iterator[Tuple[int, int]]:
    steps = list(CARVE_STEPS)
    rng.shuffle(steps)
    return iter(steps)


def carve(
    width: int,
    height: int,
    start: Position,
    end: Position,
    rng: Optional[random.Random] = None,
) -> Grid:
    if width < 1 or height < 1:
        raise ValueError(f"Maze needs a positive size, got {width}x{height}")
    for p in (start, end):
        if not (p.x < width and p.y < height):
            raise ValueError(f"({p.x}, {p.y}) is outside a {width}x{height} maze")
    rng = rng or random.Random()

    maze: Grid = [[False] * width for _ in range(height)]
    carve_lattice(maze, _lattice_coord(start.x, width), _lattice_coord(start.y, height), rng)

    maze[start.y][start.x] = True
    maze[end.y][end.x] = True

    if not is_path_available(maze, start, end):
        logger.debug("Carve left (%d, %d) cut off from (%d, %d); adding corridor", start.x, start.y, end.x, end.y)
        carve_fallback_path(maze, start, end)

    add_extra_openings(maze, rng)
    return maze


def carve_lattice(maze: Grid, x: int, y: int, rng: random.Random) -> None:
    """Randomised depth-first carve from ``(x, y)`` in steps of two cells.

    Uses an explicit stack; each frame keeps its own shuffled step order so
    the visiting order matches the recursive formulation.
    """
    maze[y][x] = True
    stack = [(x, y, _shuffled_steps(rng))]
    while stack:
        cx, cy, steps = stack[-1]
        step = next(steps, None)
        if step is None:
            stack.pop()
            continue
        dx, dy = step
        nx, ny = cx + dx, cy + dy
        if _in_bounds(maze, nx, ny) and not maze[ny][nx]:
            maze[cy + dy // 2][cx + dx // 2] = True
            maze[ny][nx] = True
            stack.append((nx, ny, _shuffled_steps(rng)))


def is_path_available(maze: Grid, start: Position, end: Position) -> bool:
    """Breadth-first search over open cells, 4-directional."""
    if not maze[start.y][start.x]:
        return False
    goal = (end.x, end.y)
    seen: Set[Tuple[int, int]] = {(start.x, start.y)}
    queue: Deque[Tuple[int, int]] = deque([(start.x, start.y)])
    while queue:
        x, y = queue.popleft()
        if (x, y) == goal:
            return True
        for dx, dy in NEIGHBOURS:
            nx, ny = x + dx, y + dy
            if _in_bounds(maze, nx, ny) and maze[ny][nx] and (nx, ny) not in seen:
                seen.add((nx, ny))
                queue.append((nx, ny))
    return False


def carve_fallback_path(maze: Grid, start: Position, end: Position) -> None:
    """Open a corridor from *start* to *end*, one axis step at a time.

    Each step goes along the axis with more distance left (ties go
    horizontally), so the corridor is the same for the same endpoints.
    """
    x, y = start.x, start.y
    maze[y][x] = True
    while (x, y) != (end.x, end.y):
        dx, dy = end.x - x, end.y - y
        if abs(dx) >= abs(dy):
            x += 1 if dx > 0 else -1
        else:
            y += 1 if dy > 0 else -1
        maze[y][x] = True


def add_extra_openings(maze: Grid, rng: random.Random, ratio: float = EXTRA_OPENING_RATIO) -> int:
    """Open random interior cells; returns how many picks were made."""
    height, width = len(maze), len(maze[0])
    if width < 3 or height < 3:
        return 0
    count = int(width * height * ratio)
    for _ in range(count):
        maze[rng.randint(1, height - 2)][rng.randint(1, width - 2)] = True
    return count
