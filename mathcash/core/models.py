"""Plain data types shared by the map generator and the session layer.

Every type converts to and from a JSON-ready dict with camelCase keys so a
whole session can be written to disk and read back without loss.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

TILE_EMPTY = "empty"
TILE_CHALLENGE = "challenge"
TILE_BOSS = "boss"
TILE_BLOCKED = "blocked"
TILE_TYPES = (TILE_EMPTY, TILE_CHALLENGE, TILE_BOSS, TILE_BLOCKED)

# Index is the sprite variant drawn for the mob.
MOB_KINDS = ("slime", "skeleton", "orc", "bat")


@dataclass(frozen=True)
class Position:
    x: int
    y: int

    def __post_init__(self) -> None:
        if self.x < 0 or self.y < 0:
            raise ValueError(f"Position must be non-negative, got ({self.x}, {self.y})")

    def to_dict(self) -> Dict[str, int]:
        return {"x": self.x, "y": self.y}

    @staticmethod
    def from_dict(raw: Dict[str, Any]) -> "Position":
        return Position(x=int(raw["x"]), y=int(raw["y"]))


@dataclass(frozen=True)
class MathChallenge:
    """One arithmetic problem together with its answer and coin reward."""

    id: str
    operation: str
    operands: Tuple[int, int]
    correct_answer: int
    difficulty: str
    reward: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "operation": self.operation,
            "operands": list(self.operands),
            "correctAnswer": self.correct_answer,
            "difficulty": self.difficulty,
            "reward": self.reward,
        }

    @staticmethod
    def from_dict(raw: Dict[str, Any]) -> "MathChallenge":
        operands = [int(v) for v in raw["operands"]]
        if len(operands) != 2:
            raise ValueError(f"Challenge {raw.get('id')!r} needs exactly two operands")
        return MathChallenge(
            id=str(raw["id"]),
            operation=str(raw["operation"]),
            operands=(operands[0], operands[1]),
            correct_answer=int(raw["correctAnswer"]),
            difficulty=str(raw["difficulty"]),
            reward=int(raw["reward"]),
        )


@dataclass
class Tile:
    position: Position
    type: str = TILE_BLOCKED
    is_accessible: bool = False
    challenge: Optional[MathChallenge] = None
    # On the boss tile this doubles as the boss-defeated flag.
    is_completed: bool = False

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "position": self.position.to_dict(),
            "type": self.type,
            "isAccessible": self.is_accessible,
            "isCompleted": self.is_completed,
        }
        if self.challenge is not None:
            data["challenge"] = self.challenge.to_dict()
        return data

    @staticmethod
    def from_dict(raw: Dict[str, Any]) -> "Tile":
        tile_type = str(raw.get("type", TILE_BLOCKED))
        if tile_type not in TILE_TYPES:
            raise ValueError(f"Unknown tile type: {tile_type!r}")
        challenge = raw.get("challenge")
        return Tile(
            position=Position.from_dict(raw["position"]),
            type=tile_type,
            is_accessible=bool(raw.get("isAccessible", False)) and tile_type != TILE_BLOCKED,
            challenge=MathChallenge.from_dict(challenge) if isinstance(challenge, dict) else None,
            is_completed=bool(raw.get("isCompleted", False)),
        )


@dataclass
class Mob:
    """A wandering challenge-bearer. Its position changes as it roams."""

    id: str
    position: Position
    challenge: MathChallenge
    sprite_variant: int = 0
    is_completed: bool = False

    @property
    def kind(self) -> str:
        return MOB_KINDS[self.sprite_variant % len(MOB_KINDS)]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "position": self.position.to_dict(),
            "challenge": self.challenge.to_dict(),
            "type": self.kind,
            "spriteFrame": self.sprite_variant,
            "isCompleted": self.is_completed,
        }

    @staticmethod
    def from_dict(raw: Dict[str, Any]) -> "Mob":
        return Mob(
            id=str(raw["id"]),
            position=Position.from_dict(raw["position"]),
            challenge=MathChallenge.from_dict(raw["challenge"]),
            sprite_variant=int(raw.get("spriteFrame", 0)) % len(MOB_KINDS),
            is_completed=bool(raw.get("isCompleted", False)),
        )


@dataclass
class TileMap:
    id: str
    width: int
    height: int
    tiles: List[List[Tile]]
    difficulty: str
    start_position: Position
    boss_position: Position
    mobs: List[Mob] = field(default_factory=list)
    is_completed: bool = False

    def in_bounds(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def tile_at(self, position: Position) -> Tile:
        return self.tiles[position.y][position.x]

    @property
    def boss_tile(self) -> Tile:
        return self.tile_at(self.boss_position)

    def active_mobs(self) -> List[Mob]:
        return [mob for mob in self.mobs if not mob.is_completed]

    def accessible_count(self) -> int:
        return sum(1 for row in self.tiles for tile in row if tile.is_accessible)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "width": self.width,
            "height": self.height,
            "tiles": [[tile.to_dict() for tile in row] for row in self.tiles],
            "difficulty": self.difficulty,
            "startPosition": self.start_position.to_dict(),
            "bossPosition": self.boss_position.to_dict(),
            "mobs": [mob.to_dict() for mob in self.mobs],
            "isCompleted": self.is_completed,
        }

    @staticmethod
    def from_dict(raw: Dict[str, Any]) -> "TileMap":
        width = int(raw["width"])
        height = int(raw["height"])
        tiles = [[Tile.from_dict(t) for t in row] for row in raw["tiles"]]
        if len(tiles) != height or any(len(row) != width for row in tiles):
            raise ValueError(f"Map {raw.get('id')!r}: tile grid does not match {width}x{height}")
        tile_map = TileMap(
            id=str(raw["id"]),
            width=width,
            height=height,
            tiles=tiles,
            difficulty=str(raw["difficulty"]),
            start_position=Position.from_dict(raw["startPosition"]),
            boss_position=Position.from_dict(raw["bossPosition"]),
            mobs=[Mob.from_dict(m) for m in raw.get("mobs", [])],
            is_completed=bool(raw.get("isCompleted", False)),
        )
        tile_map.require_accessible(tile_map.start_position, "start position")
        tile_map.require_accessible(tile_map.boss_position, "boss position")
        for mob in tile_map.mobs:
            tile_map.require_in_bounds(mob.position, f"mob {mob.id!r}")
        return tile_map

    def require_in_bounds(self, position: Position, what: str) -> None:
        if not self.in_bounds(position.x, position.y):
            raise ValueError(
                f"Map {self.id!r}: {what} ({position.x}, {position.y}) is outside {self.width}x{self.height}"
            )

    def require_accessible(self, position: Position, what: str) -> None:
        self.require_in_bounds(position, what)
        if not self.tile_at(position).is_accessible:
            raise ValueError(f"Map {self.id!r}: {what} ({position.x}, {position.y}) is blocked")


@dataclass
class PlayerState:
    id: str
    name: str
    current_position: Position
    current_map_id: str
    created_at: datetime
    last_played_at: datetime
    currency: int = 0
    completed_maps: List[str] = field(default_factory=list)
    total_challenges_completed: int = 0
    current_streak: int = 0
    best_streak: int = 0
    coin_multiplier_charges: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "currentPosition": self.current_position.to_dict(),
            "currentMapId": self.current_map_id,
            "currency": self.currency,
            "completedMaps": list(self.completed_maps),
            "totalChallengesCompleted": self.total_challenges_completed,
            "currentStreak": self.current_streak,
            "bestStreak": self.best_streak,
            "createdAt": self.created_at.isoformat(),
            "lastPlayedAt": self.last_played_at.isoformat(),
            "coinMultiplierCharges": self.coin_multiplier_charges,
        }

    @staticmethod
    def from_dict(raw: Dict[str, Any]) -> "PlayerState":
        return PlayerState(
            id=str(raw["id"]),
            name=str(raw["name"]),
            current_position=Position.from_dict(raw["currentPosition"]),
            current_map_id=str(raw["currentMapId"]),
            created_at=datetime.fromisoformat(raw["createdAt"]),
            last_played_at=datetime.fromisoformat(raw["lastPlayedAt"]),
            currency=max(0, int(raw.get("currency", 0))),
            completed_maps=[str(m) for m in raw.get("completedMaps", [])],
            total_challenges_completed=int(raw.get("totalChallengesCompleted", 0)),
            current_streak=int(raw.get("currentStreak", 0)),
            best_streak=int(raw.get("bestStreak", 0)),
            coin_multiplier_charges=int(raw.get("coinMultiplierCharges", 0)),
        )


@dataclass
class GameSession:
    player: PlayerState
    current_map: TileMap
    game_started_at: datetime
    is_paused: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "player": self.player.to_dict(),
            "currentMap": self.current_map.to_dict(),
            "gameStartedAt": self.game_started_at.isoformat(),
            "isPaused": self.is_paused,
        }

    @staticmethod
    def from_dict(raw: Dict[str, Any]) -> "GameSession":
        session = GameSession(
            player=PlayerState.from_dict(raw["player"]),
            current_map=TileMap.from_dict(raw["currentMap"]),
            game_started_at=datetime.fromisoformat(raw["gameStartedAt"]),
            is_paused=bool(raw.get("isPaused", False)),
        )
        session.current_map.require_accessible(session.player.current_position, "player position")
        return session
