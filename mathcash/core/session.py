from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from mathcash.core.challenges import is_correct
from mathcash.core.difficulty import DifficultyTable, default_table
from mathcash.core.models import TILE_BOSS, GameSession, MathChallenge, Mob, PlayerState, Position
from mathcash.core.progress import SessionStore
from mathcash.core.tilemap import generate_tile_map, recommended_map_size

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 2
COIN_MULTIPLIER = 2

DIRECTIONS = {
    "up": (0, -1),
    "down": (0, 1),
    "left": (-1, 0),
    "right": (1, 0),
}

CORRECT = "correct"
RETRY = "retry"
FAILED = "failed"


@dataclass
class ChallengeAttempt:
    """A challenge the player is currently answering.

    ``mob`` is None when the challenge belongs to the boss tile.
    """

    challenge: MathChallenge
    mob: Optional[Mob] = None
    attempts: int = 0

    @property
    def is_boss(self) -> bool:
        return self.mob is None


class GameStateManager:
    """Owns the game session and applies every change to it.

    Movement, challenge results and map progression all go through here;
    the map generator itself never sees player state.
    """

    def __init__(
        self,
        store: Optional[SessionStore] = None,
        table: Optional[DifficultyTable] = None,
    ) -> None:
        self._store = store
        self._table = table if table is not None else default_table()
        self._session: Optional[GameSession] = None

    @property
    def session(self) -> GameSession:
        """The active session; raises RuntimeError if none is loaded."""
        if self._session is None:
            raise RuntimeError("No active game session")
        return self._session

    @property
    def has_session(self) -> bool:
        return self._session is not None

    def set_session(self, session: Optional[GameSession]) -> None:
        self._session = session

    def load_existing_session(self) -> Optional[GameSession]:
        """Load the saved session from the store, if there is one."""
        if self._store is None:
            return None
        session = self._store.load(self._table)
        if session is not None:
            self._session = session
        return session

    def persist_session(self) -> None:
        if self._store is not None:
            self._store.save(self._session)

    def create_new_session(self, player_name: str, rng: Optional[random.Random] = None) -> GameSession:
        """Start a fresh game on the first map at the easiest tier."""
        name = player_name.strip()
        if not name:
            raise ValueError("Player name must not be blank")
        now = datetime.now()
        difficulty = self._table.default
        width, height = recommended_map_size(difficulty)
        tile_map = generate_tile_map("map-1", width, height, difficulty, rng, self._table)

        self._session = GameSession(
            player=PlayerState(
                id=f"player-{int(now.timestamp() * 1000)}",
                name=name,
                current_position=tile_map.start_position,
                current_map_id=tile_map.id,
                created_at=now,
                last_played_at=now,
            ),
            current_map=tile_map,
            game_started_at=now,
        )
        logger.info("Started new game for %s", name)
        return self._session

    def update_last_played(self) -> None:
        self.session.player.last_played_at = datetime.now()

    # -- movement ------------------------------------------------------------

    def move_player(self, direction: str) -> Optional[Position]:
        """Step one tile; returns the new position, or None if the move is blocked."""
        if direction not in DIRECTIONS:
            raise ValueError(f"Unknown direction: {direction!r}")
        session = self.session
        tile_map = session.current_map
        current = session.player.current_position
        dx, dy = DIRECTIONS[direction]
        x, y = current.x + dx, current.y + dy
        if not tile_map.in_bounds(x, y) or not tile_map.tiles[y][x].is_accessible:
            return None

        target = Position(x, y)
        session.player.current_position = target
        self.update_last_played()
        return target

    def mob_at(self, position: Position) -> Optional[Mob]:
        for mob in self.session.current_map.mobs:
            if not mob.is_completed and mob.position == position:
                return mob
        return None

    def step_mobs(self, rng: Optional[random.Random] = None) -> int:
        """Move every active mob one random step; returns how many moved.

        Mobs keep to accessible tiles, stay off the boss tile and never share
        a tile with another active mob.
        """
        rng = rng or random.Random()
        tile_map = self.session.current_map
        occupied = {mob.position for mob in tile_map.active_mobs()}
        moved = 0
        for mob in tile_map.active_mobs():
            options = list(DIRECTIONS.values())
            rng.shuffle(options)
            for dx, dy in options:
                x, y = mob.position.x + dx, mob.position.y + dy
                if not tile_map.in_bounds(x, y):
                    continue
                tile = tile_map.tiles[y][x]
                if not tile.is_accessible or tile.type == TILE_BOSS or tile.position in occupied:
                    continue
                occupied.discard(mob.position)
                occupied.add(tile.position)
                mob.position = tile.position
                moved += 1
                break
        return moved

    # -- challenges ----------------------------------------------------------

    def pending_challenge(self) -> Optional[ChallengeAttempt]:
        """Challenge triggered by the player's tile: the boss first, then a mob."""
        session = self.session
        position = session.player.current_position
        tile = session.current_map.tile_at(position)
        if tile.type == TILE_BOSS and tile.challenge is not None and not tile.is_completed:
            return ChallengeAttempt(challenge=tile.challenge)
        mob = self.mob_at(position)
        if mob is not None:
            return ChallengeAttempt(challenge=mob.challenge, mob=mob)
        return None

    def submit_answer(self, attempt: ChallengeAttempt, answer: int) -> str:
        """Check *answer* and apply the outcome.

        Returns ``CORRECT``, ``RETRY`` after the first miss, or ``FAILED``
        once ``MAX_ATTEMPTS`` answers were wrong (the penalty is applied).
        """
        attempt.attempts += 1
        if is_correct(attempt.challenge, answer):
            if attempt.is_boss:
                self.defeat_boss()
            else:
                self.complete_mob(attempt.mob)
            return CORRECT
        if attempt.attempts >= MAX_ATTEMPTS:
            self.fail_challenge(attempt.challenge.reward)
            return FAILED
        return RETRY

    def complete_mob(self, mob: Mob) -> int:
        """Mark *mob* beaten and pay its reward; returns coins earned."""
        if mob.is_completed:
            return 0
        mob.is_completed = True
        earned = self.apply_reward(mob.challenge.reward)
        self.update_streak_and_stats()
        self.update_last_played()
        return earned

    def defeat_boss(self) -> int:
        boss_tile = self.session.current_map.boss_tile
        if boss_tile.is_completed or boss_tile.challenge is None:
            return 0
        boss_tile.is_completed = True
        earned = self.apply_reward(boss_tile.challenge.reward)
        self.update_streak_and_stats()
        self.update_last_played()
        logger.info("Boss on %s defeated", self.session.current_map.id)
        return earned

    def fail_challenge(self, penalty: int) -> int:
        """Deduct *penalty*, send the player back to start and reset the streak."""
        session = self.session
        deducted = self.deduct_currency(penalty)
        session.player.current_position = session.current_map.start_position
        self.reset_streak()
        self.update_last_played()
        return deducted

    # -- wallet and stats ----------------------------------------------------

    def add_currency(self, amount: int) -> None:
        self.session.player.currency += amount

    def deduct_currency(self, amount: int) -> int:
        """Remove up to *amount* coins; the balance never drops below zero."""
        player = self.session.player
        deducted = min(amount, player.currency)
        player.currency -= deducted
        return deducted

    def apply_reward(self, base_reward: int) -> int:
        """Pay *base_reward*, doubled while coin multiplier charges remain."""
        player = self.session.player
        earned = base_reward
        if player.coin_multiplier_charges > 0:
            earned = base_reward * COIN_MULTIPLIER
            player.coin_multiplier_charges -= 1
        self.add_currency(earned)
        return earned

    def update_streak_and_stats(self) -> None:
        player = self.session.player
        player.total_challenges_completed += 1
        player.current_streak += 1
        player.best_streak = max(player.best_streak, player.current_streak)

    def reset_streak(self) -> None:
        self.session.player.current_streak = 0

    # -- progression ---------------------------------------------------------

    def is_map_complete(self) -> bool:
        return self.session.current_map.boss_tile.is_completed

    def advance_to_next_map(self, rng: Optional[random.Random] = None) -> GameSession:
        """Replace the current map with a new one at the next tier."""
        session = self.session
        player = session.player
        old_map = session.current_map
        old_map.is_completed = True

        difficulty = self._table.next(old_map.difficulty)
        map_id = f"map-{len(player.completed_maps) + 2}"
        width, height = recommended_map_size(difficulty)
        new_map = generate_tile_map(map_id, width, height, difficulty, rng, self._table)

        player.completed_maps.append(old_map.id)
        player.current_map_id = new_map.id
        player.current_position = new_map.start_position
        player.current_streak = 0
        session.current_map = new_map
        self.update_last_played()
        logger.info("Advanced to %s (%s)", new_map.id, difficulty)
        return session
