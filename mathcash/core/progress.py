from __future__ import annotations

import dataclasses
import json
import logging
from pathlib import Path
from typing import Optional

from mathcash.core.difficulty import DifficultyTable, default_table
from mathcash.core.models import GameSession, MathChallenge

logger = logging.getLogger(__name__)


class SessionStore:
    """Keeps the running game session on disk across restarts.
    File: ~/.mathcash/session.json. Removed when the player starts over."""

    def __init__(self, file_path: Optional[Path] = None, table: Optional[DifficultyTable] = None) -> None:
        self._file_path = file_path or Path.home() / ".mathcash" / "session.json"
        self._table = table

    @property
    def file_path(self) -> Path:
        return self._file_path

    @property
    def table(self) -> DifficultyTable:
        return self._table if self._table is not None else default_table()

    def exists(self) -> bool:
        return self._file_path.exists()

    def load(self, table: Optional[DifficultyTable] = None) -> Optional[GameSession]:
        """Return the saved session, or None if there is no usable save.

        Difficulty keys are resolved against *table*, or the store's own table.
        """
        if not self._file_path.exists():
            return None
        try:
            payload = json.loads(self._file_path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as e:
            logger.warning("Could not load saved game from %s: %s", self._file_path, e)
            return None

        try:
            session = GameSession.from_dict(payload)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("Saved game in %s is malformed: %s", self._file_path, e)
            return None

        self._resolve_difficulties(session, table if table is not None else self.table)
        return session

    def _resolve_difficulties(self, session: GameSession, table: DifficultyTable) -> None:
        tile_map = session.current_map
        tile_map.difficulty = table.resolve(tile_map.difficulty)
        for row in tile_map.tiles:
            for tile in row:
                if tile.challenge is not None:
                    tile.challenge = self._resolve_challenge(tile.challenge, table)
        for mob in tile_map.mobs:
            mob.challenge = self._resolve_challenge(mob.challenge, table)

    @staticmethod
    def _resolve_challenge(challenge: MathChallenge, table: DifficultyTable) -> MathChallenge:
        difficulty = table.resolve(challenge.difficulty)
        if difficulty == challenge.difficulty:
            return challenge
        return dataclasses.replace(challenge, difficulty=difficulty)

    def save(self, session: Optional[GameSession]) -> None:
        """Persist *session*; passing None removes the save file."""
        if session is None:
            self.clear()
            return
        self._file_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            self._file_path.write_text(json.dumps(session.to_dict(), indent=2), encoding="utf-8")
        except OSError as e:
            logger.warning("Could not save game to %s: %s", self._file_path, e)

    def clear(self) -> None:
        try:
            self._file_path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning("Could not remove saved game %s: %s", self._file_path, e)
