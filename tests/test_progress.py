"""Tests for mathcash.core.progress – session persistence."""

from __future__ import annotations

import json
import random
from pathlib import Path

import pytest
import yaml

from mathcash.core.difficulty import DifficultyTable
from mathcash.core.models import GameSession
from mathcash.core.progress import SessionStore
from mathcash.core.session import GameStateManager


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture()
def store(tmp_path: Path) -> SessionStore:
    """SessionStore backed by a temp file so tests don't touch ~/.mathcash."""
    return SessionStore(tmp_path / "saves" / "session.json")


@pytest.fixture()
def session() -> GameSession:
    return GameStateManager().create_new_session("Ada", random.Random(1))


# ---------------------------------------------------------------------------
# SessionStore – fresh state
# ---------------------------------------------------------------------------

class TestSessionStoreFresh:
    def test_no_file_returns_none(self, store: SessionStore):
        assert store.load() is None
        assert store.exists() is False

    def test_default_location(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
        monkeypatch.setattr(Path, "home", lambda: tmp_path)
        assert SessionStore().file_path == tmp_path / ".mathcash" / "session.json"


# ---------------------------------------------------------------------------
# SessionStore – save and load
# ---------------------------------------------------------------------------

class TestSaveLoad:
    def test_round_trip(self, store: SessionStore, session: GameSession):
        store.save(session)
        assert store.load() == session

    def test_creates_parent_directory(self, store: SessionStore, session: GameSession):
        store.save(session)
        assert store.file_path.exists()

    def test_written_as_json(self, store: SessionStore, session: GameSession):
        store.save(session)
        data = json.loads(store.file_path.read_text(encoding="utf-8"))
        assert data["player"]["name"] == "Ada"
        assert data["currentMap"]["id"] == "map-1"
        assert len(data["currentMap"]["tiles"]) == session.current_map.height

    def test_save_overwrites(self, store: SessionStore, session: GameSession):
        store.save(session)
        session.player.currency = 77
        store.save(session)
        assert store.load().player.currency == 77

    def test_save_none_removes_file(self, store: SessionStore, session: GameSession):
        store.save(session)
        store.save(None)
        assert store.exists() is False

    def test_clear(self, store: SessionStore, session: GameSession):
        store.save(session)
        store.clear()
        assert store.load() is None

    def test_clear_without_file(self, store: SessionStore):
        store.clear()
        assert store.exists() is False


# ---------------------------------------------------------------------------
# SessionStore – loading edge cases
# ---------------------------------------------------------------------------

class TestLoadEdgeCases:
    def _write(self, store: SessionStore, text: str) -> None:
        store.file_path.parent.mkdir(parents=True, exist_ok=True)
        store.file_path.write_text(text, encoding="utf-8")

    def test_corrupt_json(self, store: SessionStore):
        self._write(store, "NOT VALID JSON")
        assert store.load() is None

    def test_missing_player(self, store: SessionStore, session: GameSession):
        data = session.to_dict()
        del data["player"]
        self._write(store, json.dumps(data))
        assert store.load() is None

    def test_not_a_dict(self, store: SessionStore):
        self._write(store, json.dumps(["a", "b"]))
        assert store.load() is None

    def test_bad_tile_grid(self, store: SessionStore, session: GameSession):
        data = session.to_dict()
        data["currentMap"]["tiles"] = data["currentMap"]["tiles"][:-1]
        self._write(store, json.dumps(data))
        assert store.load() is None

    def test_unknown_difficulty_falls_back(self, store: SessionStore, session: GameSession):
        data = session.to_dict()
        data["currentMap"]["difficulty"] = "legendary"
        self._write(store, json.dumps(data))
        loaded = store.load()
        assert loaded is not None
        assert loaded.current_map.difficulty == "infant"

    def test_warning_logged(self, store: SessionStore, caplog: pytest.LogCaptureFixture):
        self._write(store, "{")
        store.load()
        assert "Could not load saved game" in caplog.text

    def test_position_outside_map(self, store: SessionStore, session: GameSession):
        data = session.to_dict()
        data["player"]["currentPosition"] = {"x": 99, "y": 99}
        self._write(store, json.dumps(data))
        assert store.load() is None

    def test_player_on_blocked_tile(self, store: SessionStore, session: GameSession):
        blocked = next(t for row in session.current_map.tiles for t in row if not t.is_accessible)
        data = session.to_dict()
        data["player"]["currentPosition"] = blocked.position.to_dict()
        self._write(store, json.dumps(data))
        assert store.load() is None

    def test_boss_outside_map(self, store: SessionStore, session: GameSession):
        data = session.to_dict()
        data["currentMap"]["bossPosition"] = {"x": 0, "y": 40}
        self._write(store, json.dumps(data))
        assert store.load() is None

    def test_mob_outside_map(self, store: SessionStore, session: GameSession):
        data = session.to_dict()
        data["currentMap"]["mobs"][0]["position"] = {"x": 16, "y": 0}
        self._write(store, json.dumps(data))
        assert store.load() is None

    def test_malformed_warning_logged(self, store: SessionStore, session: GameSession,
                                      caplog: pytest.LogCaptureFixture):
        data = session.to_dict()
        data["player"]["currentPosition"] = {"x": 99, "y": 99}
        self._write(store, json.dumps(data))
        store.load()
        assert "is malformed" in caplog.text

    def test_challenge_difficulties_resolved(self, store: SessionStore, session: GameSession):
        data = session.to_dict()
        data["currentMap"]["mobs"][0]["challenge"]["difficulty"] = "bogus"
        boss = data["currentMap"]["bossPosition"]
        data["currentMap"]["tiles"][boss["y"]][boss["x"]]["challenge"]["difficulty"] = "bogus"
        self._write(store, json.dumps(data))
        loaded = store.load()
        assert loaded is not None
        assert loaded.current_map.mobs[0].challenge.difficulty == "infant"
        assert loaded.current_map.boss_tile.challenge.difficulty == "infant"


# ---------------------------------------------------------------------------
# SessionStore – custom tier table
# ---------------------------------------------------------------------------

@pytest.fixture()
def custom_table(tmp_path: Path) -> DifficultyTable:
    d = tmp_path / "tiers"
    d.mkdir()
    for i, key in enumerate(["calm", "storm"]):
        data = {"key": key, "title": key.title(), "operand_range": [1, 5],
                "operations": ["addition"], "reward": 5, "density": 0.2}
        (d / f"tier{i}.yaml").write_text(yaml.dump(data), encoding="utf-8")
    return DifficultyTable(d)


class TestCustomTable:
    def test_store_table_used(self, tmp_path: Path, session: GameSession, custom_table: DifficultyTable):
        store = SessionStore(tmp_path / "session.json", table=custom_table)
        store.save(session)
        loaded = store.load()
        assert loaded.current_map.difficulty == "calm"
        assert all(m.challenge.difficulty == "calm" for m in loaded.current_map.mobs)

    def test_table_argument_overrides(self, store: SessionStore, session: GameSession,
                                      custom_table: DifficultyTable):
        store.save(session)
        assert store.load(custom_table).current_map.difficulty == "calm"
        assert store.load().current_map.difficulty == "infant"

    def test_manager_resolves_with_its_table(self, store: SessionStore, session: GameSession,
                                             custom_table: DifficultyTable):
        store.save(session)
        manager = GameStateManager(store=store, table=custom_table)
        assert manager.load_existing_session().current_map.boss_tile.challenge.difficulty == "calm"
