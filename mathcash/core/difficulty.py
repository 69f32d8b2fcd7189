from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml

from mathcash.core.arithmetic import OPERATIONS, OperandRange

logger = logging.getLogger(__name__)

TIERS_DIR = Path(__file__).resolve().parent.parent / "data" / "tiers"


@dataclass(frozen=True)
class DifficultyTier:
    key: str
    name: str
    operand_range: OperandRange
    operations: Tuple[str, ...]
    reward: int
    density: float


class DifficultyTable:
    """Ordered difficulty progression loaded from ``tier<N>.yaml`` files.

    File order is progression order. The first tier is the fallback for
    keys that are not in the table (e.g. from an old or corrupted save).
    """

    def __init__(self, base_dir: Optional[Path] = None) -> None:
        self._base_dir = base_dir or TIERS_DIR
        self._tiers = self._load_tiers()
        self._order = list(self._tiers)

    def all(self) -> List[DifficultyTier]:
        return list(self._tiers.values())

    def keys(self) -> List[str]:
        return list(self._order)

    def get(self, key: str) -> DifficultyTier:
        return self._tiers[key]

    @property
    def default(self) -> str:
        return self._order[0]

    @property
    def hardest(self) -> str:
        return self._order[-1]

    def index(self, key: str) -> int:
        return self._order.index(self.resolve(key))

    def resolve(self, raw: Any) -> str:
        """Return *raw* if it names a tier, otherwise the default tier."""
        if isinstance(raw, str) and raw in self._tiers:
            return raw
        logger.warning("Unknown difficulty %r, falling back to %r", raw, self.default)
        return self.default

    def next(self, current: Any) -> str:
        """Tier after *current*; the hardest tier maps to itself."""
        i = self._order.index(self.resolve(current))
        return self._order[min(i + 1, len(self._order) - 1)]

    def _load_tiers(self) -> Dict[str, DifficultyTier]:
        base_dir = self._base_dir
        if not base_dir.exists():
            raise FileNotFoundError(f"Tiers directory not found: {base_dir}")

        tiers: Dict[str, DifficultyTier] = {}

        def _sort_key(p: Path) -> tuple[int, str]:
            m = re.match(r"^tier(\d+)$", p.stem)
            if m:
                return (int(m.group(1)), p.stem)
            return (10**9, p.stem)

        for tier_path in sorted(base_dir.glob("tier*.yaml"), key=_sort_key):
            tier = _parse_tier(tier_path)
            if tier.key in tiers:
                raise ValueError(f"{tier_path.name}: duplicate tier key {tier.key!r}")
            tiers[tier.key] = tier

        if not tiers:
            raise ValueError(f"No tier files (tier*.yaml) found in {base_dir}")
        return tiers


def _parse_tier(path: Path) -> DifficultyTier:
    raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    if not raw or not isinstance(raw, dict):
        raise ValueError(f"{path.name}: expected YAML with 'key', 'title' and 'operand_range'")

    key = raw.get("key")
    if not key or not isinstance(key, str):
        raise ValueError(f"{path.name}: missing or invalid 'key'")
    title = raw.get("title")
    if not title or not isinstance(title, str):
        raise ValueError(f"{path.name}: missing or invalid 'title'")

    bounds = raw.get("operand_range")
    if not isinstance(bounds, list) or len(bounds) != 2:
        raise ValueError(f"{path.name}: 'operand_range' must be a [min, max] pair")
    try:
        operand_range = OperandRange(int(bounds[0]), int(bounds[1]))
    except (TypeError, ValueError) as e:
        raise ValueError(f"{path.name}: {e}") from e

    operations = raw.get("operations")
    if not isinstance(operations, list) or not operations:
        raise ValueError(f"{path.name}: 'operations' has no entries")
    unknown = [op for op in operations if op not in OPERATIONS]
    if unknown:
        raise ValueError(f"{path.name}: unsupported operations {unknown}")

    reward = raw.get("reward")
    if not isinstance(reward, int) or reward <= 0:
        raise ValueError(f"{path.name}: 'reward' must be a positive integer")

    density = raw.get("density")
    if not isinstance(density, (int, float)) or not 0.0 <= density <= 1.0:
        raise ValueError(f"{path.name}: 'density' must be between 0 and 1")

    return DifficultyTier(
        key=key.strip(),
        name=title.strip(),
        operand_range=operand_range,
        operations=tuple(operations),
        reward=reward,
        density=float(density),
    )


@lru_cache(maxsize=None)
def default_table() -> DifficultyTable:
    """The packaged table, loaded once."""
    return DifficultyTable()


def get_next_difficulty(current: str) -> str:
    return default_table().next(current)


def resolve_difficulty(raw: Any) -> str:
    return default_table().resolve(raw)
