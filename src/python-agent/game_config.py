"""
Game Config - static plant, seed and level tables.

Loaded once at startup from the game data directory:
- Plant.json        plant id -> name, seed id, fruit, grow_phases, exp
- RoleLevel.json    level -> cumulative experience
- seed_shop.json    seed shop export (seed id, goods id, price, level...)

Only the fields the farm keeper consumes are interpreted; everything else
in the exports is ignored.

Usage:
    from game_config import GameConfig

    config = GameConfig.load("./data/game")
    config.plant_name(1020002)     # "Carrot"
    config.grow_time(1020002)      # 3600
"""

import json
import logging
import re
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from planning.models import to_int

logger = logging.getLogger(__name__)

PLANT_FILE = "Plant.json"
ROLE_LEVEL_FILE = "RoleLevel.json"
SEED_SHOP_FILE = "seed_shop.json"

# "seed:30;sprout:30;mature:0;"
_PHASE_SECONDS = re.compile(r":(\d+)")


def _load_json(path: Path) -> Any:
    if not path.exists():
        logger.warning(f"Game data file not found: {path}")
        return None
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        logger.warning(f"Failed to load {path.name}: {e}")
        return None


def _rows(data: Any, *keys: str) -> List[Dict[str, Any]]:
    """Exports are either a bare list or a dict wrapping one under a known key."""
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        for key in keys:
            if isinstance(data.get(key), list):
                return data[key]
    return []


def parse_grow_phases(grow_phases: str) -> int:
    """Total seconds of a "name:seconds;" phase string."""
    if not grow_phases:
        return 0
    total = 0
    for part in grow_phases.split(";"):
        match = _PHASE_SECONDS.search(part)
        if match:
            total += int(match.group(1))
    return total


class GameConfig:
    """Lookups over the static game tables."""

    def __init__(
        self,
        plants: Optional[List[Dict[str, Any]]] = None,
        role_levels: Optional[List[Dict[str, Any]]] = None,
        seed_shop_rows: Optional[List[Dict[str, Any]]] = None,
    ):
        self._plants: Dict[int, Dict[str, Any]] = {}
        self._seed_to_plant: Dict[int, Dict[str, Any]] = {}
        self._fruit_to_plant: Dict[int, Dict[str, Any]] = {}
        for plant in plants or []:
            plant_id = to_int(plant.get("id"))
            self._plants[plant_id] = plant
            seed_id = to_int(plant.get("seed_id"))
            if seed_id:
                self._seed_to_plant[seed_id] = plant
            fruit = plant.get("fruit") or {}
            fruit_id = to_int(fruit.get("id")) if isinstance(fruit, dict) else 0
            if fruit_id:
                self._fruit_to_plant[fruit_id] = plant

        self._level_exp: Optional[Dict[int, int]] = None
        if role_levels:
            self._level_exp = {to_int(r.get("level")): to_int(r.get("exp")) for r in role_levels}

        self.seed_shop_rows: List[Dict[str, Any]] = list(seed_shop_rows or [])

    @classmethod
    def load(cls, data_dir: str) -> "GameConfig":
        """Load all tables from a directory; missing files leave that table empty."""
        base = Path(data_dir)
        plants = _rows(_load_json(base / PLANT_FILE), "plants", "rows")
        role_levels = _rows(_load_json(base / ROLE_LEVEL_FILE), "levels", "rows")
        seed_rows = _rows(_load_json(base / SEED_SHOP_FILE), "rows", "seeds")
        logger.info(
            f"Loaded game config: {len(plants)} plants, "
            f"{len(role_levels)} levels, {len(seed_rows)} seeds"
        )
        return cls(plants=plants, role_levels=role_levels, seed_shop_rows=seed_rows)

    # ------------------------------------------------------------------
    # Plants
    # ------------------------------------------------------------------

    def plant_by_id(self, plant_id: int) -> Optional[Dict[str, Any]]:
        return self._plants.get(plant_id)

    def plant_by_seed_id(self, seed_id: int) -> Optional[Dict[str, Any]]:
        return self._seed_to_plant.get(seed_id)

    def plant_by_fruit_id(self, fruit_id: int) -> Optional[Dict[str, Any]]:
        return self._fruit_to_plant.get(fruit_id)

    def plant_name(self, plant_id: int) -> str:
        plant = self._plants.get(plant_id)
        return plant["name"] if plant and plant.get("name") else f"Plant {plant_id}"

    def seed_name(self, seed_id: int) -> str:
        plant = self._seed_to_plant.get(seed_id)
        return plant["name"] if plant and plant.get("name") else f"Seed {seed_id}"

    def fruit_name(self, fruit_id: int) -> str:
        plant = self.plant_by_fruit_id(fruit_id)
        return plant["name"] if plant and plant.get("name") else f"Fruit {fruit_id}"

    def plant_fruit(self, plant_id: int) -> Optional[Dict[str, Any]]:
        """Fruit id/count/name a harvest of this plant gives, if configured."""
        plant = self._plants.get(plant_id)
        fruit = plant.get("fruit") if plant else None
        if not isinstance(fruit, dict):
            return None
        return {"id": to_int(fruit.get("id")), "count": to_int(fruit.get("count")), "name": plant.get("name", "")}

    def grow_time(self, plant_id: int) -> int:
        """Total seconds from seed to mature, 0 when unknown."""
        plant = self._plants.get(plant_id)
        if not plant:
            return 0
        return parse_grow_phases(plant.get("grow_phases") or "")

    def plant_exp(self, plant_id: int) -> int:
        plant = self._plants.get(plant_id)
        return to_int(plant.get("exp")) if plant else 0

    # ------------------------------------------------------------------
    # Levels
    # ------------------------------------------------------------------

    @property
    def level_exp_table(self) -> Optional[Dict[int, int]]:
        return self._level_exp

    def level_exp_progress(self, level: int, total_exp: int) -> Tuple[int, int]:
        """(exp into current level, exp needed for the level) or (0, 0) without a table."""
        if not self._level_exp or level <= 0:
            return 0, 0
        start = self._level_exp.get(level, 0)
        next_start = self._level_exp.get(level + 1) or start + 100000
        return max(0, total_exp - start), next_start - start
