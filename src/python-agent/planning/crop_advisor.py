"""
Crop Advisor - Seed selection by farm experience per hour.

Answers: "Which seed gives the most experience on this farm right now?"
- Considers player level and how many lands are unlocked
- Ranks separately for planting bare and planting with normal fertilizer
- Counts replanting time: lands are planted one drag at a time
- Optionally restricted to what the seed shop sells today

Experience per hour for a seed:

    cycle_sec = grow_time (+ fertilizer cut) + lands / plant_speed
    exp_per_hour = lands * harvest_exp / cycle_sec * 3600
"""

import logging
import math
from typing import Any, Dict, List, Optional, Set

from constants import (
    FERT_MIN_REDUCE_SEC,
    FERT_PERCENT,
    NO_FERT_PLANT_SPEED_PER_SEC,
    NORMAL_FERT_PLANT_SPEED_PER_SEC,
)
from game_config import GameConfig
from .models import BestSeedCache, BestSeeds, SeedCandidate, SeedChoice, to_int, to_num

logger = logging.getLogger(__name__)


def calc_effective_grow_time(grow_sec: float) -> float:
    """Grow time with normal fertilizer: 20% off, at least 30s off, never below 1s."""
    reduce = max(grow_sec * FERT_PERCENT, FERT_MIN_REDUCE_SEC)
    return max(1, grow_sec - reduce)


def calculate_exp_per_hour(lands: int, exp_per_cycle: float, cycle_sec: float) -> float:
    if cycle_sec <= 0:
        return 0.0
    return lands * exp_per_cycle / cycle_sec * 3600


def format_exp_per_hour(value: Optional[float]) -> str:
    """Two decimals, trailing .00 dropped."""
    if value is None or not math.isfinite(value):
        return "?"
    fixed = f"{value:.2f}"
    return fixed[:-3] if fixed.endswith(".00") else fixed


def build_best_seed_line(best_no_fert: Optional[SeedChoice], best_normal_fert: Optional[SeedChoice]) -> str:
    if not best_no_fert or not best_normal_fert:
        return ""
    no_str = f"{best_no_fert.name} {format_exp_per_hour(best_no_fert.exp_per_hour)}/h"
    fert_str = f"{best_normal_fert.name} {format_exp_per_hour(best_normal_fert.exp_per_hour)}/h"
    return f"Best: no-fert {no_str} | fert {fert_str}"


def pick_best_seed(rows: List[SeedCandidate], key: str) -> Optional[SeedCandidate]:
    """First row with the highest value of `key` (ties keep the earlier row)."""
    if not rows:
        return None
    best = rows[0]
    for row in rows[1:]:
        if getattr(row, key) > getattr(best, key):
            best = row
    return best


class CropAdvisor:
    """
    Ranks seed shop rows by farm experience per hour.

    The yield table only depends on the unlocked land count, so it is built
    once per count and reused until the count changes.

    Usage:
        advisor = CropAdvisor(game_config)
        best = advisor.get_best_seeds_for_level(level=12, lands=18)
        if best:
            print(best.best_normal_fert.name)
    """

    def __init__(self, game_config: GameConfig):
        self.game_config = game_config
        self._cache_lands = 0
        self._cache_rows: List[SeedCandidate] = []

    def normalize_seed_row(self, raw: Dict[str, Any]) -> SeedCandidate:
        """Fill in plant id, name, exp and grow time from Plant.json when the row lacks them."""
        seed_id = to_int(raw.get("seedId") or raw.get("seed_id") or raw.get("id"))
        goods_id = to_int(raw.get("goodsId") or raw.get("goods_id"))
        required_level = to_int(raw.get("requiredLevel") or raw.get("required_level") or 1, 1)
        price = to_int(raw.get("price"))
        unlocked = raw.get("unlocked") is not False
        plant_id = to_int(raw.get("plantId") or raw.get("plant_id"))

        plant = self.game_config.plant_by_seed_id(seed_id) if seed_id else None
        if not plant_id and plant:
            plant_id = to_int(plant.get("id"))

        exp_harvest = to_num(raw.get("exp"), to_num(plant.get("exp"), 0) if plant else 0)
        grow_time = to_int(raw.get("growTimeSec") or raw.get("growTime") or raw.get("grow_time"))
        if grow_time <= 0 and plant_id:
            grow_time = self.game_config.grow_time(plant_id)

        name = raw.get("name") or (plant.get("name") if plant else "") or f"Seed {seed_id}"

        return SeedCandidate(
            seed_id=seed_id,
            goods_id=goods_id,
            plant_id=plant_id,
            name=name,
            required_level=required_level,
            price=price,
            unlocked=unlocked,
            exp_harvest=exp_harvest,
            grow_time_sec=grow_time,
        )

    def build_seed_yield_rows(self, lands: int) -> List[SeedCandidate]:
        """Yield table for every usable seed row at this land count."""
        land_count = max(1, int(to_num(lands, 1)))
        if self._cache_lands == land_count and self._cache_rows:
            return self._cache_rows

        plant_sec_no_fert = land_count / NO_FERT_PLANT_SPEED_PER_SEC
        plant_sec_normal_fert = land_count / NORMAL_FERT_PLANT_SPEED_PER_SEC

        rows = []
        for raw in self.game_config.seed_shop_rows:
            seed = self.normalize_seed_row(raw)
            if not seed.seed_id or seed.grow_time_sec <= 0:
                continue

            # Clearing exp is not counted, only the harvest
            cycle_no_fert = seed.grow_time_sec + plant_sec_no_fert
            cycle_normal_fert = calc_effective_grow_time(seed.grow_time_sec) + plant_sec_normal_fert

            seed.exp_per_hour_no_fert = calculate_exp_per_hour(land_count, seed.exp_harvest, cycle_no_fert)
            seed.exp_per_hour_normal_fert = calculate_exp_per_hour(land_count, seed.exp_harvest, cycle_normal_fert)
            rows.append(seed)

        logger.debug(f"Built seed yield table for {land_count} lands ({len(rows)} seeds)")
        self._cache_lands = land_count
        self._cache_rows = rows
        return rows

    def get_best_seeds_for_level(
        self, level: int, lands: int, seed_ids: Optional[Set[int]] = None
    ) -> Optional[BestSeeds]:
        """
        Best seeds for the player's level and land count.

        Args:
            level: Current player level
            lands: Unlocked land count
            seed_ids: Only consider these seed ids (e.g. what the shop sells)

        Returns:
            BestSeeds for both rankings, or None if no seed qualifies
        """
        lv = max(1, int(to_num(level, 1)))
        rows = self.build_seed_yield_rows(lands)
        available = [r for r in rows if r.required_level <= lv and r.unlocked]
        if seed_ids is not None:
            available = [r for r in available if r.seed_id in seed_ids]
        if not available:
            return None

        best_no_fert = pick_best_seed(available, "exp_per_hour_no_fert")
        best_normal_fert = pick_best_seed(available, "exp_per_hour_normal_fert")
        if not best_no_fert or not best_normal_fert:
            return None

        return BestSeeds(
            best_no_fert=SeedChoice(
                seed_id=best_no_fert.seed_id,
                goods_id=best_no_fert.goods_id,
                name=best_no_fert.name,
                price=best_no_fert.price,
                exp_per_hour=best_no_fert.exp_per_hour_no_fert,
            ),
            best_normal_fert=SeedChoice(
                seed_id=best_normal_fert.seed_id,
                goods_id=best_normal_fert.goods_id,
                name=best_normal_fert.name,
                price=best_normal_fert.price,
                exp_per_hour=best_normal_fert.exp_per_hour_normal_fert,
            ),
        )

    def format_seed_advice(self, level: int, lands: int, count: int = 3) -> str:
        """Top seeds by both rankings, for logging/display."""
        lv = max(1, int(to_num(level, 1)))
        rows = [r for r in self.build_seed_yield_rows(lands) if r.required_level <= lv and r.unlocked]
        if not rows:
            return f"No seeds available at level {lv} with {lands} lands"

        lines = [f"Seed advice - Lv{lv}, {lands} lands:"]
        by_bare = sorted(rows, key=lambda r: r.exp_per_hour_no_fert, reverse=True)[:count]
        by_fert = sorted(rows, key=lambda r: r.exp_per_hour_normal_fert, reverse=True)[:count]
        lines.append("  no fertilizer:")
        for i, row in enumerate(by_bare, 1):
            lines.append(f"    {i}. {row.name}: {format_exp_per_hour(row.exp_per_hour_no_fert)} exp/h")
        lines.append("  normal fertilizer:")
        for i, row in enumerate(by_fert, 1):
            lines.append(f"    {i}. {row.name}: {format_exp_per_hour(row.exp_per_hour_normal_fert)} exp/h")
        return "\n".join(lines)

    def ensure_cache(self, cache: BestSeedCache, level: int, lands: int) -> Optional[BestSeedCache]:
        """
        Refresh the session's best-seed cache for (level, lands) if it is stale.

        Returns the cache, or None when level/lands are unknown or no seed qualifies.
        """
        lv = to_int(level)
        land_count = to_int(lands)
        if not lv or not land_count:
            return None
        if cache.matches(lv, land_count):
            return cache

        best = self.get_best_seeds_for_level(lv, land_count)
        if not best:
            return None

        cache.level = lv
        cache.lands = land_count
        cache.best_no_fert = best.best_no_fert
        cache.best_normal_fert = best.best_normal_fert
        cache.line = build_best_seed_line(best.best_no_fert, best.best_normal_fert)
        logger.info(f"Best seeds for Lv{lv} with {land_count} lands: {cache.line}")
        return cache
