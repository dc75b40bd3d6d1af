"""
Farm Executor - Turns a land analysis into remote operations.

Sits between the scheduler and the farm client:
    FarmAgent → FarmExecutor → FarmClient

Two kinds of operations:
- Batch (water, weed, bug, harvest, clear): one call for any number of lands.
  Water/weed/bug run concurrently; harvest runs after them because the
  harvested lands feed the replant step.
- Per-land (plant, fertilize): one call per land with a short pause between
  calls, the same cadence as dragging across lands in game. The server
  rejects faster bursts.

Replanting is strictly ordered:
    clear → fertilizer stock → pick seed → buy → plant → fertilize

No step raises to the caller. A failed step logs a warning and the pipeline
returns what it achieved so far; the next farm check is the retry.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Optional

from constants import (
    FERTILIZER_LOW_THRESHOLD,
    NORMAL_FERTILIZER_ID,
    PER_PLOT_INTERVAL_SEC,
    SEED_SHOP_ID,
)
from farm_client import FarmClient, ShopGoods
from game_config import GameConfig
from planning.crop_advisor import CropAdvisor
from planning.land_analyzer import format_grow_time
from planning.models import LandAnalysis
from session import FarmSession
from .inventory_manager import InventoryManager

logger = logging.getLogger(__name__)


@dataclass
class SeedPick:
    """A purchasable seed chosen for replanting."""
    goods_id: int
    seed_id: int
    price: int
    required_level: int
    mode_label: str = ""


@dataclass
class CycleReport:
    """What one executor pass did, for the cycle log line."""
    actions: List[str] = field(default_factory=list)
    harvested: List[int] = field(default_factory=list)
    planted: int = 0

    def to_log(self) -> str:
        return " → " + "/".join(self.actions) if self.actions else ""


class FarmExecutor:
    """
    Runs the remote operations implied by one LandAnalysis.

    Usage:
        executor = FarmExecutor(client, session, advisor, game_config)
        report = await executor.execute(analysis)
    """

    def __init__(
        self,
        client: FarmClient,
        session: FarmSession,
        advisor: CropAdvisor,
        game_config: GameConfig,
        plant_interval: float = PER_PLOT_INTERVAL_SEC,
        fertilizer_threshold: int = FERTILIZER_LOW_THRESHOLD,
        fertilizer_id: int = NORMAL_FERTILIZER_ID,
        seed_shop_id: int = SEED_SHOP_ID,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.client = client
        self.session = session
        self.advisor = advisor
        self.game_config = game_config
        self.plant_interval = plant_interval
        self.fertilizer_threshold = fertilizer_threshold
        self.fertilizer_id = fertilizer_id
        self.seed_shop_id = seed_shop_id
        self._sleep = sleep

    # ============================================
    # PER-LAND SEQUENCES
    # ============================================

    async def _run_per_land(
        self,
        land_ids: List[int],
        op: Callable[[int], Awaitable[object]],
        label: str,
        stop_on_failure: bool,
    ) -> List[int]:
        """Call op once per land with the drag interval in between. Returns the lands that succeeded."""
        done: List[int] = []
        for i, land_id in enumerate(land_ids):
            try:
                await op(land_id)
                done.append(land_id)
            except Exception as e:
                if stop_on_failure:
                    logger.info(f"{label} stopped at land #{land_id} after {len(done)}: {e}")
                    break
                logger.warning(f"{label} land #{land_id} failed: {e}")
            if i < len(land_ids) - 1:
                await self._sleep(self.plant_interval)
        return done

    async def fertilize(self, land_ids: List[int]) -> int:
        """Fertilize lands one by one. The first failure usually means we ran out, so stop there."""
        done = await self._run_per_land(
            land_ids,
            lambda land_id: self.client.fertilize_one(land_id, self.fertilizer_id),
            "Fertilize",
            stop_on_failure=True,
        )
        return len(done)

    async def plant_lands(self, seed_id: int, land_ids: List[int]) -> List[int]:
        """Plant lands one by one, skipping lands that fail. Returns the planted lands."""
        return await self._run_per_land(
            land_ids,
            lambda land_id: self.client.plant_one(seed_id, land_id),
            "Plant",
            stop_on_failure=False,
        )

    async def plant_seeds(self, seed_id: int, land_ids: List[int]) -> int:
        return len(await self.plant_lands(seed_id, land_ids))

    # ============================================
    # BATCH OPERATIONS
    # ============================================

    async def _batch(self, op: Callable[[List[int]], Awaitable[object]], land_ids: List[int],
                     label: str, report: CycleReport) -> bool:
        try:
            await op(land_ids)
        except Exception as e:
            logger.warning(f"{label} failed: {e}")
            return False
        report.actions.append(f"{label.lower()}{len(land_ids)}")
        return True

    async def run_batch_ops(self, analysis: LandAnalysis, report: CycleReport) -> None:
        """Weed, bug and water at once; each failure stays isolated."""
        ops = []
        if analysis.need_weed:
            ops.append(self._batch(self.client.weed_out, analysis.need_weed, "Weed", report))
        if analysis.need_bug:
            ops.append(self._batch(self.client.insecticide, analysis.need_bug, "Bug", report))
        if analysis.need_water:
            ops.append(self._batch(self.client.water_land, analysis.need_water, "Water", report))
        if ops:
            await asyncio.gather(*ops)

    async def harvest(self, analysis: LandAnalysis, report: CycleReport) -> List[int]:
        if not analysis.harvestable:
            return []
        if not await self._batch(self.client.harvest, analysis.harvestable, "Harvest", report):
            return []
        exp = sum(info.exp for info in analysis.harvestable_info)
        names = sorted({info.name for info in analysis.harvestable_info})
        logger.info(f"🌾 Harvested {len(analysis.harvestable)} lands ({', '.join(names)}) +{exp} exp")
        report.harvested = list(analysis.harvestable)
        return report.harvested

    # ============================================
    # SEED SELECTION
    # ============================================

    async def get_fertilizer_count(self) -> Optional[int]:
        """Normal fertilizer in the bag, None when the bag can't be read."""
        try:
            items = await self.client.get_bag()
        except Exception as e:
            logger.warning(f"Failed to read fertilizer count: {e}")
            return None
        return InventoryManager(items).fertilizer_count(self.fertilizer_id)

    def purchasable_seeds(self, goods: List[ShopGoods], level: int) -> List[SeedPick]:
        """Unlocked goods whose level condition is met and whose purchase limit is not used up."""
        available = []
        for item in goods:
            if not item.unlocked:
                continue
            if item.required_level and level < item.required_level:
                continue
            if item.sold_out:
                continue
            available.append(SeedPick(
                goods_id=item.id,
                seed_id=item.item_id,
                price=item.price,
                required_level=item.required_level,
            ))
        return available

    def select_best_seed(
        self, available: List[SeedPick], prefer_no_fert: bool, level: int, lands: int
    ) -> Optional[SeedPick]:
        """Best yield among the purchasable seeds, or the lowest-level seed as fallback."""
        if not available:
            return None

        mode_label = "best no-fert" if prefer_no_fert else "best fert"
        if level and lands:
            best = self.advisor.get_best_seeds_for_level(level, lands, {s.seed_id for s in available})
            if best:
                target = best.best_no_fert if prefer_no_fert else best.best_normal_fert
                for seed in available:
                    if seed.seed_id == target.seed_id:
                        seed.mode_label = mode_label
                        return seed

        fallback = sorted(available, key=lambda s: s.required_level)[0]
        fallback.mode_label = "default"
        return fallback

    async def find_best_seed(self, prefer_no_fert: bool, level: int, lands: int) -> Optional[SeedPick]:
        goods = await self.client.get_shop_goods(self.seed_shop_id)
        if not goods:
            logger.warning("Seed shop has no goods")
            return None
        available = self.purchasable_seeds(goods, self.session.user.level)
        if not available:
            logger.warning("No purchasable seeds")
            return None
        return self.select_best_seed(available, prefer_no_fert, level, lands)

    # ============================================
    # REPLANT PIPELINE
    # ============================================

    async def auto_plant(self, dead_ids: List[int], empty_ids: List[int]) -> int:
        """
        Clear, buy, plant and fertilize.

        Args:
            dead_ids: Lands with a dead or just-harvested plant (need clearing first)
            empty_ids: Lands that are already empty

        Returns:
            Number of lands planted
        """
        lands_to_plant = list(empty_ids)
        user = self.session.user

        # 1. Clear dead / harvested remains (one batched call)
        if dead_ids:
            try:
                await self.client.remove_plant(dead_ids)
                logger.info(f"Cleared {len(dead_ids)} lands ({','.join(map(str, dead_ids))})")
            except Exception as e:
                logger.warning(f"Batch clear failed: {e}")
            # Try planting them either way
            lands_to_plant.extend(dead_ids)

        if not lands_to_plant:
            return 0

        # 2. Pick a seed
        try:
            fertilizer_count = await self.get_fertilizer_count()
            prefer_no_fert = fertilizer_count is not None and fertilizer_count < self.fertilizer_threshold
            if prefer_no_fert:
                logger.info(f"Low on fertilizer ({fertilizer_count}), ranking seeds without it")

            lands_for_calc = self.session.last_unlocked_count or len(lands_to_plant)
            self.advisor.ensure_cache(self.session.best_seed_cache, user.level, lands_for_calc)
            seed = await self.find_best_seed(prefer_no_fert, user.level, lands_for_calc)
        except Exception as e:
            logger.warning(f"Seed shop query failed: {e}")
            return 0
        if not seed:
            return 0

        seed_name = self.game_config.seed_name(seed.seed_id)
        plant = self.game_config.plant_by_seed_id(seed.seed_id)
        grow_time = self.game_config.grow_time(plant["id"]) if plant else 0
        grow_str = f" grows {format_grow_time(grow_time)}" if grow_time > 0 else ""
        logger.info(f"🛒 {seed.mode_label} seed: {seed_name} ({seed.seed_id}) price={seed.price}{grow_str}")

        # 3. Buy, clamped to what the gold covers
        total_cost = seed.price * len(lands_to_plant)
        if total_cost > user.gold:
            can_buy = user.gold // seed.price if seed.price > 0 else 0
            logger.warning(f"Not enough gold: need {total_cost}, have {user.gold}")
            if can_buy <= 0:
                return 0
            lands_to_plant = lands_to_plant[:can_buy]
            logger.info(f"Gold covers only {can_buy} lands")

        seed_id = seed.seed_id
        try:
            result = await self.client.buy_goods(seed.goods_id, len(lands_to_plant), seed.price)
        except Exception as e:
            logger.warning(f"Buying seeds failed: {e}")
            return 0
        if result.get_items and result.get_items[0].id > 0:
            seed_id = result.get_items[0].id
        for item in result.cost_items:
            user.gold -= item.count
        logger.info(
            f"Bought {self.game_config.seed_name(seed_id)} x{len(lands_to_plant)} "
            f"for {seed.price * len(lands_to_plant)} gold"
        )

        # 4. Plant (one drag per land)
        planted_lands = await self.plant_lands(seed_id, lands_to_plant)
        logger.info(f"🌱 Planted {len(planted_lands)} lands ({','.join(map(str, planted_lands))})")
        if not planted_lands:
            return 0

        # 5. Fertilize what was planted
        fertilized = await self.fertilize(planted_lands)
        if fertilized > 0:
            logger.info(f"Fertilized {fertilized}/{len(planted_lands)} lands")
        return len(planted_lands)

    # ============================================
    # ENTRY POINT
    # ============================================

    async def execute(self, analysis: LandAnalysis) -> CycleReport:
        """Everything one farm check needs done."""
        report = CycleReport()

        await self.run_batch_ops(analysis, report)
        harvested = await self.harvest(analysis, report)

        dead_ids = list(analysis.dead) + harvested
        empty_ids = list(analysis.empty)
        if dead_ids or empty_ids:
            try:
                report.planted = await self.auto_plant(dead_ids, empty_ids)
                report.actions.append(f"plant{report.planted}")
            except Exception as e:
                logger.warning(f"Replant failed: {e}")
        return report
