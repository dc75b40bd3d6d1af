"""
Land Analyzer - Classifies every land of an AllLands reply.

Each unlocked land lands in exactly one bucket:
1. empty        - no plant, or a plant without phases
2. dead         - current phase is DEAD
3. harvestable  - current phase is MATURE
4. growing      - anything else

Growing lands are additionally flagged for water / weeds / bugs. Locked lands
are left out of every bucket and out of the unlocked count, but still show up
in the status lines.

The current phase is decided against server time, not local time: phases
carry server begin timestamps and the local clock may be skewed.
"""

import logging
from typing import List, Optional, Sequence, Tuple

from constants import LANDS_PER_LINE, NAME_DISPLAY_WIDTH, PHASE_NAMES, PlantPhase
from game_config import GameConfig
from .models import (
    FarmSnapshot,
    GrowthPhase,
    HarvestInfo,
    Land,
    LandAnalysis,
    LandSnapshot,
)

logger = logging.getLogger(__name__)


def format_grow_time(seconds: int) -> str:
    if seconds < 60:
        return f"{seconds}s"
    if seconds < 3600:
        return f"{seconds // 60}m"
    hours = seconds // 3600
    mins = (seconds % 3600) // 60
    return f"{hours}h{mins}m" if mins > 0 else f"{hours}h"


def format_land_prefix(land_id: int) -> str:
    return f"#{land_id}  " if land_id < 10 else f"#{land_id} "


def current_phase(phases: Sequence[GrowthPhase], now_sec: int) -> Optional[GrowthPhase]:
    """
    The phase the plant is in right now.

    Scans from the end for the last phase that has started (begin time set
    and not in the future). When none has started, the first phase wins.
    """
    if not phases:
        return None
    for phase in reversed(phases):
        if 0 < phase.begin_time <= now_sec:
            return phase
    # TODO: check against server traces whether a plant can really have no started phase
    return phases[0]


def remaining_to_mature(
    phases: Sequence[GrowthPhase], now_sec: int, total_grow_time: int
) -> Tuple[int, bool]:
    """
    Seconds until the plant matures, and whether that number is known.

    Prefers the MATURE phase begin time; falls back to total grow time minus
    time since the earliest phase began.
    """
    if not phases:
        return 0, False
    mature_begin = 0
    earliest_begin = 0
    for phase in phases:
        begin = phase.begin_time
        if begin > 0 and (earliest_begin == 0 or begin < earliest_begin):
            earliest_begin = begin
        if phase.phase == PlantPhase.MATURE and begin > 0 and (mature_begin == 0 or begin < mature_begin):
            mature_begin = begin
    if mature_begin > 0:
        return max(0, mature_begin - now_sec), True
    if total_grow_time > 0 and earliest_begin > 0:
        elapsed = max(0, now_sec - earliest_begin)
        return max(0, total_grow_time - elapsed), True
    return 0, False


def _elapsed(threshold: int, now_sec: int) -> bool:
    return 0 < threshold <= now_sec


def build_farm_lines(summaries: List[str]) -> List[str]:
    return [
        " | ".join(summaries[i:i + LANDS_PER_LINE])
        for i in range(0, len(summaries), LANDS_PER_LINE)
    ]


def _summary(item: LandSnapshot, remaining_sec: int) -> str:
    prefix = format_land_prefix(item.id)
    if item.type == "lock":
        return f"{prefix}lock"
    if item.type == "empty":
        return f"{prefix}empty"
    if item.type == "dead":
        return f"{prefix}{item.name} dead"
    total_str = format_grow_time(item.total_grow_time) if item.total_grow_time > 0 else "?"
    if item.type == "mature":
        return f"{prefix}{item.name} {format_grow_time(0)}/{total_str}"
    return f"{prefix}{item.name} {format_grow_time(remaining_sec)}/{total_str}"


class LandAnalyzer:
    """Turns raw lands into action buckets, a snapshot and status lines."""

    def __init__(self, game_config: GameConfig, name_width: int = NAME_DISPLAY_WIDTH):
        self.game_config = game_config
        self.name_width = name_width

    def _display_name(self, plant_id: int, server_name: str) -> str:
        name = self.game_config.plant_name(plant_id)
        if name == f"Plant {plant_id}" and server_name:
            name = server_name
        return name[:self.name_width]

    def analyze(self, lands: List[Land], now_sec: int) -> LandAnalysis:
        """
        Classify lands at the given server time.

        Args:
            lands: Lands from the AllLands reply
            now_sec: Current server time in seconds

        Returns:
            LandAnalysis with buckets, snapshots and status lines
        """
        result = LandAnalysis(server_time_sec=now_sec)

        for land in lands:
            if not land.unlocked:
                result.land_snapshots.append(LandSnapshot(id=land.id, type="lock"))
                continue
            result.unlocked_count += 1

            plant = land.plant
            phase = current_phase(plant.phases, now_sec) if plant else None
            if plant is None or phase is None:
                result.empty.append(land.id)
                result.land_snapshots.append(LandSnapshot(id=land.id, type="empty"))
                continue

            name = self._display_name(plant.id, plant.name)
            total_grow_time = self.game_config.grow_time(plant.id)

            if phase.phase == PlantPhase.DEAD:
                result.dead.append(land.id)
                result.land_snapshots.append(LandSnapshot(id=land.id, type="dead", name=name))
                continue

            if phase.phase == PlantPhase.MATURE:
                result.harvestable.append(land.id)
                result.harvestable_info.append(HarvestInfo(
                    land_id=land.id,
                    plant_id=plant.id,
                    name=self.game_config.plant_name(plant.id),
                    exp=self.game_config.plant_exp(plant.id),
                ))
                result.land_snapshots.append(LandSnapshot(
                    id=land.id, type="mature", name=name, total_grow_time=total_grow_time,
                ))
                continue

            needs = []
            if plant.dry_num > 0 or _elapsed(phase.dry_time, now_sec):
                result.need_water.append(land.id)
                needs.append("water")
            if plant.weed_owners or _elapsed(phase.weeds_time, now_sec):
                result.need_weed.append(land.id)
                needs.append("weeds")
            if plant.insect_owners or _elapsed(phase.insect_time, now_sec):
                result.need_bug.append(land.id)
                needs.append("bugs")

            result.growing.append(land.id)
            remaining, known = remaining_to_mature(plant.phases, now_sec, total_grow_time)
            if known and (result.min_remaining_sec is None or remaining < result.min_remaining_sec):
                result.min_remaining_sec = remaining
            result.land_snapshots.append(LandSnapshot(
                id=land.id,
                type="growing",
                name=name,
                total_grow_time=total_grow_time,
                remaining_sec=remaining,
                remaining_known=known,
            ))
            if needs:
                logger.debug(
                    f"Land #{land.id} ({name}) {PHASE_NAMES.get(phase.phase, phase.phase)} needs {','.join(needs)}"
                )

        result.farm_lines = build_farm_lines(
            [_summary(item, item.remaining_sec) for item in result.land_snapshots]
        )
        return result


def lines_from_snapshot(snapshot: Optional[FarmSnapshot], now_sec: int) -> Optional[List[str]]:
    """
    Redraw status lines from a cached snapshot without asking the server.

    Known remaining times are advanced by the server time elapsed since the
    snapshot was taken.
    """
    if not snapshot or not snapshot.land_snapshots:
        return None
    elapsed = max(0, now_sec - snapshot.server_time_sec)
    summaries = []
    for item in snapshot.land_snapshots:
        remaining = item.remaining_sec
        if item.remaining_known:
            remaining = max(0, remaining - elapsed)
        summaries.append(_summary(item, remaining))
    return build_farm_lines(summaries)
