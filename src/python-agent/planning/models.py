"""
Data models for the farm keeper.

Lands come from the AllLands reply and are rebuilt on every full check:
1. Land - one plot slot, locked or unlocked
2. Plant - what grows on an unlocked land (optional)
3. GrowthPhase - dated stage of the plant's timeline

Everything remote passes through to_num() / to_time_sec() while the models
are built, so analysis code never sees raw wire values.

Snapshots are the compact, serializable summary the scheduler keeps between
full checks to decide whether the next tick needs a remote refresh.
"""

import math
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from constants import PlantPhase


def to_num(value: Any, fallback: float = 0) -> float:
    """Decode a remote numeric field.

    Accepts ints, floats, numeric strings and 64-bit longs serialized as
    {"low": ..., "high": ...}. Anything non-finite or undecodable yields
    the fallback.
    """
    if value is None:
        return fallback
    try:
        if isinstance(value, dict) and "low" in value:
            low = int(value.get("low") or 0) & 0xFFFFFFFF
            high = int(value.get("high") or 0)
            value = (high << 32) | low
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return fallback
    if not math.isfinite(number):
        return fallback
    return int(number) if number.is_integer() else number


def to_int(value: Any, fallback: int = 0) -> int:
    return int(to_num(value, fallback))


def to_time_sec(value: Any) -> int:
    """Server timestamps come in seconds or milliseconds; normalize to seconds."""
    number = to_int(value, 0)
    if number <= 0:
        return 0
    return number // 1000 if number > 1e12 else number


def _id_list(values: Any) -> List[int]:
    return [to_int(v) for v in (values or [])]


# =============================================================================
# Remote land data
# =============================================================================

@dataclass
class GrowthPhase:
    """A dated stage of a plant's growth timeline (all times in server seconds)."""
    phase: int = PlantPhase.UNKNOWN
    begin_time: int = 0               # 0 = not scheduled yet
    dry_time: int = 0
    weeds_time: int = 0
    insect_time: int = 0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GrowthPhase":
        return cls(
            phase=to_int(data.get("phase"), PlantPhase.UNKNOWN),
            begin_time=to_time_sec(data.get("begin_time")),
            dry_time=to_time_sec(data.get("dry_time")),
            weeds_time=to_time_sec(data.get("weeds_time")),
            insect_time=to_time_sec(data.get("insect_time")),
        )


@dataclass
class Plant:
    """A plant occupying a land."""
    id: int
    name: str = ""                    # server-provided, may be empty
    phases: List[GrowthPhase] = field(default_factory=list)
    dry_num: int = 0
    weed_owners: List[int] = field(default_factory=list)
    insect_owners: List[int] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Plant":
        phases = []
        for raw in data.get("phases") or []:
            if isinstance(raw, dict):
                phases.append(GrowthPhase.from_dict(raw))
        return cls(
            id=to_int(data.get("id")),
            name=str(data.get("name") or ""),
            phases=phases,
            dry_num=to_int(data.get("dry_num")),
            weed_owners=_id_list(data.get("weed_owners")),
            insect_owners=_id_list(data.get("insect_owners")),
        )


@dataclass
class Land:
    """A single farm plot. Server-owned; the agent only reads and requests changes."""
    id: int
    unlocked: bool = False
    plant: Optional[Plant] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Land":
        raw_plant = data.get("plant")
        plant = Plant.from_dict(raw_plant) if isinstance(raw_plant, dict) and raw_plant else None
        return cls(
            id=to_int(data.get("id")),
            unlocked=bool(data.get("unlocked")),
            plant=plant,
        )


# =============================================================================
# Analysis results
# =============================================================================

@dataclass
class HarvestInfo:
    """A harvestable land with the experience its plant should give."""
    land_id: int
    plant_id: int
    name: str
    exp: int


@dataclass
class LandSnapshot:
    """Compact per-land record, enough to redraw the status line later."""
    id: int
    type: str                         # lock / empty / dead / mature / growing
    name: str = ""
    total_grow_time: int = 0
    remaining_sec: int = 0
    remaining_known: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "name": self.name,
            "total_grow_time": self.total_grow_time,
            "remaining_sec": self.remaining_sec,
            "remaining_known": self.remaining_known,
        }


@dataclass
class LandAnalysis:
    """Categorized action sets for one AllLands reply."""
    harvestable: List[int] = field(default_factory=list)
    need_water: List[int] = field(default_factory=list)
    need_weed: List[int] = field(default_factory=list)
    need_bug: List[int] = field(default_factory=list)
    growing: List[int] = field(default_factory=list)
    empty: List[int] = field(default_factory=list)
    dead: List[int] = field(default_factory=list)
    harvestable_info: List[HarvestInfo] = field(default_factory=list)
    farm_lines: List[str] = field(default_factory=list)
    land_snapshots: List[LandSnapshot] = field(default_factory=list)
    min_remaining_sec: Optional[int] = None
    server_time_sec: int = 0
    unlocked_count: int = 0

    @property
    def has_work(self) -> bool:
        return bool(self.harvestable or self.need_weed or self.need_bug
                    or self.need_water or self.dead or self.empty)

    def summary_parts(self) -> List[str]:
        """Short counters for the one-line cycle log."""
        parts = []
        if self.harvestable:
            parts.append(f"harvest:{len(self.harvestable)}")
        if self.need_weed:
            parts.append(f"weed:{len(self.need_weed)}")
        if self.need_bug:
            parts.append(f"bug:{len(self.need_bug)}")
        if self.need_water:
            parts.append(f"water:{len(self.need_water)}")
        if self.dead:
            parts.append(f"dead:{len(self.dead)}")
        if self.empty:
            parts.append(f"empty:{len(self.empty)}")
        parts.append(f"growing:{len(self.growing)}")
        return parts


@dataclass
class FarmSnapshot:
    """Point-in-time farm summary kept between full checks."""
    empty_count: int = 0
    dead_count: int = 0
    harvestable_count: int = 0
    need_water_count: int = 0
    need_weed_count: int = 0
    need_bug_count: int = 0
    min_remaining_sec: Optional[int] = None
    server_time_sec: int = 0
    unlocked_count: int = 0
    land_snapshots: List[LandSnapshot] = field(default_factory=list)
    updated_at: float = 0.0

    @classmethod
    def from_analysis(cls, analysis: LandAnalysis) -> "FarmSnapshot":
        return cls(
            empty_count=len(analysis.empty),
            dead_count=len(analysis.dead),
            harvestable_count=len(analysis.harvestable),
            need_water_count=len(analysis.need_water),
            need_weed_count=len(analysis.need_weed),
            need_bug_count=len(analysis.need_bug),
            min_remaining_sec=analysis.min_remaining_sec,
            server_time_sec=analysis.server_time_sec,
            unlocked_count=analysis.unlocked_count,
            land_snapshots=list(analysis.land_snapshots),
            updated_at=time.time(),
        )

    def needs_attention(self) -> bool:
        """True when any land is waiting for an action."""
        return any((
            self.empty_count, self.dead_count, self.harvestable_count,
            self.need_water_count, self.need_weed_count, self.need_bug_count,
        ))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "empty_count": self.empty_count,
            "dead_count": self.dead_count,
            "harvestable_count": self.harvestable_count,
            "need_water_count": self.need_water_count,
            "need_weed_count": self.need_weed_count,
            "need_bug_count": self.need_bug_count,
            "min_remaining_sec": self.min_remaining_sec,
            "server_time_sec": self.server_time_sec,
            "unlocked_count": self.unlocked_count,
            "land_snapshots": [s.to_dict() for s in self.land_snapshots],
            "updated_at": self.updated_at,
        }


# =============================================================================
# Seed yield
# =============================================================================

@dataclass
class SeedCandidate:
    """A seed with its experience yield for a given unlocked land count."""
    seed_id: int
    goods_id: int
    plant_id: int
    name: str
    required_level: int
    price: int
    unlocked: bool
    exp_harvest: int
    grow_time_sec: int
    exp_per_hour_no_fert: float = 0.0
    exp_per_hour_normal_fert: float = 0.0


@dataclass
class SeedChoice:
    """The pick for one ranking (no fertilizer or normal fertilizer)."""
    seed_id: int
    goods_id: int
    name: str
    price: int
    exp_per_hour: float


@dataclass
class BestSeeds:
    best_no_fert: SeedChoice
    best_normal_fert: SeedChoice


@dataclass
class BestSeedCache:
    """Best seeds memoized per (level, unlocked land count)."""
    level: int = 0
    lands: int = 0
    best_no_fert: Optional[SeedChoice] = None
    best_normal_fert: Optional[SeedChoice] = None
    line: str = ""

    def matches(self, level: int, lands: int) -> bool:
        return (self.level == level and self.lands == lands
                and self.best_no_fert is not None and self.best_normal_fert is not None)
