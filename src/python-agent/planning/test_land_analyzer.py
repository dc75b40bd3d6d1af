from constants import PlantPhase
from game_config import GameConfig
from planning.land_analyzer import (
    LandAnalyzer,
    current_phase,
    format_grow_time,
    lines_from_snapshot,
    remaining_to_mature,
)
from planning.models import FarmSnapshot, GrowthPhase, Land, Plant


def _config():
    return GameConfig(plants=[
        {"id": 1, "name": "Carrot", "seed_id": 101, "grow_phases": "seed:300;leaves:300;mature:0;", "exp": 10},
        {"id": 2, "name": "Strawberry", "seed_id": 102, "grow_phases": "seed:600;mature:0;", "exp": 20},
    ])


def _growing(land_id, plant_id=1, begin=1000, mature_at=1600, **plant_fields):
    phases = [
        GrowthPhase(phase=PlantPhase.SEED, begin_time=begin),
        GrowthPhase(phase=PlantPhase.MATURE, begin_time=mature_at),
    ]
    return Land(id=land_id, unlocked=True, plant=Plant(id=plant_id, phases=phases, **plant_fields))


def _single_phase(land_id, phase, begin=500):
    return Land(id=land_id, unlocked=True, plant=Plant(id=1, phases=[GrowthPhase(phase=phase, begin_time=begin)]))


def test_current_phase_latest_started():
    phases = [
        GrowthPhase(phase=PlantPhase.SEED, begin_time=100),
        GrowthPhase(phase=PlantPhase.GERMINATION, begin_time=200),
        GrowthPhase(phase=PlantPhase.MATURE, begin_time=300),
    ]
    assert current_phase(phases, 250).phase == PlantPhase.GERMINATION
    assert current_phase(phases, 300).phase == PlantPhase.MATURE


def test_current_phase_falls_back_to_first():
    """Nothing started yet (unscheduled or future) → first phase."""
    phases = [
        GrowthPhase(phase=PlantPhase.SEED, begin_time=0),
        GrowthPhase(phase=PlantPhase.MATURE, begin_time=5000),
    ]
    assert current_phase(phases, 100).phase == PlantPhase.SEED
    assert current_phase([], 100) is None


def test_every_unlocked_land_in_exactly_one_bucket():
    lands = [
        Land(id=1, unlocked=False),
        Land(id=2, unlocked=True),
        Land(id=3, unlocked=True, plant=Plant(id=1, phases=[])),
        _single_phase(4, PlantPhase.DEAD),
        _single_phase(5, PlantPhase.MATURE),
        _growing(6, dry_num=1),
        _growing(7),
    ]
    result = LandAnalyzer(_config()).analyze(lands, now_sec=1200)

    assert result.empty == [2, 3]
    assert result.dead == [4]
    assert result.harvestable == [5]
    assert result.growing == [6, 7]
    assert result.unlocked_count == 6

    buckets = [result.empty, result.dead, result.harvestable, result.growing]
    all_ids = [i for bucket in buckets for i in bucket]
    assert sorted(all_ids) == [2, 3, 4, 5, 6, 7]
    assert len(all_ids) == len(set(all_ids))

    # Locked lands are still drawn
    assert [s.id for s in result.land_snapshots] == [1, 2, 3, 4, 5, 6, 7]
    assert result.land_snapshots[0].type == "lock"


def test_affliction_subsets_of_growing():
    lands = [_growing(6, dry_num=1), _growing(7, weed_owners=[42]), _growing(8, insect_owners=[43])]
    result = LandAnalyzer(_config()).analyze(lands, now_sec=1200)
    assert result.need_water == [6]
    assert result.need_weed == [7]
    assert result.need_bug == [8]
    for bucket in (result.need_water, result.need_weed, result.need_bug):
        assert set(bucket) <= set(result.growing)


def test_owner_markers_flag_regardless_of_thresholds():
    """Owners present → flagged even when the thresholds are unset or in the future."""
    phases = [GrowthPhase(phase=PlantPhase.SEED, begin_time=1000, weeds_time=0, insect_time=9999)]
    land = Land(id=1, unlocked=True, plant=Plant(id=1, phases=phases, weed_owners=[7], insect_owners=[8]))
    result = LandAnalyzer(_config()).analyze([land], now_sec=1200)
    assert result.need_weed == [1]
    assert result.need_bug == [1]
    assert result.need_water == []


def test_thresholds_flag_without_owners():
    phases = [GrowthPhase(phase=PlantPhase.SEED, begin_time=1000, dry_time=1100, weeds_time=1300)]
    land = Land(id=1, unlocked=True, plant=Plant(id=1, phases=phases))
    result = LandAnalyzer(_config()).analyze([land], now_sec=1200)
    assert result.need_water == [1]
    assert result.need_weed == []


def test_remaining_prefers_mature_begin():
    """Grow-time estimate would say 300s; the MATURE phase begin says 600s."""
    phases = [
        GrowthPhase(phase=PlantPhase.SEED, begin_time=100),
        GrowthPhase(phase=PlantPhase.MATURE, begin_time=1000),
    ]
    assert remaining_to_mature(phases, now_sec=400, total_grow_time=600) == (600, True)


def test_remaining_estimate_and_clamp():
    phases = [GrowthPhase(phase=PlantPhase.SEED, begin_time=100)]
    assert remaining_to_mature(phases, now_sec=400, total_grow_time=600) == (300, True)
    assert remaining_to_mature(phases, now_sec=5000, total_grow_time=600) == (0, True)
    assert remaining_to_mature(phases, now_sec=400, total_grow_time=0) == (0, False)


def test_min_remaining_unknown_without_phase_data():
    phases = [GrowthPhase(phase=PlantPhase.SEED, begin_time=1000)]
    land = Land(id=1, unlocked=True, plant=Plant(id=999, name="Mystery", phases=phases))
    result = LandAnalyzer(_config()).analyze([land], now_sec=1200)
    assert result.growing == [1]
    assert result.min_remaining_sec is None
    assert result.land_snapshots[0].remaining_known is False
    assert result.farm_lines == ["#1  Mystery 0s/?"]


def test_min_remaining_across_growing():
    lands = [_growing(1, mature_at=1600), _growing(2, mature_at=1250)]
    result = LandAnalyzer(_config()).analyze(lands, now_sec=1200)
    assert result.min_remaining_sec == 50


def test_display_name_truncated():
    land = _growing(12, plant_id=2)
    result = LandAnalyzer(_config()).analyze([land], now_sec=1000)
    assert result.land_snapshots[0].name == "Strawber"
    assert result.farm_lines[0].startswith("#12 Strawber")


def test_farm_lines_four_per_row():
    lands = [Land(id=i, unlocked=True) for i in range(1, 7)]
    result = LandAnalyzer(_config()).analyze(lands, now_sec=1000)
    assert len(result.farm_lines) == 2
    assert result.farm_lines[0] == "#1  empty | #2  empty | #3  empty | #4  empty"


def test_lines_from_snapshot_advance_remaining():
    result = LandAnalyzer(_config()).analyze([_growing(1)], now_sec=1000)
    assert result.farm_lines == ["#1  Carrot 10m/10m"]

    snapshot = FarmSnapshot.from_analysis(result)
    assert lines_from_snapshot(snapshot, now_sec=1300) == ["#1  Carrot 5m/10m"]
    assert lines_from_snapshot(snapshot, now_sec=9000) == ["#1  Carrot 0s/10m"]


def test_lines_from_snapshot_empty():
    assert lines_from_snapshot(None, 100) is None
    assert lines_from_snapshot(FarmSnapshot(), 100) is None


def test_format_grow_time():
    assert format_grow_time(45) == "45s"
    assert format_grow_time(600) == "10m"
    assert format_grow_time(7200) == "2h"
    assert format_grow_time(5400) == "1h30m"
