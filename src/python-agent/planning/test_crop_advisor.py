import math

import pytest

from game_config import GameConfig
from planning.crop_advisor import (
    CropAdvisor,
    calc_effective_grow_time,
    calculate_exp_per_hour,
    format_exp_per_hour,
)
from planning.models import BestSeedCache


def _advisor(rows=None):
    rows = rows if rows is not None else [
        {"seedId": 201, "goodsId": 1, "name": "A", "requiredLevel": 1, "price": 2, "exp": 10, "growTimeSec": 600},
        {"seedId": 202, "goodsId": 2, "name": "B", "requiredLevel": 5, "price": 8, "exp": 30, "growTimeSec": 1200},
    ]
    return CropAdvisor(GameConfig(seed_shop_rows=rows))


def test_fertilizer_cut():
    assert calc_effective_grow_time(1000) == 800   # 20%
    assert calc_effective_grow_time(100) == 70     # at least 30s
    assert calc_effective_grow_time(20) == 1       # never below 1s


def test_exp_per_hour_zero_cycle():
    assert calculate_exp_per_hour(10, 30, 0) == 0.0


def test_best_seed_level_five_ten_lands():
    best = _advisor().get_best_seeds_for_level(level=5, lands=10)

    assert best.best_no_fert.name == "B"
    assert best.best_normal_fert.name == "B"
    assert best.best_no_fert.exp_per_hour == pytest.approx(10 * 30 / (1200 + 10 / 9) * 3600)
    assert best.best_normal_fert.exp_per_hour == pytest.approx(10 * 30 / (960 + 10 / 6) * 3600)


def test_best_seed_respects_level():
    best = _advisor().get_best_seeds_for_level(level=4, lands=10)
    assert best.best_no_fert.name == "A"
    assert best.best_normal_fert.name == "A"


def test_best_seed_restricted_to_seed_ids():
    best = _advisor().get_best_seeds_for_level(level=5, lands=10, seed_ids={201})
    assert best.best_normal_fert.seed_id == 201


def test_no_qualifying_seed():
    assert _advisor().get_best_seeds_for_level(level=5, lands=10, seed_ids={999}) is None
    assert _advisor(rows=[]).get_best_seeds_for_level(level=5, lands=10) is None


def test_locked_and_incomplete_rows_skipped():
    rows = [
        {"seedId": 201, "name": "A", "requiredLevel": 1, "exp": 10, "growTimeSec": 600},
        {"seedId": 203, "name": "Locked", "requiredLevel": 1, "exp": 500, "growTimeSec": 600, "unlocked": False},
        {"seedId": 204, "name": "NoTime", "requiredLevel": 1, "exp": 500},
        {"seedId": 0, "name": "NoId", "requiredLevel": 1, "exp": 500, "growTimeSec": 600},
    ]
    advisor = _advisor(rows)
    assert [r.name for r in advisor.build_seed_yield_rows(10)] == ["A", "Locked"]
    assert advisor.get_best_seeds_for_level(level=10, lands=10).best_no_fert.name == "A"


def test_ties_keep_first_row():
    rows = [
        {"seedId": 301, "name": "C", "requiredLevel": 1, "exp": 10, "growTimeSec": 600},
        {"seedId": 302, "name": "D", "requiredLevel": 1, "exp": 10, "growTimeSec": 600},
    ]
    best = _advisor(rows).get_best_seeds_for_level(level=1, lands=4)
    assert best.best_no_fert.name == "C"
    assert best.best_normal_fert.name == "C"


def test_grow_time_from_plant_config():
    config = GameConfig(
        plants=[{"id": 1020002, "name": "Carrot", "seed_id": 20002, "grow_phases": "seed:30;sprout:30;", "exp": 1}],
        seed_shop_rows=[{"seedId": 20002, "requiredLevel": 1}],
    )
    rows = CropAdvisor(config).build_seed_yield_rows(3)
    assert rows[0].name == "Carrot"
    assert rows[0].plant_id == 1020002
    assert rows[0].grow_time_sec == 60
    assert rows[0].exp_harvest == 1


def test_yield_rows_memoized_by_land_count():
    advisor = _advisor()
    first = advisor.build_seed_yield_rows(10)
    assert advisor.build_seed_yield_rows(10) is first
    assert advisor.build_seed_yield_rows(12) is not first
    # Land count is clamped to at least one
    assert advisor.build_seed_yield_rows(0) == advisor.build_seed_yield_rows(1)


def test_format_exp_per_hour():
    assert format_exp_per_hour(12.0) == "12"
    assert format_exp_per_hour(12.5) == "12.50"
    assert format_exp_per_hour(899.1674) == "899.17"
    assert format_exp_per_hour(None) == "?"
    assert format_exp_per_hour(math.inf) == "?"


def test_ensure_cache_builds_line_once():
    advisor = _advisor()
    cache = BestSeedCache()

    assert advisor.ensure_cache(cache, level=5, lands=10) is cache
    assert cache.line == "Best: no-fert B 899.17/h | fert B 1123.05/h"
    assert (cache.level, cache.lands) == (5, 10)

    cache.line = "kept"
    advisor.ensure_cache(cache, level=5, lands=10)
    assert cache.line == "kept"

    advisor.ensure_cache(cache, level=4, lands=10)
    assert cache.line.startswith("Best: no-fert A ")


def test_ensure_cache_unknown_inputs():
    advisor = _advisor()
    cache = BestSeedCache()
    assert advisor.ensure_cache(cache, level=0, lands=10) is None
    assert advisor.ensure_cache(cache, level=5, lands=0) is None
    assert cache.line == ""


def test_format_seed_advice():
    text = _advisor().format_seed_advice(level=5, lands=10, count=1)
    assert "Lv5, 10 lands" in text
    assert "1. B: 899.17 exp/h" in text
    assert "No seeds available" in _advisor(rows=[]).format_seed_advice(level=5, lands=10)
