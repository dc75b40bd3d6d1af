import json

from game_config import GameConfig, parse_grow_phases
from session import FarmSession, ServerClock


def test_parse_grow_phases():
    assert parse_grow_phases("seed:30;sprout:30;mature:0;") == 60
    assert parse_grow_phases("") == 0
    assert parse_grow_phases("broken;seed:10") == 10


def test_load_from_directory(tmp_path):
    (tmp_path / "Plant.json").write_text(json.dumps([
        {"id": 1020002, "name": "Carrot", "seed_id": 20002, "fruit": {"id": 40002, "count": 10},
         "grow_phases": "seed:1800;mature:0;", "exp": 6},
    ]))
    (tmp_path / "seed_shop.json").write_text(json.dumps({"rows": [{"seedId": 20002}]}))

    config = GameConfig.load(str(tmp_path))

    assert config.plant_name(1020002) == "Carrot"
    assert config.seed_name(20002) == "Carrot"
    assert config.fruit_name(40002) == "Carrot"
    assert config.plant_by_fruit_id(40002)["id"] == 1020002
    assert config.plant_by_fruit_id(99) is None
    assert config.plant_fruit(1020002) == {"id": 40002, "count": 10, "name": "Carrot"}
    assert config.grow_time(1020002) == 1800
    assert config.plant_exp(1020002) == 6
    assert config.seed_shop_rows == [{"seedId": 20002}]
    # RoleLevel.json missing
    assert config.level_exp_table is None
    assert config.level_exp_progress(3, 500) == (0, 0)


def test_unknown_ids_fall_back():
    config = GameConfig()
    assert config.plant_name(7) == "Plant 7"
    assert config.seed_name(8) == "Seed 8"
    assert config.grow_time(7) == 0


def test_level_progress():
    config = GameConfig(role_levels=[{"level": 1, "exp": 0}, {"level": 2, "exp": 50}])
    assert config.level_exp_progress(1, 20) == (20, 50)


def test_session_user_info_and_clock():
    session = FarmSession(clock=ServerClock(now_fn=lambda: 1000.0))
    session.apply_user_info({"gid": 9527, "name": "Alice", "level": 8, "gold": 120,
                             "server_time_ms": 1_700_000_000_000})

    assert session.logged_in
    assert session.user.level == 8
    assert session.clock.now_sec() == 1_700_000_000
