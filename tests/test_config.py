import json
import logging

import pytest

import starchart
from log_setup import LOG_NAMESPACE, coerce_level, configure_logging
from palette import NEUTRAL, faction_color, hex_to_rgb, round_security, security_color, star_color
from settings import Settings, load_settings


@pytest.fixture
def restore_logging():
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    yield
    for handler in root.handlers[:]:
        if handler not in saved_handlers:
            handler.close()
    root.handlers[:] = saved_handlers
    root.setLevel(saved_level)


def test_missing_settings_file_gives_defaults(tmp_path):
    settings = load_settings(str(tmp_path / "nope.json"))
    assert settings == Settings()


def test_settings_file_overrides_and_warns_on_unknown(tmp_path, caplog):
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"width": 1600, "color_mode": "security", "zoom_speed": 3}), encoding="utf-8")
    with caplog.at_level(logging.WARNING):
        settings = load_settings(str(path))
    assert settings.width == 1600
    assert settings.color_mode == "security"
    assert settings.extra == {"zoom_speed": 3}
    assert "zoom_speed" in caplog.text


def test_settings_validation_falls_back():
    settings = Settings(color_mode="rainbow", width=10, fps=0).validate()
    assert settings.color_mode == "region"
    assert settings.width == 320
    assert settings.fps == 1


def test_cli_flags_win_over_file(tmp_path):
    args = starchart.build_parser().parse_args(
        [str(tmp_path), "--mode", "faction", "--width", "1024", "--offline", "--region", "10000002"]
    )
    settings = starchart.apply_args(Settings(width=1600), args)
    assert settings.sde_dir == str(tmp_path)
    assert settings.color_mode == "faction"
    assert settings.width == 1024
    assert settings.region_ids == [10000002]
    assert not settings.overlays and not settings.icons


def test_find_sde_dir_requires_systems_file(tmp_path):
    assert starchart.find_sde_dir(str(tmp_path)) != str(tmp_path)
    (tmp_path / "mapSolarSystems.jsonl").write_text("", encoding="utf-8")
    assert starchart.find_sde_dir(str(tmp_path)) == str(tmp_path)


def test_launcher_exits_when_data_missing(tmp_path, monkeypatch, restore_logging):
    monkeypatch.setattr(starchart, "find_sde_dir", lambda preferred=None: None)
    with pytest.raises(SystemExit) as info:
        starchart.main([str(tmp_path / "missing"), "--settings", str(tmp_path / "none.json")])
    assert info.value.code == 1


def test_coerce_level():
    assert coerce_level("debug") == logging.DEBUG
    assert coerce_level(logging.ERROR) == logging.ERROR
    assert coerce_level(None) == logging.WARNING
    assert coerce_level("chatty") == logging.WARNING


def test_configure_logging_with_file(tmp_path, restore_logging):
    log_file = tmp_path / "logs" / "starchart.log"
    level = configure_logging("info", log_file)
    assert level == logging.INFO
    logging.getLogger(LOG_NAMESPACE).info("hello from the map")
    for handler in logging.getLogger().handlers:
        handler.flush()
    text = log_file.read_text(encoding="utf-8")
    assert "INFO - starchart - hello from the map" in text


def test_security_rounding_and_colors():
    assert round_security(0.45) == 0.5
    assert round_security(0.44) == 0.4
    assert round_security(0.01) == 0.1
    assert round_security(-0.05) == 0.0
    assert security_color(0.44) != security_color(0.45)
    assert faction_color(None) == NEUTRAL
    assert hex_to_rgb("#FFD700") == (255, 215, 0)
    assert star_color("G2") == (255, 215, 0)
    assert star_color(None) == (255, 215, 0)
    assert star_color("M5") == hex_to_rgb("FF6347")
