import os
import tempfile

import pytest

from dawndream.config import AppSettings, Config, load_config, save_config
from dawndream.errors import ParseFailure


def test_save_and_load_config_roundtrip():
    cfg = Config(base_dir="/srv/dawndream")
    cfg.audio.sample_rate_hz = 16000
    cfg.brightness.backlight = "intel_backlight"

    with tempfile.TemporaryDirectory() as tmp:
        path = os.path.join(tmp, "dawndream_config.yml")
        save_config(path, cfg)
        loaded = load_config(path)

    assert loaded.base_dir == "/srv/dawndream"
    assert loaded.audio.sample_rate_hz == 16000
    assert loaded.brightness.backlight == "intel_backlight"


def test_load_config_fills_defaults(tmp_path):
    path = tmp_path / "empty.yml"
    path.write_text("", encoding="utf-8")
    cfg = load_config(str(path))
    assert cfg.audio.channels == 1
    assert cfg.debug_logging is False


def test_app_settings_roundtrip():
    settings = AppSettings(theme_mode="dark", language="uk", alarm_time="07:30")
    assert AppSettings.from_json(settings.to_json()) == settings


def test_app_settings_rejects_unknown_values():
    raw = b'{"themeMode": "neon", "language": "fr", "alarmTime": "99:99"}'
    assert AppSettings.from_json(raw) == AppSettings()


def test_app_settings_parse_failure():
    with pytest.raises(ParseFailure):
        AppSettings.from_json(b"[1, 2]")
