"""Configuration handling."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Optional

import yaml

from .errors import ParseFailure
from .sunrise_utils import parse_alarm_time

logger = logging.getLogger(__name__)

THEME_MODES = ("light", "dark", "system")
LANGUAGES = ("en", "de", "uk")


@dataclass
class AudioConfig:
    sample_rate_hz: int = 44100
    channels: int = 1
    block_ms: int = 100


@dataclass
class BrightnessConfig:
    backlight: Optional[str] = None


@dataclass
class Config:
    base_dir: str = "~/DawnDream"
    device_name: Optional[str] = None
    debug_logging: bool = False
    audio: AudioConfig = field(default_factory=AudioConfig)
    brightness: BrightnessConfig = field(default_factory=BrightnessConfig)


def load_config(path: str) -> Config:
    with open(path, "r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}

    audio = AudioConfig(**data.get("audio", {}))
    brightness = BrightnessConfig(**data.get("brightness", {}))

    return Config(
        base_dir=data.get("base_dir", "~/DawnDream"),
        device_name=data.get("device_name"),
        debug_logging=bool(data.get("debug_logging", False)),
        audio=audio,
        brightness=brightness,
    )


def save_config(path: str, config: Config) -> None:
    data = {
        "base_dir": config.base_dir,
        "device_name": config.device_name,
        "debug_logging": config.debug_logging,
        "audio": {
            "sample_rate_hz": config.audio.sample_rate_hz,
            "channels": config.audio.channels,
            "block_ms": config.audio.block_ms,
        },
        "brightness": {
            "backlight": config.brightness.backlight,
        },
    }
    with open(path, "w", encoding="utf-8") as handle:
        yaml.safe_dump(data, handle, sort_keys=False)


@dataclass
class AppSettings:
    """User preferences kept in the key-value store."""

    theme_mode: str = "system"
    language: str = "en"
    alarm_time: Optional[str] = None

    def to_json(self) -> bytes:
        payload = {
            "themeMode": self.theme_mode,
            "language": self.language,
            "alarmTime": self.alarm_time,
        }
        return json.dumps(payload).encode("utf-8")

    @classmethod
    def from_json(cls, raw: bytes) -> "AppSettings":
        try:
            data = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, ValueError) as exc:
            raise ParseFailure(f"Unreadable settings: {exc}") from exc
        if not isinstance(data, dict):
            raise ParseFailure("Settings payload is not an object.")

        defaults = cls()
        theme = data.get("themeMode", defaults.theme_mode)
        language = data.get("language", defaults.language)
        alarm = data.get("alarmTime")
        if alarm is not None:
            try:
                alarm = str(parse_alarm_time(str(alarm)))
            except ValueError:
                logger.warning("Ignoring invalid stored alarm time %r", alarm)
                alarm = None
        return cls(
            theme_mode=theme if theme in THEME_MODES else defaults.theme_mode,
            language=language if language in LANGUAGES else defaults.language,
            alarm_time=alarm,
        )
