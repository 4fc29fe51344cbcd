"""Alarm timing and sunrise colour helpers.

Everything here is pure given ``now_ms``: callers pass the reference instant
explicitly so the same functions serve the controllers and the tests.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timedelta, tzinfo
from typing import Optional, Tuple, Union

SUNRISE_DURATION_MS = 30 * 60 * 1000
RECORDING_STOP_BEFORE_ALARM_MS = 60 * 60 * 1000


@dataclass(frozen=True)
class AlarmTime:
    hour: int
    minute: int

    def __str__(self) -> str:
        return f"{self.hour:02d}:{self.minute:02d}"


AlarmLike = Union[str, AlarmTime]


def parse_alarm_time(value: AlarmLike) -> AlarmTime:
    """Parse an ``HH:MM`` string into an :class:`AlarmTime`."""
    if isinstance(value, AlarmTime):
        return value
    parts = (value or "").strip().split(":")
    if len(parts) != 2:
        raise ValueError(f"Alarm time must be HH:MM, got {value!r}.")
    try:
        hour, minute = int(parts[0]), int(parts[1])
    except ValueError as exc:
        raise ValueError(f"Alarm time must be HH:MM, got {value!r}.") from exc
    if not 0 <= hour <= 23 or not 0 <= minute <= 59:
        raise ValueError(f"Alarm time out of range: {value!r}.")
    return AlarmTime(hour=hour, minute=minute)


def to_epoch_ms(moment: datetime) -> int:
    return int(round(moment.timestamp() * 1000))


def from_epoch_ms(now_ms: int, tz: Optional[tzinfo] = None) -> datetime:
    return datetime.fromtimestamp(now_ms / 1000, tz)


def next_alarm_occurrence(
    alarm_time: AlarmLike,
    now_ms: int,
    tz: Optional[tzinfo] = None,
) -> datetime:
    """Return the next wall-clock occurrence of ``alarm_time`` after ``now_ms``.

    The candidate sits on the reference calendar day; when it is not in the
    future it moves forward by exactly one calendar day.
    """
    alarm = parse_alarm_time(alarm_time)
    now = from_epoch_ms(now_ms, tz)
    candidate = now.replace(hour=alarm.hour, minute=alarm.minute, second=0, microsecond=0)
    if to_epoch_ms(candidate) <= now_ms:
        candidate = candidate + timedelta(days=1)
    return candidate


def calc_sunrise_start_time(
    alarm_time: AlarmLike,
    now_ms: int,
    tz: Optional[tzinfo] = None,
) -> int:
    alarm = next_alarm_occurrence(alarm_time, now_ms, tz)
    return to_epoch_ms(alarm) - SUNRISE_DURATION_MS


def calc_recording_auto_stop(
    alarm_time: AlarmLike,
    now_ms: int,
    tz: Optional[tzinfo] = None,
) -> int:
    alarm = next_alarm_occurrence(alarm_time, now_ms, tz)
    return to_epoch_ms(alarm) - RECORDING_STOP_BEFORE_ALARM_MS


def date_string(now_ms: int, tz: Optional[tzinfo] = None) -> str:
    return from_epoch_ms(now_ms, tz).strftime("%Y-%m-%d")


def time_string(now_ms: int, tz: Optional[tzinfo] = None) -> str:
    return from_epoch_ms(now_ms, tz).strftime("%H:%M")


def _parse_hex(value: str) -> Tuple[int, int, int]:
    digits = value.strip().lstrip("#")
    if len(digits) != 6:
        raise ValueError(f"Expected a 6-digit hex colour, got {value!r}.")
    try:
        return (
            int(digits[0:2], 16),
            int(digits[2:4], 16),
            int(digits[4:6], 16),
        )
    except ValueError as exc:
        raise ValueError(f"Expected a 6-digit hex colour, got {value!r}.") from exc


def lerp_color(from_hex: str, to_hex: str, t: float) -> str:
    """Blend two hex colours and format the result as ``rgb(r,g,b)``.

    ``t`` is clamped to [0, 1]. Halves round up.
    """
    t = max(0.0, min(1.0, float(t)))
    start = _parse_hex(from_hex)
    end = _parse_hex(to_hex)
    channels = [
        int(math.floor(c1 + (c2 - c1) * t + 0.5)) for c1, c2 in zip(start, end)
    ]
    return "rgb({},{},{})".format(*channels)
