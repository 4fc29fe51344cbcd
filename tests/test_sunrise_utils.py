from datetime import datetime, timezone

import pytest

from dawndream.sunrise_utils import (
    AlarmTime,
    calc_recording_auto_stop,
    calc_sunrise_start_time,
    date_string,
    lerp_color,
    parse_alarm_time,
)

UTC = timezone.utc


def _ms(text: str) -> int:
    return int(datetime.fromisoformat(text).replace(tzinfo=UTC).timestamp() * 1000)


NOW = _ms("2026-02-20T06:00:00")


def test_sunrise_start_is_thirty_minutes_before_alarm():
    assert calc_sunrise_start_time("07:00", NOW, UTC) == _ms("2026-02-20T06:30:00")


def test_sunrise_start_rolls_to_tomorrow_when_alarm_passed():
    assert calc_sunrise_start_time("05:00", NOW, UTC) == _ms("2026-02-21T04:30:00")


def test_midnight_alarm_is_tomorrow():
    assert calc_sunrise_start_time("00:00", NOW, UTC) == _ms("2026-02-20T23:30:00")


def test_alarm_exactly_now_rolls_forward_one_day():
    assert calc_sunrise_start_time("06:00", NOW, UTC) == _ms("2026-02-21T05:30:00")


def test_auto_stop_is_one_hour_before_alarm():
    assert calc_recording_auto_stop("08:00", NOW, UTC) == _ms("2026-02-20T07:00:00")


@pytest.mark.parametrize("alarm", ["00:00", "05:59", "06:00", "06:01", "07:30", "23:59"])
def test_auto_stop_is_thirty_minutes_before_sunrise(alarm):
    start = calc_sunrise_start_time(alarm, NOW, UTC)
    stop = calc_recording_auto_stop(alarm, NOW, UTC)
    assert start - stop == 1_800_000


def test_rollover_crosses_year_boundary():
    now = _ms("2026-12-31T23:00:00")
    assert calc_sunrise_start_time("07:00", now, UTC) == _ms("2027-01-01T06:30:00")


def test_rollover_crosses_month_boundary():
    now = _ms("2026-02-28T12:00:00")
    assert calc_recording_auto_stop("06:00", now, UTC) == _ms("2026-03-01T05:00:00")


def test_accepts_alarm_time_instances():
    assert calc_sunrise_start_time(AlarmTime(7, 0), NOW, UTC) == calc_sunrise_start_time(
        "07:00", NOW, UTC
    )


@pytest.mark.parametrize("value", ["24:00", "07:60", "7", "seven:00", ""])
def test_parse_alarm_time_rejects_bad_values(value):
    with pytest.raises(ValueError):
        parse_alarm_time(value)


def test_parse_alarm_time_formats_back():
    assert str(parse_alarm_time("7:05")) == "07:05"


def test_date_string_uses_timezone():
    assert date_string(_ms("2026-03-01T00:15:00"), UTC) == "2026-03-01"


def test_lerp_color_endpoints_and_midpoint():
    assert lerp_color("#FF4500", "#FFFFFF", 0) == "rgb(255,69,0)"
    assert lerp_color("#FF4500", "#FFFFFF", 1) == "rgb(255,255,255)"
    assert lerp_color("#000000", "#FFFFFF", 0.5) == "rgb(128,128,128)"
    assert lerp_color("#FF0000", "#0000FF", 0.5) == "rgb(128,0,128)"


def test_lerp_color_clamps_t():
    assert lerp_color("#FF4500", "#FFFFFF", 2.0) == "rgb(255,255,255)"
    assert lerp_color("#FF4500", "#FFFFFF", -1.0) == "rgb(255,69,0)"


def test_lerp_color_rejects_short_hex():
    with pytest.raises(ValueError):
        lerp_color("#FFF", "#FFFFFF", 0.5)
