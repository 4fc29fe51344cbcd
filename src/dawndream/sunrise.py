"""Sunrise simulation driven by the alarm time."""

from __future__ import annotations

import logging
import math
import threading
from datetime import tzinfo
from typing import Optional

from .brightness import Brightness
from .models import SunriseState, SunriseStatus
from .scheduler import TimerHandle
from .sunrise_utils import (
    SUNRISE_DURATION_MS,
    AlarmLike,
    calc_sunrise_start_time,
    lerp_color,
    parse_alarm_time,
)

logger = logging.getLogger(__name__)

TICK_INTERVAL_MS = 10_000
SUNRISE_FROM_COLOR = "#FF4500"
SUNRISE_TO_COLOR = "#FFFFFF"


class SunriseController:
    """Tracks progress through the 30 minute window before the alarm.

    While waiting the window is re-derived from the current time on every
    evaluation. It is pinned once the sunrise is active, and also when the
    previously derived window has already ended, so a host that sleeps through
    the whole window still lands in ``done``. ``done`` holds until a new alarm
    time is supplied.
    """

    def __init__(
        self,
        clock,
        scheduler,
        brightness: Brightness,
        alarm_time: Optional[AlarmLike] = None,
        tz: Optional[tzinfo] = None,
    ) -> None:
        self.clock = clock
        self.scheduler = scheduler
        self.brightness = brightness
        self.tz = tz
        self._lock = threading.RLock()
        self._tick: Optional[TimerHandle] = None
        self._alarm_time: Optional[str] = None
        self._status = SunriseStatus(state=SunriseState.IDLE)
        self._window: Optional[tuple] = None
        self._saved_brightness: Optional[float] = None
        self._active = False
        if alarm_time is not None:
            self.set_alarm_time(alarm_time)

    @property
    def status(self) -> SunriseStatus:
        return self._status

    @property
    def alarm_time(self) -> Optional[str]:
        return self._alarm_time

    def set_alarm_time(self, alarm_time: Optional[AlarmLike]) -> SunriseStatus:
        with self._lock:
            self._teardown()
            self._alarm_time = str(parse_alarm_time(alarm_time)) if alarm_time else None
            self._window = None
            status = self.evaluate()
            if self._alarm_time is not None and status.state is not SunriseState.DONE:
                self._tick = self.scheduler.call_every(TICK_INTERVAL_MS, self._on_tick)
            return status

    def _on_tick(self) -> None:
        with self._lock:
            if self._tick is None or self._tick.cancelled:
                return
            self.evaluate()

    def evaluate(self) -> SunriseStatus:
        with self._lock:
            if self._alarm_time is None:
                self._status = SunriseStatus(state=SunriseState.IDLE)
                return self._status
            if self._status.state is SunriseState.DONE and self._window is not None:
                return self._status

            now = self.clock.now()
            if self._window is None or (not self._active and now < self._window[1]):
                start = calc_sunrise_start_time(self._alarm_time, now, self.tz)
                self._window = (start, start + SUNRISE_DURATION_MS)
            start, end = self._window

            if now < start:
                self._status = SunriseStatus(
                    state=SunriseState.WAITING,
                    progress=0.0,
                    minutes_until_start=int(math.ceil((start - now) / 60000)),
                    start_time=start,
                    end_time=end,
                )
            elif now < end:
                progress = min(max((now - start) / SUNRISE_DURATION_MS, 0.0), 1.0)
                if not self._active:
                    self._active = True
                    self._saved_brightness = self.brightness.get()
                    logger.info("Sunrise started (saved brightness %.2f)", self._saved_brightness)
                self.brightness.set(progress)
                self._status = SunriseStatus(
                    state=SunriseState.ACTIVE,
                    progress=progress,
                    minutes_until_start=0,
                    start_time=start,
                    end_time=end,
                )
            else:
                self.brightness.set(1.0)
                self._active = False
                self._saved_brightness = None
                self._status = SunriseStatus(
                    state=SunriseState.DONE,
                    progress=1.0,
                    minutes_until_start=None,
                    start_time=start,
                    end_time=end,
                )
                self._cancel_tick()
                logger.info("Sunrise complete")
            return self._status

    def color(self) -> Optional[str]:
        if self._status.state in (SunriseState.ACTIVE, SunriseState.DONE):
            return lerp_color(SUNRISE_FROM_COLOR, SUNRISE_TO_COLOR, self._status.progress)
        return None

    def _cancel_tick(self) -> None:
        if self._tick is not None:
            self._tick.cancel()
            self._tick = None

    def _teardown(self) -> None:
        self._cancel_tick()
        if self._active and self._saved_brightness is not None:
            self.brightness.set(self._saved_brightness)
            logger.info("Brightness restored to %.2f", self._saved_brightness)
        self._active = False
        self._saved_brightness = None
        self._status = SunriseStatus(state=SunriseState.IDLE)

    def stop_sunrise(self) -> None:
        with self._lock:
            self._teardown()

    close = stop_sunrise
