"""Dream recording session controller.

A session waits half an hour for the sleeper to drift off, then polls the
microphone level. Sustained sound above the threshold opens a segment; three
seconds of quiet close it. The session ends on :meth:`DreamRecorder.stop` or
when the optional auto-stop instant passes.
"""

from __future__ import annotations

import logging
import math
import os
import threading
import uuid
from datetime import tzinfo
from typing import Callable, Dict, List, Optional

from .capture import AudioCapture
from .errors import CaptureError, PermissionDenied, StorageMoveError
from .models import DreamRecorderState, DreamRecorderStatus, RecordingSegment
from .scheduler import TimerHandle
from .storage import FileStore, segment_filename
from .sunrise_utils import date_string
from .waveform import SILENCE_FLOOR_DB, is_speech_detected, normalize_db

logger = logging.getLogger(__name__)

WAIT_BEFORE_LISTEN_MS = 30 * 60 * 1000
SILENCE_TIMEOUT_MS = 3000
METER_INTERVAL_MS = 500
COUNTDOWN_INTERVAL_MS = 1000

State = DreamRecorderState


def new_segment_id(now_ms: int) -> str:
    return f"rec_{now_ms}_{uuid.uuid4().hex[:10]}"


class DreamRecorder:
    def __init__(
        self,
        capture: AudioCapture,
        file_store: FileStore,
        clock,
        scheduler,
        on_segment: Optional[Callable[[RecordingSegment], None]] = None,
        tz: Optional[tzinfo] = None,
    ) -> None:
        self.capture = capture
        self.file_store = file_store
        self.clock = clock
        self.scheduler = scheduler
        self.on_segment = on_segment
        self.tz = tz

        self._lock = threading.RLock()
        self._timers: Dict[str, TimerHandle] = {}
        self._state = State.IDLE
        self._has_permission = False
        self._auto_stop_at: Optional[int] = None
        self._wait_ends_at = 0
        self._wait_seconds_left = 0
        self._segment_open = False
        self._segment_started_at = 0
        self._segment_duration = 0.0
        self._samples: List[float] = []
        self._segments: List[RecordingSegment] = []
        self._unobserved: List[RecordingSegment] = []

    # -- public API ---------------------------------------------------------

    @property
    def state(self) -> DreamRecorderState:
        return self._state

    @property
    def has_permission(self) -> bool:
        return self._has_permission

    @property
    def status(self) -> DreamRecorderStatus:
        with self._lock:
            return DreamRecorderStatus(
                state=self._state,
                wait_seconds_left=self._wait_seconds_left,
                segment_count=len(self._segments),
                current_segment_duration=self._segment_duration,
                auto_stop_time=self._auto_stop_at,
            )

    @property
    def saved_segments(self) -> List[RecordingSegment]:
        with self._lock:
            return list(self._segments)

    def drain_completed(self) -> List[RecordingSegment]:
        """Return the segments completed since the previous call."""
        with self._lock:
            drained, self._unobserved = self._unobserved, []
            return drained

    def request_permission(self) -> bool:
        try:
            granted = bool(self.capture.request_permission())
        except (CaptureError, PermissionDenied) as exc:
            logger.warning("Permission request failed: %s", exc)
            granted = False
        self._has_permission = granted
        return granted

    def start(self, auto_stop_at: Optional[int] = None) -> bool:
        with self._lock:
            if self._state not in (State.IDLE, State.STOPPED):
                logger.debug("Start ignored while %s", self._state.value)
                return False
            if not self.request_permission():
                logger.warning("Microphone permission denied, session not started")
                return False

            now = self.clock.now()
            self._segments = []
            self._unobserved = []
            self._samples = []
            self._segment_duration = 0.0
            self._auto_stop_at = auto_stop_at
            self._wait_ends_at = now + WAIT_BEFORE_LISTEN_MS
            self._wait_seconds_left = WAIT_BEFORE_LISTEN_MS // 1000
            self._set_state(State.WAITING)

            self._schedule("wait", WAIT_BEFORE_LISTEN_MS, self._start_listening)
            self._schedule("countdown", COUNTDOWN_INTERVAL_MS, self._countdown_tick, repeat=True)
            if auto_stop_at is not None:
                self._schedule("auto_stop", max(0, auto_stop_at - now), self._auto_stop)
            return True

    def stop(self) -> List[RecordingSegment]:
        with self._lock:
            if self._state in (State.IDLE, State.STOPPED):
                return list(self._segments)
            self._cancel_all()
            try:
                self._finalize_segment()
            finally:
                self._segment_open = False
                self._wait_seconds_left = 0
                self._segment_duration = 0.0
                self._set_state(State.STOPPED)
                self.capture.release()
            logger.info("Session stopped with %d segment(s)", len(self._segments))
            return list(self._segments)

    def close(self) -> None:
        with self._lock:
            if self._state not in (State.IDLE, State.STOPPED):
                self.stop()
            self._cancel_all()
            self.capture.release()

    # -- timers -------------------------------------------------------------

    def _schedule(
        self,
        name: str,
        delay_ms: int,
        callback: Callable[[], None],
        repeat: bool = False,
    ) -> None:
        self._cancel(name)

        def fire() -> None:
            with self._lock:
                # Lost a race with cancellation or was superseded.
                if self._timers.get(name) is not handle:
                    return
                if not repeat:
                    del self._timers[name]
                callback()

        if repeat:
            handle = self.scheduler.call_every(delay_ms, fire)
        else:
            handle = self.scheduler.call_later(delay_ms, fire)
        self._timers[name] = handle

    def _cancel(self, name: str) -> None:
        handle = self._timers.pop(name, None)
        if handle is not None:
            handle.cancel()

    def _cancel_all(self) -> None:
        for name in list(self._timers):
            self._cancel(name)

    def _auto_stop_due(self) -> bool:
        return self._auto_stop_at is not None and self.clock.now() >= self._auto_stop_at

    # -- transitions ----------------------------------------------------------

    def _set_state(self, state: DreamRecorderState) -> None:
        if state is not self._state:
            logger.info("Dream recorder %s -> %s", self._state.value, state.value)
        self._state = state

    def _auto_stop(self) -> None:
        logger.info("Auto-stop reached")
        self.stop()

    def _countdown_tick(self) -> None:
        if self._auto_stop_due():
            self._auto_stop()
            return
        remaining = max(0, self._wait_ends_at - self.clock.now())
        self._wait_seconds_left = int(math.ceil(remaining / 1000))
        if self._wait_seconds_left == 0:
            self._cancel("countdown")

    def _start_listening(self) -> None:
        if self._auto_stop_due():
            self._auto_stop()
            return
        self._cancel("countdown")
        self._wait_seconds_left = 0
        self._set_state(State.LISTENING)
        self._schedule("meter", METER_INTERVAL_MS, self._poll, repeat=True)

    def _poll(self) -> None:
        if self._auto_stop_due():
            self._auto_stop()
            return

        reading = self.capture.current_loudness_db()
        db = SILENCE_FLOOR_DB if reading is None else float(reading)
        speech = is_speech_detected(db)

        if self._state is State.RECORDING_SEGMENT:
            self._samples.append(normalize_db(db))
            self._segment_duration = (self.clock.now() - self._segment_started_at) / 1000
            if speech:
                self._cancel("silence")
            elif "silence" not in self._timers:
                self._schedule("silence", SILENCE_TIMEOUT_MS, self._silence_elapsed)
        elif self._state is State.LISTENING and speech:
            self._start_segment()

    def _start_segment(self) -> None:
        self._segment_open = True
        self._segment_started_at = self.clock.now()
        self._segment_duration = 0.0
        self._samples = []
        self._set_state(State.RECORDING_SEGMENT)
        try:
            self.capture.prepare_and_start()
        except CaptureError as exc:
            logger.warning("Could not start segment: %s", exc)
            self._segment_open = False
            self._set_state(State.LISTENING)

    def _silence_elapsed(self) -> None:
        if self._auto_stop_due():
            self._auto_stop()
            return
        self._finalize_segment()
        self._segment_duration = 0.0
        self._set_state(State.LISTENING)

    def _finalize_segment(self) -> Optional[RecordingSegment]:
        if not self._segment_open:
            return None
        self._segment_open = False
        self._cancel("silence")
        samples, self._samples = self._samples, []

        try:
            captured = self.capture.stop()
        except CaptureError as exc:
            logger.warning("Segment dropped, capture failed to stop: %s", exc)
            return None
        if not captured:
            logger.debug("Segment produced no capture")
            return None

        now = self.clock.now()
        duration = (now - self._segment_started_at) / 1000
        date = date_string(now, self.tz)
        ext = os.path.splitext(captured)[1] or ".wav"
        filename = segment_filename(now, ext)
        try:
            uri = os.path.join(self.file_store.ensure_date_dir(date), filename)
            self.file_store.move(captured, uri)
        except (OSError, StorageMoveError) as exc:
            logger.warning("Keeping segment at capture location: %s", exc)
            uri = captured
            filename = os.path.basename(captured)

        segment = RecordingSegment(
            id=new_segment_id(now),
            date=date,
            filename=filename,
            uri=uri,
            duration=duration,
            timestamp=now,
            amplitude_data=samples,
        )
        self._segments.append(segment)
        self._unobserved.append(segment)
        logger.info("Segment %d saved: %s (%.1fs)", len(self._segments), uri, duration)
        if self.on_segment is not None:
            try:
                self.on_segment(segment)
            except Exception:
                logger.exception("Segment handler failed")
        return segment
