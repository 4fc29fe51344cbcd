"""Microphone capture for dream segments."""

from __future__ import annotations

import logging
import os
import threading
import time
import wave
from typing import Any, Dict, List, Optional

import numpy as np

from .errors import CaptureError
from .waveform import SILENCE_FLOOR_DB

logger = logging.getLogger(__name__)


class AudioCapture:
    """Capability the session controller records through.

    ``current_loudness_db`` must keep reporting while no segment is being
    written so the controller can detect the start of speech.
    """

    def request_permission(self) -> bool:
        raise NotImplementedError

    def prepare_and_start(self) -> None:
        raise NotImplementedError

    def current_loudness_db(self) -> Optional[float]:
        raise NotImplementedError

    def stop(self) -> Optional[str]:
        raise NotImplementedError

    def release(self) -> None:
        """Free any monitor stream. Safe to call more than once."""


def list_input_devices() -> List[Dict[str, Any]]:
    try:
        import sounddevice as sd
    except Exception as exc:  # pragma: no cover - environment-dependent
        raise RuntimeError("sounddevice is required for device detection.") from exc

    devices = sd.query_devices()
    return [dict(d) for d in devices if d.get("max_input_channels", 0) > 0]


def select_preferred_device(
    candidates: List[Dict[str, Any]],
    prefer_name: Optional[str] = None,
    default_index: Optional[int] = None,
) -> Dict[str, Any]:
    if not candidates:
        raise RuntimeError("No input devices found.")
    if prefer_name:
        preferred = [
            d for d in candidates if prefer_name.lower() in d.get("name", "").lower()
        ]
        if preferred:
            return preferred[0]

    if default_index is not None:
        for device in candidates:
            if device.get("index") == default_index:
                return device

    return candidates[0]


def block_dbfs(block: Any) -> float:
    """RMS level of an int16 or float block in dBFS, floored at -160."""
    raw = np.asarray(block)
    if raw.size == 0:
        return SILENCE_FLOOR_DB
    data = raw.astype(np.float32)
    if np.issubdtype(raw.dtype, np.integer):
        data = data / 32768.0
    rms = float(np.sqrt(np.mean(data ** 2)))
    if rms <= 0.0:
        return SILENCE_FLOOR_DB
    return max(SILENCE_FLOOR_DB, min(0.0, 20.0 * float(np.log10(rms))))


class SoundDeviceCapture(AudioCapture):
    """Capture backed by a single ``sounddevice.InputStream``.

    The stream stays open as a level monitor from the first loudness query
    until :meth:`release`; frames go to a WAV file only between
    :meth:`prepare_and_start` and :meth:`stop`.
    """

    def __init__(
        self,
        work_dir: str,
        device_name: Optional[str] = None,
        sample_rate_hz: int = 44100,
        channels: int = 1,
        block_ms: int = 100,
    ) -> None:
        self.work_dir = work_dir
        self.device_name = device_name
        self.sample_rate_hz = sample_rate_hz
        self.channels = channels
        self.block_ms = block_ms
        self._lock = threading.Lock()
        self._stream = None
        self._writer: Optional[wave.Wave_write] = None
        self._path: Optional[str] = None
        self._level_db: Optional[float] = None

    def _device_index(self) -> Optional[int]:
        import sounddevice as sd

        default_input = sd.default.device[0]
        device = select_preferred_device(
            list_input_devices(),
            prefer_name=self.device_name,
            default_index=default_input if isinstance(default_input, int) else None,
        )
        return device.get("index")

    def request_permission(self) -> bool:
        try:
            return bool(list_input_devices())
        except Exception as exc:
            logger.warning("Microphone unavailable: %s", exc)
            return False

    def _callback(self, indata, _frames, _time, status) -> None:
        if status:
            logger.debug("Capture status: %s", status)
        level = block_dbfs(indata)
        with self._lock:
            self._level_db = level
            if self._writer is not None:
                self._writer.writeframes(indata.tobytes())

    def _ensure_stream(self) -> None:
        if self._stream is not None:
            return
        try:
            import sounddevice as sd
        except Exception as exc:  # pragma: no cover - environment-dependent
            raise CaptureError("sounddevice is required for recording.") from exc

        try:
            stream = sd.InputStream(
                samplerate=self.sample_rate_hz,
                channels=self.channels,
                dtype="int16",
                device=self._device_index(),
                blocksize=int(self.sample_rate_hz * self.block_ms / 1000),
                callback=self._callback,
            )
            stream.start()
        except Exception as exc:
            raise CaptureError(f"Could not open input stream: {exc}") from exc
        self._stream = stream
        logger.info("Level monitor started")

    def prepare_and_start(self) -> None:
        self._ensure_stream()
        os.makedirs(self.work_dir, exist_ok=True)
        path = os.path.join(self.work_dir, f"capture_{int(time.time() * 1000)}.wav")
        try:
            writer = wave.open(path, "wb")
            writer.setnchannels(self.channels)
            writer.setsampwidth(2)
            writer.setframerate(self.sample_rate_hz)
        except OSError as exc:
            raise CaptureError(f"Could not open {path}: {exc}") from exc
        with self._lock:
            self._writer = writer
            self._path = path

    def current_loudness_db(self) -> Optional[float]:
        try:
            self._ensure_stream()
        except CaptureError as exc:
            logger.debug("No level reading: %s", exc)
            return None
        with self._lock:
            return self._level_db

    def stop(self) -> Optional[str]:
        with self._lock:
            writer, path = self._writer, self._path
            self._writer = None
            self._path = None
        if writer is None:
            return None
        try:
            writer.close()
        except OSError as exc:
            raise CaptureError(f"Could not finalize {path}: {exc}") from exc
        return path

    def release(self) -> None:
        if self._writer is not None:
            try:
                self.stop()
            except CaptureError as exc:
                logger.warning("Dropped open capture: %s", exc)
        stream, self._stream = self._stream, None
        if stream is None:
            return
        try:
            stream.stop()
            stream.close()
        except Exception as exc:
            logger.debug("Stream close failed: %s", exc)
        logger.info("Level monitor stopped")
