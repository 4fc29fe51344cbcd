"""Recording list and settings persistence."""

from __future__ import annotations

import json
import logging
import os
import threading
from typing import Dict, List, Optional

from .config import LANGUAGES, THEME_MODES, AppSettings
from .errors import ParseFailure, StorageDeleteError
from .models import RecordingSegment
from .storage import FileStore
from .sunrise_utils import parse_alarm_time

logger = logging.getLogger(__name__)

RECORDINGS_KEY = "@dawndream_recordings"
SETTINGS_KEY = "@dawndream_settings"


class MemoryKeyValueStore:
    def __init__(self) -> None:
        self._data: Dict[str, bytes] = {}

    def get(self, key: str) -> Optional[bytes]:
        return self._data.get(key)

    def set(self, key: str, value: bytes) -> None:
        self._data[key] = bytes(value)


class JsonFileKeyValueStore:
    """Key-value pairs kept in one JSON document, rewritten atomically."""

    def __init__(self, path: str) -> None:
        self.path = path
        self._lock = threading.Lock()
        parent = os.path.dirname(os.path.abspath(path))
        os.makedirs(parent, exist_ok=True)

    def _read(self) -> Dict[str, str]:
        if not os.path.exists(self.path):
            return {}
        with open(self.path, "r", encoding="utf-8") as handle:
            try:
                data = json.load(handle)
            except ValueError:
                logger.warning("Store %s is corrupt, starting empty", self.path)
                return {}
        return data if isinstance(data, dict) else {}

    def get(self, key: str) -> Optional[bytes]:
        with self._lock:
            value = self._read().get(key)
        return value.encode("utf-8", errors="replace") if isinstance(value, str) else None

    def set(self, key: str, value: bytes) -> None:
        with self._lock:
            data = self._read()
            data[key] = value.decode("utf-8")
            tmp = self.path + ".tmp"
            with open(tmp, "w", encoding="utf-8") as handle:
                json.dump(data, handle, indent=2, ensure_ascii=False)
            os.replace(tmp, self.path)


def decode_recordings(raw: bytes) -> List[RecordingSegment]:
    try:
        items = json.loads(raw.decode("utf-8"))
        if not isinstance(items, list):
            raise ParseFailure("Recordings payload is not a list.")
        return [RecordingSegment.from_dict(item) for item in items]
    except (UnicodeDecodeError, ValueError, KeyError, TypeError) as exc:
        raise ParseFailure(f"Unreadable recordings: {exc}") from exc


def encode_recordings(recordings: List[RecordingSegment]) -> bytes:
    return json.dumps([seg.to_dict() for seg in recordings]).encode("utf-8")


class RecordingsStore:
    """Saved segments, newest first.

    Each mutation re-reads the persisted list, applies the change and writes
    the whole list back while holding the store lock.
    """

    def __init__(self, kv, file_store: Optional[FileStore] = None) -> None:
        self.kv = kv
        self.file_store = file_store
        self._lock = threading.Lock()
        self._recordings: List[RecordingSegment] = []

    def _read(self) -> List[RecordingSegment]:
        raw = self.kv.get(RECORDINGS_KEY)
        if not raw:
            return []
        try:
            return decode_recordings(raw)
        except ParseFailure as exc:
            logger.warning("Ignoring stored recordings: %s", exc)
            return []

    def _write(self, recordings: List[RecordingSegment]) -> None:
        self.kv.set(RECORDINGS_KEY, encode_recordings(recordings))

    @staticmethod
    def _sorted(recordings: List[RecordingSegment]) -> List[RecordingSegment]:
        return sorted(recordings, key=lambda seg: seg.timestamp, reverse=True)

    def load(self) -> List[RecordingSegment]:
        with self._lock:
            self._recordings = self._sorted(self._read())
            return list(self._recordings)

    refresh = load

    @property
    def recordings(self) -> List[RecordingSegment]:
        return list(self._recordings)

    def get(self, recording_id: str) -> Optional[RecordingSegment]:
        return next((seg for seg in self._recordings if seg.id == recording_id), None)

    def add(self, segment: RecordingSegment) -> None:
        with self._lock:
            current = [seg for seg in self._read() if seg.id != segment.id]
            self._recordings = self._sorted([segment] + current)
            self._write(self._recordings)
        logger.info("Saved recording %s (%.1fs)", segment.id, segment.duration)

    def delete(self, recording_id: str) -> bool:
        with self._lock:
            current = self._read()
            target = next((seg for seg in current if seg.id == recording_id), None)
            if target is not None and self.file_store is not None:
                try:
                    self.file_store.delete(target.uri)
                except StorageDeleteError as exc:
                    logger.warning("Recording file left behind: %s", exc)
            self._recordings = self._sorted(
                [seg for seg in current if seg.id != recording_id]
            )
            self._write(self._recordings)
        return target is not None


class SettingsStore:
    def __init__(self, kv) -> None:
        self.kv = kv
        self._lock = threading.Lock()

    def load(self) -> AppSettings:
        raw = self.kv.get(SETTINGS_KEY)
        if not raw:
            return AppSettings()
        try:
            return AppSettings.from_json(raw)
        except ParseFailure as exc:
            logger.warning("Using default settings: %s", exc)
            return AppSettings()

    def save(self, settings: AppSettings) -> None:
        self.kv.set(SETTINGS_KEY, settings.to_json())

    def _update(self, **changes) -> AppSettings:
        with self._lock:
            settings = self.load()
            for name, value in changes.items():
                setattr(settings, name, value)
            self.save(settings)
            return settings

    def set_alarm_time(self, alarm_time: Optional[str]) -> AppSettings:
        if alarm_time is not None:
            alarm_time = str(parse_alarm_time(alarm_time))
        return self._update(alarm_time=alarm_time)

    def set_theme_mode(self, mode: str) -> AppSettings:
        if mode not in THEME_MODES:
            raise ValueError(f"Unknown theme mode: {mode}")
        return self._update(theme_mode=mode)

    def set_language(self, language: str) -> AppSettings:
        if language not in LANGUAGES:
            raise ValueError(f"Unknown language: {language}")
        return self._update(language=language)
