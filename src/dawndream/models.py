"""Data models for DawnDream."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class DreamRecorderState(str, Enum):
    IDLE = "idle"
    WAITING = "waiting"
    LISTENING = "listening"
    RECORDING_SEGMENT = "recording_segment"
    STOPPED = "stopped"


class SunriseState(str, Enum):
    IDLE = "idle"
    WAITING = "waiting"
    ACTIVE = "active"
    DONE = "done"


@dataclass(frozen=True)
class RecordingSegment:
    id: str
    date: str
    filename: str
    uri: str
    duration: float
    timestamp: int
    amplitude_data: List[float] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "date": self.date,
            "filename": self.filename,
            "uri": self.uri,
            "duration": self.duration,
            "timestamp": self.timestamp,
            "amplitudeData": list(self.amplitude_data),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RecordingSegment":
        return cls(
            id=str(data["id"]),
            date=str(data["date"]),
            filename=str(data.get("filename", "")),
            uri=str(data["uri"]),
            duration=float(data.get("duration", 0.0)),
            timestamp=int(data.get("timestamp", 0)),
            amplitude_data=[float(v) for v in data.get("amplitudeData") or []],
        )


@dataclass(frozen=True)
class DreamRecorderStatus:
    state: DreamRecorderState
    wait_seconds_left: int
    segment_count: int
    current_segment_duration: float
    auto_stop_time: Optional[int]


@dataclass(frozen=True)
class SunriseStatus:
    state: SunriseState
    progress: float = 0.0
    minutes_until_start: Optional[int] = None
    start_time: Optional[int] = None
    end_time: Optional[int] = None
