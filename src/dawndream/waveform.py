"""Loudness normalization and waveform display helpers."""

from __future__ import annotations

import math
from typing import List, Sequence

import numpy as np

SILENCE_FLOOR_DB = -160.0
THRESHOLD_DB = 40.0
MIN_BAR = 0.05
MAX_BAR = 1.0


def normalize_db(db: float) -> float:
    """Map dBFS in [-160, 0] onto [0, 1], clamping outside values."""
    return max(0.0, min(1.0, (db - SILENCE_FLOOR_DB) / -SILENCE_FLOOR_DB))


def is_speech_detected(db: float) -> bool:
    return db >= THRESHOLD_DB + SILENCE_FLOOR_DB


def resample(samples: Sequence[float], bucket_count: int) -> List[float]:
    """Linearly interpolate ``samples`` onto ``bucket_count`` display buckets.

    Works for both up- and downsampling. Output values are clamped to
    [0.05, 1.0].
    """
    if bucket_count < 1:
        raise ValueError("bucket_count must be >= 1.")
    data = np.asarray(samples, dtype=np.float64)
    if data.size == 0:
        raise ValueError("Cannot resample an empty sequence.")

    src_idx = np.arange(bucket_count, dtype=np.float64) / bucket_count * data.size
    lo = np.floor(src_idx).astype(np.int64)
    hi = np.minimum(np.ceil(src_idx).astype(np.int64), data.size - 1)
    frac = src_idx - lo
    values = data[lo] * (1.0 - frac) + data[hi] * frac
    return np.clip(values, MIN_BAR, MAX_BAR).tolist()


def placeholder_waveform(bucket_count: int) -> List[float]:
    """Deterministic bell-shaped bars shown when a segment has no samples."""
    bars = []
    for i in range(bucket_count):
        x = i / bucket_count
        amp = 0.15 + 0.5 * math.exp(-(((x - 0.5) * 4) ** 2))
        pseudo = math.sin(i * 127.1 + 311.7) * 0.5 + 0.5
        bars.append(amp + (pseudo * 0.1 - 0.05))
    return bars


def display_waveform(samples: Sequence[float], bucket_count: int = 40) -> List[float]:
    if len(samples) == 0:
        return placeholder_waveform(bucket_count)
    return resample(samples, bucket_count)


def format_duration(seconds: float) -> str:
    minutes = int(seconds // 60)
    secs = int(seconds % 60)
    if minutes > 0:
        return f"{minutes}:{secs:02d}"
    return f"{secs}s"
