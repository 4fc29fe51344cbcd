"""Error kinds raised at capability boundaries."""

from __future__ import annotations


class DawnDreamError(Exception):
    """Base class for recoverable DawnDream failures."""


class PermissionDenied(DawnDreamError):
    """Microphone capture is not authorized."""


class CaptureError(DawnDreamError):
    """The capture backend failed to start or stop."""


class StorageMoveError(DawnDreamError):
    """A captured artifact could not be moved into the recordings tree."""


class StorageDeleteError(DawnDreamError):
    """A recording file could not be removed."""


class ParseFailure(DawnDreamError):
    """Persisted settings or recordings could not be decoded."""
