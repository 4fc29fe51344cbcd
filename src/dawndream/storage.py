"""Storage and naming utilities."""

from __future__ import annotations

import logging
import os
import shutil

from .errors import StorageDeleteError, StorageMoveError

logger = logging.getLogger(__name__)


def ensure_dir(path: str) -> None:
    os.makedirs(path, exist_ok=True)


def segment_filename(timestamp_ms: int, ext: str = ".wav") -> str:
    return f"dream_{timestamp_ms}{ext}"


def ensure_structure(base_dir: str) -> dict:
    root = os.path.expanduser(base_dir) if base_dir else os.getcwd()
    paths = {
        "root": root,
        "recordings": os.path.join(root, "recordings"),
        "capture": os.path.join(root, "capture"),
        "logs": os.path.join(root, "logs"),
    }
    for path in paths.values():
        ensure_dir(path)
    return paths


class FileStore:
    """Recording files laid out as ``<root>/recordings/<YYYY-MM-DD>/``."""

    def __init__(self, base_dir: str) -> None:
        self.paths = ensure_structure(base_dir)

    @property
    def recordings_dir(self) -> str:
        return self.paths["recordings"]

    @property
    def capture_dir(self) -> str:
        return self.paths["capture"]

    def ensure_date_dir(self, date: str) -> str:
        path = os.path.join(self.recordings_dir, date)
        try:
            ensure_dir(path)
        except OSError as exc:
            raise StorageMoveError(f"Could not create {path}: {exc}") from exc
        return path

    def move(self, src: str, dst: str) -> str:
        try:
            shutil.move(src, dst)
        except (OSError, shutil.Error) as exc:
            raise StorageMoveError(f"Could not move {src} to {dst}: {exc}") from exc
        return dst

    def delete(self, path: str) -> None:
        if not os.path.exists(path):
            return
        try:
            os.remove(path)
        except OSError as exc:
            raise StorageDeleteError(f"Could not delete {path}: {exc}") from exc
        logger.debug("Deleted %s", path)
