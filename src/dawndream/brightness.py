"""Screen brightness control."""

from __future__ import annotations

import glob
import logging
import os
from typing import Optional

logger = logging.getLogger(__name__)

BACKLIGHT_ROOT = "/sys/class/backlight"


class Brightness:
    """Brightness capability; values are fractions in [0, 1].

    ``set`` never raises: hosts without a controllable screen ignore it.
    """

    def get(self) -> float:
        raise NotImplementedError

    def set(self, value: float) -> None:
        raise NotImplementedError


class NullBrightness(Brightness):
    def __init__(self) -> None:
        self.value = 1.0

    def get(self) -> float:
        return self.value

    def set(self, value: float) -> None:
        self.value = max(0.0, min(1.0, float(value)))


def find_backlight(name: Optional[str] = None, root: str = BACKLIGHT_ROOT) -> Optional[str]:
    candidates = sorted(glob.glob(os.path.join(root, "*")))
    if name:
        candidates = [c for c in candidates if os.path.basename(c) == name]
    return candidates[0] if candidates else None


class SysfsBrightness(Brightness):
    """Linux backlight under ``/sys/class/backlight/<device>``."""

    def __init__(self, device_dir: str) -> None:
        self.device_dir = device_dir

    def _read_int(self, filename: str) -> int:
        with open(os.path.join(self.device_dir, filename), "r", encoding="utf-8") as handle:
            return int(handle.read().strip())

    def get(self) -> float:
        try:
            maximum = self._read_int("max_brightness")
            current = self._read_int("brightness")
        except (OSError, ValueError) as exc:
            logger.debug("Brightness read failed: %s", exc)
            return 1.0
        if maximum <= 0:
            return 1.0
        return max(0.0, min(1.0, current / maximum))

    def set(self, value: float) -> None:
        value = max(0.0, min(1.0, float(value)))
        try:
            maximum = self._read_int("max_brightness")
            with open(
                os.path.join(self.device_dir, "brightness"), "w", encoding="utf-8"
            ) as handle:
                handle.write(str(int(round(value * maximum))))
        except (OSError, ValueError) as exc:
            logger.debug("Brightness write ignored: %s", exc)


def open_brightness(name: Optional[str] = None) -> Brightness:
    device_dir = find_backlight(name)
    if device_dir is None:
        logger.info("No backlight found, brightness changes are ignored")
        return NullBrightness()
    return SysfsBrightness(device_dir)
