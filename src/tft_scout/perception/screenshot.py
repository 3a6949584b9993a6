"""
Screenshot capture using mss.

This is the raw pixel source: it knows nothing about the game layout and
returns BGRA buffers for absolute screen rectangles.
"""

import time
from dataclasses import dataclass
from typing import Tuple

import mss

from tft_scout.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class CaptureRect:
    """Absolute screen rectangle."""

    x: int
    y: int
    width: int
    height: int

    def to_mss_dict(self) -> dict:
        """Return as mss monitor dict format."""
        return {
            "left": self.x,
            "top": self.y,
            "width": self.width,
            "height": self.height,
        }


@dataclass
class RawFrame:
    """Raw pixels as delivered by the frame source."""

    width: int
    height: int
    data: bytes
    channels: str = "BGRA"


class ScreenshotCapture:
    """
    Frame source backed by mss.

    A fresh mss context is opened per grab so the instance can be used from
    the hotkey thread as well as the main thread.
    """

    def __init__(self, monitor_index: int = 1):
        # mss monitors: 0 = all monitors combined, 1+ = individual
        self.monitor_index = monitor_index
        logger.debug("ScreenshotCapture initialized", monitor=monitor_index)

    def grab(self, rect: CaptureRect) -> RawFrame:
        """
        Grab a screen rectangle.

        Raises:
            ValueError: If the rectangle is empty
            mss.exception.ScreenShotError: If the grab fails
        """
        if rect.width <= 0 or rect.height <= 0:
            raise ValueError(f"Invalid capture size: {rect.width}x{rect.height}")

        start = time.time()
        with mss.mss() as sct:
            shot = sct.grab(rect.to_mss_dict())
            frame = RawFrame(width=shot.width, height=shot.height, data=bytes(shot.bgra))

        logger.debug(
            "Screen grabbed",
            rect=(rect.x, rect.y, rect.width, rect.height),
            duration_ms=int((time.time() - start) * 1000),
        )
        return frame

    def screen_size(self) -> Tuple[int, int]:
        """Size of the configured monitor."""
        with mss.mss() as sct:
            monitors = sct.monitors
            index = self.monitor_index if self.monitor_index < len(monitors) else 1
            monitor = monitors[index]
            return monitor["width"], monitor["height"]
