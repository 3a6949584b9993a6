"""
Game window discovery with pywin32.

Only implemented on Windows; elsewhere find_game_window() returns None and
the caller falls back to a centred window.
"""

import re
import sys
from dataclasses import dataclass
from typing import List, Optional, Pattern

from tft_scout.logging import get_logger

logger = get_logger(__name__)

IS_WINDOWS = sys.platform == "win32"

if IS_WINDOWS:
    import win32gui


TFT_TITLE_PATTERNS = [
    r"teamfight tactics",
    r"云顶之弈",
    r"\btft\b",
    r"league.*client",
]


@dataclass
class WindowInfo:
    """A top-level window's client area in screen coordinates."""

    title: str
    x: int
    y: int
    width: int
    height: int


class WindowFinder:
    """Finds the game window by title."""

    def __init__(self, title_patterns: Optional[List[str]] = None):
        patterns = title_patterns or TFT_TITLE_PATTERNS
        self._patterns: List[Pattern[str]] = [re.compile(p, re.IGNORECASE) for p in patterns]

    def matches(self, title: str) -> bool:
        return any(p.search(title) for p in self._patterns)

    def find_game_window(self) -> Optional[WindowInfo]:
        """
        Find the first visible window whose title matches.

        Patterns are tried in priority order, so the game itself wins over
        the League client when both are open.
        """
        if not IS_WINDOWS:
            logger.debug("Window auto-detection requires Windows")
            return None

        windows = self.list_windows()
        for pattern in self._patterns:
            for info in windows:
                if pattern.search(info.title):
                    logger.info(
                        "Found game window",
                        title=info.title,
                        x=info.x,
                        y=info.y,
                        width=info.width,
                        height=info.height,
                    )
                    return info

        logger.info("Game window not found")
        return None

    def list_windows(self) -> List[WindowInfo]:
        """All visible, titled top-level windows."""
        if not IS_WINDOWS:
            return []

        handles: List[int] = []

        def enum_callback(hwnd, _):
            if win32gui.IsWindowVisible(hwnd) and win32gui.GetWindowText(hwnd):
                handles.append(hwnd)
            return True

        win32gui.EnumWindows(enum_callback, None)

        result = []
        for hwnd in handles:
            try:
                left, top, right, bottom = win32gui.GetClientRect(hwnd)
                x, y = win32gui.ClientToScreen(hwnd, (left, top))
            except win32gui.error:
                # Window closed while enumerating
                continue
            if right - left <= 0 or bottom - top <= 0:
                continue
            result.append(WindowInfo(
                title=win32gui.GetWindowText(hwnd),
                x=x,
                y=y,
                width=right - left,
                height=bottom - top,
            ))
        return result
