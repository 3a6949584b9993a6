"""
TFT Scout orchestrator.

Resolves the game window, owns the capture/parse/record components and
wires the capture hotkey to them.
"""

import threading
from typing import Callable, Dict, Optional

import numpy as np

from tft_scout.config import ScoutConfig
from tft_scout.hotkeys import HotkeyCallback, HotkeyManager
from tft_scout.logging import get_logger
from tft_scout.models import GameState, SurfaceConfig
from tft_scout.parser import GameStateParser
from tft_scout.perception.capture import ScreenCapture, encode_png
from tft_scout.perception.ocr import TextRecognizer
from tft_scout.perception.screenshot import ScreenshotCapture
from tft_scout.recording import RecorderConfig, SessionRecorder
from tft_scout.regions import Point
from tft_scout.window import WindowFinder

logger = get_logger(__name__)


def centered_surface(screen_width: int, screen_height: int, width: int, height: int) -> SurfaceConfig:
    """Place a window of the given size in the middle of the screen."""
    return SurfaceConfig(
        width=width,
        height=height,
        x=(screen_width - width) // 2,
        y=(screen_height - height) // 2,
    )


class TftScout:
    """
    Main application object.

    Only one capture runs at a time; a trigger that arrives while a capture
    is in flight is dropped.
    """

    def __init__(
        self,
        config: Optional[ScoutConfig] = None,
        frame_source: Optional[ScreenshotCapture] = None,
        recognizer: Optional[TextRecognizer] = None,
        recorder: Optional[SessionRecorder] = None,
        hotkeys: Optional[HotkeyManager] = None,
        window_finder: Optional[WindowFinder] = None,
    ):
        self.config = config or ScoutConfig()

        self.frame_source = frame_source or ScreenshotCapture()
        self.capture = ScreenCapture(frame_source=self.frame_source)
        self.parser = GameStateParser(
            recognizer=recognizer,
            capture=self.capture,
            ocr_settings=self.config.ocr,
        )
        self.recorder = recorder or SessionRecorder(RecorderConfig(
            enabled=self.config.debug.enabled,
            output_dir=self.config.debug.output_path,
            save_region_crops=self.config.debug.save_region_crops,
        ))
        self.hotkeys = hotkeys or HotkeyManager()
        self.window_finder = window_finder or WindowFinder()

        self.surface: Optional[SurfaceConfig] = None
        self._in_flight = threading.Lock()

    def resolve_surface(self) -> SurfaceConfig:
        """
        Work out where the game window is.

        An explicit origin in the config wins; then auto-detection; then a
        window of the configured size centred on the screen.
        """
        settings = self.config.surface

        if settings.has_origin:
            return SurfaceConfig(
                width=settings.width,
                height=settings.height,
                x=settings.x,
                y=settings.y,
            )

        if settings.auto_detect:
            info = self.window_finder.find_game_window()
            if info is not None:
                return SurfaceConfig(width=info.width, height=info.height, x=info.x, y=info.y)
            logger.info("Could not auto-detect game window, using defaults")

        screen_width, screen_height = self.frame_source.screen_size()
        logger.info("Screen size", width=screen_width, height=screen_height)
        return centered_surface(screen_width, screen_height, settings.width, settings.height)

    def init(self) -> SurfaceConfig:
        """Resolve the window, load OCR and start recording/hotkeys."""
        logger.info("Initializing...")

        surface = self.resolve_surface()
        self.surface = surface
        logger.info(
            "Game window",
            width=surface.width,
            height=surface.height,
            x=surface.x,
            y=surface.y,
        )

        self.capture.set_origin(Point(surface.x, surface.y))
        self.parser.init()
        self.parser.set_window_size(surface.width, surface.height)

        if self.recorder.is_enabled:
            self.recorder.start_session(surface)

        self.hotkeys.start()
        logger.info("Initialization complete")
        return surface

    def register_hotkey(self, accelerator: str, callback: HotkeyCallback) -> bool:
        return self.hotkeys.register(accelerator, callback)

    def capture_and_parse(self) -> GameState:
        """
        Capture the game window, parse it and record it if debugging.

        Raises:
            ConfigurationError: If init() has not resolved the window
            StorageError: If the capture could not be recorded
        """
        size = self.surface or self.config.surface

        logger.info("Capturing screen...")
        frame = self.capture.capture_full(size.width, size.height)

        crops: Optional[Dict[str, np.ndarray]] = {} if self.recorder.saves_regions else None

        logger.info("Parsing game state...")
        game_state = self.parser.parse(frame, crops=crops)

        if self.recorder.is_enabled:
            self.recorder.record_capture(encode_png(frame), game_state)
            for label, crop in (crops or {}).items():
                self.recorder.record_region_crop(label, encode_png(crop))

        return game_state

    def trigger_capture(self, on_result: Callable[[GameState], None]) -> bool:
        """
        Hotkey entry point: capture unless one is already running.

        Failures are logged rather than raised so the listener keeps going.

        Returns:
            False if the trigger was dropped because a capture was in flight
        """
        if not self._in_flight.acquire(blocking=False):
            logger.info("Capture already in progress, trigger ignored")
            return False

        try:
            on_result(self.capture_and_parse())
        except Exception as e:
            logger.error(
                "Capture failed",
                operation="capture_and_parse",
                error=str(e),
                error_type=type(e).__name__,
            )
        finally:
            self._in_flight.release()
        return True

    def stop(self) -> None:
        self.hotkeys.stop()
        self.recorder.close_session()
        self.parser.destroy()
        logger.info("Stopped")
