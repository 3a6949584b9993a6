"""
Game state parser.

Reads every HUD region out of a full game-window frame and turns the
recognized text into a GameState. Live capture and replay share one
extraction path, so a difference between a recorded state and its replayed
state can only come from a change in this module's rules.
"""

import re
import threading
from typing import Callable, Dict, Optional, Tuple, Union

import numpy as np

from tft_scout.config import OCRSettings
from tft_scout.logging import get_logger
from tft_scout.models import GameState, RecognizedUnit, ShopInfo, now_ms
from tft_scout.perception.capture import ScreenCapture, decode_png
from tft_scout.perception.ocr import TesseractRecognizer, TextRecognizer
from tft_scout.regions import (
    BASE_HEIGHT,
    BASE_REGIONS,
    BASE_WIDTH,
    Region,
    RegionLayout,
    scale_region,
)

logger = get_logger(__name__)

STAGE_PATTERN = re.compile(r"(\d+)\s*[-–—]\s*(\d+)")
NUMBER_PATTERN = re.compile(r"\d+")
XP_PATTERN = re.compile(r"(\d+)\s*/\s*(\d+)")

CropFn = Callable[[np.ndarray, Region], np.ndarray]


def parse_stage_text(text: Optional[str]) -> Optional[str]:
    """"3-2" style stage; falls back to the raw text when it doesn't match."""
    if not text:
        return None
    match = STAGE_PATTERN.search(text)
    if match:
        return f"{match.group(1)}-{match.group(2)}"
    return text


def parse_gold_text(text: Optional[str]) -> Optional[int]:
    if not text:
        return None
    match = NUMBER_PATTERN.search(text)
    return int(match.group(0)) if match else None


def parse_level_text(text: Optional[str]) -> Tuple[Optional[int], Optional[str]]:
    """
    Parse the level readout, e.g. "Lv.6 12/24".

    Returns:
        (level, xp) where either may be None independently
    """
    if not text:
        return None, None
    level_match = NUMBER_PATTERN.search(text)
    xp_match = XP_PATTERN.search(text)
    level = int(level_match.group(0)) if level_match else None
    xp = f"{xp_match.group(1)}/{xp_match.group(2)}" if xp_match else None
    return level, xp


def parse_unit_text(text: Optional[str]) -> Optional[RecognizedUnit]:
    if not text:
        return None
    # Cost needs template matching; not available from OCR alone
    return RecognizedUnit(name=text, cost=None)


class GameStateParser:
    """
    Extracts GameState from game-window frames.

    The recognizer is shared by every field of every parse and is only
    called from behind a lock.
    """

    def __init__(
        self,
        recognizer: Optional[TextRecognizer] = None,
        capture: Optional[ScreenCapture] = None,
        layout: RegionLayout = BASE_REGIONS,
        ocr_settings: Optional[OCRSettings] = None,
    ):
        if recognizer is None:
            settings = ocr_settings or OCRSettings()
            recognizer = TesseractRecognizer(
                lang=settings.lang,
                config=settings.config,
                tesseract_path=settings.tesseract_path,
                timeout_seconds=settings.timeout_seconds,
            )
        self.recognizer = recognizer
        self.capture = capture or ScreenCapture()
        self.layout = layout
        self.window_width = BASE_WIDTH
        self.window_height = BASE_HEIGHT
        self._lock = threading.Lock()

    def init(self) -> None:
        """Initialize the recognizer. Slow; call once."""
        self.recognizer.init()

    def destroy(self) -> None:
        self.recognizer.terminate()

    def set_window_size(self, width: int, height: int) -> None:
        """Set the game window size regions are scaled to."""
        self.window_width = width
        self.window_height = height
        logger.info("Window size set", width=width, height=height)

    def scaled(self, region: Region) -> Region:
        return scale_region(region, self.window_width, self.window_height)

    def parse(
        self,
        frame: np.ndarray,
        crops: Optional[Dict[str, np.ndarray]] = None,
    ) -> GameState:
        """
        Parse a frame just captured from the live game window.

        Args:
            frame: Full game window RGBA frame
            crops: If given, filled with each preprocessed crop by region label

        Returns:
            A fully shaped GameState; never raises
        """
        return self._extract(frame, self.capture.crop_for_recognition, crops)

    def parse_from_buffer(
        self,
        frame: Union[np.ndarray, bytes],
        crops: Optional[Dict[str, np.ndarray]] = None,
    ) -> GameState:
        """
        Parse a previously stored frame (replay).

        Same field rules as parse(); accepts the decoded frame or PNG bytes.
        """
        try:
            if isinstance(frame, (bytes, bytearray)):
                frame = decode_png(bytes(frame))
        except Exception as e:
            logger.error("Parse error", operation="decode_frame", error=str(e))
            return GameState.empty()
        return self._extract(frame, self.capture.crop_from_stored_frame, crops)

    def _extract(
        self,
        frame: np.ndarray,
        crop: CropFn,
        crops: Optional[Dict[str, np.ndarray]],
    ) -> GameState:
        timestamp = now_ms()
        try:
            def read(label: str, region: Region) -> Optional[str]:
                return self._read_region(frame, label, region, crop, crops)

            stage = parse_stage_text(read("stage", self.layout.stage))
            gold = parse_gold_text(read("gold", self.layout.gold))
            level, xp = parse_level_text(read("level", self.layout.level))

            units = [
                parse_unit_text(read(f"shop-{i}", region))
                for i, region in enumerate(self.layout.shop_slots)
            ]
            bench = [
                parse_unit_text(read(f"bench-{i}", region))
                for i, region in enumerate(self.layout.bench_slots)
            ]

            return GameState(
                stage=stage,
                shop=ShopInfo(units=units, gold=gold, level=level, xp=xp),
                bench=bench,
                timestamp=timestamp,
            )
        except Exception as e:
            logger.error("Parse error", operation="extract_game_state", error=str(e), exc_info=True)
            state = GameState.empty()
            state.timestamp = timestamp
            return state

    def _read_region(
        self,
        frame: np.ndarray,
        label: str,
        region: Region,
        crop: CropFn,
        crops: Optional[Dict[str, np.ndarray]],
    ) -> Optional[str]:
        """Crop, preprocess and recognize one region. None on any failure."""
        try:
            image = crop(frame, self.scaled(region))
            if crops is not None:
                crops[label] = image
            with self._lock:
                result = self.recognizer.recognize(image)
        except Exception as e:
            logger.warning("Region recognition failed", region=label, error=str(e))
            return None

        text = result.text.strip()
        logger.debug("Region recognized", region=label, text=text, confidence=result.confidence)
        return text or None
