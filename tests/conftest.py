"""
Pytest configuration and fixtures.
"""

import tempfile
from pathlib import Path
from typing import List, Optional, Union

import numpy as np
import pytest

from tft_scout.perception.capture import ScreenCapture
from tft_scout.perception.ocr import RecognitionResult
from tft_scout.perception.screenshot import CaptureRect, RawFrame
from tft_scout.parser import GameStateParser
from tft_scout.regions import BASE_HEIGHT, BASE_WIDTH


# Recognizer answers for one full parse, in extraction order:
# stage, gold, level, shop-0..4, bench-0..8
DEFAULT_SCRIPT: List[Union[str, Exception]] = [
    "3-2",
    "45",
    "Lv.6 12/24",
    "Ahri", "", "Jinx", "Garen", "",
    "Lux", "", "", "Vi", "", "", "", "", "Zed",
]


class ScriptedRecognizer:
    """
    Fake recognizer returning canned answers in call order.

    The script wraps around, so every parse of 17 regions sees the same
    answers. Exceptions in the script are raised instead of returned.
    """

    def __init__(self, script: Optional[List[Union[str, Exception]]] = None):
        self.script = list(script if script is not None else DEFAULT_SCRIPT)
        self.calls: List[np.ndarray] = []
        self.initialized = False
        self.terminated = False

    def init(self) -> None:
        self.initialized = True

    def recognize(self, image: np.ndarray) -> RecognitionResult:
        answer = self.script[len(self.calls) % len(self.script)]
        self.calls.append(image)
        if isinstance(answer, Exception):
            raise answer
        return RecognitionResult(text=answer, confidence=0.9)

    def terminate(self) -> None:
        self.terminated = True


class FakeFrameSource:
    """Frame source producing a deterministic BGRA gradient."""

    def __init__(self, screen=(1920, 1080)):
        self.screen = screen
        self.grabs: List[CaptureRect] = []

    def grab(self, rect: CaptureRect) -> RawFrame:
        self.grabs.append(rect)
        bgra = make_frame(rect.width, rect.height)[:, :, [2, 1, 0, 3]]
        return RawFrame(width=rect.width, height=rect.height, data=bgra.tobytes())

    def screen_size(self):
        return self.screen


def make_frame(width: int = BASE_WIDTH, height: int = BASE_HEIGHT, seed: int = 7) -> np.ndarray:
    """Synthetic RGBA game frame with some texture in it."""
    rng = np.random.default_rng(seed)
    frame = rng.integers(0, 256, size=(height, width, 4), dtype=np.uint8)
    frame[:, :, 3] = 255
    return frame


@pytest.fixture(scope="session")
def temp_dir():
    """Session-scoped temporary directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def work_dir():
    """Fresh temporary directory per test."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def frame() -> np.ndarray:
    return make_frame()


@pytest.fixture
def recognizer() -> ScriptedRecognizer:
    return ScriptedRecognizer()


@pytest.fixture
def parser(recognizer) -> GameStateParser:
    return GameStateParser(recognizer=recognizer, capture=ScreenCapture())


@pytest.fixture
def frame_source() -> FakeFrameSource:
    return FakeFrameSource()


@pytest.fixture
def recognizer_factory():
    """Build a ScriptedRecognizer with a custom script."""
    return ScriptedRecognizer


@pytest.fixture
def frame_factory():
    """Build a synthetic RGBA frame of a given size."""
    return make_frame
