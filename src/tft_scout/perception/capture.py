"""
Game-window capture adapter.

Turns game-relative regions into absolute screen grabs, normalizes pixel
layout to RGBA, and crops/preprocesses sub-images for OCR. Crops are always
copies; the caller's frame is never modified.
"""

import io
from pathlib import Path
from typing import Optional, Union

import numpy as np
from PIL import Image

from tft_scout.config import ConfigurationError
from tft_scout.logging import get_logger
from tft_scout.perception.preprocessing import ImagePreprocessor
from tft_scout.perception.screenshot import CaptureRect, RawFrame, ScreenshotCapture
from tft_scout.regions import Point, Region

logger = get_logger(__name__)


def raw_to_rgba(frame: RawFrame) -> np.ndarray:
    """Convert a raw frame-source buffer to an RGBA uint8 array."""
    if frame.channels not in ("BGRA", "RGBA"):
        raise ValueError(f"Unsupported channel layout: {frame.channels}")

    pixels = np.frombuffer(frame.data, dtype=np.uint8)
    expected = frame.width * frame.height * 4
    if pixels.size != expected:
        raise ValueError(
            f"Frame buffer has {pixels.size} bytes, expected {expected} "
            f"for {frame.width}x{frame.height}"
        )

    pixels = pixels.reshape((frame.height, frame.width, 4))
    if frame.channels == "BGRA":
        return pixels[:, :, [2, 1, 0, 3]].copy()
    return pixels.copy()


def encode_png(image: np.ndarray) -> bytes:
    """Encode an RGBA, RGB or grayscale array as PNG."""
    buffer = io.BytesIO()
    Image.fromarray(image).save(buffer, format="PNG")
    return buffer.getvalue()


def decode_png(data: bytes) -> np.ndarray:
    """Decode image bytes to an RGBA array."""
    with Image.open(io.BytesIO(data)) as img:
        return np.array(img.convert("RGBA"))


def load_frame(path: Union[str, Path]) -> np.ndarray:
    """Load a stored screenshot as an RGBA array."""
    with Image.open(path) as img:
        return np.array(img.convert("RGBA"))


class ScreenCapture:
    """
    Captures the game window and prepares crops for recognition.

    The window origin must be set before any live capture; stored-frame
    cropping works without it.
    """

    def __init__(
        self,
        frame_source: Optional[ScreenshotCapture] = None,
        preprocessor: Optional[ImagePreprocessor] = None,
    ):
        self._frame_source = frame_source
        self.preprocessor = preprocessor or ImagePreprocessor()
        self._origin: Optional[Point] = None

    @property
    def frame_source(self) -> ScreenshotCapture:
        if self._frame_source is None:
            self._frame_source = ScreenshotCapture()
        return self._frame_source

    @property
    def origin(self) -> Optional[Point]:
        return self._origin

    def set_origin(self, origin: Point) -> None:
        self._origin = origin
        logger.info("Game window origin set", x=origin.x, y=origin.y)

    def _require_origin(self) -> Point:
        if self._origin is None:
            raise ConfigurationError(
                "Game window origin not set",
                field="surface.x/surface.y",
                suggestions=["Call set_origin() before capturing"],
            )
        return self._origin

    def to_absolute(self, region: Region) -> CaptureRect:
        """Convert a game-relative region to an absolute screen rectangle."""
        origin = self._require_origin()
        return CaptureRect(
            x=origin.x + region.top_left.x,
            y=origin.y + region.top_left.y,
            width=region.width,
            height=region.height,
        )

    def capture_full(self, width: int, height: int) -> np.ndarray:
        """
        Capture the whole game window.

        Returns:
            RGBA array of shape (height, width, 4)

        Raises:
            ConfigurationError: If no origin has been set
        """
        origin = self._require_origin()
        rect = CaptureRect(x=origin.x, y=origin.y, width=width, height=height)
        return raw_to_rgba(self.frame_source.grab(rect))

    def capture_region(self, region: Region, for_ocr: bool = False) -> np.ndarray:
        """Grab just one game-relative region from the screen."""
        rect = self.to_absolute(region)
        image = raw_to_rgba(self.frame_source.grab(rect))
        if for_ocr:
            return self.preprocessor.prepare_for_ocr(image)
        return image

    def crop_for_recognition(
        self,
        image: np.ndarray,
        region: Region,
        for_ocr: bool = True,
    ) -> np.ndarray:
        """
        Crop a region out of a live full-window frame.

        Args:
            image: Full game window frame (RGBA)
            region: Region in the frame's coordinate space
            for_ocr: Apply the OCR preprocessing pipeline

        Raises:
            ValueError: If the region is not entirely inside the frame
        """
        crop = self._crop(image, region)
        if for_ocr:
            return self.preprocessor.prepare_for_ocr(crop)
        return crop

    def crop_from_stored_frame(
        self,
        image: Union[np.ndarray, bytes],
        region: Region,
        for_ocr: bool = True,
    ) -> np.ndarray:
        """
        Crop a region out of a previously saved frame (replay).

        Accepts the decoded array or the stored PNG bytes. Preprocessing is
        the same pipeline crop_for_recognition uses.
        """
        if isinstance(image, (bytes, bytearray)):
            image = decode_png(bytes(image))
        return self.crop_for_recognition(image, region, for_ocr=for_ocr)

    @staticmethod
    def _crop(image: np.ndarray, region: Region) -> np.ndarray:
        frame_height, frame_width = image.shape[:2]
        x1, y1 = region.top_left.x, region.top_left.y
        x2, y2 = region.bottom_right.x, region.bottom_right.y

        # partially visible regions are rejected, never truncated
        if x1 < 0 or y1 < 0 or x2 > frame_width or y2 > frame_height or x2 <= x1 or y2 <= y1:
            raise ValueError(
                f"Region {region.to_tuple()} is not inside the "
                f"{frame_width}x{frame_height} frame"
            )

        return image[y1:y2, x1:x2].copy()
