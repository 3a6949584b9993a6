"""
Image preprocessing for OCR.

The game HUD uses small, anti-aliased text on busy backgrounds. Tesseract
does much better on a large, clean black/white version of the crop.
"""

from typing import Tuple

import cv2
import numpy as np

from tft_scout.logging import get_logger

logger = get_logger(__name__)


class ImagePreprocessor:
    """
    Prepares region crops for text recognition.

    Pipeline, in this order:
    1. Upscale (Lanczos)
    2. Convert to grayscale
    3. Normalize contrast (stretch to the full 0-255 range)
    4. Binary threshold
    5. Sharpen

    Live capture and replay both go through prepare_for_ocr, so a stored
    frame is recognized exactly like the live one was.
    """

    UPSCALE_FACTOR = 3
    THRESHOLD = 160

    SHARPEN_KERNEL = np.array([
        [0, -1, 0],
        [-1, 5, -1],
        [0, -1, 0],
    ], dtype=np.float32)

    def __init__(
        self,
        upscale_factor: int = UPSCALE_FACTOR,
        threshold: int = THRESHOLD,
    ):
        """
        Initialize preprocessor.

        Args:
            upscale_factor: Integer factor to upscale crops by
            threshold: Intensity at or above which a pixel becomes white
        """
        if upscale_factor < 1:
            raise ValueError("upscale_factor must be >= 1")
        if not 0 < threshold <= 255:
            raise ValueError("threshold must be in 1..255")

        self.upscale_factor = upscale_factor
        self.threshold = threshold

    def prepare_for_ocr(self, image: np.ndarray) -> np.ndarray:
        """
        Run the full OCR pipeline on a crop.

        Args:
            image: RGBA, RGB or single-channel uint8 array

        Returns:
            New single-channel uint8 array; the input is left untouched
        """
        if image.size == 0:
            raise ValueError("Cannot preprocess an empty image")

        upscaled = self.upscale(image)
        gray = self.to_grayscale(upscaled)
        normalized = self.normalize(gray)
        binary = self.binarize(normalized)
        return self.sharpen(binary)

    def upscale(self, image: np.ndarray) -> np.ndarray:
        if self.upscale_factor == 1:
            return image.copy()
        height, width = image.shape[:2]
        size = (width * self.upscale_factor, height * self.upscale_factor)
        return cv2.resize(image, size, interpolation=cv2.INTER_LANCZOS4)

    @staticmethod
    def to_grayscale(image: np.ndarray) -> np.ndarray:
        if image.ndim == 2:
            return image.copy()
        channels = image.shape[2]
        if channels == 4:
            return cv2.cvtColor(image, cv2.COLOR_RGBA2GRAY)
        if channels == 3:
            return cv2.cvtColor(image, cv2.COLOR_RGB2GRAY)
        if channels == 1:
            return image[:, :, 0].copy()
        raise ValueError(f"Unsupported channel count: {channels}")

    @staticmethod
    def normalize(gray: np.ndarray) -> np.ndarray:
        """Stretch intensities so the darkest pixel is 0 and the brightest 255."""
        low, high = int(gray.min()), int(gray.max())
        if low == high:
            return gray.copy()
        return cv2.normalize(gray, None, 0, 255, cv2.NORM_MINMAX)

    def binarize(self, gray: np.ndarray) -> np.ndarray:
        # THRESH_BINARY keeps values strictly greater than the threshold
        _, binary = cv2.threshold(gray, self.threshold - 1, 255, cv2.THRESH_BINARY)
        return binary

    def sharpen(self, image: np.ndarray) -> np.ndarray:
        return cv2.filter2D(image, -1, self.SHARPEN_KERNEL)

    def output_size(self, width: int, height: int) -> Tuple[int, int]:
        """Size of a crop after prepare_for_ocr."""
        return width * self.upscale_factor, height * self.upscale_factor
