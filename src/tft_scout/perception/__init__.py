"""
Perception module - screen grabbing, crop preprocessing and OCR.
"""

from tft_scout.perception.screenshot import ScreenshotCapture, CaptureRect, RawFrame
from tft_scout.perception.preprocessing import ImagePreprocessor
from tft_scout.perception.capture import (
    ScreenCapture,
    raw_to_rgba,
    encode_png,
    decode_png,
    load_frame,
)
from tft_scout.perception.ocr import (
    TextRecognizer,
    TesseractRecognizer,
    RecognitionResult,
    RecognitionError,
)

__all__ = [
    # Frame source
    "ScreenshotCapture",
    "CaptureRect",
    "RawFrame",
    # Preprocessing
    "ImagePreprocessor",
    # Capture adapter
    "ScreenCapture",
    "raw_to_rgba",
    "encode_png",
    "decode_png",
    "load_frame",
    # OCR
    "TextRecognizer",
    "TesseractRecognizer",
    "RecognitionResult",
    "RecognitionError",
]
