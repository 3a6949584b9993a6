"""
Text recognition using Tesseract.

The parser only depends on the TextRecognizer protocol; TesseractRecognizer
is the production implementation.
"""

import sys
import time
from pathlib import Path
from typing import Optional, Protocol
from dataclasses import dataclass

import numpy as np
import pytesseract
from pytesseract import Output
from PIL import Image

from tft_scout.logging import get_logger

logger = get_logger(__name__)


class RecognitionError(Exception):
    """Raised when the recognizer fails or times out on an image."""
    pass


@dataclass
class RecognitionResult:
    """Recognized text with a 0.0-1.0 confidence."""

    text: str
    confidence: float = 0.0
    duration_ms: int = 0

    def to_dict(self) -> dict:
        return {
            "text": self.text,
            "confidence": self.confidence,
            "duration_ms": self.duration_ms,
        }


class TextRecognizer(Protocol):
    """Opaque text recognizer."""

    def init(self) -> None:
        """Load models; may be slow."""
        ...

    def recognize(self, image: np.ndarray) -> RecognitionResult:
        """Recognize text in a preprocessed crop."""
        ...

    def terminate(self) -> None:
        ...


class TesseractRecognizer:
    """
    Tesseract-backed recognizer.

    Each call runs a tesseract subprocess bounded by timeout_seconds, so a
    hung recognition fails that one field instead of blocking the capture.
    """

    DEFAULT_LANG = "chi_sim+eng"
    DEFAULT_CONFIG = "--oem 3 --psm 7"  # LSTM, single line of text

    def __init__(
        self,
        lang: str = DEFAULT_LANG,
        config: str = DEFAULT_CONFIG,
        tesseract_path: Optional[str] = None,
        timeout_seconds: float = 5.0,
    ):
        """
        Initialize recognizer settings. Call init() before recognizing.

        Args:
            lang: OCR language(s), e.g. "eng" or "chi_sim+eng"
            config: Tesseract config string
            tesseract_path: Path to tesseract executable (optional)
            timeout_seconds: Per-call timeout
        """
        self.lang = lang
        self.config = config
        self.tesseract_path = tesseract_path
        self.timeout_seconds = timeout_seconds
        self._ready = False

    @property
    def ready(self) -> bool:
        return self._ready

    def init(self) -> None:
        """
        Locate tesseract and check the requested languages are installed.

        Raises:
            RecognitionError: If tesseract is unavailable
        """
        if self.tesseract_path:
            pytesseract.pytesseract.tesseract_cmd = self.tesseract_path
        else:
            self._find_tesseract()

        logger.info("Initializing OCR engine...", lang=self.lang)
        try:
            version = pytesseract.get_tesseract_version()
            installed = set(pytesseract.get_languages(config=""))
        except (pytesseract.TesseractNotFoundError, OSError) as e:
            raise RecognitionError(f"Tesseract not available: {e}") from e

        missing = [code for code in self.lang.split("+") if code not in installed]
        if missing:
            raise RecognitionError(
                f"Tesseract language data missing: {', '.join(missing)}"
            )

        self._ready = True
        logger.info("OCR engine ready", version=str(version), lang=self.lang)

    def _find_tesseract(self) -> None:
        """Find a tesseract installation on Windows."""
        if sys.platform != "win32":
            return

        paths = [
            r"C:\Program Files\Tesseract-OCR\tesseract.exe",
            r"C:\Program Files (x86)\Tesseract-OCR\tesseract.exe",
            str(Path.home() / "AppData" / "Local" / "Programs" / "Tesseract-OCR" / "tesseract.exe"),
        ]

        for path in paths:
            if Path(path).exists():
                pytesseract.pytesseract.tesseract_cmd = path
                logger.debug("Found Tesseract", path=path)
                return

    def recognize(self, image: np.ndarray) -> RecognitionResult:
        """
        Recognize text in a preprocessed crop.

        Raises:
            RecognitionError: If not initialized, on tesseract errors, or on timeout
        """
        if not self._ready:
            raise RecognitionError("Recognizer not initialized")

        start = time.time()
        try:
            data = pytesseract.image_to_data(
                Image.fromarray(image),
                lang=self.lang,
                config=self.config,
                output_type=Output.DICT,
                timeout=self.timeout_seconds,
            )
        except pytesseract.TesseractError as e:
            raise RecognitionError(f"OCR failed: {e}") from e
        except RuntimeError as e:
            # pytesseract signals a timeout with a bare RuntimeError
            raise RecognitionError(f"OCR timed out after {self.timeout_seconds}s") from e

        lines: dict[tuple, list[str]] = {}
        confidences = []
        for i, word in enumerate(data["text"]):
            word = word.strip()
            if not word:
                continue
            key = (data["block_num"][i], data["par_num"][i], data["line_num"][i])
            lines.setdefault(key, []).append(word)
            conf = float(data["conf"][i])
            if conf >= 0:
                confidences.append(conf)

        text = "\n".join(" ".join(words) for _, words in sorted(lines.items()))
        confidence = sum(confidences) / len(confidences) / 100.0 if confidences else 0.0

        return RecognitionResult(
            text=text,
            confidence=confidence,
            duration_ms=int((time.time() - start) * 1000),
        )

    def terminate(self) -> None:
        self._ready = False
        logger.debug("OCR engine terminated")
