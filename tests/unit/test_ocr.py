"""
Unit tests for the Tesseract recognizer.

Tesseract itself is mocked; these tests cover result assembly and error
mapping only.
"""

from unittest.mock import patch

import numpy as np
import pytesseract
import pytest

from tft_scout.perception.ocr import RecognitionError, RecognitionResult, TesseractRecognizer


def tesseract_data(words, confs, lines=None):
    lines = lines or [1] * len(words)
    return {
        "text": words,
        "conf": confs,
        "block_num": [1] * len(words),
        "par_num": [1] * len(words),
        "line_num": lines,
    }


@pytest.fixture
def ready_recognizer():
    recognizer = TesseractRecognizer(lang="eng", timeout_seconds=1.5)
    recognizer._ready = True
    return recognizer


@pytest.fixture
def image():
    return np.zeros((30, 90), dtype=np.uint8)


class TestTesseractRecognizer:
    """Tests for TesseractRecognizer."""

    def test_recognize_before_init(self, image):
        with pytest.raises(RecognitionError):
            TesseractRecognizer().recognize(image)

    def test_words_joined(self, ready_recognizer, image):
        data = tesseract_data(["Lv.6", "", "12/24"], [90, -1, 80])
        with patch("pytesseract.image_to_data", return_value=data) as mock_ocr:
            result = ready_recognizer.recognize(image)

        assert result.text == "Lv.6 12/24"
        assert result.confidence == pytest.approx(0.85)
        assert mock_ocr.call_args.kwargs["timeout"] == 1.5
        assert mock_ocr.call_args.kwargs["lang"] == "eng"

    def test_lines_split(self, ready_recognizer, image):
        data = tesseract_data(["3-2", "PvE"], [95, 70], lines=[1, 2])
        with patch("pytesseract.image_to_data", return_value=data):
            result = ready_recognizer.recognize(image)
        assert result.text == "3-2\nPvE"

    def test_nothing_found(self, ready_recognizer, image):
        data = tesseract_data(["", " "], [-1, -1])
        with patch("pytesseract.image_to_data", return_value=data):
            result = ready_recognizer.recognize(image)
        assert result.text == ""
        assert result.confidence == 0.0

    def test_timeout(self, ready_recognizer, image):
        with patch("pytesseract.image_to_data", side_effect=RuntimeError("Tesseract process timeout")):
            with pytest.raises(RecognitionError, match="timed out"):
                ready_recognizer.recognize(image)

    def test_tesseract_error(self, ready_recognizer, image):
        error = pytesseract.TesseractError(1, "bad image")
        with patch("pytesseract.image_to_data", side_effect=error):
            with pytest.raises(RecognitionError, match="OCR failed"):
                ready_recognizer.recognize(image)

    def test_init_missing_language(self):
        recognizer = TesseractRecognizer(lang="chi_sim+eng")
        with patch("pytesseract.get_tesseract_version", return_value="5.3.0"), \
             patch("pytesseract.get_languages", return_value=["eng", "osd"]):
            with pytest.raises(RecognitionError, match="chi_sim"):
                recognizer.init()
        assert not recognizer.ready

    def test_init_lists_only_missing_languages(self):
        recognizer = TesseractRecognizer(lang="chi_sim+eng+jpn")
        with patch("pytesseract.get_tesseract_version", return_value="5.3.0"), \
             patch("pytesseract.get_languages", return_value=["eng"]):
            with pytest.raises(RecognitionError) as excinfo:
                recognizer.init()
        assert str(excinfo.value).endswith("missing: chi_sim, jpn")

    def test_init_not_installed(self):
        recognizer = TesseractRecognizer(lang="eng")
        with patch("pytesseract.get_tesseract_version", side_effect=pytesseract.TesseractNotFoundError()):
            with pytest.raises(RecognitionError):
                recognizer.init()

    def test_init_and_terminate(self):
        recognizer = TesseractRecognizer(lang="chi_sim+eng")
        with patch("pytesseract.get_tesseract_version", return_value="5.3.0"), \
             patch("pytesseract.get_languages", return_value=["chi_sim", "eng"]):
            recognizer.init()
        assert recognizer.ready

        recognizer.terminate()
        assert not recognizer.ready


class TestRecognitionResult:
    def test_to_dict(self):
        result = RecognitionResult(text="45", confidence=0.5, duration_ms=12)
        assert result.to_dict() == {"text": "45", "confidence": 0.5, "duration_ms": 12}
