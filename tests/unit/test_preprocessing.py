"""
Unit tests for OCR preprocessing.
"""

import numpy as np
import pytest

from tft_scout.perception.preprocessing import ImagePreprocessor


@pytest.fixture
def preprocessor():
    return ImagePreprocessor()


def text_like_crop(width=40, height=12):
    """Light text on a dark background, RGBA."""
    crop = np.full((height, width, 4), 30, dtype=np.uint8)
    crop[:, :, 3] = 255
    crop[3:9, 5:35, :3] = 220
    return crop


class TestImagePreprocessor:
    """Tests for ImagePreprocessor."""

    def test_defaults(self, preprocessor):
        assert preprocessor.upscale_factor == 3
        assert preprocessor.threshold == 160

    def test_invalid_arguments(self):
        with pytest.raises(ValueError):
            ImagePreprocessor(upscale_factor=0)
        with pytest.raises(ValueError):
            ImagePreprocessor(threshold=0)

    def test_output_is_upscaled_single_channel(self, preprocessor):
        result = preprocessor.prepare_for_ocr(text_like_crop(40, 12))
        assert result.shape == (36, 120)
        assert result.dtype == np.uint8

    def test_output_size(self, preprocessor):
        assert preprocessor.output_size(76, 20) == (228, 60)

    def test_output_is_binary(self, preprocessor):
        result = preprocessor.prepare_for_ocr(text_like_crop())
        assert set(np.unique(result)) <= {0, 255}

    def test_text_becomes_white(self, preprocessor):
        result = preprocessor.prepare_for_ocr(text_like_crop())
        # centre of the text band vs a background corner
        assert result[18, 60] == 255
        assert result[1, 1] == 0

    def test_input_not_modified(self, preprocessor):
        crop = text_like_crop()
        before = crop.copy()
        preprocessor.prepare_for_ocr(crop)
        assert np.array_equal(crop, before)

    def test_deterministic(self, preprocessor):
        crop = text_like_crop()
        assert np.array_equal(
            preprocessor.prepare_for_ocr(crop),
            preprocessor.prepare_for_ocr(crop),
        )

    def test_accepts_rgb_and_gray(self, preprocessor):
        rgba = text_like_crop()
        from_rgba = preprocessor.prepare_for_ocr(rgba)
        from_rgb = preprocessor.prepare_for_ocr(rgba[:, :, :3].copy())
        from_gray = preprocessor.prepare_for_ocr(rgba[:, :, 0].copy())
        assert from_rgb.shape == from_rgba.shape == from_gray.shape

    def test_flat_image(self, preprocessor):
        flat = np.full((10, 10), 200, dtype=np.uint8)
        result = preprocessor.prepare_for_ocr(flat)
        assert result.shape == (30, 30)
        assert set(np.unique(result)) == {255}

    def test_empty_image_rejected(self, preprocessor):
        with pytest.raises(ValueError):
            preprocessor.prepare_for_ocr(np.zeros((0, 10, 4), dtype=np.uint8))


class TestBinarize:
    """Tests for the threshold step."""

    def test_threshold_is_inclusive(self, preprocessor):
        gray = np.array([[159, 160, 161]], dtype=np.uint8)
        assert preprocessor.binarize(gray).tolist() == [[0, 255, 255]]

    def test_normalize_stretches_range(self, preprocessor):
        gray = np.array([[100, 150, 200]], dtype=np.uint8)
        result = preprocessor.normalize(gray)
        assert result.min() == 0
        assert result.max() == 255
