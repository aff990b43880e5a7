"""Unit tests for OCR preprocessing."""
import numpy as np
import pytest

from gear_ocr.services.preprocessing_service import ImagePreprocessor


@pytest.fixture
def preprocessor(config):
    return ImagePreprocessor.from_config(config)


class TestUpscale:
    def test_small_zone_upscaled_to_floor(self, preprocessor):
        assert preprocessor.upscale_factor(300) == pytest.approx(2.0)

    def test_upscale_capped(self, preprocessor):
        assert preprocessor.upscale_factor(50) == pytest.approx(4.0)

    def test_wide_zone_untouched(self, preprocessor):
        assert preprocessor.upscale_factor(800) == 1.0
        assert preprocessor.upscale_factor(0) == 1.0


class TestNormalize:
    """Test suite for the shared normalization steps."""

    def test_dark_ui_is_inverted(self, preprocessor):
        dark = np.full((40, 600, 3), 20, dtype=np.uint8)
        out = preprocessor.normalize(dark)

        assert out.image.ndim == 2
        assert out.image.mean() == pytest.approx(235.0)
        assert out.scale == 1.0

    def test_light_ui_kept(self, preprocessor):
        light = np.full((40, 600, 3), 220, dtype=np.uint8)
        assert preprocessor.normalize(light).image.mean() == pytest.approx(220.0)

    def test_input_not_modified(self, preprocessor, dark_tooltip):
        before = dark_tooltip.copy()
        preprocessor.normalize(dark_tooltip)
        assert np.array_equal(before, dark_tooltip)


class TestPipelines:
    def test_label_variant_is_not_binarized(self, preprocessor):
        gradient = np.tile(np.arange(0, 250, 2, dtype=np.uint8), (30, 1))
        gradient = np.dstack([gradient] * 3)

        prepared = preprocessor.prepare_label(gradient)

        assert prepared.variant == "label"
        assert len(np.unique(prepared.image)) > 2
        assert prepared.scale == pytest.approx(preprocessor.upscale_factor(gradient.shape[1]))
        assert prepared.image.shape[1] == round(gradient.shape[1] * prepared.scale)

    def test_digit_variants_are_binary(self, preprocessor, dark_tooltip):
        variants = preprocessor.prepare_digits(dark_tooltip[200:600, 300:520])

        assert [v.variant for v in variants] == ["threshold", "inverted", "threshold_alt"]
        for variant in variants:
            assert set(np.unique(variant.image)) <= {0, 255}
            assert variant.scale == variants[0].scale
