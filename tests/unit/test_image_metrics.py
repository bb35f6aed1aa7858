"""
Tests for image quality metrics on synthetic pixel buffers.
"""

import numpy as np
import pytest

from capture_service.services.image_metrics import (
    as_pixel_array,
    calculate_blur_score,
    calculate_brightness,
    calculate_glare_percentage,
    laplacian_response,
    to_grayscale,
)


class TestPixelArray:
    def test_accepts_rgb(self, sharp_image):
        assert as_pixel_array(sharp_image).shape == (100, 100, 3)

    def test_accepts_nested_lists(self):
        assert as_pixel_array([[[1, 2, 3]]]).shape == (1, 1, 3)

    def test_rejects_grayscale(self):
        with pytest.raises(ValueError):
            as_pixel_array(np.zeros((10, 10)))

    def test_rejects_rgba(self):
        with pytest.raises(ValueError):
            as_pixel_array(np.zeros((10, 10, 4)))


class TestGrayscale:
    def test_luma_weights(self):
        pixels = np.array([[[255, 0, 0], [0, 255, 0], [0, 0, 255]]], dtype=np.uint8)
        gray = to_grayscale(pixels)
        assert gray[0, 0] == pytest.approx(0.299 * 255)
        assert gray[0, 1] == pytest.approx(0.587 * 255)
        assert gray[0, 2] == pytest.approx(0.114 * 255)

    def test_uint8_does_not_overflow(self, white_image):
        assert to_grayscale(white_image).max() == pytest.approx(255.0)


class TestLaplacian:
    def test_single_bright_pixel(self):
        gray = np.zeros((3, 3))
        gray[1, 1] = 1.0
        response = laplacian_response(gray)
        assert response[1, 1] == pytest.approx(-4.0)
        assert response[0, 0] == 0.0

    def test_border_is_zero(self, sharp_image):
        response = laplacian_response(to_grayscale(sharp_image))
        assert np.all(response[0, :] == 0)
        assert np.all(response[-1, :] == 0)
        assert np.all(response[:, 0] == 0)
        assert np.all(response[:, -1] == 0)

    def test_too_small_image(self):
        assert np.all(laplacian_response(np.ones((2, 5))) == 0)


class TestBlurScore:
    def test_uniform_image_has_zero_variance(self, flat_gray_image):
        assert calculate_blur_score(flat_gray_image) == pytest.approx(0.0, abs=1e-9)

    def test_sharp_image_scores_high(self, sharp_image):
        assert calculate_blur_score(sharp_image) > 100.0

    def test_smoothing_lowers_score(self, sharp_image):
        smoothed = ((sharp_image.astype(np.float64) + 130.0) / 2).astype(np.uint8)
        assert calculate_blur_score(smoothed) < calculate_blur_score(sharp_image)

    def test_tiny_image(self):
        assert calculate_blur_score(np.zeros((2, 2, 3), dtype=np.uint8)) == 0.0


class TestBrightness:
    def test_black(self):
        assert calculate_brightness(np.zeros((4, 4, 3), dtype=np.uint8)) == 0.0

    def test_white(self, white_image):
        assert calculate_brightness(white_image) == pytest.approx(1.0)

    def test_mid_gray(self, flat_gray_image):
        assert calculate_brightness(flat_gray_image) == pytest.approx(128 / 255)


class TestGlare:
    def test_no_glare(self, sharp_image):
        assert calculate_glare_percentage(sharp_image) == 0.0

    def test_full_glare(self, white_image):
        assert calculate_glare_percentage(white_image) == 1.0

    def test_requires_all_channels(self):
        pixels = np.full((2, 2, 3), 255, dtype=np.uint8)
        pixels[0, 0, 2] = 200
        assert calculate_glare_percentage(pixels) == pytest.approx(0.75)

    def test_threshold_is_exclusive(self):
        assert calculate_glare_percentage(np.full((2, 2, 3), 250, dtype=np.uint8)) == 0.0
