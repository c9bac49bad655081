"""
Tests for the raster data model.
"""

import pytest
import numpy as np
import sys
from pathlib import Path

# Add repository root to path
sys.path.insert(0, str(Path(__file__).parent.parent))


class TestRasterImage:
    """Test RasterImage construction and validation."""

    def test_blank(self):
        from scan_ocr.utils.raster import RasterImage

        image = RasterImage.blank(4, 3, color=(10, 20, 30))

        assert image.shape == (3, 4)
        assert image.width == 4
        assert image.height == 3
        assert tuple(image.pixels[1, 1]) == (10, 20, 30, 255)

    def test_rejects_wrong_channels(self):
        from scan_ocr.utils.raster import RasterImage

        with pytest.raises(ValueError):
            RasterImage(np.zeros((4, 4, 3), dtype=np.uint8))

    def test_rejects_wrong_dtype(self):
        from scan_ocr.utils.raster import RasterImage

        with pytest.raises(ValueError):
            RasterImage(np.zeros((4, 4, 4), dtype=np.float32))

    def test_copy_is_independent(self):
        from scan_ocr.utils.raster import RasterImage

        image = RasterImage.blank(3, 3)
        copy = image.copy()
        copy.pixels[0, 0] = 0

        assert tuple(image.pixels[0, 0]) == (255, 255, 255, 255)

    def test_with_rgb_keeps_alpha(self):
        from scan_ocr.utils.raster import RasterImage

        pixels = np.zeros((2, 2, 4), dtype=np.uint8)
        pixels[:, :, 3] = 42
        image = RasterImage(pixels)
        result = image.with_rgb(np.full((2, 2, 3), 7, dtype=np.uint8))

        assert np.all(result.rgb == 7)
        assert np.all(result.alpha == 42)
        assert np.all(image.rgb == 0)

    def test_luminance(self):
        from scan_ocr.utils.raster import RasterImage

        image = RasterImage.blank(1, 1, color=(100, 100, 100))

        assert image.luminance()[0, 0] == pytest.approx(100.0)


class TestArrayConversion:
    """Test conversion from and to OpenCV / Pillow style arrays."""

    def test_from_grayscale(self):
        from scan_ocr.utils.raster import RasterImage

        image = RasterImage.from_array(np.full((3, 5), 90, dtype=np.uint8))

        assert image.shape == (3, 5)
        assert tuple(image.pixels[0, 0]) == (90, 90, 90, 255)

    def test_from_bgr_swaps_channels(self):
        from scan_ocr.utils.raster import RasterImage

        bgr = np.zeros((2, 2, 3), dtype=np.uint8)
        bgr[:, :] = (255, 0, 0)  # blue in OpenCV order
        image = RasterImage.from_array(bgr, color_order="bgr")

        assert tuple(image.rgb[0, 0]) == (0, 0, 255)

    def test_from_rgb_keeps_order(self):
        from scan_ocr.utils.raster import RasterImage

        rgb = np.zeros((2, 2, 3), dtype=np.uint8)
        rgb[:, :] = (255, 0, 0)
        image = RasterImage.from_array(rgb, color_order="rgb")

        assert tuple(image.rgb[0, 0]) == (255, 0, 0)

    def test_from_four_channels_keeps_alpha(self):
        from scan_ocr.utils.raster import RasterImage

        bgra = np.zeros((2, 2, 4), dtype=np.uint8)
        bgra[:, :] = (1, 2, 3, 4)
        image = RasterImage.from_array(bgra, color_order="bgr")

        assert tuple(image.pixels[0, 0]) == (3, 2, 1, 4)

    def test_unknown_color_order(self):
        from scan_ocr.utils.raster import RasterImage

        with pytest.raises(ValueError):
            RasterImage.from_array(np.zeros((2, 2, 3), dtype=np.uint8), color_order="hsv")

    def test_unexpected_shape(self):
        from scan_ocr.utils.raster import RasterImage

        with pytest.raises(ValueError):
            RasterImage.from_array(np.zeros((2, 2, 2), dtype=np.uint8))

    def test_to_bgr_and_rgb(self):
        from scan_ocr.utils.raster import RasterImage

        image = RasterImage.blank(2, 2, color=(10, 20, 30))

        assert tuple(image.to_rgb()[0, 0]) == (10, 20, 30)
        assert tuple(image.to_bgr()[0, 0]) == (30, 20, 10)
        assert image.to_bgr().flags["C_CONTIGUOUS"]
