"""
Raster data model shared by every preprocessing stage.

A RasterImage is a (height, width, 4) uint8 RGBA buffer. Stages never
modify the buffer they are given; they return a new RasterImage.
"""

import logging
from dataclasses import dataclass
from typing import Tuple

import numpy as np

logger = logging.getLogger(__name__)

# ITU-R BT.601 luma weights
LUMA_WEIGHTS = np.array([0.299, 0.587, 0.114], dtype=np.float64)


@dataclass
class RasterImage:
    """RGBA pixel grid with explicit dimensions."""
    pixels: np.ndarray

    def __post_init__(self):
        pixels = np.asarray(self.pixels)
        if pixels.ndim != 3 or pixels.shape[2] != 4:
            raise ValueError(f"Expected (height, width, 4) RGBA array, got shape {pixels.shape}")
        if pixels.dtype != np.uint8:
            raise ValueError(f"Expected uint8 pixels, got {pixels.dtype}")
        self.pixels = pixels

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def shape(self) -> Tuple[int, int]:
        return self.height, self.width

    @property
    def rgb(self) -> np.ndarray:
        """View of the colour channels (no copy)."""
        return self.pixels[:, :, :3]

    @property
    def alpha(self) -> np.ndarray:
        return self.pixels[:, :, 3]

    def copy(self) -> "RasterImage":
        return RasterImage(self.pixels.copy())

    def luminance(self) -> np.ndarray:
        """Unrounded 0.299R + 0.587G + 0.114B as float64 (height, width)."""
        return self.rgb.astype(np.float64) @ LUMA_WEIGHTS

    def with_rgb(self, rgb: np.ndarray) -> "RasterImage":
        """New image with the given colour channels and this image's alpha."""
        out = np.empty_like(self.pixels)
        out[:, :, :3] = rgb
        out[:, :, 3] = self.alpha
        return RasterImage(out)

    @classmethod
    def blank(
        cls,
        width: int,
        height: int,
        color: Tuple[int, int, int] = (255, 255, 255)
    ) -> "RasterImage":
        """Create an opaque image filled with one colour."""
        pixels = np.empty((height, width, 4), dtype=np.uint8)
        pixels[:, :, :3] = color
        pixels[:, :, 3] = 255
        return cls(pixels)

    @classmethod
    def from_array(cls, array: np.ndarray, color_order: str = "bgr") -> "RasterImage":
        """
        Build a RasterImage from a grayscale, 3-channel or 4-channel array.

        Args:
            array: uint8 image array as produced by OpenCV, Pillow or pdf2image
            color_order: 'bgr' for OpenCV arrays, 'rgb' for Pillow arrays

        Returns:
            RasterImage with an opaque alpha channel unless one was supplied
        """
        if color_order not in ("bgr", "rgb"):
            raise ValueError(f"Unknown color order: {color_order}")

        array = np.asarray(array)
        if array.dtype != np.uint8:
            array = np.clip(array, 0, 255).astype(np.uint8)

        if array.ndim == 3 and array.shape[2] == 1:
            array = array[:, :, 0]

        h, w = array.shape[:2]
        pixels = np.empty((h, w, 4), dtype=np.uint8)

        if array.ndim == 2:
            pixels[:, :, 0] = array
            pixels[:, :, 1] = array
            pixels[:, :, 2] = array
            pixels[:, :, 3] = 255
        elif array.ndim == 3 and array.shape[2] in (3, 4):
            channels = array[:, :, :3]
            if color_order == "bgr":
                channels = channels[:, :, ::-1]
            pixels[:, :, :3] = channels
            pixels[:, :, 3] = array[:, :, 3] if array.shape[2] == 4 else 255
        else:
            raise ValueError(f"Unexpected image shape: {array.shape}")

        return cls(pixels)

    def to_rgb(self) -> np.ndarray:
        """Contiguous RGB copy, the layout pytesseract and Pillow expect."""
        return np.ascontiguousarray(self.rgb)

    def to_bgr(self) -> np.ndarray:
        """Contiguous BGR copy for OpenCV."""
        return np.ascontiguousarray(self.rgb[:, :, ::-1])
