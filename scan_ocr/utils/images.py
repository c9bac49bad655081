"""
Image preprocessing utilities for the scan OCR pipeline.

Provides:
- Contrast / brightness adjustment
- Grayscale projection
- Sharpening (3x3 convolution)
- Binarization (Otsu's method)
- Median noise reduction
- Border / rule line removal
- Morphological dilation
- Full preprocessing pipeline driven by a PipelineConfig

Every operation takes a RasterImage and returns a new one; inputs are never
modified. Neighbourhood operations only touch interior pixels, so the
outermost 1-pixel frame passes through unchanged.
"""

import logging
from dataclasses import dataclass, field
from typing import Tuple, List, Optional

import numpy as np

from ..config import PipelineConfig, Profile
from .raster import RasterImage

logger = logging.getLogger(__name__)


# ============================================================================
# Data Classes
# ============================================================================

@dataclass
class PreprocessingResult:
    """Result of image preprocessing."""
    image: RasterImage
    original_shape: Tuple[int, int]
    profile: Profile = Profile.STANDARD
    transformations: List[str] = field(default_factory=list)

    @property
    def was_binarized(self) -> bool:
        return "binarize_otsu" in self.transformations


# ============================================================================
# Helpers
# ============================================================================

def _to_uint8(values: np.ndarray) -> np.ndarray:
    """Clamp to [0, 255] and round half to even."""
    return np.rint(np.clip(values, 0, 255)).astype(np.uint8)


def _rounded_luminance(image: RasterImage) -> np.ndarray:
    """Luminance rounded half up to integer bins 0..255."""
    return np.clip(np.floor(image.luminance() + 0.5), 0, 255).astype(np.intp)


def _has_interior(image: RasterImage) -> bool:
    return image.width >= 3 and image.height >= 3


def _neighbourhood(channel: np.ndarray) -> np.ndarray:
    """Stack the 9 shifted views of a 3x3 neighbourhood over interior pixels."""
    h, w = channel.shape[:2]
    return np.stack([
        channel[dy:h - 2 + dy, dx:w - 2 + dx]
        for dy in range(3)
        for dx in range(3)
    ])


def _contrast_factor(contrast: float) -> float:
    """
    Map a multiplier-style contrast (1.0 = unchanged) onto the classic
    259-based contrast formula, whose level lives in [-255, 255].
    """
    level = float(np.clip((contrast - 1.0) * 255.0, -255.0, 255.0))
    return (259.0 * (level + 255.0)) / (255.0 * (259.0 - level))


# ============================================================================
# Core Preprocessing Functions
# ============================================================================

def adjust_contrast_brightness(
    image: RasterImage,
    contrast: float = 1.0,
    brightness: float = 0.0
) -> RasterImage:
    """
    Apply linear contrast and brightness to the colour channels.

    Args:
        image: Input image
        contrast: Contrast multiplier (0-2, 1.0 = unchanged)
        brightness: Offset added after contrast (-100 to 100)

    Returns:
        Adjusted image; alpha is untouched
    """
    factor = _contrast_factor(contrast)
    rgb = image.rgb.astype(np.float64)
    adjusted = factor * (rgb - 128.0) + 128.0 + brightness

    logger.debug(f"Applied contrast {contrast} (factor {factor:.3f}), brightness {brightness}")
    return image.with_rgb(_to_uint8(adjusted))


def to_grayscale(image: RasterImage) -> RasterImage:
    """
    Project colour onto luminance and write it to all three channels.

    Args:
        image: Input image

    Returns:
        Grayscale image (R == G == B)
    """
    gray = _to_uint8(image.luminance())
    rgb = np.repeat(gray[:, :, np.newaxis], 3, axis=2)
    logger.debug("Converted to grayscale")
    return image.with_rgb(rgb)


def sharpen(image: RasterImage, intensity: float = 1.0) -> RasterImage:
    """
    Sharpen with the kernel [[0,-k,0],[-k,5+2k,-k],[0,-k,0]].

    Args:
        image: Input image
        intensity: Kernel weight k (1.0 for rendered text, 1.5 for scans)

    Returns:
        Sharpened image with an unchanged 1-pixel border
    """
    if not _has_interior(image):
        return image.copy()

    k = float(intensity)
    src = image.rgb.astype(np.float64)
    out = src.copy()
    out[1:-1, 1:-1] = (
        src[1:-1, 1:-1] * (5.0 + 2.0 * k)
        - k * (src[:-2, 1:-1] + src[2:, 1:-1] + src[1:-1, :-2] + src[1:-1, 2:])
    )

    logger.debug(f"Applied sharpen with intensity {intensity}")
    return image.with_rgb(_to_uint8(out))


def otsu_threshold(luminance: np.ndarray) -> int:
    """
    Find the threshold that maximizes between-class variance.

    Args:
        luminance: Integer luminance values in 0..255 (any shape)

    Returns:
        Threshold t; the first t reaching the maximum wins
    """
    histogram = np.bincount(np.asarray(luminance, dtype=np.intp).ravel(), minlength=256)
    total = int(histogram.sum())
    weighted_sum = float(np.dot(np.arange(256), histogram))

    sum_b = 0.0
    w_b = 0
    max_variance = 0.0
    threshold = 0

    for t in range(256):
        w_b += int(histogram[t])
        if w_b == 0:
            continue
        w_f = total - w_b
        if w_f == 0:
            break

        sum_b += t * float(histogram[t])
        m_b = sum_b / w_b
        m_f = (weighted_sum - sum_b) / w_f
        variance = float(w_b) * float(w_f) * (m_b - m_f) ** 2

        if variance > max_variance:
            max_variance = variance
            threshold = t

    return threshold


def binarize_otsu(image: RasterImage) -> RasterImage:
    """
    Convert image to pure black and white with a global Otsu threshold.

    Args:
        image: Input image

    Returns:
        Binary image; luminance above the threshold becomes white
    """
    luminance = _rounded_luminance(image)
    threshold = otsu_threshold(luminance)

    value = np.where(luminance > threshold, 255, 0).astype(np.uint8)
    rgb = np.repeat(value[:, :, np.newaxis], 3, axis=2)

    logger.debug(f"Applied Otsu binarization (threshold={threshold})")
    return image.with_rgb(rgb)


def reduce_noise(image: RasterImage) -> RasterImage:
    """
    Remove speckle noise with a 3x3 median filter.

    Reads the R channel only, which assumes a grayscale image.

    Args:
        image: Input image (grayscale)

    Returns:
        Denoised image with an unchanged 1-pixel border
    """
    if not _has_interior(image):
        return image.copy()

    rgb = image.rgb.copy()
    samples = _neighbourhood(image.rgb[:, :, 0])
    median = np.partition(samples, 4, axis=0)[4]
    rgb[1:-1, 1:-1] = median[:, :, np.newaxis]

    logger.debug("Applied 3x3 median noise reduction")
    return image.with_rgb(rgb)


def _longest_runs(mask: np.ndarray) -> np.ndarray:
    """Longest run of True values down each column of a 2D mask."""
    run = np.zeros(mask.shape[1], dtype=np.intp)
    longest = np.zeros(mask.shape[1], dtype=np.intp)
    for row in mask:
        run = (run + 1) * row
        np.maximum(longest, run, out=longest)
    return longest


def find_border_lines(
    image: RasterImage,
    threshold: float = 120.0,
    run_ratio: float = 0.95,
    dark_ratio: float = 0.9
) -> Tuple[List[int], List[int]]:
    """
    Detect full-length dark columns and rows without modifying the image.

    Args:
        image: Input image
        threshold: Luminance below which a pixel counts as dark
        run_ratio: Minimum longest dark run, as a fraction of the axis length
        dark_ratio: Minimum total dark pixels, as a fraction of the axis length

    Returns:
        Tuple of (column indices, row indices) to erase
    """
    dark = image.luminance() < threshold
    h, w = dark.shape

    column_runs = _longest_runs(dark)
    column_counts = dark.sum(axis=0)
    columns = np.flatnonzero((column_runs > h * run_ratio) & (column_counts > h * dark_ratio))

    row_runs = _longest_runs(dark.T)
    row_counts = dark.sum(axis=1)
    rows = np.flatnonzero((row_runs > w * run_ratio) & (row_counts > w * dark_ratio))

    return columns.tolist(), rows.tolist()


def remove_borders(
    image: RasterImage,
    threshold: float = 120.0,
    run_ratio: float = 0.95,
    dark_ratio: float = 0.9
) -> RasterImage:
    """
    Erase frame borders and rule lines that span almost the whole page.

    Detection of both axes finishes before anything is erased, so an erased
    column never shortens the runs measured for a row.

    Args:
        image: Input image
        threshold: Luminance below which a pixel counts as dark
        run_ratio: Minimum longest dark run, as a fraction of the axis length
        dark_ratio: Minimum total dark pixels, as a fraction of the axis length

    Returns:
        Image with the detected lines set to white
    """
    columns, rows = find_border_lines(image, threshold, run_ratio, dark_ratio)

    if not columns and not rows:
        return image.copy()

    rgb = image.rgb.copy()
    for x in columns:
        rgb[:, x] = 255
    for y in rows:
        rgb[y, :] = 255

    logger.debug(f"Removed {len(columns)} vertical and {len(rows)} horizontal lines")
    return image.with_rgb(rgb)


def dilate(image: RasterImage, iterations: int = 1) -> RasterImage:
    """
    Grow bright regions with a 3x3 max filter.

    On black text over white paper this thins strokes; callers wanting
    bolder glyphs should dilate an inverted image.

    Args:
        image: Input image
        iterations: Number of passes, each over the previous result

    Returns:
        Dilated image with an unchanged 1-pixel border
    """
    result = image.copy()
    if not _has_interior(image):
        return result

    for _ in range(iterations):
        rgb = result.rgb.copy()
        rgb[1:-1, 1:-1] = _neighbourhood(result.rgb).max(axis=0)
        result = result.with_rgb(rgb)

    logger.debug(f"Applied dilation ({iterations} iteration(s))")
    return result


def rescale(image: RasterImage, scale: float) -> RasterImage:
    """
    Resize with nearest-neighbour sampling (no smoothing).

    Args:
        image: Input image
        scale: Scale factor applied to both axes

    Returns:
        Resized image
    """
    import cv2

    if scale == 1.0:
        return image.copy()

    new_width = max(1, int(image.width * scale))
    new_height = max(1, int(image.height * scale))
    resized = cv2.resize(
        image.pixels,
        (new_width, new_height),
        interpolation=cv2.INTER_NEAREST
    )

    logger.debug(f"Resized image: {image.shape} -> {(new_height, new_width)} (scale={scale:.2f})")
    return RasterImage(resized)


# ============================================================================
# Main Preprocessing Pipeline
# ============================================================================

def preprocess_image(
    image: RasterImage,
    config: Optional[PipelineConfig] = None
) -> PreprocessingResult:
    """
    Apply the preprocessing pipeline to an image.

    Stage order is fixed: rescale, contrast/brightness, grayscale, noise
    reduction, sharpen, binarize, dilate, border removal. Noise reduction,
    binarization and dilation only run under the enhanced profile.

    Args:
        image: Input image
        config: Stage toggles and parameters (standard profile if None)

    Returns:
        PreprocessingResult with processed image and applied stages
    """
    if config is None:
        config = PipelineConfig.standard()

    original_shape = image.shape
    enhanced = config.profile is Profile.ENHANCED
    processed = image
    transformations = []

    # 1. Scale first so later ratios are measured on the final size
    if config.pre_scale != 1.0:
        processed = rescale(processed, config.pre_scale)
        transformations.append(f"rescale_{config.pre_scale:g}x")

    # 2. Contrast / brightness
    processed = adjust_contrast_brightness(processed, config.contrast, config.brightness)
    transformations.append("contrast_brightness")

    # 3. Grayscale
    if config.grayscale:
        processed = to_grayscale(processed)
        transformations.append("grayscale")

    # 4. Noise reduction (before sharpen)
    if config.denoise and enhanced:
        processed = reduce_noise(processed)
        transformations.append("reduce_noise")

    # 5. Sharpen
    if config.sharpen_intensity is not None:
        processed = sharpen(processed, config.sharpen_intensity)
        transformations.append(f"sharpen_{config.sharpen_intensity:g}")

    # 6. Binarize
    if config.binarize and enhanced:
        processed = binarize_otsu(processed)
        transformations.append("binarize_otsu")

    # 7. Dilate
    if config.dilate_iterations > 0 and enhanced:
        processed = dilate(processed, config.dilate_iterations)
        transformations.append(f"dilate_{config.dilate_iterations}")

    # 8. Border removal, independent of profile
    if config.remove_borders:
        processed = remove_borders(processed)
        transformations.append("remove_borders")

    logger.info(
        f"Preprocessing complete ({config.profile.value}): "
        f"{' -> '.join(transformations)}"
    )

    return PreprocessingResult(
        image=processed,
        original_shape=original_shape,
        profile=config.profile,
        transformations=transformations
    )
