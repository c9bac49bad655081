"""
Configuration and constants for the scan OCR pipeline.

This module provides:
- Logging setup
- Preprocessing profiles (standard / enhanced)
- Recognition engine settings
- PDF rendering settings
- Text post-processing tables
"""

import os
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Optional, Tuple, Dict
import logging

# ============================================================================
# Logging Configuration
# ============================================================================

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger("scan_ocr")


# ============================================================================
# Enumerations
# ============================================================================

class Profile(Enum):
    """Named preprocessing profiles."""
    STANDARD = "standard"
    ENHANCED = "enhanced"


class SourceKind(Enum):
    """Where the raster handed to the pipeline came from."""
    IMAGE = "image"
    RENDERED_PAGE = "rendered_page"


# Tesseract page segmentation modes used by default (auto, single column,
# single block). Kept as plain ints here so config has no engine imports.
DEFAULT_MODES: Tuple[int, ...] = (3, 4, 6)
FALLBACK_MODE = 6


# ============================================================================
# Processing Configuration
# ============================================================================

@dataclass(frozen=True)
class PipelineConfig:
    """Image preprocessing configuration for one pipeline run."""
    contrast: float = 1.3
    brightness: float = 15.0
    grayscale: bool = True
    sharpen_intensity: Optional[float] = 1.0  # None = sharpen off
    binarize: bool = False
    denoise: bool = False
    dilate_iterations: int = 0
    remove_borders: bool = False
    pre_scale: float = 1.0
    profile: Profile = Profile.STANDARD

    def __post_init__(self):
        if self.pre_scale <= 0:
            raise ValueError(f"pre_scale must be positive, got {self.pre_scale}")
        if self.dilate_iterations < 0:
            raise ValueError(f"dilate_iterations must be >= 0, got {self.dilate_iterations}")

    @classmethod
    def standard(cls, **overrides) -> "PipelineConfig":
        """Light-touch profile for already legible input (rendered pages, clean photos)."""
        return replace(cls(), **overrides)

    @classmethod
    def enhanced(cls, **overrides) -> "PipelineConfig":
        """Full stack for printed, scanned documents."""
        base = cls(
            contrast=1.5,
            brightness=25.0,
            grayscale=True,
            sharpen_intensity=1.5,
            binarize=True,
            denoise=True,
            dilate_iterations=0,
            remove_borders=False,
            pre_scale=1.0,
            profile=Profile.ENHANCED,
        )
        return replace(base, **overrides)

    @classmethod
    def for_profile(cls, profile: Profile, **overrides) -> "PipelineConfig":
        if profile is Profile.ENHANCED:
            return cls.enhanced(**overrides)
        return cls.standard(**overrides)


@dataclass
class OCRConfig:
    """Recognition engine configuration."""
    languages: str = "tha+eng"
    # OEM 1 = LSTM only; fixed for the lifetime of an engine
    oem: int = 1
    modes: Tuple[int, ...] = DEFAULT_MODES
    fallback_mode: int = FALLBACK_MODE
    tesseract_cmd: Optional[str] = None
    tesseract_variables: Dict[str, str] = field(default_factory=lambda: {
        "preserve_interword_spaces": "1",
        "textord_min_linesize": "2.5",
    })
    timeout: int = 0  # seconds, 0 = no timeout


@dataclass
class RenderConfig:
    """PDF page rendering configuration."""
    scale: float = 4.0
    base_dpi: int = 72

    @property
    def dpi(self) -> int:
        return int(round(self.base_dpi * self.scale))


@dataclass
class TextConfig:
    """Text post-processing configuration."""
    target_script: str = "thai"
    # Exact substring corrections, applied in order
    corrections: Tuple[Tuple[str, str], ...] = (
        ("f23%9e3", "f239e3"),
        ("เวิป", "เว็บ"),
        ("เวป", "เว็บ"),
    )


@dataclass
class AppConfig:
    """Main pipeline configuration."""
    ocr: OCRConfig = field(default_factory=OCRConfig)
    render: RenderConfig = field(default_factory=RenderConfig)
    text: TextConfig = field(default_factory=TextConfig)
    image_pipeline: PipelineConfig = field(default_factory=PipelineConfig.standard)
    rendered_page_pipeline: PipelineConfig = field(default_factory=PipelineConfig.standard)

    # Global settings
    debug_mode: bool = False

    def pipeline_for(self, source_kind: SourceKind) -> PipelineConfig:
        """Pick the preprocessing configuration for a source provenance."""
        if source_kind is SourceKind.RENDERED_PAGE:
            return self.rendered_page_pipeline
        return self.image_pipeline


# ============================================================================
# Default Configuration Instance
# ============================================================================

def get_config() -> AppConfig:
    """Get the default pipeline configuration with environment overrides."""
    config = AppConfig()

    lang = os.environ.get("SCAN_OCR_LANG")
    if lang:
        config.ocr.languages = lang

    profile_name = os.environ.get("SCAN_OCR_PROFILE", "").lower()
    if profile_name:
        try:
            profile = Profile(profile_name)
        except ValueError:
            logger.warning(f"Ignoring unknown SCAN_OCR_PROFILE: {profile_name}")
        else:
            config.image_pipeline = PipelineConfig.for_profile(profile)
            config.rendered_page_pipeline = PipelineConfig.for_profile(profile)

    scale = os.environ.get("SCAN_OCR_RENDER_SCALE")
    if scale:
        try:
            config.render.scale = float(scale)
        except ValueError:
            logger.warning(f"Ignoring invalid SCAN_OCR_RENDER_SCALE: {scale}")

    if os.environ.get("SCAN_OCR_DEBUG", "").lower() == "true":
        config.debug_mode = True

    return config
