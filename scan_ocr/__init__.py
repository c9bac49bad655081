"""
Scan OCR Pipeline
=================

Extracts text from scanned document images and PDF pages.

Main components:
- Image preprocessing (contrast, grayscale, denoise, sharpen, Otsu binarization,
  dilation, border removal)
- Multi-pass Tesseract recognition over several page segmentation modes
- Candidate fusion by confidence, text quality and length
- Text post-processing (noise symbols, barcodes, frame borders, known errors)
"""

__version__ = "1.0.0"
__author__ = "Scan OCR Team"

from .config import PipelineConfig, Profile, SourceKind, AppConfig, get_config
from .exceptions import (
    ScanOCRError, UnsupportedInput, RenderFailure, EngineInitFailure,
    RecognitionFailure, NoResult, Cancelled,
)
from .utils.assembler import process_document, DocumentResult
from .utils.ocr_text import CancellationToken, SegmentationMode
from .utils.raster import RasterImage
