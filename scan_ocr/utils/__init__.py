"""
Utility modules for the scan OCR pipeline.
"""

from .raster import RasterImage
from .io import load_image, decode_image, render_pdf_page, save_image, save_json
from .images import (
    preprocess_image, adjust_contrast_brightness, to_grayscale, sharpen,
    binarize_otsu, reduce_noise, remove_borders, dilate, rescale,
)
from .ocr_text import (
    SegmentationMode, RecognitionCandidate, RecognitionEngine, TesseractEngine,
    RecognitionOrchestrator, CancellationToken,
)
from .fusion import calculate_text_quality, select_best_result
from .postprocess import sanitize_text
from .assembler import DocumentAssembler, DocumentResult, process_document

__all__ = [
    # Raster
    "RasterImage",
    # IO
    "load_image", "decode_image", "render_pdf_page", "save_image", "save_json",
    # Images
    "preprocess_image", "adjust_contrast_brightness", "to_grayscale", "sharpen",
    "binarize_otsu", "reduce_noise", "remove_borders", "dilate", "rescale",
    # OCR
    "SegmentationMode", "RecognitionCandidate", "RecognitionEngine", "TesseractEngine",
    "RecognitionOrchestrator", "CancellationToken",
    # Fusion / post-processing
    "calculate_text_quality", "select_best_result", "sanitize_text",
    # Assembly
    "DocumentAssembler", "DocumentResult", "process_document",
]
