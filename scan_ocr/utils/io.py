"""
I/O utilities for the scan OCR pipeline.

Handles:
- Image decoding from files and bytes
- PDF page rendering to rasters
- Image and JSON output
- Input type detection
"""

import json
import logging
from dataclasses import asdict
from enum import Enum
from pathlib import Path
from typing import Union, Any

import numpy as np

from ..exceptions import RenderFailure, UnsupportedInput
from .raster import RasterImage

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = ('.png', '.jpg', '.jpeg', '.tiff', '.tif', '.bmp', '.webp')
PDF_MAGIC = b"%PDF"


# ============================================================================
# PDF to Image Conversion
# ============================================================================

def render_pdf_page(
    document: Union[str, Path, bytes],
    page_number: int = 1,
    scale: float = 4.0,
    base_dpi: int = 72
) -> RasterImage:
    """
    Render one PDF page to a raster using pdf2image (poppler backend).

    Args:
        document: Path to the PDF file or its raw bytes
        page_number: Page to render (1-indexed)
        scale: Resolution scale relative to the PDF's 72 DPI user space
        base_dpi: DPI corresponding to scale 1.0

    Returns:
        RasterImage of the rendered page

    Raises:
        RenderFailure: If the document cannot be opened, the page does not
            exist, or poppler is missing
    """
    try:
        from pdf2image import convert_from_path, convert_from_bytes
        from pdf2image.exceptions import PDFPageCountError, PDFSyntaxError, PDFInfoNotInstalledError
    except ImportError as e:
        raise RenderFailure(
            "pdf2image is required. Install with: pip install pdf2image\n"
            "Also ensure poppler is installed on your system."
        ) from e

    page_count = get_pdf_page_count(document)
    if page_count and not 1 <= page_number <= page_count:
        raise RenderFailure(f"PDF has {page_count} page(s), requested page {page_number}")

    dpi = int(round(base_dpi * scale))
    logger.info(f"Rendering PDF page {page_number} at {dpi} DPI")

    try:
        if isinstance(document, (bytes, bytearray)):
            pages = convert_from_bytes(
                bytes(document), dpi=dpi, first_page=page_number, last_page=page_number, fmt='png'
            )
        else:
            pdf_path = Path(document)
            if not pdf_path.exists():
                raise RenderFailure(f"PDF file not found: {pdf_path}")
            pages = convert_from_path(
                pdf_path, dpi=dpi, first_page=page_number, last_page=page_number, fmt='png'
            )
    except RenderFailure:
        raise
    except PDFInfoNotInstalledError as e:
        raise RenderFailure(
            "Poppler is not installed. Install with:\n"
            "  macOS: brew install poppler\n"
            "  Linux: sudo apt-get install poppler-utils"
        ) from e
    except (PDFPageCountError, PDFSyntaxError) as e:
        raise RenderFailure(f"Failed to parse PDF: {e}") from e
    except Exception as e:
        raise RenderFailure(f"Could not render page {page_number}: {e}") from e

    if not pages:
        raise RenderFailure(f"Renderer returned no image for page {page_number}")

    pil_image = pages[0].convert("RGBA")
    return RasterImage.from_array(np.array(pil_image), color_order="rgb")


def get_pdf_page_count(document: Union[str, Path, bytes]) -> int:
    """Get the number of pages in a PDF, or 0 if it cannot be determined."""
    try:
        from pdf2image import pdfinfo_from_path, pdfinfo_from_bytes
        if isinstance(document, (bytes, bytearray)):
            info = pdfinfo_from_bytes(bytes(document))
        else:
            info = pdfinfo_from_path(str(document))
        return int(info.get('Pages', 0))
    except Exception as e:
        logger.warning(f"Could not get PDF page count: {e}")
        return 0


# ============================================================================
# Image Loading
# ============================================================================

def load_image(image_path: Union[str, Path]) -> RasterImage:
    """
    Load an image file, keeping its alpha channel if present.

    Args:
        image_path: Path to the image file

    Returns:
        RasterImage

    Raises:
        FileNotFoundError: If image file doesn't exist
        UnsupportedInput: If image cannot be decoded
    """
    image_path = Path(image_path)
    if not image_path.exists():
        raise FileNotFoundError(f"Image file not found: {image_path}")

    image = decode_image(image_path.read_bytes())
    logger.debug(f"Loaded image: {image_path}, shape: {image.shape}")
    return image


def decode_image(data: bytes) -> RasterImage:
    """
    Decode an encoded image (PNG, JPEG, TIFF, ...) held in memory.

    Raises:
        UnsupportedInput: If the bytes are not a decodable image
    """
    import cv2

    buffer = np.frombuffer(data, dtype=np.uint8)
    img = cv2.imdecode(buffer, cv2.IMREAD_UNCHANGED) if buffer.size else None

    if img is None:
        raise UnsupportedInput("Could not decode image data")

    if img.dtype != np.uint8:
        # 16-bit PNG / TIFF scans
        img = (img / 257).astype(np.uint8)

    return RasterImage.from_array(img, color_order="bgr")


def save_image(image: RasterImage, output_path: Union[str, Path], quality: int = 95) -> Path:
    """
    Save a RasterImage to file.

    Args:
        image: Image to save
        output_path: Path to save the image
        quality: JPEG quality (1-100)

    Returns:
        Path to the saved image
    """
    import cv2

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    if output_path.suffix.lower() in ('.jpg', '.jpeg'):
        cv2.imwrite(str(output_path), image.to_bgr(), [cv2.IMWRITE_JPEG_QUALITY, quality])
    else:
        bgra = np.ascontiguousarray(image.pixels[:, :, [2, 1, 0, 3]])
        cv2.imwrite(str(output_path), bgra)

    logger.debug(f"Saved image: {output_path}")
    return output_path


# ============================================================================
# JSON Serialization
# ============================================================================

class EnhancedJSONEncoder(json.JSONEncoder):
    """JSON encoder that handles numpy values, enums and dataclasses."""

    def default(self, obj):
        if isinstance(obj, np.integer):
            return int(obj)
        if isinstance(obj, np.floating):
            return float(obj)
        if isinstance(obj, Enum):
            return obj.value
        if hasattr(obj, '__dataclass_fields__'):
            return asdict(obj)
        if isinstance(obj, Path):
            return str(obj)
        return super().default(obj)


def save_json(
    data: Any,
    output_path: Union[str, Path],
    indent: int = 2,
    ensure_ascii: bool = False
) -> Path:
    """
    Save data to a JSON file.

    Args:
        data: Data to serialize (dict, list, dataclass, etc.)
        output_path: Path to save the JSON file
        indent: Indentation level for pretty printing
        ensure_ascii: If True, escape non-ASCII characters

    Returns:
        Path to the saved file
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    with open(output_path, 'w', encoding='utf-8') as f:
        json.dump(data, f, indent=indent, ensure_ascii=ensure_ascii, cls=EnhancedJSONEncoder)

    logger.debug(f"Saved JSON: {output_path}")
    return output_path


# ============================================================================
# File Type Detection
# ============================================================================

def is_pdf_bytes(data: bytes) -> bool:
    """Check the PDF magic number, tolerating leading whitespace."""
    return data.lstrip()[:4] == PDF_MAGIC


def detect_input_type(input_path: Union[str, Path]) -> str:
    """
    Detect the type of an input file.

    Args:
        input_path: Path to file

    Returns:
        One of: 'pdf', 'image', 'unknown'
    """
    input_path = Path(input_path)

    if not input_path.is_file():
        return 'unknown'

    suffix = input_path.suffix.lower()
    if suffix == '.pdf':
        return 'pdf'
    elif suffix in IMAGE_EXTENSIONS:
        return 'image'

    # Fall back to sniffing the header for extension-less uploads
    with open(input_path, 'rb') as f:
        head = f.read(1024)
    if is_pdf_bytes(head):
        return 'pdf'

    return 'unknown'
