"""
Tests for I/O utilities.
"""

import pytest
import numpy as np
import json
import sys
from pathlib import Path

# Add repository root to path
sys.path.insert(0, str(Path(__file__).parent.parent))


class TestInputDetection:
    """Test input type detection."""

    def test_by_extension(self, tmp_path):
        from scan_ocr.utils.io import detect_input_type

        pdf = tmp_path / "doc.PDF"
        pdf.write_bytes(b"%PDF-1.4")
        png = tmp_path / "scan.png"
        png.write_bytes(b"\x89PNG")

        assert detect_input_type(pdf) == "pdf"
        assert detect_input_type(png) == "image"

    def test_pdf_magic_without_extension(self, tmp_path):
        from scan_ocr.utils.io import detect_input_type

        upload = tmp_path / "upload"
        upload.write_bytes(b"\n%PDF-1.7\n...")

        assert detect_input_type(upload) == "pdf"

    def test_unknown(self, tmp_path):
        from scan_ocr.utils.io import detect_input_type

        notes = tmp_path / "notes.txt"
        notes.write_text("hello")

        assert detect_input_type(notes) == "unknown"
        assert detect_input_type(tmp_path / "missing.pdf") == "unknown"

    def test_is_pdf_bytes(self):
        from scan_ocr.utils.io import is_pdf_bytes

        assert is_pdf_bytes(b"%PDF-1.5")
        assert is_pdf_bytes(b"  \r\n%PDF-1.5")
        assert not is_pdf_bytes(b"\x89PNG\r\n")
        assert not is_pdf_bytes(b"")


class TestImageIO:
    """Test image decoding and saving."""

    def test_decode_keeps_alpha(self):
        import cv2
        from scan_ocr.utils.io import decode_image

        bgra = np.zeros((4, 6, 4), dtype=np.uint8)
        bgra[:, :] = (10, 20, 30, 128)
        ok, encoded = cv2.imencode(".png", bgra)
        assert ok

        image = decode_image(encoded.tobytes())

        assert image.shape == (4, 6)
        assert tuple(image.pixels[0, 0]) == (30, 20, 10, 128)

    def test_decode_grayscale(self):
        import cv2
        from scan_ocr.utils.io import decode_image

        ok, encoded = cv2.imencode(".png", np.full((3, 3), 77, dtype=np.uint8))
        image = decode_image(encoded.tobytes())

        assert tuple(image.pixels[1, 1]) == (77, 77, 77, 255)

    def test_decode_garbage(self):
        from scan_ocr.exceptions import UnsupportedInput
        from scan_ocr.utils.io import decode_image

        with pytest.raises(UnsupportedInput):
            decode_image(b"definitely not an image")

        with pytest.raises(UnsupportedInput):
            decode_image(b"")

    def test_load_missing(self, tmp_path):
        from scan_ocr.utils.io import load_image

        with pytest.raises(FileNotFoundError):
            load_image(tmp_path / "nope.png")

    def test_save_and_load(self, tmp_path):
        from scan_ocr.utils.io import load_image, save_image
        from scan_ocr.utils.raster import RasterImage

        image = RasterImage.blank(8, 5, color=(200, 100, 50))
        path = save_image(image, tmp_path / "nested" / "page.png")
        loaded = load_image(path)

        np.testing.assert_array_equal(loaded.pixels, image.pixels)


class TestPdfRendering:
    """Test PDF rendering error paths."""

    def test_missing_pdf(self, tmp_path):
        from scan_ocr.exceptions import RenderFailure
        from scan_ocr.utils.io import render_pdf_page

        with pytest.raises(RenderFailure):
            render_pdf_page(tmp_path / "missing.pdf")

    def test_page_count_unreadable(self, tmp_path):
        from scan_ocr.utils.io import get_pdf_page_count

        assert get_pdf_page_count(tmp_path / "missing.pdf") == 0


class TestJSON:
    """Test JSON output helpers."""

    def test_encoder(self, tmp_path):
        from scan_ocr.config import Profile
        from scan_ocr.utils.io import save_json

        data = {
            "profile": Profile.ENHANCED,
            "count": np.int64(3),
            "score": np.float32(0.5),
            "path": Path("a/b.png"),
            "text": "ภาษาไทย",
        }
        path = save_json(data, tmp_path / "data.json")
        content = path.read_text(encoding="utf-8")
        loaded = json.loads(content)

        assert loaded == {
            "profile": "enhanced",
            "count": 3,
            "score": 0.5,
            "path": str(Path("a/b.png")),
            "text": "ภาษาไทย",
        }
        assert "ภาษาไทย" in content
