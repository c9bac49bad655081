"""
Exception classes for the scan OCR pipeline.

Every failure that aborts a run inherits from ScanOCRError. Cancellation is
not a failure and has its own class outside that hierarchy, so callers can
write:

    >>> try:
    ...     result = process_document("scan.png")
    ... except Cancelled:
    ...     pass  # user asked to stop, nothing to report
    ... except ScanOCRError as e:
    ...     print(f"{e.label}: {e}")
"""


class ScanOCRError(Exception):
    """Base exception for all pipeline failures."""

    label = "Processing failed"


class UnsupportedInput(ScanOCRError):
    """Raised when the input is neither a decodable image nor a renderable PDF."""

    label = "Unsupported input"


class RenderFailure(ScanOCRError):
    """Raised when a PDF page could not be rendered to a raster."""

    label = "Could not render page"


class EngineInitFailure(ScanOCRError):
    """Raised when the recognition engine could not be started."""

    label = "OCR engine unavailable"


class RecognitionFailure(ScanOCRError):
    """
    Raised by an engine when a single recognition call fails.

    The orchestrator recovers from this by skipping the segmentation mode.
    """

    label = "Recognition failed"


class NoResult(ScanOCRError):
    """Raised when every segmentation mode, fallback included, produced no text."""

    label = "No text found"


class Cancelled(Exception):
    """Raised when cancellation is observed at a suspension point."""

    def __init__(self, stage: str = ""):
        self.stage = stage
        super().__init__(f"Cancelled during {stage}" if stage else "Cancelled")
