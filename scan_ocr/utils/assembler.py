"""
Document assembler module for the scan OCR pipeline.

Provides:
- Result data model (DocumentResult)
- Source loading (image, encoded bytes, PDF page)
- Pipeline orchestration: preprocess -> multi-pass OCR -> fusion -> cleanup
- Progress reporting and cooperative cancellation
"""

import logging
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

import numpy as np

from ..config import AppConfig, OCRConfig, SourceKind, get_config
from ..exceptions import Cancelled, EngineInitFailure, RenderFailure, ScanOCRError, UnsupportedInput
from .fusion import get_script, select_best_result
from .images import preprocess_image
from .io import decode_image, detect_input_type, is_pdf_bytes, load_image, render_pdf_page
from .ocr_text import (
    CancellationToken,
    ProgressCallback,
    RecognitionCandidate,
    RecognitionEngine,
    RecognitionOrchestrator,
    TesseractEngine,
)
from .postprocess import sanitize_text
from .raster import RasterImage

logger = logging.getLogger(__name__)

Source = Union[RasterImage, np.ndarray, bytes, str, Path]
EngineFactory = Callable[[OCRConfig], RecognitionEngine]
Renderer = Callable[[Union[str, Path, bytes], int, float], RasterImage]

# Progress budget: preprocessing ends at 10% for images and 20% for rendered
# pages, recognition passes share the next 60%.
PREPROCESS_PROGRESS = {SourceKind.IMAGE: 10.0, SourceKind.RENDERED_PAGE: 20.0}
RECOGNITION_SPAN = 60.0
FUSION_PROGRESS = 85.0
CLEANUP_PROGRESS = 90.0


# ============================================================================
# Data Classes
# ============================================================================

@dataclass
class DocumentResult:
    """Final text of one pipeline run plus how it was obtained."""
    text: str
    raw_text: str
    source_kind: SourceKind
    candidates: List[RecognitionCandidate] = field(default_factory=list)
    transformations: List[str] = field(default_factory=list)
    profile: str = ""
    processing_time_seconds: float = 0.0
    task_id: str = ""
    created_at: str = ""

    def __post_init__(self):
        if not self.task_id:
            self.task_id = str(uuid.uuid4())
        if not self.created_at:
            self.created_at = datetime.now().isoformat()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "task_id": self.task_id,
            "created_at": self.created_at,
            "source_kind": self.source_kind.value,
            "profile": self.profile,
            "transformations": self.transformations,
            "text": self.text,
            "raw_text": self.raw_text,
            "candidates": [c.to_dict() for c in self.candidates],
            "processing_time_seconds": round(self.processing_time_seconds, 2)
        }


class ProgressReporter:
    """Forward (percent, label) updates, never letting the percentage go down."""

    def __init__(self, callback: Optional[ProgressCallback] = None):
        self.callback = callback
        self.percent = 0
        self.label = ""

    def update(self, percent: float, label: str):
        self.percent = max(self.percent, int(round(min(max(percent, 0.0), 100.0))))
        self.label = label
        logger.debug(f"[{self.percent:3d}%] {label}")
        if self.callback is not None:
            self.callback(self.percent, label)


# ============================================================================
# Document Assembler
# ============================================================================

class DocumentAssembler:
    """
    Runs the OCR pipeline for one input at a time.

    Coordinates:
    - Source loading and PDF rendering
    - Image preprocessing (profile chosen by source kind)
    - Multi-pass recognition
    - Candidate fusion
    - Text post-processing

    No state is shared between runs; each run creates and releases its own
    engine.
    """

    def __init__(
        self,
        config: Optional[AppConfig] = None,
        engine_factory: Optional[EngineFactory] = None,
        renderer: Optional[Renderer] = None
    ):
        self.config = config or get_config()
        self.engine_factory = engine_factory or TesseractEngine.from_config
        self.renderer = renderer or self._default_renderer

    def _default_renderer(self, document, page_number: int, scale: float) -> RasterImage:
        return render_pdf_page(document, page_number, scale, self.config.render.base_dpi)

    # ------------------------------------------------------------------
    # Source loading
    # ------------------------------------------------------------------

    def _render(self, document, page_number: int) -> RasterImage:
        try:
            image = self.renderer(document, page_number, self.config.render.scale)
        except ScanOCRError:
            raise
        except Exception as e:
            raise RenderFailure(f"Could not render page {page_number}: {e}") from e

        if isinstance(image, np.ndarray):
            image = RasterImage.from_array(image, color_order="rgb")
        return image

    def load_source(
        self,
        source: Source,
        source_kind: Optional[SourceKind] = None,
        page_number: int = 1
    ) -> Tuple[RasterImage, SourceKind]:
        """
        Turn the caller's input into a raster.

        Args:
            source: RasterImage, BGR array, encoded image/PDF bytes, or a path
            source_kind: Override the detected provenance
            page_number: PDF page to render (1-indexed)

        Returns:
            Tuple of (image, source kind)

        Raises:
            UnsupportedInput: If the input is neither an image nor a PDF
            RenderFailure: If a PDF page could not be rendered
        """
        if isinstance(source, RasterImage):
            return source, source_kind or SourceKind.IMAGE

        if isinstance(source, np.ndarray):
            try:
                image = RasterImage.from_array(source, color_order="bgr")
            except ValueError as e:
                raise UnsupportedInput(str(e)) from e
            return image, source_kind or SourceKind.IMAGE

        if isinstance(source, (bytes, bytearray)):
            if is_pdf_bytes(bytes(source)):
                return self._render(bytes(source), page_number), source_kind or SourceKind.RENDERED_PAGE
            return decode_image(bytes(source)), source_kind or SourceKind.IMAGE

        if isinstance(source, (str, Path)):
            path = Path(source)
            if not path.is_file():
                raise UnsupportedInput(f"Input file not found: {path}")

            input_type = detect_input_type(path)
            logger.info(f"Input type detected: {input_type}")

            if input_type == "pdf":
                return self._render(path, page_number), source_kind or SourceKind.RENDERED_PAGE
            if input_type == "image":
                return load_image(path), source_kind or SourceKind.IMAGE
            # Unknown extension: accept it if it decodes as an image
            try:
                return decode_image(path.read_bytes()), source_kind or SourceKind.IMAGE
            except UnsupportedInput:
                raise UnsupportedInput(f"Not an image or PDF: {path}") from None

        raise UnsupportedInput(f"Unsupported input type: {type(source).__name__}")

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    def _start_engine(self) -> RecognitionEngine:
        try:
            return self.engine_factory(self.config.ocr)
        except EngineInitFailure:
            raise
        except Exception as e:
            raise EngineInitFailure(f"Could not start OCR engine: {e}") from e

    def process_document(
        self,
        source: Source,
        source_kind: Optional[SourceKind] = None,
        cancel: Optional[CancellationToken] = None,
        progress: Optional[ProgressCallback] = None,
        page_number: int = 1
    ) -> DocumentResult:
        """
        Extract text from one image or PDF page.

        Args:
            source: Input image, bytes or path (see load_source)
            source_kind: Override the detected provenance
            cancel: Token checked at every stage boundary
            progress: Receives (percent 0-100, label) updates
            page_number: PDF page to render (1-indexed)

        Returns:
            DocumentResult with the sanitized text

        Raises:
            Cancelled: If cancellation was observed; no text is returned
            ScanOCRError: On any aborting failure
        """
        start_time = time.time()
        cancel = cancel or CancellationToken()
        reporter = ProgressReporter(progress)

        try:
            return self._run(source, source_kind, cancel, reporter, page_number, start_time)
        except Cancelled as e:
            logger.info(f"OCR run cancelled ({e.stage or 'unknown stage'})")
            raise
        except ScanOCRError as e:
            logger.error(f"{e.label}: {e}")
            raise

    def _run(
        self,
        source: Source,
        source_kind: Optional[SourceKind],
        cancel: CancellationToken,
        reporter: ProgressReporter,
        page_number: int,
        start_time: float
    ) -> DocumentResult:
        reporter.update(0, "Starting")
        cancel.raise_if_cancelled("start")

        image, kind = self.load_source(source, source_kind, page_number)
        logger.info(f"Processing {kind.value} ({image.width}x{image.height})")
        cancel.raise_if_cancelled("loading")

        # 1. Preprocess
        reporter.update(0, "Preparing image for OCR")
        pipeline_config = self.config.pipeline_for(kind)
        preprocessed = preprocess_image(image, pipeline_config)
        base = PREPROCESS_PROGRESS[kind]
        reporter.update(base, "Image prepared")
        cancel.raise_if_cancelled("preprocessing")

        # 2. Recognize, one pass per segmentation mode
        reporter.update(base, "Loading OCR engine")
        engine = self._start_engine()
        try:
            cancel.raise_if_cancelled("engine start")

            orchestrator = RecognitionOrchestrator(engine, self.config.ocr.fallback_mode)
            candidates = orchestrator.run(
                preprocessed.image,
                self.config.ocr.modes,
                self.config.ocr.languages,
                cancel=cancel,
                progress=lambda pct, label: reporter.update(
                    base + pct / 100.0 * RECOGNITION_SPAN, label
                )
            )
            cancel.raise_if_cancelled("recognition")

            # 3. Fuse candidates
            reporter.update(FUSION_PROGRESS, "Selecting best result")
            script = get_script(self.config.text.target_script)
            raw_text = select_best_result(candidates, script)
            cancel.raise_if_cancelled("fusion")

            # 4. Clean up text
            reporter.update(CLEANUP_PROGRESS, "Cleaning up text")
            text = sanitize_text(raw_text, self.config.text.corrections)
            cancel.raise_if_cancelled("post-processing")
        finally:
            engine.release()

        if not text:
            logger.warning("Recognized text was entirely removed by post-processing")

        reporter.update(100, "Done")
        elapsed = time.time() - start_time
        logger.info(f"OCR complete: {len(text)} chars from {len(candidates)} candidate(s) in {elapsed:.2f}s")

        return DocumentResult(
            text=text,
            raw_text=raw_text,
            source_kind=kind,
            candidates=candidates,
            transformations=preprocessed.transformations,
            profile=pipeline_config.profile.value,
            processing_time_seconds=elapsed
        )


def process_document(
    source: Source,
    source_kind: Optional[SourceKind] = None,
    cancel: Optional[CancellationToken] = None,
    progress: Optional[ProgressCallback] = None,
    config: Optional[AppConfig] = None,
    engine_factory: Optional[EngineFactory] = None,
    renderer: Optional[Renderer] = None,
    page_number: int = 1
) -> DocumentResult:
    """Convenience wrapper: build a DocumentAssembler and run it once."""
    assembler = DocumentAssembler(config=config, engine_factory=engine_factory, renderer=renderer)
    return assembler.process_document(
        source,
        source_kind=source_kind,
        cancel=cancel,
        progress=progress,
        page_number=page_number
    )
