"""
Text OCR module for the scan OCR pipeline.

Provides:
- Segmentation modes and recognition data classes
- Tesseract engine adapter (pytesseract)
- Cooperative cancellation token
- Multi-pass recognition orchestrator with fallback
"""

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import IntEnum
from typing import Callable, Dict, List, Optional, Sequence, Union

import numpy as np

from ..config import OCRConfig
from ..exceptions import Cancelled, EngineInitFailure, NoResult, RecognitionFailure
from .raster import RasterImage

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[float, str], None]


# ============================================================================
# Data Classes
# ============================================================================

class SegmentationMode(IntEnum):
    """Tesseract page segmentation modes (PSM) used by the pipeline."""
    AUTO = 3
    SINGLE_COLUMN = 4
    SINGLE_BLOCK = 6
    SPARSE_TEXT = 11

    @property
    def label(self) -> str:
        return self.name.lower().replace("_", " ")


@dataclass(frozen=True)
class RecognitionResult:
    """Raw output of one engine call."""
    text: str
    confidence: float


@dataclass(frozen=True)
class RecognitionCandidate:
    """One recognition attempt kept for fusion."""
    text: str
    confidence: float  # 0..100
    mode: SegmentationMode

    def to_dict(self) -> Dict[str, Union[str, float, int]]:
        return {
            "text": self.text,
            "confidence": self.confidence,
            "mode": int(self.mode),
        }


class CancellationToken:
    """
    Shared cancel flag, checked at every suspension point of a run.

    Once cancelled it stays cancelled.
    """

    def __init__(self):
        self._event = threading.Event()

    def cancel(self):
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self, stage: str = ""):
        if self._event.is_set():
            logger.info(f"Cancellation observed at: {stage or 'unknown stage'}")
            raise Cancelled(stage)


# ============================================================================
# Engines
# ============================================================================

class RecognitionEngine(ABC):
    """
    Interface for recognition engines.

    Engines return literal text and a 0..100 confidence. A failed call must
    raise RecognitionFailure; release() frees engine-side resources.
    """

    @abstractmethod
    def recognize(
        self,
        image: RasterImage,
        mode: SegmentationMode,
        languages: Optional[str] = None
    ) -> RecognitionResult:
        raise NotImplementedError

    def release(self):
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.release()
        return False


class TesseractEngine(RecognitionEngine):
    """OCR using Tesseract through pytesseract."""

    def __init__(
        self,
        languages: str = "tha+eng",
        oem: int = 1,
        variables: Optional[Dict[str, str]] = None,
        tesseract_cmd: Optional[str] = None,
        timeout: int = 0
    ):
        try:
            import pytesseract
            self.pytesseract = pytesseract

            if tesseract_cmd:
                pytesseract.pytesseract.tesseract_cmd = tesseract_cmd

            # Test that tesseract is installed
            pytesseract.get_tesseract_version()

        except Exception as e:
            raise EngineInitFailure(
                f"Tesseract not available: {e}\n"
                "Install with: pip install pytesseract\n"
                "Also install Tesseract: https://github.com/tesseract-ocr/tesseract"
            ) from e

        self._check_languages(languages)

        self.languages = languages
        self.oem = oem
        self.variables = dict(variables or {})
        self.timeout = timeout
        self._released = False

        logger.info(f"Initialized Tesseract engine (lang={languages}, oem={oem})")

    @classmethod
    def from_config(cls, config: OCRConfig) -> "TesseractEngine":
        return cls(
            languages=config.languages,
            oem=config.oem,
            variables=config.tesseract_variables,
            tesseract_cmd=config.tesseract_cmd,
            timeout=config.timeout
        )

    def _check_languages(self, languages: str):
        try:
            installed = set(self.pytesseract.get_languages(config=""))
        except Exception as e:
            logger.debug(f"Could not list Tesseract languages: {e}")
            return

        missing = [lang for lang in languages.split("+") if lang and lang not in installed]
        if missing:
            raise EngineInitFailure(
                f"Tesseract language data missing: {', '.join(missing)} "
                f"(installed: {', '.join(sorted(installed)) or 'none'})"
            )

    def _build_config(self, mode: SegmentationMode) -> str:
        parts = [f"--oem {self.oem}", f"--psm {int(mode)}"]
        parts.extend(f"-c {name}={value}" for name, value in self.variables.items())
        return " ".join(parts)

    def recognize(
        self,
        image: RasterImage,
        mode: SegmentationMode,
        languages: Optional[str] = None
    ) -> RecognitionResult:
        """Recognize text using Tesseract."""
        if self._released:
            raise RecognitionFailure("Tesseract engine has been released")

        try:
            data = self.pytesseract.image_to_data(
                image.to_rgb(),
                lang=languages or self.languages,
                config=self._build_config(mode),
                output_type=self.pytesseract.Output.DICT,
                timeout=self.timeout
            )
        except Exception as e:
            raise RecognitionFailure(f"Tesseract error (psm {int(mode)}): {e}") from e

        return self._parse_data(data)

    @staticmethod
    def _parse_data(data: Dict[str, list]) -> RecognitionResult:
        """Rebuild text lines from word boxes and average the word confidences."""
        lines = []
        current_key = None
        current_block = None
        current_words = []
        confidences = []

        def flush():
            if current_words:
                lines.append((current_block, ' '.join(current_words)))

        for i in range(len(data['text'])):
            text = str(data['text'][i]).strip()
            conf = float(data['conf'][i])

            if conf < 0 or not text:  # -1 marks non-word levels
                continue

            key = (data['block_num'][i], data['par_num'][i], data['line_num'][i])
            if key != current_key:
                flush()
                current_key = key
                current_block = data['block_num'][i]
                current_words = []

            current_words.append(text)
            confidences.append(conf)

        flush()

        # Blank line between blocks, as Tesseract's plain text output does
        parts = []
        previous_block = None
        for block, line in lines:
            if previous_block is not None and block != previous_block:
                parts.append('')
            parts.append(line)
            previous_block = block

        full_text = '\n'.join(parts)
        avg_confidence = float(np.mean(confidences)) if confidences else 0.0

        return RecognitionResult(text=full_text, confidence=avg_confidence)

    def release(self):
        if not self._released:
            self._released = True
            logger.debug("Released Tesseract engine")


# ============================================================================
# Multi-pass Orchestration
# ============================================================================

class RecognitionOrchestrator:
    """
    Run one recognition pass per segmentation mode and collect candidates.

    Calls are strictly sequential: the engine carries per-call parameter
    state, so a lock serializes every call made through this orchestrator.
    """

    def __init__(
        self,
        engine: RecognitionEngine,
        fallback_mode: SegmentationMode = SegmentationMode.SINGLE_BLOCK
    ):
        self.engine = engine
        self.fallback_mode = SegmentationMode(fallback_mode)
        self._lock = threading.Lock()

    def _recognize(
        self,
        image: RasterImage,
        mode: SegmentationMode,
        languages: Optional[str]
    ) -> Optional[RecognitionCandidate]:
        try:
            with self._lock:
                result = self.engine.recognize(image, mode, languages)
        except RecognitionFailure as e:
            logger.warning(f"PSM {int(mode)} ({mode.label}) failed, skipping: {e}")
            return None

        text = result.text.strip()
        if not text:
            logger.info(f"PSM {int(mode)} ({mode.label}) returned no text")
            return None

        confidence = min(max(float(result.confidence), 0.0), 100.0)
        logger.debug(
            f"PSM {int(mode)} ({mode.label}): {len(text)} chars, confidence {confidence:.1f}"
        )
        return RecognitionCandidate(text=text, confidence=confidence, mode=mode)

    def run(
        self,
        image: RasterImage,
        modes: Sequence[Union[int, SegmentationMode]],
        languages: Optional[str] = None,
        cancel: Optional[CancellationToken] = None,
        progress: Optional[ProgressCallback] = None
    ) -> List[RecognitionCandidate]:
        """
        Recognize the image once per mode, in order.

        Args:
            image: Preprocessed image
            modes: Segmentation modes to try
            languages: Tesseract language string (engine default if None)
            cancel: Token checked before every call
            progress: Called with (percent of modes completed, label)

        Returns:
            Non-empty candidates in call order

        Raises:
            Cancelled: If the token is set before a call
            NoResult: If every mode and the fallback produced no text
        """
        modes = [SegmentationMode(m) for m in modes]
        if not modes:
            raise ValueError("At least one segmentation mode is required")

        if cancel is None:
            cancel = CancellationToken()

        def report(percent: float, label: str):
            if progress is not None:
                progress(percent, label)

        total = len(modes)
        candidates = []

        for i, mode in enumerate(modes):
            cancel.raise_if_cancelled(f"recognition pass {i + 1}/{total}")
            report(i / total * 100.0, f"Testing mode {i + 1}/{total} (PSM {int(mode)})")

            candidate = self._recognize(image, mode, languages)
            if candidate is not None:
                candidates.append(candidate)

        report(100.0, f"Completed {total} recognition pass(es)")

        if candidates:
            logger.info(f"Collected {len(candidates)} candidate(s) from {total} mode(s)")
            return candidates

        logger.warning(
            f"No text from any mode, retrying once with PSM {int(self.fallback_mode)}"
        )
        cancel.raise_if_cancelled("fallback recognition")
        candidate = self._recognize(image, self.fallback_mode, languages)

        if candidate is None:
            raise NoResult("No text was recognized in the image")

        return [candidate]
