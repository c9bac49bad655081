"""
Candidate fusion for multi-pass OCR.

Scores each candidate transcription by engine confidence, text quality and
length, then picks one. When the top candidate is short, a clearly longer
candidate with comparable confidence is preferred, since a segmentation
mode that misses whole regions tends to return short, confident text.
"""

import logging
import re
from dataclasses import dataclass
from typing import List, Sequence

from .ocr_text import RecognitionCandidate

logger = logging.getLogger(__name__)


# ============================================================================
# Target Scripts
# ============================================================================

@dataclass(frozen=True)
class TargetScript:
    """A writing system whose characters earn a quality bonus."""
    name: str
    char_class: str  # regex character class body, e.g. "ก-๙"

    @property
    def pattern(self) -> "re.Pattern":
        return re.compile(f"[{self.char_class}]")


THAI = TargetScript(name="thai", char_class="ก-๙")
LATIN = TargetScript(name="latin", char_class="A-Za-z")

SCRIPTS = {script.name: script for script in (THAI, LATIN)}


def get_script(name: str) -> TargetScript:
    try:
        return SCRIPTS[name.lower()]
    except KeyError:
        raise ValueError(f"Unknown target script: {name}") from None


# ============================================================================
# Scoring
# ============================================================================

# Texts shorter than this get compared against longer alternatives
SHORT_TEXT_LENGTH = 50
LONGER_FACTOR = 1.5
CONFIDENCE_FACTOR = 0.7


@dataclass
class ScoredCandidate:
    """A candidate together with its derived scores."""
    candidate: RecognitionCandidate
    quality: float
    combined: float

    @property
    def text(self) -> str:
        return self.candidate.text

    @property
    def confidence(self) -> float:
        return self.candidate.confidence

    @property
    def length(self) -> int:
        return len(self.candidate.text.strip())


def calculate_text_quality(text: str, script: TargetScript = THAI) -> float:
    """
    Heuristic 0-100 quality of a transcription.

    Sums a length term, a character diversity term, a density term
    (non-space share), a non-blank line ratio term and a bonus for text
    written in the target script.
    """
    if not text:
        return 0.0

    trimmed = text.strip()
    if not trimmed:
        return 0.0

    non_space = re.sub(r"\s", "", trimmed)

    score = min(len(trimmed) / 100, 1) * 25
    score += min(len(set(non_space)) / 50, 1) * 25
    score += len(non_space) / len(trimmed) * 15

    all_lines = trimmed.split("\n")
    non_blank = [line for line in all_lines if line.strip()]
    score += len(non_blank) / max(len(all_lines), 1) * 15

    script_ratio = len(script.pattern.findall(trimmed)) / len(non_space)
    if script_ratio > 0.1:
        score += min(script_ratio * 20, 20)

    return min(score, 100.0)


def _combine(confidence: float, quality: float, length: int) -> float:
    return confidence * 0.5 + quality * 0.3 + min(length / 500, 1) * 20


def combined_score(candidate: RecognitionCandidate, script: TargetScript = THAI) -> float:
    """Blend engine confidence, text quality and length into one ranking key."""
    quality = calculate_text_quality(candidate.text, script)
    return _combine(candidate.confidence, quality, len(candidate.text.strip()))


def rank_candidates(
    candidates: Sequence[RecognitionCandidate],
    script: TargetScript = THAI
) -> List[ScoredCandidate]:
    """Score candidates and sort best first; equal scores keep call order."""
    scored = []
    for candidate in candidates:
        quality = calculate_text_quality(candidate.text, script)
        combined = _combine(candidate.confidence, quality, len(candidate.text.strip()))
        scored.append(ScoredCandidate(candidate=candidate, quality=quality, combined=combined))

    return sorted(scored, key=lambda s: s.combined, reverse=True)


def select_best_result(
    candidates: Sequence[RecognitionCandidate],
    script: TargetScript = THAI
) -> str:
    """
    Pick the text of the best candidate.

    Args:
        candidates: Recognition candidates in call order (non-empty)
        script: Script whose characters raise the quality score

    Returns:
        Selected text

    Raises:
        ValueError: If candidates is empty
    """
    if not candidates:
        raise ValueError("Cannot select from an empty candidate list")

    if len(candidates) == 1:
        return candidates[0].text

    ranked = rank_candidates(candidates, script)
    best = ranked[0]

    for scored in ranked:
        logger.debug(
            f"PSM {int(scored.candidate.mode)}: combined={scored.combined:.1f} "
            f"quality={scored.quality:.1f} confidence={scored.confidence:.1f} "
            f"length={scored.length}"
        )

    if best.length < SHORT_TEXT_LENGTH:
        acceptable = [
            s for s in ranked
            if s.length >= best.length * LONGER_FACTOR
            and s.confidence >= best.confidence * CONFIDENCE_FACTOR
        ]
        if acceptable:
            longest = sorted(acceptable, key=lambda s: s.length, reverse=True)[0]
            logger.info(
                f"Top candidate is short ({best.length} chars), using longer "
                f"PSM {int(longest.candidate.mode)} result ({longest.length} chars)"
            )
            return longest.text

    logger.info(f"Selected PSM {int(best.candidate.mode)} result (score {best.combined:.1f})")
    return best.text
