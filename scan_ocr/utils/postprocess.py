"""
Text post-processing for OCR output.

Provides:
- Control character and noise symbol removal
- Whitespace and blank line normalization
- Removal of structurally abnormal lines (barcodes, frame borders)
- Exact-match corrections for known recognition errors
"""

import logging
import re
from typing import Sequence, Tuple

from ..config import TextConfig

logger = logging.getLogger(__name__)

Corrections = Sequence[Tuple[str, str]]

DEFAULT_CORRECTIONS: Corrections = TextConfig().corrections

# Upper bound on sanitize passes; real text settles in two or three
MAX_PASSES = 10

CONTROL_CHARS = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")
SPECIAL_CHARS = re.compile(r"[&\[\]|#»<>]")
NORMAL_CHARS = re.compile(r"[ก-๙a-zA-Z0-9]")
LETTER_CHARS = re.compile(r"[ก-๙a-zA-Z]")
# Pipes, underscores, dashes, equals and the Unicode box drawing block
RULE_CHARS = re.compile(r"[|_\-=─-╿]")
RULE_LINE = re.compile(r"^[\s|_\-=─-╿]+$")
NON_WORD_CHARS = re.compile(r"[^A-Za-z0-9_\sก-๙\-.,:/()]")
BARCODE_LINE = re.compile(r"^[0-9]{12,}$")


# ============================================================================
# Line Filters
# ============================================================================

def remove_noise_characters(text: str) -> str:
    """
    Blank out stray symbols (&, [, ], |, #, », <, >) on lines made mostly of them.

    Lines that still carry enough letters or digits are left alone.
    """
    if not text:
        return text

    cleaned_lines = []
    for line in text.split("\n"):
        trimmed = line.strip()
        if not trimmed:
            cleaned_lines.append(line)
            continue

        special_ratio = len(SPECIAL_CHARS.findall(trimmed)) / len(trimmed)
        normal_ratio = len(NORMAL_CHARS.findall(trimmed)) / len(trimmed)

        if special_ratio > 0.3 and normal_ratio < 0.3:
            line = re.sub(r"\s+", " ", SPECIAL_CHARS.sub(" ", line)).strip()

        cleaned_lines.append(line)

    return "\n".join(cleaned_lines)


def is_abnormal_line(line: str) -> bool:
    """True for barcode runs, frame borders and symbol clutter."""
    trimmed = line.strip()
    if not trimmed:
        return False

    length = len(trimmed)

    if BARCODE_LINE.match(trimmed):
        return True

    rule_ratio = len(RULE_CHARS.findall(trimmed)) / length
    if rule_ratio > 0.8 and not NORMAL_CHARS.search(trimmed):
        return True

    non_word_ratio = len(NON_WORD_CHARS.findall(trimmed)) / length
    if non_word_ratio > 0.75 and length < 10 and not LETTER_CHARS.search(trimmed):
        return True

    if RULE_LINE.match(trimmed):
        return True

    special_ratio = len(SPECIAL_CHARS.findall(trimmed)) / length
    if special_ratio > 0.6 and len(NORMAL_CHARS.findall(trimmed)) < 3:
        return True

    return False


def filter_abnormal_lines(text: str) -> str:
    """Drop abnormal lines; blank lines are kept."""
    if not text:
        return text

    kept = []
    for line in text.split("\n"):
        if is_abnormal_line(line):
            logger.debug(f"Dropped abnormal line: {line.strip()[:40]!r}")
            continue
        kept.append(line)

    return "\n".join(kept)


# ============================================================================
# Cleaning Passes
# ============================================================================

def clean_text(text: str) -> str:
    """
    Normalize raw OCR output.

    Strips control characters, blanks noise symbols, collapses whitespace
    and blank line runs, trims lines and drops abnormal lines.
    """
    if not text:
        return text

    cleaned = CONTROL_CHARS.sub("", text)
    cleaned = remove_noise_characters(cleaned)

    cleaned = re.sub(r"[\t\r]+", " ", cleaned)
    cleaned = re.sub(r" {2,}", " ", cleaned)

    cleaned = re.sub(r"\n{3,}", "\n\n", cleaned)

    cleaned = "\n".join(line.strip() for line in cleaned.split("\n"))
    cleaned = cleaned.strip("\n")

    return filter_abnormal_lines(cleaned)


def fix_common_ocr_errors(text: str, corrections: Corrections = DEFAULT_CORRECTIONS) -> str:
    """
    Apply exact-substring corrections, then tidy spacing and punctuation runs.

    No fuzzy matching: only the literal strings in the table are replaced.
    """
    if not text:
        return text

    fixed = text
    for wrong, right in corrections:
        fixed = fixed.replace(wrong, right)

    fixed = re.sub(r" {2,}", " ", fixed)
    fixed = re.sub(r"\n{3,}", "\n\n", fixed)
    fixed = fixed.replace(" \n", "\n")
    fixed = fixed.replace("\n ", "\n")

    fixed = re.sub(r"\.{2,}", ".", fixed)
    fixed = re.sub(r",{2,}", ",", fixed)

    return fixed.strip()


def sanitize_text(text: str, corrections: Corrections = DEFAULT_CORRECTIONS) -> str:
    """
    Full post-processing: clean_text followed by fix_common_ocr_errors.

    The pair is repeated until the text stops changing, so that
    sanitize_text(sanitize_text(x)) == sanitize_text(x) even when dropping a
    line or collapsing dots exposes something an earlier step would rewrite.
    """
    if not text:
        return ""

    current = text
    for _ in range(MAX_PASSES):
        updated = fix_common_ocr_errors(clean_text(current), corrections)
        if updated == current:
            break
        current = updated
    else:
        logger.warning(f"Text still changing after {MAX_PASSES} sanitize passes")

    return current
