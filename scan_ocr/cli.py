#!/usr/bin/env python
"""
Command-line interface for the Scan OCR Pipeline.

Usage:
    python -m scan_ocr.cli --input <pdf_or_image> [options]

Examples:
    # OCR a scanned image with the full preprocessing stack
    python -m scan_ocr.cli --input scan.png --profile enhanced

    # OCR page 2 of a PDF and write JSON with all candidates
    python -m scan_ocr.cli --input document.pdf --page 2 --json --output result.json

    # Keep the preprocessed raster for inspection
    python -m scan_ocr.cli --input scan.jpg --save-preprocessed preprocessed.png
"""

import sys
from pathlib import Path

# Add the repository root to the path when running as a script
_root_dir = Path(__file__).resolve().parent.parent
if str(_root_dir) not in sys.path:
    sys.path.insert(0, str(_root_dir))

import argparse
import json
import logging
import time
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout
from dataclasses import replace
from typing import List, Optional

# Setup logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger("scan_ocr")


def setup_argparser() -> argparse.ArgumentParser:
    """Create argument parser."""
    parser = argparse.ArgumentParser(
        description="Scan OCR Pipeline - Extract text from scanned images and PDF pages",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  OCR a scanned image:
    python -m scan_ocr.cli --input scan.png

  Use the full preprocessing stack (denoise, Otsu binarization):
    python -m scan_ocr.cli --input scan.png --profile enhanced

  OCR one PDF page and save JSON:
    python -m scan_ocr.cli --input document.pdf --page 3 --json -o page3.json
        """
    )

    # Required arguments
    parser.add_argument(
        "--input", "-i",
        required=True,
        help="Input image or PDF file"
    )

    # Optional arguments
    parser.add_argument(
        "--output", "-o",
        default=None,
        help="Write the result to this file instead of stdout"
    )

    parser.add_argument(
        "--page",
        type=int,
        default=1,
        help="PDF page to process, 1-indexed (default: 1)"
    )

    parser.add_argument(
        "--profile",
        choices=["standard", "enhanced"],
        default=None,
        help="Preprocessing profile (default: standard for both images and PDF pages)"
    )

    parser.add_argument(
        "--lang",
        default=None,
        help="Tesseract languages, e.g. 'tha+eng' (default: tha+eng)"
    )

    parser.add_argument(
        "--modes",
        type=str,
        default=None,
        help="Comma-separated page segmentation modes to try (default: 3,4,6)"
    )

    parser.add_argument(
        "--scale",
        type=float,
        default=None,
        help="PDF render scale relative to 72 DPI (default: 4.0)"
    )

    parser.add_argument(
        "--pre-scale",
        type=float,
        default=None,
        help="Nearest-neighbour resize factor applied before preprocessing"
    )

    parser.add_argument(
        "--remove-borders",
        action="store_true",
        help="Erase frame borders and full-length rule lines"
    )

    parser.add_argument(
        "--dilate",
        type=int,
        default=None,
        help="Dilation iterations (enhanced profile only)"
    )

    parser.add_argument(
        "--tesseract-cmd",
        default=None,
        help="Path to the tesseract executable"
    )

    parser.add_argument(
        "--save-preprocessed",
        default=None,
        help="Save the preprocessed image to this path"
    )

    parser.add_argument(
        "--json",
        action="store_true",
        help="Output JSON with candidates and metadata instead of plain text"
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose output"
    )

    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Suppress non-error output"
    )

    parser.add_argument(
        "--version",
        action="version",
        version="%(prog)s 1.0.0"
    )

    return parser


def parse_modes(modes_str: str) -> List[int]:
    """Parse a mode list such as '3,4,6' into integers."""
    from scan_ocr.utils.ocr_text import SegmentationMode

    modes = []
    for part in modes_str.split(","):
        part = part.strip()
        if not part:
            continue
        try:
            modes.append(int(SegmentationMode(int(part))))
        except ValueError:
            valid = ", ".join(str(int(m)) for m in SegmentationMode)
            raise argparse.ArgumentTypeError(f"Invalid mode '{part}' (valid: {valid})")

    if not modes:
        raise argparse.ArgumentTypeError("At least one segmentation mode is required")
    return modes


def check_dependencies() -> bool:
    """Check if required dependencies are available."""
    missing = []
    optional_missing = []

    try:
        import cv2
    except ImportError:
        missing.append("opencv-python")

    try:
        import numpy
    except ImportError:
        missing.append("numpy")

    try:
        import pytesseract
        # Test if tesseract is actually installed
        try:
            pytesseract.get_tesseract_version()
        except Exception:
            missing.append("tesseract-ocr (system package)")
    except ImportError:
        missing.append("pytesseract")

    # PDF support
    try:
        import pdf2image
    except ImportError:
        optional_missing.append("pdf2image (for PDF support)")

    # Report
    if missing:
        logger.error("Missing required dependencies:")
        for dep in missing:
            logger.error(f"  - {dep}")
        logger.error("\nInstall with: pip install -e .")
        return False

    if optional_missing:
        logger.warning("Missing optional dependencies (some features may be limited):")
        for dep in optional_missing:
            logger.warning(f"  - {dep}")

    return True


def build_config(args):
    """Apply command-line overrides to the default configuration."""
    from scan_ocr.config import get_config, PipelineConfig, Profile

    config = get_config()

    if args.profile:
        profile = Profile(args.profile)
        config.image_pipeline = PipelineConfig.for_profile(profile)
        config.rendered_page_pipeline = PipelineConfig.for_profile(profile)

    overrides = {}
    if args.pre_scale is not None:
        overrides["pre_scale"] = args.pre_scale
    if args.remove_borders:
        overrides["remove_borders"] = True
    if args.dilate is not None:
        overrides["dilate_iterations"] = args.dilate
    if overrides:
        config.image_pipeline = replace(config.image_pipeline, **overrides)
        config.rendered_page_pipeline = replace(config.rendered_page_pipeline, **overrides)

    if args.lang:
        config.ocr.languages = args.lang
    if args.modes:
        config.ocr.modes = tuple(parse_modes(args.modes))
    if args.tesseract_cmd:
        config.ocr.tesseract_cmd = args.tesseract_cmd
    if args.scale is not None:
        config.render.scale = args.scale

    return config


def save_preprocessed(assembler, input_path: Path, page: int, output_path: str):
    """Write the preprocessed raster for the input to output_path."""
    from scan_ocr.utils.images import preprocess_image
    from scan_ocr.utils.io import save_image

    image, kind = assembler.load_source(input_path, page_number=page)
    result = preprocess_image(image, assembler.config.pipeline_for(kind))
    save_image(result.image, output_path)
    logger.info(f"Saved preprocessed image: {output_path}")


def run_pipeline(args) -> int:
    """Run the OCR pipeline."""
    from scan_ocr.exceptions import Cancelled, ScanOCRError
    from scan_ocr.utils.assembler import DocumentAssembler
    from scan_ocr.utils.io import save_json
    from scan_ocr.utils.ocr_text import CancellationToken

    start_time = time.time()
    input_path = Path(args.input)

    try:
        config = build_config(args)
    except (argparse.ArgumentTypeError, ValueError) as e:
        logger.error(str(e))
        return 2

    assembler = DocumentAssembler(config=config)
    cancel = CancellationToken()

    def on_progress(percent: int, label: str):
        if not args.quiet:
            logger.info(f"[{percent:3d}%] {label}")

    try:
        if args.save_preprocessed:
            save_preprocessed(assembler, input_path, args.page, args.save_preprocessed)

        # Run in a worker so Ctrl-C can request cooperative cancellation
        with ThreadPoolExecutor(max_workers=1) as executor:
            future = executor.submit(
                assembler.process_document,
                input_path,
                cancel=cancel,
                progress=on_progress,
                page_number=args.page
            )
            while True:
                try:
                    result = future.result(timeout=0.2)
                    break
                except FutureTimeout:
                    continue
                except KeyboardInterrupt:
                    logger.info("Cancelling...")
                    cancel.cancel()

    except Cancelled:
        return 130
    except ScanOCRError as e:
        logger.error(f"{e.label}: {e}")
        return 1

    # Output
    if args.json:
        if args.output:
            save_json(result.to_dict(), args.output)
        else:
            print(json.dumps(result.to_dict(), ensure_ascii=False, indent=2))
    else:
        if args.output:
            output_path = Path(args.output)
            output_path.parent.mkdir(parents=True, exist_ok=True)
            output_path.write_text(result.text + "\n", encoding="utf-8")
        else:
            print(result.text)

    if args.output:
        logger.info(f"Saved result: {args.output}")

    if not args.quiet:
        elapsed = time.time() - start_time
        logger.info(
            f"Done in {elapsed:.2f}s: {len(result.text)} chars, "
            f"{len(result.candidates)} candidate(s), profile {result.profile}"
        )

    return 0


def main(argv: Optional[List[str]] = None):
    """Main entry point."""
    parser = setup_argparser()
    args = parser.parse_args(argv)

    # Configure logging level
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)
    elif args.quiet:
        logging.getLogger().setLevel(logging.ERROR)

    # Check dependencies
    if not check_dependencies():
        sys.exit(1)

    # Run pipeline
    try:
        exit_code = run_pipeline(args)
        sys.exit(exit_code)
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        sys.exit(130)
    except Exception as e:
        logger.error(f"Unexpected error: {e}")
        if args.verbose:
            raise
        sys.exit(1)


if __name__ == "__main__":
    main()
