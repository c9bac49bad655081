"""Generate synthetic scanned pages for trying the OCR pipeline."""

import numpy as np
import cv2
from pathlib import Path


def draw_lines(img, lines, x, y, color, scale=0.7, thickness=2, step=40):
    """Draw text lines top to bottom, returning the next baseline."""
    for line in lines:
        cv2.putText(img, line, (x, y), cv2.FONT_HERSHEY_SIMPLEX, scale, color, thickness)
        y += step
    return y


def generate_framed_invoice():
    """Create a clean page with a full frame, rule lines and a barcode row."""
    width, height = 800, 600
    img = np.ones((height, width, 3), dtype=np.uint8) * 255
    text_color = (0, 0, 0)

    # Frame border spanning the whole page
    cv2.rectangle(img, (0, 0), (width - 1, height - 1), text_color, 3)

    y = draw_lines(img, ["INVOICE No. 2024-0117"], 60, 80, text_color, scale=1.1, thickness=3)

    # Full-width rule under the header
    cv2.line(img, (0, y - 15), (width - 1, y - 15), text_color, 2)

    y = draw_lines(img, [
        "Customer: Example Trading Co.",
        "Website: example.com",
        "Item A ........ 1,200.00",
        "Item B ........ 50.00",
        "Total: 1,250.00",
    ], 60, y + 30, text_color)

    # Barcode digits as printed under most receipts
    draw_lines(img, ["885000123456789"], 60, y + 40, text_color, scale=0.9)

    return img


def generate_noisy_scan():
    """Create a low-contrast, speckled page resembling a poor photocopy."""
    width, height = 800, 600
    img = np.ones((height, width, 3), dtype=np.uint8) * 185  # Gray paper
    text_color = (110, 110, 110)

    draw_lines(img, [
        "Scanned Document",
        "Low contrast text on gray paper",
        "with speckle noise from the scanner.",
        "The enhanced profile should help here.",
    ], 50, 100, text_color)

    rng = np.random.default_rng(0)

    # Salt and pepper speckles
    speckles = rng.random((height, width)) < 0.01
    img[speckles] = rng.choice([0, 255], size=(int(speckles.sum()), 1))

    # Sensor noise
    noise = rng.normal(0, 5, img.shape).astype(np.int16)
    img = np.clip(img.astype(np.int16) + noise, 0, 255).astype(np.uint8)

    return img


def main():
    output_dir = Path(__file__).parent / "sample_pages"
    output_dir.mkdir(exist_ok=True)

    samples = {
        "framed_invoice.png": generate_framed_invoice(),
        "noisy_scan.png": generate_noisy_scan(),
    }

    for name, img in samples.items():
        output_path = output_dir / name
        cv2.imwrite(str(output_path), img)
        print(f"Generated: {output_path}")

        gray = cv2.cvtColor(img, cv2.COLOR_BGR2GRAY)
        print(f"  Mean intensity: {np.mean(gray):.1f}, contrast range: {np.max(gray) - np.min(gray)}")

    print("\nTry:")
    print(f"  python -m scan_ocr.cli -i {output_dir / 'framed_invoice.png'} --remove-borders")
    print(f"  python -m scan_ocr.cli -i {output_dir / 'noisy_scan.png'} --profile enhanced")


if __name__ == "__main__":
    main()
