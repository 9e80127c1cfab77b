#!/usr/bin/env python3
"""Extract the embedded images of a PDF file into a zip archive.

Usage:
    python extract_images.py input.pdf [output.zip]
"""

import logging
import sys
from pathlib import Path

from pdf_extract import ExtractionFailed, Outcome, extract_images


def run(pdf_path: str, output_path: str | None = None) -> int:
    pdf = Path(pdf_path)
    if not pdf.exists():
        print(f"Error: {pdf_path} not found")
        return 1

    out = Path(output_path) if output_path else pdf.parent / f"{pdf.stem}_images.zip"

    try:
        result = extract_images(pdf.read_bytes())
    except ExtractionFailed as exc:
        print(f"Error: {exc.message}")
        return 1

    if result.outcome is Outcome.NO_IMAGES_FOUND:
        print(f"No images found in {pdf.name}")
        return 1

    for name in result.image_names:
        print(f"  Packed {name}")
    out.write_bytes(result.archive)
    print(f"\nExtracted {result.image_count} image(s) to {out}")
    return 0


def main(argv: list[str] | None = None) -> int:
    args = sys.argv[1:] if argv is None else argv
    if not args or len(args) > 2:
        print("Usage: python extract_images.py <input.pdf> [output.zip]")
        return 1
    logging.basicConfig(level=logging.WARNING, format="%(levelname)s %(name)s: %(message)s")
    return run(args[0], args[1] if len(args) > 1 else None)


if __name__ == "__main__":
    sys.exit(main())
