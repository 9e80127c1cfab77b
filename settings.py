"""Runtime settings read from the environment."""

import os

ARCHIVE_NAME = "extracted_images.zip"
ARCHIVE_MEDIA_TYPE = "application/zip"
PDF_MEDIA_TYPE = "application/pdf"
UPLOAD_FIELD = "pdfFile"


def _zip_level(name: str = "PDFRIP_ZIP_LEVEL", default: int = 9) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        level = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer between 0 and 9, got {raw!r}") from None
    if not 0 <= level <= 9:
        raise ValueError(f"{name} must be between 0 and 9, got {level}")
    return level


# 9 gives the smallest reproducible archives at the cost of CPU time.
ZIP_COMPRESSION_LEVEL = _zip_level()
