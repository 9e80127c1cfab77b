"""Shared extraction pipeline for both CLI and web.

PDF bytes in, ZIP archive of the embedded images out:

    load -> walk pages -> classify each image -> pack

One call handles one document with purely local state, so concurrent
callers need no coordination.
"""

from __future__ import annotations

import enum
import io
import itertools
import logging
from dataclasses import dataclass, field
from typing import Iterator

import image_classify
import pdf_reader
import settings
import zip_pack

logger = logging.getLogger(__name__)


class Stage(enum.Enum):
    IDLE = "idle"
    LOADED = "loaded"
    EXTRACTING = "extracting"
    PACKAGING = "packaging"
    DONE = "done"


class Outcome(enum.Enum):
    DONE = "done"
    NO_IMAGES_FOUND = "no_images_found"


class FailureKind(enum.Enum):
    BAD_INPUT = "bad_input"
    PACKAGING_FAILED = "packaging_failed"


class ExtractionFailed(Exception):
    def __init__(self, kind: FailureKind, message: str, stage: Stage):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.stage = stage


@dataclass(frozen=True)
class ExtractedImage:
    name: str
    payload: bytes
    content_type: str
    page: int
    index: int


@dataclass
class Extraction:
    outcome: Outcome
    archive: bytes = b""
    image_names: list[str] = field(default_factory=list)
    filename: str = settings.ARCHIVE_NAME
    media_type: str = settings.ARCHIVE_MEDIA_TYPE

    @property
    def image_count(self) -> int:
        return len(self.image_names)


def image_name(page: int, index: int, extension: str) -> str:
    return f"image_page_{page}_{index}.{extension}"


def iter_images(document: pdf_reader.Document) -> Iterator[ExtractedImage]:
    """Yield every extractable image in page order, then in-page order."""
    for page in document.pages():
        for resource in page.image_resources():
            candidate = image_classify.classify(resource)
            if candidate is None:
                continue
            yield ExtractedImage(
                name=image_name(resource.page, resource.index, candidate.extension),
                payload=candidate.payload,
                content_type=candidate.content_type,
                page=resource.page,
                index=resource.index,
            )


def extract_images(data: bytes, compresslevel: int | None = None) -> Extraction:
    """Run the whole pipeline on *data*.

    Returns an :class:`Extraction` whose outcome is either ``DONE`` with the
    archive bytes or ``NO_IMAGES_FOUND``. Unreadable input and packaging
    problems raise :class:`ExtractionFailed`.
    """
    if compresslevel is None:
        compresslevel = settings.ZIP_COMPRESSION_LEVEL

    try:
        document = pdf_reader.load(data)
    except pdf_reader.ParseError as exc:
        logger.info("Rejected input: %s", exc)
        raise ExtractionFailed(FailureKind.BAD_INPUT, str(exc), Stage.IDLE) from exc
    logger.debug("Stage %s", Stage.LOADED.value)

    with document:
        stage = Stage.EXTRACTING
        logger.debug("Stage %s", stage.value)
        try:
            images = iter_images(document)
            first = next(images, None)
            if first is None:
                logger.info("No images found in %d page(s)", document.page_count)
                return Extraction(Outcome.NO_IMAGES_FOUND)

            stage = Stage.PACKAGING
            logger.debug("Stage %s", stage.value)
            names: list[str] = []

            def entries():
                for image in itertools.chain([first], images):
                    names.append(image.name)
                    yield image.name, image.payload

            buf = io.BytesIO()
            zip_pack.pack_into(buf, entries(), compresslevel)
        except pdf_reader.ParseError as exc:
            # pages are loaded lazily, so damage can surface after load()
            raise ExtractionFailed(FailureKind.BAD_INPUT, str(exc), stage) from exc
        except zip_pack.PackagingError as exc:
            logger.error("Packaging failed: %s", exc)
            raise ExtractionFailed(FailureKind.PACKAGING_FAILED, str(exc), stage) from exc

    logger.info("Extracted %d image(s)", len(names))
    return Extraction(Outcome.DONE, buf.getvalue(), names)
