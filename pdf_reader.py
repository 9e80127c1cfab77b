"""PDF structure reader.

Opens an in-memory PDF with PyMuPDF and exposes its pages and, per page,
the image XObjects drawn on it together with their declared filter chains.

Nothing is written to disk and the input buffer is never modified.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

import fitz  # pymupdf

logger = logging.getLogger(__name__)

# A PDF header may be preceded by up to 1024 bytes of junk.
_HEADER = b"%PDF-"
_HEADER_WINDOW = 1024

_NAME_RE = re.compile(r"/([^\s/\[\]<>()]+)")
_PREDICTOR_RE = re.compile(r"/Predictor\s*(\d+)")

# Abbreviated filter names are legal in the wild even outside inline images.
_FILTER_ALIASES = {
    "AHx": "ASCIIHexDecode",
    "A85": "ASCII85Decode",
    "LZW": "LZWDecode",
    "Fl": "FlateDecode",
    "RL": "RunLengthDecode",
    "CCF": "CCITTFaxDecode",
    "DCT": "DCTDecode",
}


class ParseError(Exception):
    """The buffer is not a PDF we can read."""


@dataclass(frozen=True)
class ImageResource:
    """One image XObject as referenced from a page.

    ``page`` and ``index`` are 1-based. ``filters`` is the declared filter
    chain in application order, with abbreviations expanded.
    """

    page: int
    index: int
    xref: int
    name: str
    width: int
    height: int
    colorspace: str
    filters: tuple[str, ...]
    predictor: int | None = None
    _doc: fitz.Document | None = field(default=None, repr=False, compare=False)

    def read_raw(self) -> bytes | None:
        """Return the stream bytes exactly as stored, or None if unreadable."""
        if self._doc is None:
            return None
        try:
            return self._doc.xref_stream_raw(self.xref)
        except Exception as exc:  # mupdf raises plain RuntimeError on broken objects
            logger.debug("Cannot read stream of xref %d: %s", self.xref, exc)
            return None


def _resolve(doc: fitz.Document, xref: int, key: str) -> str | None:
    kind, value = doc.xref_get_key(xref, key)
    if kind == "null":
        return None
    if kind == "xref":
        value = doc.xref_object(int(value.split()[0]), compressed=True)
    return value


def _filter_chain(doc: fitz.Document, xref: int) -> tuple[str, ...]:
    value = _resolve(doc, xref, "Filter")
    if not value:
        return ()
    return tuple(_FILTER_ALIASES.get(n, n) for n in _NAME_RE.findall(value))


def _predictor(doc: fitz.Document, xref: int) -> int | None:
    value = _resolve(doc, xref, "DecodeParms")
    if not value:
        return None
    found = [int(p) for p in _PREDICTOR_RE.findall(value)]
    return max(found) if found else None


class Page:
    """Read-only view of one page of a :class:`Document`."""

    def __init__(self, doc: fitz.Document, page: fitz.Page, number: int):
        self._doc = doc
        self._page = page
        self.number = number

    def __repr__(self) -> str:
        return f"Page({self.number})"

    def image_resources(self) -> list[ImageResource]:
        """Image XObjects used on this page, Form XObjects included."""
        try:
            images = self._page.get_images(full=True)
        except Exception as exc:
            raise ParseError(f"Cannot read resources of page {self.number}: {exc}") from exc
        resources = []
        for index, img in enumerate(images, start=1):
            xref, _smask, width, height, _bpc, colorspace, _alt, name = img[:8]
            try:
                filters = _filter_chain(self._doc, xref)
                predictor = _predictor(self._doc, xref)
            except Exception as exc:
                logger.debug("Page %d: unreadable dictionary for xref %d: %s", self.number, xref, exc)
                filters, predictor = ("<unreadable>",), None
            resources.append(
                ImageResource(
                    page=self.number,
                    index=index,
                    xref=xref,
                    name=name,
                    width=width,
                    height=height,
                    colorspace=colorspace,
                    filters=filters,
                    predictor=predictor,
                    _doc=self._doc,
                )
            )
        return resources


class Document:
    """A parsed PDF. Use as a context manager or call :meth:`close`."""

    def __init__(self, doc: fitz.Document, page_count: int):
        self._doc = doc
        self._page_count = page_count
        self._pages: list[Page] | None = None

    def __enter__(self) -> Document:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    @property
    def page_count(self) -> int:
        return self._page_count

    def pages(self) -> list[Page]:
        if self._pages is None:
            pages = []
            for number in range(self._page_count):
                try:
                    page = self._doc.load_page(number)
                except Exception as exc:
                    raise ParseError(f"Cannot load page {number + 1}: {exc}") from exc
                pages.append(Page(self._doc, page, number + 1))
            self._pages = pages
        return self._pages

    def close(self) -> None:
        self._pages = None
        self._doc.close()


def load(data: bytes) -> Document:
    """Parse *data* as a PDF, raising :class:`ParseError` if it is not one."""
    if not data:
        raise ParseError("Empty input")
    if _HEADER not in bytes(data[: _HEADER_WINDOW + len(_HEADER)]):
        raise ParseError("Missing %PDF- header")

    try:
        doc = fitz.open(stream=bytes(data), filetype="pdf")
    except Exception as exc:
        raise ParseError(f"Cannot open PDF: {exc}") from exc

    # a damaged page tree only shows up once mupdf counts the pages
    try:
        encrypted = doc.needs_pass or doc.is_encrypted
        page_count = 0 if encrypted else doc.page_count
        repaired = doc.is_repaired
    except Exception as exc:
        doc.close()
        raise ParseError(f"Damaged PDF: {exc}") from exc

    if encrypted:
        doc.close()
        raise ParseError("Encrypted PDFs are not supported")
    if repaired and page_count == 0:
        doc.close()
        raise ParseError("Damaged PDF: no pages could be recovered")

    logger.debug("Loaded PDF with %d page(s)%s", page_count, " (repaired)" if repaired else "")
    return Document(doc, page_count)
