"""Decide whether an image resource is a file we can hand out as-is.

Transport filters (Flate, ASCIIHex, ASCII85, RunLength) are undone; image
codecs are never decoded. A resource qualifies only if what is left is a
complete image file of a known type, e.g. a DCT stream that is a JPEG.
Raw pixel samples need re-encoding and are skipped.
"""

from __future__ import annotations

import base64
import binascii
import logging
import re
import zlib
from dataclasses import dataclass

from pdf_reader import ImageResource

logger = logging.getLogger(__name__)

_WS_RE = re.compile(rb"\s+")

# Codec filter -> (content type, required file signature)
_CODECS = {
    "DCTDecode": ("image/jpeg", b"\xff\xd8\xff"),
    "JPXDecode": ("image/jp2", b"\x00\x00\x00\x0cjP  \r\n\x87\n"),
}

# Standalone files occasionally embedded with no codec filter at all.
_SIGNATURES = (
    (b"\x89PNG\r\n\x1a\n", "image/png"),
    (b"GIF87a", "image/gif"),
    (b"GIF89a", "image/gif"),
    (b"\xff\xd8\xff", "image/jpeg"),
    (b"II*\x00", "image/tiff"),
    (b"MM\x00*", "image/tiff"),
    (b"\x00\x00\x00\x0cjP  \r\n\x87\n", "image/jp2"),
)


class UnsupportedFilter(Exception):
    pass


@dataclass(frozen=True)
class Candidate:
    payload: bytes
    content_type: str

    @property
    def extension(self) -> str:
        return self.content_type.split("/", 1)[1]


def _flate(data: bytes) -> bytes:
    d = zlib.decompressobj()
    # tolerate a missing adler32 trailer, common in the wild
    return d.decompress(data) + d.flush()


def _ascii_hex(data: bytes) -> bytes:
    data = _WS_RE.sub(b"", data).split(b">", 1)[0]
    if len(data) % 2:
        data += b"0"
    return binascii.unhexlify(data)


def _ascii85(data: bytes) -> bytes:
    data = _WS_RE.sub(b"", data)
    if data.startswith(b"<~"):
        data = data[2:]
    return base64.a85decode(data.split(b"~>", 1)[0])


def _run_length(data: bytes) -> bytes:
    out = bytearray()
    i, n = 0, len(data)
    while i < n:
        length = data[i]
        if length == 128:
            break
        if length < 128:
            out += data[i + 1 : i + 2 + length]
            i += length + 2
        else:
            if i + 1 >= n:
                break
            out += data[i + 1 : i + 2] * (257 - length)
            i += 2
    return bytes(out)


_TRANSPORT = {
    "FlateDecode": _flate,
    "ASCIIHexDecode": _ascii_hex,
    "ASCII85Decode": _ascii85,
    "RunLengthDecode": _run_length,
}


def _sniff(payload: bytes) -> str | None:
    for signature, content_type in _SIGNATURES:
        if payload.startswith(signature):
            return content_type
    if payload[:4] == b"RIFF" and payload[8:12] == b"WEBP":
        return "image/webp"
    return None


def decode(filters: tuple[str, ...], data: bytes, predictor: int | None = None) -> Candidate | None:
    """Apply the transport part of *filters* to *data* and classify the rest.

    Raises :class:`UnsupportedFilter` for chains we cannot undo and the
    decoders' own errors for corrupt data.
    """
    if predictor and predictor > 1 and "FlateDecode" in filters:
        raise UnsupportedFilter(f"predictor {predictor}")

    for position, name in enumerate(filters):
        if name in _TRANSPORT:
            data = _TRANSPORT[name](data)
            continue
        if name in _CODECS and position == len(filters) - 1:
            content_type, signature = _CODECS[name]
            if not data.startswith(signature):
                logger.debug("%s stream without %s signature", name, content_type)
                return None
            return Candidate(data, content_type)
        raise UnsupportedFilter(name)

    content_type = _sniff(data)
    return Candidate(data, content_type) if content_type else None


def classify(resource: ImageResource) -> Candidate | None:
    """Return payload and content type for *resource*, or None to skip it."""
    raw = resource.read_raw()
    if not raw:
        logger.debug("Page %d image %d: no stream data", resource.page, resource.index)
        return None
    try:
        candidate = decode(resource.filters, raw, resource.predictor)
    except UnsupportedFilter as exc:
        logger.debug("Page %d image %d: unsupported filter %s", resource.page, resource.index, exc)
        return None
    except (zlib.error, ValueError) as exc:  # binascii.Error is a ValueError
        logger.debug("Page %d image %d: corrupt stream: %s", resource.page, resource.index, exc)
        return None
    if candidate is None or not candidate.payload:
        logger.debug("Page %d image %d: not a standalone image file", resource.page, resource.index)
        return None
    return candidate
