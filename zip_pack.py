"""Write named payloads into a ZIP archive.

Output is reproducible: entries keep their input order and carry a fixed
timestamp and mode, so the same input and level give the same bytes.
"""

from __future__ import annotations

import io
import logging
import zipfile
import zlib
from typing import BinaryIO, Iterable

logger = logging.getLogger(__name__)

_EPOCH = (1980, 1, 1, 0, 0, 0)
_FILE_MODE = 0o644 << 16


class PackagingError(Exception):
    """The archive could not be built."""


def pack_into(fileobj: BinaryIO, entries: Iterable[tuple[str, bytes]], compresslevel: int = 9) -> int:
    """Stream *entries* into *fileobj* as a ZIP archive, returning the entry count.

    Entries are consumed one at a time, so a generator keeps only the
    current payload in memory.
    """
    if not 0 <= compresslevel <= 9:
        raise PackagingError(f"Invalid compression level {compresslevel}")

    seen: set[str] = set()
    try:
        with zipfile.ZipFile(fileobj, "w", zipfile.ZIP_DEFLATED, compresslevel=compresslevel) as zf:
            for name, data in entries:
                if name in seen:
                    raise PackagingError(f"Duplicate entry name: {name}")
                seen.add(name)
                info = zipfile.ZipInfo(name, date_time=_EPOCH)
                info.compress_type = zipfile.ZIP_DEFLATED
                info.external_attr = _FILE_MODE
                zf.writestr(info, data, compresslevel=compresslevel)
    except (zlib.error, OSError, MemoryError) as exc:
        raise PackagingError(f"Failed to write archive: {exc}") from exc

    logger.debug("Packed %d entries at level %d", len(seen), compresslevel)
    return len(seen)


def pack(entries: Iterable[tuple[str, bytes]], compresslevel: int = 9) -> bytes:
    """Build the archive in memory and return its bytes."""
    buf = io.BytesIO()
    pack_into(buf, entries, compresslevel)
    return buf.getvalue()
