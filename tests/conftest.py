import zlib

import fitz  # pymupdf
import pytest


class PdfBuilder:
    """Minimal PDF writer producing exact, unfiltered-by-us object streams."""

    def __init__(self):
        self.objects: list[bytes | None] = [None, None]  # 1: catalog, 2: page tree
        self.page_refs: list[int] = []

    def add(self, body: bytes) -> int:
        self.objects.append(body)
        return len(self.objects)

    def stream(self, entries: str, data: bytes) -> int:
        head = f"<< {entries} /Length {len(data)} >>\nstream\n".encode()
        return self.add(head + data + b"\nendstream")

    def image(self, data: bytes, filters: str, width: int = 8, height: int = 8) -> int:
        entries = (
            f"/Type /XObject /Subtype /Image /Width {width} /Height {height} "
            f"/ColorSpace /DeviceRGB /BitsPerComponent 8"
        )
        if filters:
            entries += f" /Filter {filters}"
        return self.stream(entries, data)

    def form(self, content: bytes = b"0 0 m 10 10 l S", xobjects: dict[str, int] | None = None) -> int:
        entries = "/Type /XObject /Subtype /Form /BBox [0 0 10 10]"
        if xobjects:
            entries += f" /Resources << /XObject << {self._refs(xobjects)} >> >>"
        return self.stream(entries, content)

    def page(self, xobjects: dict[str, int] | None = None) -> int:
        xobjects = xobjects or {}
        content = b"".join(b"q 20 0 0 20 10 10 cm /%s Do Q\n" % n.encode() for n in xobjects)
        contents = self.stream("", content)
        resources = f"/Resources << /XObject << {self._refs(xobjects)} >> >>" if xobjects else ""
        ref = self.add(
            f"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 200 200] {resources} "
            f"/Contents {contents} 0 R >>".encode()
        )
        self.page_refs.append(ref)
        return ref

    @staticmethod
    def _refs(xobjects: dict[str, int]) -> str:
        return " ".join(f"/{name} {ref} 0 R" for name, ref in xobjects.items())

    def tobytes(self) -> bytes:
        kids = " ".join(f"{ref} 0 R" for ref in self.page_refs)
        self.objects[0] = b"<< /Type /Catalog /Pages 2 0 R >>"
        self.objects[1] = f"<< /Type /Pages /Kids [{kids}] /Count {len(self.page_refs)} >>".encode()

        out = bytearray(b"%PDF-1.7\n%\xe2\xe3\xcf\xd3\n")
        offsets = []
        for number, body in enumerate(self.objects, start=1):
            offsets.append(len(out))
            out += b"%d 0 obj\n" % number + body + b"\nendobj\n"
        xref_at = len(out)
        out += b"xref\n0 %d\n" % (len(self.objects) + 1)
        out += b"0000000000 65535 f \n"
        for offset in offsets:
            out += b"%010d 00000 n \n" % offset
        out += b"trailer\n<< /Size %d /Root 1 0 R >>\nstartxref\n%d\n%%%%EOF\n" % (len(self.objects) + 1, xref_at)
        return bytes(out)


def _pixmap(rgb: tuple[int, int, int]) -> fitz.Pixmap:
    pix = fitz.Pixmap(fitz.csRGB, fitz.IRect(0, 0, 8, 8), False)
    pix.set_rect(pix.irect, rgb)
    return pix


@pytest.fixture
def jpeg_bytes() -> bytes:
    return _pixmap((200, 40, 40)).tobytes("jpeg")


@pytest.fixture
def png_bytes() -> bytes:
    return _pixmap((40, 200, 40)).tobytes("png")


@pytest.fixture
def raw_rgb() -> bytes:
    return zlib.compress(bytes([10, 20, 30]) * 64)


@pytest.fixture
def builder() -> PdfBuilder:
    return PdfBuilder()


@pytest.fixture
def two_page_pdf(builder, jpeg_bytes, png_bytes) -> bytes:
    """Page 1: a JPEG and a vector-only form. Page 2: a Flate-wrapped PNG."""
    jpeg = builder.image(jpeg_bytes, "/DCTDecode")
    vector = builder.form()
    builder.page({"Fm1": vector, "Im1": jpeg})
    png = builder.image(zlib.compress(png_bytes), "/FlateDecode")
    builder.page({"Im1": png})
    return builder.tobytes()


@pytest.fixture
def imageless_pdf(builder) -> bytes:
    builder.page()
    return builder.tobytes()
