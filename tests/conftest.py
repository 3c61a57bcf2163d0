"""Shared fixtures that build small PDF, PNG and JPEG inputs in memory."""

from __future__ import annotations

import struct
import zlib
from io import BytesIO

import pytest
from PIL import Image
from pypdf import PdfWriter


def _create_minimal_png(*, width: int = 100, height: int = 100) -> bytes:
    """Create a minimal valid RGB PNG."""

    def _chunk(chunk_type: bytes, data: bytes) -> bytes:
        c = chunk_type + data
        crc = struct.pack(">I", zlib.crc32(c) & 0xFFFFFFFF)
        return struct.pack(">I", len(data)) + c + crc

    signature = b"\x89PNG\r\n\x1a\n"
    ihdr_data = struct.pack(">IIBBBBB", width, height, 8, 2, 0, 0, 0)
    ihdr = _chunk(b"IHDR", ihdr_data)

    raw_data = b""
    for _ in range(height):
        raw_data += b"\x00" + b"\xff\x00\x00" * width
    idat = _chunk(b"IDAT", zlib.compress(raw_data))
    iend = _chunk(b"IEND", b"")

    return signature + ihdr + idat + iend


def _create_jpeg(*, width: int = 100, height: int = 100) -> bytes:
    buffer = BytesIO()
    Image.new("RGB", (width, height), (0, 128, 255)).save(buffer, format="JPEG")
    return buffer.getvalue()


def _create_rgba_png(*, width: int = 40, height: int = 30) -> bytes:
    buffer = BytesIO()
    Image.new("RGBA", (width, height), (255, 0, 0, 128)).save(buffer, format="PNG")
    return buffer.getvalue()


def _create_pdf_with_content(contents: list[bytes], *, rotate: int = 90) -> bytes:
    """Create a PDF whose pages inherit /Rotate, /MediaBox and /Resources from the page tree."""
    count = len(contents)
    font_num = 3
    page_nums = [4 + 2 * i for i in range(count)]
    kids = b" ".join(b"%d 0 R" % n for n in page_nums)

    objects = {
        1: b"<< /Type /Catalog /Pages 2 0 R >>",
        2: (
            b"<< /Type /Pages /Kids [%s] /Count %d /MediaBox [0 0 300 200]"
            b" /Rotate %d /Resources << /Font << /F1 %d 0 R >> >> >>"
            % (kids, count, rotate, font_num)
        ),
        font_num: b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>",
    }
    for page_num, content in zip(page_nums, contents):
        objects[page_num] = b"<< /Type /Page /Parent 2 0 R /Contents %d 0 R >>" % (page_num + 1)
        objects[page_num + 1] = (
            b"<< /Length %d >>\nstream\n%s\nendstream" % (len(content), content)
        )

    out = b"%PDF-1.4\n"
    offsets = {}
    for num in sorted(objects):
        offsets[num] = len(out)
        out += b"%d 0 obj\n%s\nendobj\n" % (num, objects[num])

    xref_offset = len(out)
    size = max(objects) + 1
    out += b"xref\n0 %d\n0000000000 65535 f \n" % size
    for num in range(1, size):
        out += b"%010d 00000 n \n" % offsets[num]
    out += b"trailer\n<< /Size %d /Root 1 0 R >>\nstartxref\n%d\n%%%%EOF\n" % (size, xref_offset)
    return out


def _create_pdf(sizes: list[tuple[int, int]]) -> bytes:
    """Create a PDF with one blank page per ``(width, height)`` entry."""
    writer = PdfWriter()
    for width, height in sizes:
        writer.add_blank_page(width=width, height=height)
    buffer = BytesIO()
    writer.write(buffer)
    return buffer.getvalue()


@pytest.fixture
def make_png():
    return _create_minimal_png


@pytest.fixture
def make_jpeg():
    return _create_jpeg


@pytest.fixture
def make_pdf():
    return _create_pdf


@pytest.fixture
def make_content_pdf():
    return _create_pdf_with_content


@pytest.fixture
def make_rgba_png():
    return _create_rgba_png
