"""Assemble ordered PDF and image inputs into a single PDF document."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from io import BytesIO

import img2pdf
from PIL import Image, UnidentifiedImageError
from pypdf import PdfReader, PdfWriter
from pypdf.errors import PyPdfError

from .inputs import (
    DecodeError,
    InputItem,
    MediaType,
    ParseError,
    SerializationError,
    classify_media_type,
)

logger = logging.getLogger(__name__)

# One PDF unit per pixel: the page is exactly the image's pixel size.
_PIXEL_LAYOUT = img2pdf.get_fixed_dpi_layout_fun((72, 72))

_PIL_FORMATS = {
    MediaType.PNG: frozenset({"PNG"}),
    MediaType.JPEG: frozenset({"JPEG", "MPO"}),
}

_PDF_ERRORS = (PyPdfError, ValueError, KeyError, TypeError, OSError)


def _read_pdf(item: InputItem) -> PdfReader:
    try:
        reader = PdfReader(BytesIO(item.data))
        if reader.is_encrypted:
            raise ParseError(
                f"{item.name} is encrypted; protected PDFs are not supported",
                file_name=item.name,
            )
        # Touch the page tree so broken documents fail here, not mid-copy.
        len(reader.pages)
    except _PDF_ERRORS as exc:
        raise ParseError(f"{item.name} is not a valid PDF", file_name=item.name) from exc
    return reader


def _copy_pdf_pages(writer: PdfWriter, item: InputItem) -> int:
    reader = _read_pdf(item)
    try:
        for page in reader.pages:
            writer.add_page(page)
    except _PDF_ERRORS as exc:
        raise ParseError(f"{item.name} is not a valid PDF", file_name=item.name) from exc
    return len(reader.pages)


def _decode_image(item: InputItem, media_type: MediaType) -> tuple[int, int]:
    """Fully decode the image and return its pixel size."""
    kind = media_type.name
    try:
        with Image.open(BytesIO(item.data)) as image:
            detected = image.format
            image.load()
            size = image.size
    except (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError) as exc:
        raise DecodeError(
            f"{item.name} is not a valid {kind} image", file_name=item.name
        ) from exc

    if detected not in _PIL_FORMATS[media_type]:
        raise DecodeError(
            f"{item.name} is not a valid {kind} image (found {detected})",
            file_name=item.name,
        )
    return size


def _embed_image_page(writer: PdfWriter, item: InputItem, media_type: MediaType) -> int:
    width, height = _decode_image(item, media_type)

    try:
        page_pdf = img2pdf.convert(
            item.data,
            layout_fun=_PIXEL_LAYOUT,
            rotation=img2pdf.Rotation.none,
            # The pikepdf engine refuses pages outside 3..14400 units.
            engine=img2pdf.Engine.internal,
        )
    # img2pdf surfaces decoder problems through many unrelated exception types.
    except Exception as exc:
        raise DecodeError(
            f"{item.name} could not be embedded as an image", file_name=item.name
        ) from exc

    (page,) = PdfReader(BytesIO(page_pdf)).pages
    writer.add_page(page)
    logger.debug("Embedded %s as a %dx%d page", item.name, width, height)
    return 1


def assemble_pdf(
    items: Sequence[InputItem],
    *,
    strict_types: bool = False,
    on_item_done: Callable[[InputItem, int], None] | None = None,
) -> bytes:
    """Merge the items, in order, into one PDF and return its bytes.

    PDF items contribute all of their pages in their original order; PNG and
    JPEG items each contribute one page sized to the image in pixels. Items
    with other media types take the JPEG path unless *strict_types* is set.

    Args:
        items: Ordered inputs. Order here is the page order of the output.
        strict_types: Reject unrecognised media types instead of treating
            them as JPEG.
        on_item_done: Called with each item and the number of pages it added.

    Returns:
        The serialized PDF document.

    Raises:
        ValueError: If *items* is empty.
        UnsupportedTypeError: In strict mode, for an unrecognised media type.
        ParseError: If a PDF item cannot be parsed or is encrypted.
        DecodeError: If an image item cannot be decoded.
        SerializationError: If the merged document cannot be written.
    """
    if not items:
        raise ValueError("items must not be empty")

    writer = PdfWriter()

    for item in items:
        media_type = classify_media_type(item.media_type, name=item.name, strict=strict_types)

        if media_type is MediaType.PDF:
            added = _copy_pdf_pages(writer, item)
        else:
            added = _embed_image_page(writer, item, media_type)

        logger.debug("Added %d page(s) from %s (%s)", added, item.name, media_type.name)
        if on_item_done is not None:
            on_item_done(item, added)

    buffer = BytesIO()
    try:
        writer.write(buffer)
    except _PDF_ERRORS as exc:
        raise SerializationError("Failed to merge files") from exc

    pdf_bytes = buffer.getvalue()
    logger.info(
        "Merged %d file(s) into %d page(s), %d bytes",
        len(items),
        len(writer.pages),
        len(pdf_bytes),
    )
    return pdf_bytes
