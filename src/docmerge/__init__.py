"""docmerge: Merge PDF files and images, in order, into a single PDF."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path

from .assembler import assemble_pdf
from .downloader import fetch_inputs, is_url
from .inputs import (
    BatchTooLargeError,
    DecodeError,
    EmptyBatchError,
    FetchError,
    FileTooLargeError,
    InputItem,
    MediaType,
    MergeError,
    ParseError,
    SerializationError,
    UnsupportedTypeError,
    classify_media_type,
    guess_media_type,
)
from .validator import MergeLimits, format_size, validate_batch

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "BatchTooLargeError",
    "DecodeError",
    "EmptyBatchError",
    "FetchError",
    "FileTooLargeError",
    "InputItem",
    "MediaType",
    "MergeError",
    "MergeLimits",
    "MergeResult",
    "ParseError",
    "SerializationError",
    "UnsupportedTypeError",
    "assemble_pdf",
    "classify_media_type",
    "fetch_inputs",
    "format_size",
    "guess_media_type",
    "merge",
    "merge_sources",
    "validate_batch",
]

logger = logging.getLogger(__name__)

DEFAULT_OUTPUT_NAME = "merged.pdf"


@dataclass
class MergeResult:
    """Outcome of merging a list of sources into a PDF file."""

    output_path: Path
    item_count: int
    page_count: int
    total_bytes: int


@dataclass(frozen=True)
class _LocalSource:
    path: Path
    name: str
    declared_size: int


def _resolve_pdf_path(output: Path | str | None) -> Path:
    """Resolve the output PDF file path.

    Rules:
        - ``None`` → ``{cwd}/merged.pdf``
        - Ends in ``.pdf`` → treated as literal file path
        - Otherwise → treated as directory: ``{path}/merged.pdf``
    """
    if output is None:
        return Path(DEFAULT_OUTPUT_NAME).resolve()

    output = Path(output)
    if output.suffix.lower() == ".pdf":
        return output.resolve()

    return (output / DEFAULT_OUTPUT_NAME).resolve()


def merge(
    items: Sequence[InputItem],
    limits: MergeLimits | None = None,
    *,
    strict_types: bool = False,
    on_item_done: Callable[[InputItem, int], None] | None = None,
) -> bytes:
    """Validate *items* against *limits* and merge them into one PDF.

    Nothing is decoded when validation fails. Any failing item aborts the
    whole merge; there is no partial output.

    Returns:
        The merged PDF as bytes.

    Raises:
        MergeError: A subclass describing why the merge was rejected or failed.
    """
    validate_batch(items, limits)
    return assemble_pdf(items, strict_types=strict_types, on_item_done=on_item_done)


def _stat_local(source: Path | str) -> _LocalSource:
    path = Path(source)
    if not path.is_file():
        raise FileNotFoundError(f"Input not found: {path}")
    return _LocalSource(path=path, name=path.name, declared_size=path.stat().st_size)


async def merge_sources(
    sources: Sequence[Path | str],
    output: Path | str | None = None,
    *,
    limits: MergeLimits | None = None,
    strict_types: bool = False,
    concurrency: int = 10,
    max_retries: int = 3,
    on_item_done: Callable[[InputItem, int], None] | None = None,
    on_fetched: Callable[[InputItem], None] | None = None,
) -> MergeResult:
    """Merge local files and/or URLs, in order, into a single PDF file.

    Local files are size-checked from their metadata before they are read;
    URLs are downloaded in parallel with the per-file limit enforced while
    streaming. The merged document is written only once every source has been
    processed.

    Args:
        sources: File paths or ``http(s)://`` URLs, in the desired page order.
        output: Output path. Omit for ``merged.pdf`` in the CWD, pass a
            ``.pdf`` path to use it literally, or pass a directory to save
            ``merged.pdf`` inside it.
        limits: Size limits; defaults to :class:`MergeLimits`.
        strict_types: Reject unrecognised media types instead of treating
            them as JPEG.
        concurrency: Maximum number of concurrent downloads.
        max_retries: Number of attempts per download.
        on_item_done: Called with each item and the number of pages it added.
        on_fetched: Called with each URL source as its download completes.

    Returns:
        A :class:`MergeResult` summarizing the outcome.

    Raises:
        MergeError: If validation, download, decoding or serialization fails.
        FileNotFoundError: If a local source does not exist.

    Example::

        import asyncio
        from docmerge import merge_sources

        result = asyncio.run(merge_sources(["cover.png", "report.pdf"]))
        print(f"Saved {result.page_count} pages to {result.output_path}")
    """
    if not sources:
        raise EmptyBatchError()

    limits = limits or MergeLimits()

    local = {i: _stat_local(s) for i, s in enumerate(sources) if not is_url(s)}
    if local:
        validate_batch(list(local.values()), limits)

    remote: dict[int, InputItem] = {}
    remote_indices = [i for i, s in enumerate(sources) if is_url(s)]
    if remote_indices:
        fetched = await fetch_inputs(
            [str(sources[i]) for i in remote_indices],
            limits=limits,
            concurrency=concurrency,
            max_retries=max_retries,
            on_fetched=on_fetched,
        )
        remote = dict(zip(remote_indices, fetched))

    items = [
        remote[i] if i in remote else InputItem.from_path(local[i].path)
        for i in range(len(sources))
    ]

    page_count = 0

    def _on_item_done(item: InputItem, added: int) -> None:
        nonlocal page_count
        page_count += added
        if on_item_done is not None:
            on_item_done(item, added)

    pdf_bytes = merge(items, limits, strict_types=strict_types, on_item_done=_on_item_done)

    pdf_path = _resolve_pdf_path(output)
    pdf_path.parent.mkdir(parents=True, exist_ok=True)
    pdf_path.write_bytes(pdf_bytes)
    logger.info("Wrote %s (%s)", pdf_path, format_size(len(pdf_bytes)))

    return MergeResult(
        output_path=pdf_path,
        item_count=len(items),
        page_count=page_count,
        total_bytes=len(pdf_bytes),
    )
