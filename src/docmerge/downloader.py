"""Parallel download of remote inputs."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence
from pathlib import PurePosixPath
from urllib.parse import unquote, urlparse

import httpx

from .inputs import FetchError, FileTooLargeError, InputItem, guess_media_type
from .validator import MergeLimits, format_size

logger = logging.getLogger(__name__)

_DEFAULT_CONCURRENCY = 10
_DEFAULT_MAX_RETRIES = 3
_DEFAULT_TIMEOUT = 30.0

_GENERIC_MEDIA_TYPES = frozenset({"", "application/octet-stream", "binary/octet-stream"})


def is_url(source: object) -> bool:
    """Return True if *source* is an ``http://`` or ``https://`` URL string."""
    return isinstance(source, str) and source.lower().startswith(("http://", "https://"))


def _name_from_url(url: str) -> str:
    return PurePosixPath(unquote(urlparse(url).path)).name or "download"


def _media_type_from_response(response: httpx.Response, name: str) -> str:
    content_type = response.headers.get("content-type", "")
    if content_type.split(";", 1)[0].strip().lower() in _GENERIC_MEDIA_TYPES:
        return guess_media_type(name)
    return content_type


def _too_large(name: str, max_file_size: int) -> FileTooLargeError:
    return FileTooLargeError(
        f"{name} exceeds {format_size(max_file_size)} limit", file_name=name
    )


async def _download_one(
    client: httpx.AsyncClient,
    url: str,
    semaphore: asyncio.Semaphore,
    *,
    max_file_size: int,
    max_retries: int = _DEFAULT_MAX_RETRIES,
    timeout: float = _DEFAULT_TIMEOUT,
) -> InputItem:
    """Download a single input with retries.

    The body is streamed so an oversized file is abandoned as soon as it
    crosses *max_file_size*; that case is not retried.
    """
    name = _name_from_url(url)

    async with semaphore:
        for attempt in range(1, max_retries + 1):
            try:
                async with client.stream("GET", url, timeout=timeout) as response:
                    response.raise_for_status()

                    content_length = response.headers.get("content-length", "")
                    if content_length.isdigit() and int(content_length) > max_file_size:
                        raise _too_large(name, max_file_size)

                    chunks: list[bytes] = []
                    received = 0
                    async for chunk in response.aiter_bytes():
                        received += len(chunk)
                        if received > max_file_size:
                            raise _too_large(name, max_file_size)
                        chunks.append(chunk)

                    return InputItem(
                        name=name,
                        media_type=_media_type_from_response(response, name),
                        data=b"".join(chunks),
                        declared_size=received,
                    )
            except httpx.HTTPError as exc:
                if attempt == max_retries:
                    raise FetchError(
                        f"Failed to download {url}: {exc}", file_name=name
                    ) from exc
                logger.debug("Attempt %d for %s failed: %s", attempt, url, exc)
                await asyncio.sleep(1.0 * attempt)

    raise FetchError(f"Failed to download {url}", file_name=name)


async def fetch_inputs(
    urls: Sequence[str],
    *,
    limits: MergeLimits | None = None,
    concurrency: int = _DEFAULT_CONCURRENCY,
    max_retries: int = _DEFAULT_MAX_RETRIES,
    timeout: float = _DEFAULT_TIMEOUT,
    transport: httpx.AsyncBaseTransport | None = None,
    on_fetched: Callable[[InputItem], None] | None = None,
) -> list[InputItem]:
    """Download all inputs in parallel, returning them in the order of *urls*.

    Args:
        urls: Remote inputs to fetch.
        limits: Size limits; only the per-file limit is enforced here.
        concurrency: Maximum number of concurrent downloads.
        max_retries: Number of attempts per URL.
        timeout: Per-request timeout in seconds.
        transport: Optional ``httpx`` transport, mainly for tests.
        on_fetched: Called with each item as its download completes.

    Returns:
        One :class:`InputItem` per URL, in input order.

    Raises:
        FileTooLargeError: If any download exceeds the per-file limit.
        FetchError: If any download still fails after all retries.
    """
    limits = limits or MergeLimits()
    semaphore = asyncio.Semaphore(concurrency)

    async def _fetch(url: str) -> InputItem:
        item = await _download_one(
            client=client,
            url=url,
            semaphore=semaphore,
            max_file_size=limits.max_file_size,
            max_retries=max_retries,
            timeout=timeout,
        )
        if on_fetched is not None:
            on_fetched(item)
        return item

    async with httpx.AsyncClient(transport=transport, follow_redirects=True) as client:
        tasks = [asyncio.ensure_future(_fetch(url)) for url in urls]
        try:
            items = await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

    return list(items)
