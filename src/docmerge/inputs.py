"""Input items, media type classification and the merge error hierarchy."""

from __future__ import annotations

import mimetypes
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

_GENERIC_MEDIA_TYPE = "application/octet-stream"

_JPEG_ALIASES = frozenset({"image/jpeg", "image/jpg", "image/pjpeg"})


class MergeError(Exception):
    """Base exception for docmerge errors.

    Attributes:
        reason: Human-readable description, suitable for showing to a user.
        file_name: Name of the offending input, when a single input is at fault.
    """

    def __init__(self, reason: str, *, file_name: str | None = None) -> None:
        super().__init__(reason)
        self.reason = reason
        self.file_name = file_name


class EmptyBatchError(MergeError):
    """Raised when no inputs were supplied."""

    def __init__(self) -> None:
        super().__init__("No files received")


class FileTooLargeError(MergeError):
    """Raised when a single input exceeds the per-file size limit."""


class BatchTooLargeError(MergeError):
    """Raised when the inputs together exceed the aggregate size limit."""


class ParseError(MergeError):
    """Raised when a PDF input cannot be parsed."""


class DecodeError(MergeError):
    """Raised when an image input cannot be decoded."""


class UnsupportedTypeError(MergeError):
    """Raised in strict mode for media types other than PDF, PNG and JPEG."""


class SerializationError(MergeError):
    """Raised when the merged document cannot be written out."""


class FetchError(MergeError):
    """Raised when a remote input cannot be downloaded."""


class MediaType(str, Enum):
    PDF = "application/pdf"
    PNG = "image/png"
    JPEG = "image/jpeg"


def _normalize(media_type: str | None) -> str:
    return (media_type or "").split(";", 1)[0].strip().lower()


def classify_media_type(
    media_type: str | None,
    *,
    name: str = "",
    strict: bool = False,
) -> MediaType:
    """Map a declared media type onto the PDF / PNG / JPEG variants.

    Anything that is neither PDF nor PNG is treated as JPEG, matching how
    uploads have always been handled. With ``strict=True`` unrecognised types
    are rejected instead.

    Raises:
        UnsupportedTypeError: If *strict* is set and the type is unrecognised.
    """
    normalized = _normalize(media_type)
    if normalized == MediaType.PDF.value:
        return MediaType.PDF
    if normalized == MediaType.PNG.value:
        return MediaType.PNG
    if normalized in _JPEG_ALIASES:
        return MediaType.JPEG
    if strict:
        raise UnsupportedTypeError(
            f"{name or 'Input'} has unsupported type {media_type or 'unknown'!r}",
            file_name=name or None,
        )
    return MediaType.JPEG


def guess_media_type(name: str) -> str:
    """Guess a media type from a file name, ``application/octet-stream`` if unknown."""
    guessed, _ = mimetypes.guess_type(name, strict=False)
    return guessed or _GENERIC_MEDIA_TYPE


@dataclass(frozen=True)
class InputItem:
    """One user-supplied file: its name, declared media type and content."""

    name: str
    media_type: str
    data: bytes = field(repr=False)
    declared_size: int | None = None

    def __post_init__(self) -> None:
        if self.declared_size is None:
            object.__setattr__(self, "declared_size", len(self.data))
        elif self.declared_size < 0:
            raise ValueError("declared_size must not be negative")

    @classmethod
    def from_path(cls, path: Path | str, *, media_type: str | None = None) -> InputItem:
        """Read a local file into an :class:`InputItem`.

        The media type is guessed from the file extension unless given.

        Raises:
            FileNotFoundError: If *path* does not exist.
        """
        path = Path(path)
        if not path.is_file():
            raise FileNotFoundError(f"Input not found: {path}")
        data = path.read_bytes()
        return cls(
            name=path.name,
            media_type=media_type or guess_media_type(path.name),
            data=data,
            declared_size=len(data),
        )
