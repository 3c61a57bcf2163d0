"""Size checks applied to a batch before any decoding work starts."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol

from .inputs import BatchTooLargeError, EmptyBatchError, FileTooLargeError

_DEFAULT_MAX_FILE_SIZE = 5 * 1024 * 1024
_DEFAULT_MAX_TOTAL_SIZE = 20 * 1024 * 1024


class SizedInput(Protocol):
    @property
    def name(self) -> str: ...

    @property
    def declared_size(self) -> int: ...


@dataclass(frozen=True)
class MergeLimits:
    """Per-file and aggregate size limits, in bytes."""

    max_file_size: int = _DEFAULT_MAX_FILE_SIZE
    max_total_size: int = _DEFAULT_MAX_TOTAL_SIZE

    def __post_init__(self) -> None:
        if self.max_file_size <= 0 or self.max_total_size <= 0:
            raise ValueError("size limits must be positive")


def format_size(num_bytes: int) -> str:
    """Format a byte count as a human-readable string."""
    value = float(num_bytes)
    for unit in ("B", "KB", "MB", "GB"):
        if abs(value) < 1024:
            return f"{value:.1f} {unit}"
        value /= 1024
    return f"{value:.1f} TB"


def validate_batch(items: Sequence[SizedInput], limits: MergeLimits | None = None) -> None:
    """Reject a batch that is empty or breaks the size limits.

    Only declared sizes are consulted, so this is safe to call before any
    content has been read.

    Raises:
        EmptyBatchError: If *items* is empty.
        FileTooLargeError: For the first item above ``limits.max_file_size``.
        BatchTooLargeError: If the summed sizes exceed ``limits.max_total_size``.
    """
    limits = limits or MergeLimits()

    if not items:
        raise EmptyBatchError()

    total_size = 0
    for item in items:
        total_size += item.declared_size
        if item.declared_size > limits.max_file_size:
            raise FileTooLargeError(
                f"{item.name} exceeds {format_size(limits.max_file_size)} limit",
                file_name=item.name,
            )

    if total_size > limits.max_total_size:
        raise BatchTooLargeError(
            f"Total file size exceeds {format_size(limits.max_total_size)} limit"
        )
