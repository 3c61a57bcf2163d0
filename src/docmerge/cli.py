"""Command-line interface for docmerge."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
import time
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TimeRemainingColumn,
)

from . import __version__, merge_sources
from .downloader import is_url
from .inputs import InputItem, MergeError
from .validator import MergeLimits, format_size

_MB = 1024 * 1024


def _megabytes(value: str) -> int:
    try:
        size = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid size: {value!r}") from None
    if size <= 0:
        raise argparse.ArgumentTypeError("size must be positive")
    return int(size * _MB)


def _build_parser() -> argparse.ArgumentParser:
    defaults = MergeLimits()
    parser = argparse.ArgumentParser(
        prog="docmerge",
        description=(
            "Merge PDF files and PNG/JPEG images, in the order given, into a"
            " single PDF."
        ),
    )
    parser.add_argument(
        "sources",
        nargs="+",
        help="Input files or http(s) URLs, in the desired page order",
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help=(
            "Output path: a .pdf file path, a directory, or omit for"
            " merged.pdf in CWD."
        ),
    )
    parser.add_argument(
        "--max-file-size",
        type=_megabytes,
        default=defaults.max_file_size,
        metavar="MB",
        help=f"Per-file size limit in MB (default: {defaults.max_file_size // _MB})",
    )
    parser.add_argument(
        "--max-total-size",
        type=_megabytes,
        default=defaults.max_total_size,
        metavar="MB",
        help=f"Total size limit in MB (default: {defaults.max_total_size // _MB})",
    )
    parser.add_argument(
        "--strict-types",
        action="store_true",
        default=False,
        help="Reject inputs that are not PDF, PNG or JPEG instead of treating them as JPEG",
    )
    parser.add_argument(
        "--concurrency",
        type=int,
        default=10,
        help="Maximum number of concurrent downloads for URL inputs (default: 10)",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        default=False,
        help="Log each processed input",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    return parser


def _configure_logging(*, verbose: bool, console: Console) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


async def _async_main(args: argparse.Namespace) -> None:
    console = Console()
    start_time = time.monotonic()

    limits = MergeLimits(
        max_file_size=args.max_file_size,
        max_total_size=args.max_total_size,
    )

    progress = Progress(
        SpinnerColumn(),
        "[progress.description]{task.description}",
        BarColumn(),
        MofNCompleteColumn(),
        TimeRemainingColumn(),
        console=console,
    )
    url_count = sum(1 for source in args.sources if is_url(source))

    with progress:
        download_task_id = None
        if url_count:
            download_task_id = progress.add_task(
                description="Downloading files",
                total=url_count,
            )
        task_id = progress.add_task(
            description="Merging files",
            total=len(args.sources),
        )

        def _on_fetched(item: InputItem) -> None:
            if download_task_id is not None:
                progress.advance(task_id=download_task_id)

        def _on_item_done(item: InputItem, pages: int) -> None:
            progress.advance(task_id=task_id)

        result = await merge_sources(
            sources=args.sources,
            output=args.output,
            limits=limits,
            strict_types=args.strict_types,
            concurrency=args.concurrency,
            on_item_done=_on_item_done,
            on_fetched=_on_fetched,
        )

    elapsed = time.monotonic() - start_time

    summary_lines = [
        f"[bold]Files merged:[/bold] {result.item_count}",
        f"[bold]Pages:[/bold] {result.page_count}",
        f"[bold]PDF size:[/bold] {format_size(result.total_bytes)}",
        f"[bold]Output:[/bold] {result.output_path}",
    ]

    console.print(Panel(
        "\n".join(summary_lines),
        title=f"[bold green]Done in {elapsed:.1f}s[/bold green]",
        border_style="green",
    ))


def main(argv: list[str] | None = None) -> None:
    """Entry point for the ``docmerge`` CLI command."""
    console = Console(stderr=True)
    parser = _build_parser()
    args = parser.parse_args(argv)

    _configure_logging(verbose=args.verbose, console=console)

    try:
        asyncio.run(_async_main(args=args))
    except (MergeError, OSError) as exc:
        console.print(f"[bold red]Error:[/bold red] {escape(str(exc))}")
        sys.exit(1)
    except KeyboardInterrupt:
        console.print("\n[dim]Interrupted.[/dim]")
        sys.exit(130)


if __name__ == "__main__":
    main()
