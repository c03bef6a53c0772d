
"""CLI implementation for rangezip."""

import json
import logging
from pathlib import Path, PurePosixPath
from typing import Optional

import typer

from . import open_archive
from .core.model import RangeZipError
from .core.util import entry_asdict, friendly_size, method_name
from .io.base import DEFAULT_TIMEOUT

app = typer.Typer(add_completion=False, help="List and extract single files from remote ZIP archives.")


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def _fail(err: Exception) -> None:
    typer.echo(f"Error: {err}", err=True)
    raise typer.Exit(code=1)


@app.command("list")
def list_command(
    url: str = typer.Argument(..., help="URL of the ZIP archive"),
    detailed: bool = typer.Option(False, "--detailed", "-d", help="Show size and compression method"),
    jsonl: bool = typer.Option(False, "--json", help="Emit one JSON object per entry"),
    no_range_check: bool = typer.Option(False, "--no-range-check", help="Skip the range-request probe"),
    timeout: float = typer.Option(DEFAULT_TIMEOUT, "--timeout", min=0.1, help="Per-request timeout in seconds"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log every HTTP request"),
):
    """List the entries of a remote ZIP archive."""
    _setup_logging(verbose)
    try:
        with open_archive(url, not no_range_check, timeout=timeout) as archive:
            entries = archive.list()
    except RangeZipError as e:
        _fail(e)

    for entry in entries:
        if jsonl:
            typer.echo(json.dumps(entry_asdict(entry)))
        elif detailed:
            marker = "" if entry.supported else "  [unsupported]"
            typer.echo(
                f"{entry.name}  {friendly_size(entry.compressed_size)}  "
                f"{method_name(entry.compression_method)}{marker}"
            )
        else:
            typer.echo(entry.name)


@app.command()
def download(
    url: str = typer.Argument(..., help="URL of the ZIP archive"),
    name: str = typer.Argument(..., help="Entry to extract, exactly as listed"),
    output: Optional[str] = typer.Argument(None, help="Destination file, '-' for stdout [default: entry basename]"),
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite an existing destination"),
    no_range_check: bool = typer.Option(False, "--no-range-check", help="Skip the range-request probe"),
    timeout: float = typer.Option(DEFAULT_TIMEOUT, "--timeout", min=0.1, help="Per-request timeout in seconds"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log every HTTP request"),
):
    """Extract a single entry of a remote ZIP archive."""
    _setup_logging(verbose)

    dest = None
    if output != "-":
        dest = Path(output) if output else Path(PurePosixPath(name).name)
        if not dest.name:
            _fail(ValueError(f"Cannot derive a file name from {name!r}; give OUTPUT"))
        if dest.exists() and not force:
            _fail(FileExistsError(f"{dest} already exists (use --force to overwrite)"))

    try:
        with open_archive(url, not no_range_check, timeout=timeout) as archive:
            data = archive.download(name)
            fetched, requests_made = archive.bytes_fetched, archive.requests_made
    except RangeZipError as e:
        _fail(e)

    if dest is None:
        typer.echo(data, nl=False)
        return

    dest.write_bytes(data)
    typer.echo(
        f"Wrote {friendly_size(len(data))} to {dest} "
        f"({friendly_size(fetched)} fetched in {requests_made} requests)",
        err=True,
    )


if __name__ == "__main__":
    app()
