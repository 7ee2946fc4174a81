"""
S3 File Backend CLI

Thin commands over the Operations facade:
- verify: Exercise create -> stat -> list -> delete against a live backend
- stat: Show metadata for a virtual path
- ls: List files (or directories) under a virtual directory
- cat: Stream a file to stdout
- put: Upload a local file
- rm: Delete a file
"""
from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional

import typer

from .cli_context import CLIContext
from .operations import Operations, OpsConfig, run_and_exit
from .operations.printers import (
    print_done, print_listing, print_stat, print_verify_start, print_verify_step, print_verify_summary,
)

app = typer.Typer(name="s3-filebackend", help="S3 file backend CLI")


@app.callback()
def main(
    log_level: str = typer.Option("WARNING", "--log-level", envvar="S3FB_LOG_LEVEL", help="Logging level"),
) -> None:
    """Serve a virtual file store from S3-compatible object storage."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _operations(scheme: str = "mwstore") -> Operations:
    context = CLIContext.from_env()
    return Operations(config=OpsConfig(scheme=scheme), backend=context.backend)


@app.command()
def verify(
    container: str = typer.Argument(..., help="Logical container to write the test file into"),
    scheme: str = typer.Option("mwstore", "--scheme", help="Scheme for the test path"),
) -> None:
    """Verify backend operations (create, stat, list, delete)."""

    def _verify() -> None:
        ops = _operations(scheme=scheme)
        print_verify_start(ops.storage_path(container))
        report = ops.verify(container, on_step=print_verify_step)
        print_verify_summary(report)

    run_and_exit(_verify)


@app.command()
def stat(
    path: str = typer.Argument(..., help="Virtual path (scheme://backend/container/path)"),
) -> None:
    """Show size, modification time and content hash of a file."""

    def _stat() -> None:
        record = _operations().stat(path)
        print_stat(path, record)

    run_and_exit(_stat)


@app.command()
def ls(
    path: str = typer.Argument(..., help="Virtual directory (scheme://backend/container[/dir])"),
    top_only: bool = typer.Option(False, "--top-only", help="Only direct children"),
    dirs: bool = typer.Option(False, "--dirs", help="List directories instead of files"),
) -> None:
    """List files or directories under a virtual directory."""

    def _ls() -> None:
        names = _operations().list(path, top_only=top_only, directories=dirs)
        print_listing(names)

    run_and_exit(_ls)


@app.command()
def cat(
    path: str = typer.Argument(..., help="Virtual path to stream"),
) -> None:
    """Stream a file to stdout."""

    def _cat() -> None:
        out = sys.stdout.buffer
        _operations().cat(path, out)
        out.flush()

    run_and_exit(_cat)


@app.command()
def put(
    local_file: Path = typer.Argument(..., help="Local file to upload"),
    dst: str = typer.Argument(..., help="Destination virtual path"),
    content_type: Optional[str] = typer.Option(None, "--content-type", help="Override the guessed content type"),
) -> None:
    """Upload a local file."""

    def _put() -> None:
        _operations().put(local_file, dst, content_type=content_type)
        print_done(f"Stored {local_file} at {dst}")

    run_and_exit(_put)


@app.command()
def rm(
    path: str = typer.Argument(..., help="Virtual path to delete"),
) -> None:
    """Delete a file."""

    def _rm() -> None:
        _operations().rm(path)
        print_done(f"Deleted {path}")

    run_and_exit(_rm)


if __name__ == "__main__":
    app()
