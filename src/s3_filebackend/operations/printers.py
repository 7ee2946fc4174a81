"""
Human-readable output formatting.

Centralizes all CLI output formatting so commands stay thin and focused.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import List

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ..storage.base import StatRecord
from .facade import VerifyReport, VerifyStep

_console = Console()
_err_console = Console(stderr=True)


def print_verify_start(path: str) -> None:
    _console.print(f"[bold]Verifying backend with[/] {escape(path)}")


def print_verify_step(step: VerifyStep) -> None:
    """
    Print one verification step as it completes.

    Args:
        step: Finished step
    """
    if step.warning:
        _console.print(f"[yellow]WARN[/] {step.name}: {escape(step.detail)}")
    elif step.ok:
        _console.print(f"[green]OK[/]   {step.name}: {escape(step.detail)}")
    else:
        _console.print(f"[red]FAIL[/] {step.name}: {escape(step.detail)}")


def print_verify_summary(report: VerifyReport) -> None:
    if report.ok:
        suffix = f" ({len(report.warnings)} warning(s))" if report.warnings else ""
        _console.print(f"[bold green]All checks passed[/]{suffix}")
    else:
        _console.print("[bold red]Verification failed[/]")


def print_stat(path: str, record: StatRecord) -> None:
    """
    Print file metadata.

    Args:
        path: Virtual path that was stat'ed
        record: Its metadata
    """
    modified = datetime.fromtimestamp(record.mtime, tz=timezone.utc).isoformat()
    table = Table(title=escape(path), show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("Size", f"{record.size} ({_format_bytes(record.size)})")
    table.add_row("Modified", modified)
    table.add_row("Content hash", escape(record.content_hash) if record.content_hash else "[dim]not recorded[/]")
    _console.print(table)


def print_listing(names: List[str]) -> None:
    for name in names:
        _console.print(escape(name), highlight=False)
    _console.print(f"[dim]{len(names)} entries[/]")


def print_done(message: str) -> None:
    _console.print(escape(message))


def print_error(exc: BaseException) -> None:
    _err_console.print(f"[red]Error:[/] {escape(str(exc))}")


def _format_bytes(size: int) -> str:
    """Format byte size in human-readable format."""
    value = float(size)
    for unit in ['B', 'KB', 'MB', 'GB', 'TB']:
        if value < 1024.0:
            return f"{value:.1f} {unit}"
        value /= 1024.0
    return f"{value:.1f} PB"
