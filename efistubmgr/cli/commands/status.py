"""``efistubmgr status`` — show kernels, boot entries and pending changes."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console

from efistubmgr.cli.context import configure_logging, load_settings, make_coordinator
from efistubmgr.errors import StubManagerError
from efistubmgr.report.renderer import ReportRenderer

console = Console()


def status_cmd(
    config: Path = typer.Option(
        None,
        "--config",
        "-c",
        help="Build configuration file.",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Show what a run would do without building or touching NVRAM."""
    settings = load_settings(config)
    configure_logging(settings, verbose=verbose)

    try:
        preview = make_coordinator(settings).preview(settings.config_path)
    except StubManagerError as exc:
        console.print(f"[bold red]Error:[/bold red] {exc}")
        raise typer.Exit(code=2)

    ReportRenderer(console=console).print_preview(preview)
