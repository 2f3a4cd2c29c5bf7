"""``efistubmgr clean`` — remove stubs and module directories no longer needed."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console

from efistubmgr.cli.context import configure_logging, load_settings
from efistubmgr.core.cleaner import StubCleaner
from efistubmgr.core.discovery import discover
from efistubmgr.core.registry import ProfileRegistry, load_config_file
from efistubmgr.errors import ConfigError, DiscoveryError
from efistubmgr.report.renderer import ReportRenderer

console = Console()


def clean_cmd(
    config: Path = typer.Option(
        None,
        "--config",
        "-c",
        help="Build configuration file.",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Remove stubs of uninstalled kernels and leftover module directories.

    Boot entries of removed stubs are dropped by the next ``run``.
    """
    settings = load_settings(config)
    configure_logging(settings, verbose=verbose)

    try:
        registry = ProfileRegistry.load(load_config_file(settings.config_path))
        kernels = discover(registry, require_kernel_image=settings.require_kernel_image)
    except (ConfigError, DiscoveryError) as exc:
        console.print(f"[bold red]Nothing was cleaned:[/bold red] {exc}")
        raise typer.Exit(code=2)

    cleaner = StubCleaner(remove_leftovers=settings.require_kernel_image)
    report = cleaner.clean(registry, kernels)
    ReportRenderer(console=console).print_clean(report)
    if report.errors:
        raise typer.Exit(code=1)
