"""``efistubmgr run`` — build stubs and reconcile boot entries.

This is what the package manager hook calls after kernel upgrades.  The exit
status is 0 on success, 1 when some builds or boot entry changes failed and
2 when the run was aborted before changing anything.
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console

from efistubmgr.cli.context import configure_logging, load_settings, make_coordinator
from efistubmgr.errors import StubManagerError
from efistubmgr.report.renderer import ReportRenderer

console = Console()


def run_cmd(
    config: Path = typer.Option(
        None,
        "--config",
        "-c",
        help="Build configuration file (default: EFISTUBMGR_CONFIG_PATH or /etc/dracut-efi-manager.toml).",
    ),
    force: bool = typer.Option(
        False,
        "--force",
        "-f",
        help="Rebuild every stub even if it is up to date.",
    ),
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        "-n",
        help="Show the planned changes without building or writing NVRAM.",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Build EFI stubs for all configured kernels and sync the boot menu."""
    settings = load_settings(config)
    configure_logging(settings, verbose=verbose)
    coordinator = make_coordinator(settings, force=force)
    renderer = ReportRenderer(console=console)

    if dry_run:
        try:
            preview = coordinator.preview(settings.config_path)
        except StubManagerError as exc:
            console.print(f"[bold red]Error:[/bold red] {exc}")
            raise typer.Exit(code=2)
        renderer.print_preview(preview)
        return

    report = coordinator.run(settings.config_path)
    renderer.print_run(report)
    raise typer.Exit(code=report.exit_code)
