"""Main Typer application — imports and registers all CLI commands.

Entry point: ``efistubmgr`` (configured via pyproject.toml scripts).
"""

from __future__ import annotations

import typer

from efistubmgr.cli.commands.clean import clean_cmd
from efistubmgr.cli.commands.run import run_cmd
from efistubmgr.cli.commands.status import status_cmd

app = typer.Typer(
    name="efistubmgr",
    help="Build dracut EFI stubs for installed kernels and keep the firmware boot menu in sync.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)

# Register subcommands
app.command(name="run", help="Build stubs and reconcile boot entries.")(run_cmd)
app.command(name="status", help="Show kernels, boot entries and pending changes.")(status_cmd)
app.command(name="clean", help="Remove stale stubs and leftover module directories.")(clean_cmd)


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
