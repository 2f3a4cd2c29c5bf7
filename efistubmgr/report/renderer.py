"""Rich terminal renderer for run, clean and preview results.

Color scheme
------------
- green  : built / applied
- cyan   : up to date
- red    : failed
- dim    : no kernel installed
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.console import Console, Group
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from efistubmgr.models.profiles import BuildOutcome
from efistubmgr.models.reports import CleanReport, ProfileReport, RunReport, RunStatus

if TYPE_CHECKING:
    from efistubmgr.core.coordinator import RunPreview


_OUTCOME_DISPLAY: dict[BuildOutcome, str] = {
    BuildOutcome.BUILT: "[green]BUILT[/green]",
    BuildOutcome.SKIPPED_UP_TO_DATE: "[cyan]UP TO DATE[/cyan]",
    BuildOutcome.FAILED: "[bold red]FAILED[/bold red]",
}

_STATUS_DISPLAY: dict[RunStatus, tuple[str, str]] = {
    RunStatus.SUCCESS: ("[bold green]Run completed[/bold green]", "green"),
    RunStatus.PARTIAL: (
        "[bold yellow]Run completed with failures; some changes were applied[/bold yellow]",
        "yellow",
    ),
    RunStatus.ABORTED: ("[bold red]Run aborted; nothing was changed[/bold red]", "red"),
}


class ReportRenderer:
    """Renders reports as Rich renderables.

    Parameters
    ----------
    console:
        Rich Console instance.  A new one is created if not provided.
    """

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    # ------------------------------------------------------------------
    # Run report
    # ------------------------------------------------------------------

    def render_run(self, report: RunReport) -> Panel:
        headline, border = _STATUS_DISPLAY[report.status]
        parts: list = [Text.from_markup(headline)]

        if report.fatal_error:
            parts += [Text(""), Text(report.fatal_error, style="red")]
        else:
            parts += [Text(""), self._profile_table(report.profiles)]
            if report.operations:
                parts += [Text(""), Text.from_markup("[bold]Other boot entry changes[/bold]")]
                for result in report.operations:
                    parts.append(Text.from_markup(self._operation_line(result)))
            if report.reconcile_error:
                parts += [Text(""), Text(report.reconcile_error, style="red")]
            if report.unmatched_kernels:
                parts += [
                    Text(""),
                    Text.from_markup(
                        "[dim]Kernels without profile: "
                        + escape(", ".join(report.unmatched_kernels))
                        + "[/dim]"
                    ),
                ]

        return Panel(
            Group(*parts),
            title="[bold]EFI stub manager[/bold]",
            border_style=border,
            padding=(1, 2),
        )

    def _profile_table(self, profiles: list[ProfileReport]) -> Table:
        table = Table(show_header=True, header_style="bold cyan", expand=True)
        table.add_column("Profile", style="bold")
        table.add_column("Kernel")
        table.add_column("Stub", justify="center")
        table.add_column("Boot entry")

        for profile in profiles:
            if profile.build_outcome is None:
                stub = "[dim]no kernel[/dim]"
            else:
                stub = _OUTCOME_DISPLAY[profile.build_outcome]
            details = [self._operation_line(r) for r in profile.operations]
            if profile.build_error:
                details.insert(0, f"[red]{escape(profile.build_error)}[/red]")
            table.add_row(
                escape(profile.profile),
                escape(profile.kernel_version) if profile.kernel_version else "[dim]-[/dim]",
                stub,
                "\n".join(details) if details else "[dim]unchanged[/dim]",
            )
        return table

    @staticmethod
    def _operation_line(result) -> str:
        text = escape(result.operation.describe())
        if result.succeeded:
            return f"[green]{text}[/green]"
        return f"[red]{text}: {escape(result.error)}[/red]"

    def print_run(self, report: RunReport) -> None:
        self.console.print(self.render_run(report))

    # ------------------------------------------------------------------
    # Clean / preview
    # ------------------------------------------------------------------

    def print_clean(self, report: CleanReport) -> None:
        if report.already_clean:
            self.console.print("[green]EFI directory is already clean.[/green]")
            return
        for stub in report.removed_stubs:
            self.console.print(f"[green]Removed stub[/green] {escape(str(stub))}")
        for directory in report.removed_module_dirs:
            self.console.print(f"[green]Removed modules directory[/green] {escape(str(directory))}")
        for error in report.errors:
            self.console.print(f"[bold red]Failed:[/bold red] {escape(error)}")

    def render_preview(self, preview: RunPreview) -> Group:
        kernels = Table(title="Installed kernels", header_style="bold cyan", expand=True)
        kernels.add_column("Version")
        kernels.add_column("Profile")
        kernels.add_column("Selected", justify="center")
        selected = {(t.profile.name, t.kernel_version) for t in preview.targets}
        for kernel in preview.kernels:
            if not kernel.bootable:
                profile = "[dim]leftover, no kernel image[/dim]"
            else:
                profile = escape(kernel.matched_profile) if kernel.matched_profile else "[dim]-[/dim]"
            chosen = (kernel.matched_profile, kernel.version) in selected
            kernels.add_row(escape(kernel.version), profile, "[green]yes[/green]" if chosen else "")

        entries = Table(title="Firmware boot entries", header_style="bold cyan", expand=True)
        entries.add_column("#", justify="right", style="dim")
        entries.add_column("Id")
        entries.add_column("Label")
        entries.add_column("Loader")
        for entry in sorted(
            preview.entries,
            key=lambda e: (e.boot_order_position is None, e.boot_order_position or 0),
        ):
            position = "" if entry.boot_order_position is None else str(entry.boot_order_position)
            entries.add_row(
                position, entry.entry_id, escape(entry.label), escape(entry.loader_path)
            )

        if preview.plan.is_empty:
            plan = Text.from_markup("[green]Boot entries are in sync.[/green]")
        else:
            plan = Text.from_markup(
                "[bold]Planned boot entry changes[/bold]\n"
                + "\n".join(f"  {escape(op.describe())}" for op in preview.plan.operations)
            )
        return Group(kernels, Text(""), entries, Text(""), plan)

    def print_preview(self, preview: RunPreview) -> None:
        self.console.print(self.render_preview(preview))
