"""Unit tests for the ReportRenderer."""

from __future__ import annotations

from io import StringIO

import pytest
from rich.console import Console
from rich.panel import Panel

from efistubmgr.core.reconciler import ReconcilePlan
from efistubmgr.core.coordinator import RunPreview
from efistubmgr.models.boot import BootEntry, BootOperation, OperationKind, OperationResult
from efistubmgr.models.profiles import BuildOutcome, InstalledKernel
from efistubmgr.models.reports import CleanReport, ProfileReport, RunReport, RunStatus
from efistubmgr.report.renderer import ReportRenderer


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _render(renderable) -> str:
    console = Console(file=StringIO(), width=300, color_system=None)
    console.print(renderable)
    return console.file.getvalue()


def _add_result(succeeded: bool = True) -> OperationResult:
    op = BootOperation(
        kind=OperationKind.ADD,
        profile="lts",
        label="efistub:lts (6.6.30-1-lts)",
        loader_path="\\EFI\\Linux\\linux-lts.efi",
    )
    return OperationResult(
        operation=op,
        succeeded=succeeded,
        entry_id="0001" if succeeded else None,
        error="" if succeeded else "simulated NVRAM failure",
    )


@pytest.fixture
def renderer() -> ReportRenderer:
    return ReportRenderer(console=Console(file=StringIO()))


class TestRenderRun:
    def test_returns_panel(self, renderer):
        report = RunReport(status=RunStatus.SUCCESS)
        assert isinstance(renderer.render_run(report), Panel)

    def test_profile_rows(self, renderer):
        report = RunReport(
            status=RunStatus.PARTIAL,
            profiles=[
                ProfileReport(
                    profile="lts",
                    kernel_version="6.6.30-1-lts",
                    build_outcome=BuildOutcome.BUILT,
                    operations=[_add_result()],
                ),
                ProfileReport(
                    profile="zen",
                    kernel_version="6.9.1-zen1-1-zen",
                    build_outcome=BuildOutcome.FAILED,
                    build_error="dracut exited with status 1",
                ),
                ProfileReport(profile="hardened"),
            ],
            unmatched_kernels=["6.8.9-arch1-2"],
        )

        output = _render(renderer.render_run(report))

        assert "with failures" in output
        assert "BUILT" in output
        assert "FAILED" in output
        assert "dracut exited with status 1" in output
        assert "no kernel" in output
        assert "add 'efistub:lts (6.6.30-1-lts)'" in output
        assert "6.8.9-arch1-2" in output

    def test_aborted_shows_reason(self, renderer):
        report = RunReport(status=RunStatus.ABORTED, fatal_error="build_mappings must contain at least one profile")
        output = _render(renderer.render_run(report))
        assert "nothing was changed" in output
        assert "build_mappings" in output

    def test_markup_in_labels_is_escaped(self, renderer):
        result = _add_result(succeeded=False)
        result = result.model_copy(update={"error": "[bold]not markup[/bold]"})
        report = RunReport(status=RunStatus.PARTIAL, operations=[result])

        output = _render(renderer.render_run(report))

        assert "[bold]not markup[/bold]" in output

    def test_profile_and_kernel_names_are_escaped(self, renderer):
        report = RunReport(
            status=RunStatus.SUCCESS,
            profiles=[
                ProfileReport(
                    profile="[bold]lts",
                    kernel_version="6.6.30-1-[italic]lts",
                    build_outcome=BuildOutcome.BUILT,
                )
            ],
            unmatched_kernels=["6.8.9-[red]arch"],
        )

        output = _render(renderer.render_run(report))

        assert "[bold]lts" in output
        assert "6.6.30-1-[italic]lts" in output
        assert "6.8.9-[red]arch" in output


class TestPrintClean:
    def test_already_clean(self):
        console = Console(file=StringIO())
        ReportRenderer(console=console).print_clean(CleanReport())
        assert "already clean" in console.file.getvalue()

    def test_lists_removals_and_errors(self, tmp_path):
        console = Console(file=StringIO(), width=200)
        report = CleanReport(
            removed_stubs=[tmp_path / "linux-zen.efi"],
            errors=["/usr/lib/modules/x: Permission denied"],
        )
        ReportRenderer(console=console).print_clean(report)
        output = console.file.getvalue()
        assert "Removed stub" in output
        assert "Permission denied" in output

    def test_removed_paths_are_escaped(self, tmp_path):
        console = Console(file=StringIO(), width=300)
        stub = tmp_path / "linux-[bold]zen.efi"
        directory = tmp_path / "6.6.29-[dim]lts"
        report = CleanReport(removed_stubs=[stub], removed_module_dirs=[directory])

        ReportRenderer(console=console).print_clean(report)

        output = console.file.getvalue()
        assert "linux-[bold]zen.efi" in output
        assert "6.6.29-[dim]lts" in output


class TestRenderPreview:
    def test_in_sync(self, renderer, tmp_path):
        preview = RunPreview(
            kernels=[
                InstalledKernel(version="6.6.30-1-lts", modules_path=tmp_path, matched_profile="lts"),
                InstalledKernel(version="6.6.29-1-lts", modules_path=tmp_path, bootable=False),
            ],
            targets=[],
            entries=[BootEntry(entry_id="0000", label="Windows Boot Manager", boot_order_position=0)],
            plan=ReconcilePlan(),
        )

        output = _render(renderer.render_preview(preview))

        assert "in sync" in output
        assert "Windows Boot Manager" in output
        assert "leftover" in output

    def test_planned_changes(self, renderer):
        plan = ReconcilePlan(
            operations=[BootOperation(kind=OperationKind.REORDER, order=("0001", "0000"))]
        )
        preview = RunPreview(kernels=[], targets=[], entries=[], plan=plan)

        output = _render(renderer.render_preview(preview))

        assert "set boot order 0001,0000" in output

    def test_kernel_and_profile_names_are_escaped(self, renderer, tmp_path):
        preview = RunPreview(
            kernels=[
                InstalledKernel(
                    version="6.6.30-[bold]lts", modules_path=tmp_path, matched_profile="[italic]lts"
                ),
            ],
            targets=[],
            entries=[],
            plan=ReconcilePlan(),
        )

        output = _render(renderer.render_preview(preview))

        assert "6.6.30-[bold]lts" in output
        assert "[italic]lts" in output
