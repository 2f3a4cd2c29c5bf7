"""Run coordinator — the single entry point the package hook and CLI call.

Sequences registry → discovery → builds → firmware snapshot → reconcile.
Configuration and discovery errors abort the run before anything is
modified.  Build and firmware failures are collected into the report and the
run carries on.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict

from efistubmgr.backends import FirmwareBootStore, ImageBuilder
from efistubmgr.config import StubManagerSettings
from efistubmgr.core.builder import StubBuildOrchestrator
from efistubmgr.core.discovery import discover, select_newest, unmatched
from efistubmgr.core.reconciler import BootEntryReconciler, ReconcilePlan
from efistubmgr.core.registry import ProfileRegistry, load_config_file
from efistubmgr.errors import ConfigError, DiscoveryError, FirmwareError
from efistubmgr.models.boot import BootEntry, OperationResult
from efistubmgr.models.config import StubBuildConfig
from efistubmgr.models.profiles import BuildOutcome, InstalledKernel, StubTarget
from efistubmgr.models.reports import ProfileReport, RunReport, RunStatus

logger = logging.getLogger(__name__)

ConfigSource = StubBuildConfig | Mapping[str, Any] | Path


class RunPreview(BaseModel):
    """What a run would do, computed without building or writing NVRAM."""

    model_config = ConfigDict(frozen=True)

    kernels: list[InstalledKernel]
    targets: list[StubTarget]
    entries: list[BootEntry]
    plan: ReconcilePlan


class RunCoordinator:
    """Wires the engine components to concrete capabilities.

    Parameters
    ----------
    builder:
        Image builder capability.
    store:
        Firmware boot store capability.
    settings:
        Runtime settings.  Defaults are read from the environment.
    force:
        Rebuild every stub regardless of freshness.
    """

    def __init__(
        self,
        builder: ImageBuilder,
        store: FirmwareBootStore,
        *,
        settings: StubManagerSettings | None = None,
        force: bool = False,
    ) -> None:
        self.settings = settings or StubManagerSettings()
        self.orchestrator = StubBuildOrchestrator(
            builder, jobs=self.settings.build_jobs, force=force
        )
        self.reconciler = BootEntryReconciler(
            store, label_prefix=self.settings.label_prefix
        )
        self._builder = builder
        self._force = force
        self._store = store

    # ------------------------------------------------------------------
    # Run
    # ------------------------------------------------------------------

    def run(self, config: ConfigSource) -> RunReport:
        """Execute one full pass and return the consolidated report."""
        try:
            registry, kernels = self._resolve(config)
        except (ConfigError, DiscoveryError) as exc:
            logger.error("Run aborted, nothing was changed: %s", exc)
            return RunReport(status=RunStatus.ABORTED, fatal_error=str(exc))

        selected = select_newest(registry, kernels)
        targets = self.orchestrator.build(registry, selected)

        # The reconciler starts only once every build outcome is known
        results: list[OperationResult] = []
        reconcile_error = ""
        try:
            snapshot = self._store.list_entries()
        except FirmwareError as exc:
            reconcile_error = f"Cannot read firmware boot entries: {exc}"
            logger.error("%s; boot entries left unchanged", reconcile_error)
        else:
            results = self.reconciler.reconcile(targets, snapshot)

        report = self._report(registry, kernels, targets, results, reconcile_error)
        logger.info("Run finished with status %s", report.status.value)
        return report

    def preview(self, config: ConfigSource) -> RunPreview:
        """Resolve kernels and plan boot entries as if every build succeeded.

        Raises ``ConfigError``, ``DiscoveryError`` or ``FirmwareError``.
        """
        registry, kernels = self._resolve(config)
        selected = select_newest(registry, kernels)

        targets: list[StubTarget] = []
        for profile in registry.profiles:
            kernel = selected.get(profile.name)
            if kernel is None:
                continue
            output_path = registry.output_path(profile)
            error = ""
            try:
                stale = self._force or self._builder.needs_rebuild(
                    kernel.modules_path, output_path
                )
            except OSError as exc:
                logger.error("Cannot check stub %s: %s", output_path, exc)
                outcome, error = BuildOutcome.FAILED, str(exc)
            else:
                outcome = BuildOutcome.BUILT if stale else BuildOutcome.SKIPPED_UP_TO_DATE
            targets.append(
                StubTarget(
                    profile=profile,
                    kernel_version=kernel.version,
                    modules_path=kernel.modules_path,
                    output_path=output_path,
                    loader_path=registry.loader_path(profile),
                    build_outcome=outcome,
                    error=error,
                    stub_exists=output_path.exists(),
                )
            )

        entries = self._store.list_entries()
        return RunPreview(
            kernels=kernels,
            targets=targets,
            entries=entries,
            plan=self.reconciler.plan(targets, entries),
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _resolve(self, config: ConfigSource) -> tuple[ProfileRegistry, list[InstalledKernel]]:
        if isinstance(config, Path):
            config = load_config_file(config)
        registry = ProfileRegistry.load(config)
        # Fails early if a stub would land outside the EFI system partition
        for profile in registry.profiles:
            registry.loader_path(profile)
        kernels = discover(
            registry, require_kernel_image=self.settings.require_kernel_image
        )
        return registry, kernels

    @staticmethod
    def _report(
        registry: ProfileRegistry,
        kernels: list[InstalledKernel],
        targets: list[StubTarget],
        results: list[OperationResult],
        reconcile_error: str,
    ) -> RunReport:
        by_profile = {t.profile.name: t for t in targets}
        profiles: list[ProfileReport] = []
        for name in registry.names:
            target = by_profile.get(name)
            profiles.append(
                ProfileReport(
                    profile=name,
                    kernel_version=target.kernel_version if target else None,
                    build_outcome=target.build_outcome if target else None,
                    build_error=target.error if target else "",
                    operations=[r for r in results if r.operation.profile == name],
                )
            )
        other_ops = [
            r for r in results
            if r.operation.profile is None or r.operation.profile not in registry.names
        ]

        failed = (
            bool(reconcile_error)
            or any(t.failed for t in targets)
            or any(not r.succeeded for r in results)
        )
        return RunReport(
            status=RunStatus.PARTIAL if failed else RunStatus.SUCCESS,
            profiles=profiles,
            operations=other_ops,
            unmatched_kernels=unmatched(kernels),
            reconcile_error=reconcile_error,
        )
