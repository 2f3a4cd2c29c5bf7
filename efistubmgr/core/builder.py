"""Stub build orchestrator — build one stub per selected (profile, kernel).

A failing build is recorded on its ``StubTarget`` and never stops the other
profiles.  When builds run in parallel, ``build`` still returns only after
every build has finished, so the reconciler always sees the final outcome set.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor

from efistubmgr.backends import ImageBuilder
from efistubmgr.core.registry import ProfileRegistry
from efistubmgr.errors import BuildError
from efistubmgr.models.profiles import (
    BuildOutcome,
    BuildProfile,
    InstalledKernel,
    StubTarget,
)

logger = logging.getLogger(__name__)


class StubBuildOrchestrator:
    """Decides which stubs need (re)building and drives the image builder.

    Parameters
    ----------
    builder:
        Image builder capability.
    jobs:
        Number of builds run concurrently.  Each profile owns a distinct
        output path, so builds never share a file.
    force:
        Rebuild even when the builder reports the stub as up to date.
    """

    def __init__(self, builder: ImageBuilder, *, jobs: int = 1, force: bool = False) -> None:
        self._builder = builder
        self._jobs = max(1, jobs)
        self._force = force

    def build(
        self,
        registry: ProfileRegistry,
        selected: dict[str, InstalledKernel],
    ) -> list[StubTarget]:
        """Build stubs for *selected* kernels, returning targets in profile order."""
        work = [
            (profile, selected[profile.name])
            for profile in registry.profiles
            if profile.name in selected
        ]
        if self._jobs == 1 or len(work) < 2:
            return [self._build_one(registry, profile, kernel) for profile, kernel in work]

        with ThreadPoolExecutor(max_workers=self._jobs) as pool:
            futures = [
                pool.submit(self._build_one, registry, profile, kernel)
                for profile, kernel in work
            ]
            return [future.result() for future in futures]

    def _build_one(
        self,
        registry: ProfileRegistry,
        profile: BuildProfile,
        kernel: InstalledKernel,
    ) -> StubTarget:
        output_path = registry.output_path(profile)
        fields = {
            "profile": profile,
            "kernel_version": kernel.version,
            "modules_path": kernel.modules_path,
            "output_path": output_path,
            "loader_path": registry.loader_path(profile),
        }

        try:
            stale = self._force or self._builder.needs_rebuild(
                kernel.modules_path, output_path
            )
            if not stale:
                logger.info(
                    "Stub for %s (%s) is up to date: %s",
                    profile.name, kernel.version, output_path,
                )
                return StubTarget(
                    **fields,
                    build_outcome=BuildOutcome.SKIPPED_UP_TO_DATE,
                    stub_exists=True,
                )

            logger.info(
                "Building stub for kernel %s at %s", kernel.version, output_path.name
            )
            output_path.parent.mkdir(parents=True, exist_ok=True)
            self._builder.build_stub(kernel.modules_path, kernel.version, output_path)
        except (BuildError, OSError) as exc:
            logger.error(
                "Building stub for %s (%s) failed: %s", profile.name, kernel.version, exc
            )
            return StubTarget(
                **fields,
                build_outcome=BuildOutcome.FAILED,
                error=str(exc),
                stub_exists=output_path.exists(),
            )

        return StubTarget(
            **fields,
            build_outcome=BuildOutcome.BUILT,
            stub_exists=True,
        )
