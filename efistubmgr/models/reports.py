"""Run and clean report models — what the CLI renders and exits on."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from efistubmgr.models.boot import OperationResult
from efistubmgr.models.profiles import BuildOutcome


class RunStatus(str, Enum):
    """Overall result of a run.

    ``ABORTED`` means nothing was changed.  ``PARTIAL`` means some changes
    were applied and some failed.
    """

    SUCCESS = "success"
    PARTIAL = "partial"
    ABORTED = "aborted"


class ProfileReport(BaseModel):
    """Per-profile summary: the build and the boot entry operations."""

    model_config = ConfigDict(frozen=True)

    profile: str
    kernel_version: str | None = None  # None when no kernel matched
    build_outcome: BuildOutcome | None = None
    build_error: str = ""
    operations: list[OperationResult] = []

    @property
    def failed(self) -> bool:
        return self.build_outcome == BuildOutcome.FAILED or any(
            not op.succeeded for op in self.operations
        )


class RunReport(BaseModel):
    """Consolidated result of one ``RunCoordinator.run`` call."""

    model_config = ConfigDict(frozen=True)

    status: RunStatus
    fatal_error: str = ""
    profiles: list[ProfileReport] = []
    # Operations not tied to a configured profile (orphan removals, reorder)
    operations: list[OperationResult] = []
    unmatched_kernels: list[str] = []
    reconcile_error: str = ""
    finished_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )

    @property
    def changed_nothing(self) -> bool:
        return self.status == RunStatus.ABORTED

    @property
    def all_operations(self) -> list[OperationResult]:
        ops = [op for p in self.profiles for op in p.operations]
        return ops + list(self.operations)

    @property
    def exit_code(self) -> int:
        if self.status == RunStatus.ABORTED:
            return 2
        if self.status == RunStatus.PARTIAL:
            return 1
        return 0


class CleanReport(BaseModel):
    """Result of removing stale stubs and leftover module directories."""

    model_config = ConfigDict(frozen=True)

    removed_stubs: list[Path] = []
    removed_module_dirs: list[Path] = []
    errors: list[str] = []

    @property
    def already_clean(self) -> bool:
        return not (self.removed_stubs or self.removed_module_dirs or self.errors)
