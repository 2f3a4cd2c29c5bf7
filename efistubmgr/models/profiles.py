"""Profile, kernel and stub target models."""

from __future__ import annotations

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict


class BuildProfile(BaseModel):
    """A kernel flavor mapped to one stub output file."""

    model_config = ConfigDict(frozen=True)

    name: str  # e.g. "lts", matched by substring against kernel directory names
    stub_filename: str  # relative to efi_dir
    position: int = 0  # declaration order in build_mappings


class InstalledKernel(BaseModel):
    """A kernel modules directory found on disk.

    Recomputed on every run and never persisted.
    """

    model_config = ConfigDict(frozen=True)

    version: str  # directory name, e.g. "6.6.30-1-lts"
    modules_path: Path
    matched_profile: str | None = None
    bootable: bool = True  # False for leftovers without a kernel image


class BuildOutcome(str, Enum):
    """Result of one stub build attempt."""

    BUILT = "built"
    SKIPPED_UP_TO_DATE = "skipped_up_to_date"
    FAILED = "failed"


class StubTarget(BaseModel):
    """The unit the build orchestrator and the reconciler agree on."""

    model_config = ConfigDict(frozen=True)

    profile: BuildProfile
    kernel_version: str
    modules_path: Path
    output_path: Path
    loader_path: str  # firmware path, e.g. "\\EFI\\Linux\\linux-lts.efi"
    build_outcome: BuildOutcome
    error: str = ""
    stub_exists: bool = False  # a stub file is on disk after the attempt

    @property
    def failed(self) -> bool:
        return self.build_outcome == BuildOutcome.FAILED
