"""efistubmgr data models — all Pydantic v2, all frozen (immutable)."""

from efistubmgr.models.boot import (
    BootEntry,
    BootOperation,
    OperationKind,
    OperationResult,
)
from efistubmgr.models.config import StubBuildConfig
from efistubmgr.models.profiles import (
    BuildOutcome,
    BuildProfile,
    InstalledKernel,
    StubTarget,
)
from efistubmgr.models.reports import (
    CleanReport,
    ProfileReport,
    RunReport,
    RunStatus,
)

__all__ = [
    # config
    "StubBuildConfig",
    # profiles
    "BuildProfile",
    "InstalledKernel",
    "BuildOutcome",
    "StubTarget",
    # boot
    "BootEntry",
    "BootOperation",
    "OperationKind",
    "OperationResult",
    # reports
    "ProfileReport",
    "RunReport",
    "RunStatus",
    "CleanReport",
]
