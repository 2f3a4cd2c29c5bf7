"""Error taxonomy for efistubmgr.

Two families of errors exist:

- **Fatal** — ``ConfigError`` and ``DiscoveryError``.  They abort a run before
  anything on disk or in NVRAM is touched.
- **Isolated** — ``BuildError`` (per stub target) and ``FirmwareError`` (per
  boot-entry operation).  They are captured in the run report and never stop
  unrelated work.
"""

from __future__ import annotations


class StubManagerError(RuntimeError):
    """Base class for every error raised by efistubmgr."""


# ---------------------------------------------------------------------------
# Fatal
# ---------------------------------------------------------------------------


class ConfigError(StubManagerError):
    """Raised when the stub build configuration cannot be used."""


class EmptyMappingsError(ConfigError):
    """Raised when ``build_mappings`` contains no profile."""


class DuplicateStubFilenameError(ConfigError):
    """Raised when two profiles would write the same stub file."""

    def __init__(self, stub_filename: str, profiles: list[str]) -> None:
        self.stub_filename = stub_filename
        self.profiles = profiles
        super().__init__(
            f"Profiles {', '.join(profiles)} share stub filename '{stub_filename}'."
        )


class InvalidConfigError(ConfigError):
    """Raised for malformed or missing configuration values."""


class DiscoveryError(StubManagerError):
    """Raised when installed kernels cannot be resolved reliably."""


class RootUnreadableError(DiscoveryError):
    """Raised when the kernel modules root cannot be listed."""

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot read kernel modules directory {path}: {reason}")


class AmbiguousMatchError(DiscoveryError):
    """Raised when one kernel directory matches more than one profile."""

    def __init__(self, version: str, profiles: list[str]) -> None:
        self.version = version
        self.profiles = profiles
        super().__init__(
            f"Kernel '{version}' matches several profiles: {', '.join(profiles)}. "
            "Rename a profile so each kernel matches at most one."
        )


# ---------------------------------------------------------------------------
# Isolated
# ---------------------------------------------------------------------------


class BuildError(StubManagerError):
    """Raised by an image builder when a stub could not be produced."""


class FirmwareError(StubManagerError):
    """Raised by a firmware boot store when an NVRAM operation fails."""
