"""Pluggable backends for the two external capabilities the engine drives.

Defines the ``ImageBuilder`` and ``FirmwareBootStore`` Protocols, along with
their implementations:

1. **dracut** / **efibootmgr** — the real system tools, run as subprocesses.
2. **In-memory** — ``InMemoryImageBuilder`` / ``InMemoryBootStore`` for tests.
3. **Custom backends** — any object satisfying the Protocol.
"""

from __future__ import annotations

from pathlib import Path
from typing import Protocol, runtime_checkable

from efistubmgr.models.boot import BootEntry


@runtime_checkable
class ImageBuilder(Protocol):
    """Protocol for stub image builders."""

    def build_stub(self, modules_path: Path, kernel_version: str, output_path: Path) -> None:
        """Build the stub for *kernel_version* at *output_path*.

        Raises
        ------
        BuildError
            If the stub could not be produced.
        """
        ...

    def needs_rebuild(self, modules_path: Path, output_path: Path) -> bool:
        """Return ``True`` if the stub at *output_path* is missing or stale."""
        ...


@runtime_checkable
class FirmwareBootStore(Protocol):
    """Protocol for reading and writing firmware boot entries.

    Every mutating method raises ``FirmwareError`` on failure.  Callers must
    not issue concurrent calls.
    """

    def list_entries(self) -> list[BootEntry]:
        """Return a snapshot of all boot entries with their order positions."""
        ...

    def add_entry(self, label: str, loader_path: str) -> str:
        """Create a boot entry and return its firmware id."""
        ...

    def update_entry(self, entry_id: str, label: str, loader_path: str) -> None:
        """Rewrite an existing entry in place, keeping its id."""
        ...

    def remove_entry(self, entry_id: str) -> None:
        """Delete an entry and drop it from the boot order."""
        ...

    def set_order(self, entry_ids: list[str]) -> None:
        """Replace the firmware boot order."""
        ...


from efistubmgr.backends.dracut import DracutImageBuilder  # noqa: E402
from efistubmgr.backends.efibootmgr import EfiBootMgrStore  # noqa: E402
from efistubmgr.backends.memory import InMemoryBootStore, InMemoryImageBuilder  # noqa: E402

__all__ = [
    "ImageBuilder",
    "FirmwareBootStore",
    "DracutImageBuilder",
    "EfiBootMgrStore",
    "InMemoryImageBuilder",
    "InMemoryBootStore",
]
