"""In-memory capability backends for tests.

``InMemoryBootStore`` behaves like NVRAM (ids, boot order, removal drops the
id from the order) and can be told to fail specific operations.
``InMemoryImageBuilder`` writes a small marker file instead of a real image.
"""

from __future__ import annotations

from pathlib import Path

from efistubmgr.backends.efibootmgr import next_free_boot_id
from efistubmgr.errors import BuildError, FirmwareError
from efistubmgr.models.boot import BootEntry

STUB_MAGIC = "efistub:"


class InMemoryImageBuilder:
    """Fake builder: the stub file contains ``efistub:<version>``.

    Parameters
    ----------
    failing_versions:
        Kernel versions for which ``build_stub`` raises ``BuildError``.
    """

    def __init__(self, failing_versions: set[str] | None = None) -> None:
        self.failing_versions: set[str] = set(failing_versions or ())
        self.builds: list[tuple[Path, str, Path]] = []

    def build_stub(self, modules_path: Path, kernel_version: str, output_path: Path) -> None:
        self.builds.append((modules_path, kernel_version, output_path))
        if kernel_version in self.failing_versions:
            raise BuildError(f"simulated build failure for {kernel_version}")
        output_path.write_text(STUB_MAGIC + kernel_version, encoding="utf-8")

    def needs_rebuild(self, modules_path: Path, output_path: Path) -> bool:
        try:
            content = output_path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return True
        return content != STUB_MAGIC + modules_path.name


class InMemoryBootStore:
    """Fake firmware boot store.

    Parameters
    ----------
    entries:
        Initial entries.  Their ``boot_order_position`` seeds the boot order.
    """

    def __init__(self, entries: list[BootEntry] | None = None) -> None:
        self._entries: dict[str, BootEntry] = {}
        self.order: list[str] = []
        self.calls: list[tuple[str, ...]] = []
        self._failures: list[tuple[str, str | None]] = []

        positioned = []
        for entry in entries or []:
            self._entries[entry.entry_id] = entry.model_copy(
                update={"boot_order_position": None}
            )
            if entry.boot_order_position is not None:
                positioned.append(entry)
        self.order = [
            e.entry_id for e in sorted(positioned, key=lambda e: e.boot_order_position)
        ]

    # ------------------------------------------------------------------
    # Fault injection
    # ------------------------------------------------------------------

    def fail_on(self, method: str, match: str | None = None) -> None:
        """Make *method* raise ``FirmwareError``.

        With *match*, only calls whose entry id or label contains it fail.
        """
        self._failures.append((method, match))

    def _check(self, method: str, *subjects: str) -> None:
        for failing, match in self._failures:
            if failing != method:
                continue
            if match is None or any(match in s for s in subjects):
                raise FirmwareError(f"simulated NVRAM failure in {method}")

    # ------------------------------------------------------------------
    # FirmwareBootStore
    # ------------------------------------------------------------------

    def list_entries(self) -> list[BootEntry]:
        self.calls.append(("list_entries",))
        self._check("list_entries")
        return [
            entry.model_copy(
                update={
                    "boot_order_position": (
                        self.order.index(entry_id) if entry_id in self.order else None
                    )
                }
            )
            for entry_id, entry in sorted(self._entries.items())
        ]

    def add_entry(self, label: str, loader_path: str) -> str:
        self.calls.append(("add_entry", label, loader_path))
        self._check("add_entry", label, loader_path)
        entry_id = next_free_boot_id(self._entries)
        self._entries[entry_id] = BootEntry(
            entry_id=entry_id, label=label, loader_path=loader_path
        )
        # Like efibootmgr --create, new entries boot first
        self.order.insert(0, entry_id)
        return entry_id

    def update_entry(self, entry_id: str, label: str, loader_path: str) -> None:
        self.calls.append(("update_entry", entry_id, label, loader_path))
        self._check("update_entry", entry_id, label)
        if entry_id not in self._entries:
            raise FirmwareError(f"Boot{entry_id} does not exist")
        self._entries[entry_id] = BootEntry(
            entry_id=entry_id, label=label, loader_path=loader_path
        )

    def remove_entry(self, entry_id: str) -> None:
        self.calls.append(("remove_entry", entry_id))
        label = self._entries[entry_id].label if entry_id in self._entries else ""
        self._check("remove_entry", entry_id, label)
        if entry_id not in self._entries:
            raise FirmwareError(f"Boot{entry_id} does not exist")
        del self._entries[entry_id]
        if entry_id in self.order:
            self.order.remove(entry_id)

    def set_order(self, entry_ids: list[str]) -> None:
        self.calls.append(("set_order", *entry_ids))
        self._check("set_order", *entry_ids)
        unknown = [i for i in entry_ids if i not in self._entries]
        if unknown:
            raise FirmwareError(f"Unknown boot entries in order: {', '.join(unknown)}")
        self.order = list(entry_ids)

    # ------------------------------------------------------------------
    # Inspection helpers
    # ------------------------------------------------------------------

    def entry(self, entry_id: str) -> BootEntry:
        return self._entries[entry_id]

    def labels_in_order(self) -> list[str]:
        return [self._entries[i].label for i in self.order]

    @property
    def mutation_count(self) -> int:
        return sum(1 for call in self.calls if call[0] != "list_entries")
