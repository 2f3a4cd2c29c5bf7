"""efibootmgr firmware boot store.

Reads and writes NVRAM boot entries through the ``efibootmgr`` command.
Typical verbose output::

    BootCurrent: 0001
    Timeout: 1 seconds
    BootOrder: 0001,0000,0004
    Boot0000* Windows Boot Manager	HD(1,GPT,...)/File(\\EFI\\Microsoft\\Boot\\bootmgfw.efi)
    Boot0001* efistub:lts (6.6.30-1-lts)	HD(1,GPT,...)/File(\\EFI\\Linux\\linux-lts.efi)
    Boot0004  UEFI: PXE IPv4	PciRoot(0x0)/Pci(0x1c,0x0)/MAC(...)

Newer releases print the file path without the ``File(...)`` wrapper; both
forms are understood.
"""

from __future__ import annotations

import logging
import re
import subprocess
from collections.abc import Iterable
from pathlib import Path

from efistubmgr.errors import FirmwareError
from efistubmgr.models.boot import BootEntry

logger = logging.getLogger(__name__)

_BOOT_ORDER_RE = re.compile(r"^BootOrder:\s*(?P<order>[0-9A-Fa-f,]*)\s*$", re.MULTILINE)
_ENTRY_RE = re.compile(
    r"^Boot(?P<id>[0-9A-Fa-f]{4})(?P<active>\*?)\s+(?P<rest>.*)$", re.MULTILINE
)
_LOADER_RE = re.compile(r"(?:File\(|\)/)(?P<path>\\[^)\t]*)")


def next_free_boot_id(used: Iterable[str]) -> str:
    """Return the lowest boot number not in *used*, as 4 hex digits.

    >>> next_free_boot_id(["0000", "0002"])
    '0001'
    """
    taken = {int(entry_id, 16) for entry_id in used}
    candidate = 0
    while candidate in taken:
        candidate += 1
    if candidate > 0xFFFF:
        raise FirmwareError("No free boot number left")
    return f"{candidate:04X}"


def parse_efibootmgr_output(output: str) -> tuple[list[BootEntry], list[str]]:
    """Parse ``efibootmgr -v`` output into entries and the boot order."""
    order_match = _BOOT_ORDER_RE.search(output)
    order = [
        item.upper() for item in (order_match.group("order").split(",") if order_match else [])
        if item
    ]

    entries: list[BootEntry] = []
    for match in _ENTRY_RE.finditer(output):
        entry_id = match.group("id").upper()
        label, _, device_path = match.group("rest").partition("\t")
        loader = _LOADER_RE.search(device_path)
        entries.append(
            BootEntry(
                entry_id=entry_id,
                label=label.strip(),
                loader_path=loader.group("path").strip() if loader else "",
                boot_order_position=order.index(entry_id) if entry_id in order else None,
                active=bool(match.group("active")),
            )
        )
    return entries, order


def detect_esp_device(
    esp_root: Path,
    *,
    sysfs_block: Path = Path("/sys/class/block"),
    timeout_seconds: int = 60,
) -> tuple[str, int]:
    """Return the disk and partition number the ESP at *esp_root* lives on.

    The mount source comes from ``findmnt``; the partition number and parent
    disk are read from sysfs, which also covers ``nvme0n1p1``-style names.
    """
    cmd = ["findmnt", "-rno", "SOURCE", str(esp_root)]
    try:
        result = subprocess.run(cmd, capture_output=True, text=True, timeout=timeout_seconds)
    except (subprocess.TimeoutExpired, OSError) as exc:
        raise FirmwareError(f"Cannot determine the device of {esp_root}: {exc}") from exc
    source = result.stdout.strip().splitlines()[0] if result.stdout.strip() else ""
    if result.returncode != 0 or not source.startswith("/dev/"):
        raise FirmwareError(f"{esp_root} is not mounted from a block device")

    name = Path(source).name
    try:
        partition = int((sysfs_block / name / "partition").read_text(encoding="utf-8"))
        disk = (sysfs_block / name).resolve().parent.name
    except (OSError, ValueError) as exc:
        raise FirmwareError(f"{source} is not a disk partition: {exc}") from exc
    logger.debug("ESP %s is partition %d of /dev/%s", esp_root, partition, disk)
    return f"/dev/{disk}", partition


class EfiBootMgrStore:
    """Firmware boot store backed by the ``efibootmgr`` command.

    Parameters
    ----------
    binary:
        Name or path of the efibootmgr executable.
    disk:
        Disk holding the EFI system partition, e.g. ``/dev/nvme0n1``.
        efibootmgr's own default is used when empty.
    partition:
        Partition number of the ESP on *disk*.
    esp_root:
        Mount point of the ESP.  When *disk* is empty the disk and partition
        are detected from it the first time an entry is created.
    """

    def __init__(
        self,
        binary: str = "efibootmgr",
        *,
        disk: str = "",
        partition: int | None = None,
        esp_root: Path | None = None,
        timeout_seconds: int = 60,
    ) -> None:
        self.binary = binary
        self.disk = disk
        self.partition = partition
        self.esp_root = esp_root
        self.timeout_seconds = timeout_seconds

    def _run(self, *args: str) -> str:
        cmd = [self.binary, *args]
        logger.debug("Running %s", " ".join(cmd))
        try:
            result = subprocess.run(
                cmd, capture_output=True, text=True, timeout=self.timeout_seconds
            )
        except subprocess.TimeoutExpired as exc:
            raise FirmwareError(f"{self.binary} timed out") from exc
        except OSError as exc:
            raise FirmwareError(f"Cannot run {self.binary}: {exc}") from exc
        if result.returncode != 0:
            raise FirmwareError(
                f"{' '.join(cmd)} failed with status {result.returncode}: "
                f"{result.stderr.strip() or result.stdout.strip()}"
            )
        return result.stdout

    def _snapshot(self) -> tuple[list[BootEntry], list[str]]:
        return parse_efibootmgr_output(self._run("--verbose"))

    def _device_args(self) -> list[str]:
        if not self.disk and self.esp_root is not None:
            self.disk, self.partition = detect_esp_device(
                self.esp_root, timeout_seconds=self.timeout_seconds
            )
        args: list[str] = []
        if self.disk:
            args += ["--disk", self.disk]
        if self.partition is not None:
            args += ["--part", str(self.partition)]
        return args

    def _create(self, entry_id: str, label: str, loader_path: str) -> None:
        args = ["--create", "--bootnum", entry_id, "--label", label, "--loader", loader_path]
        self._run(*args, *self._device_args())

    # ------------------------------------------------------------------
    # FirmwareBootStore
    # ------------------------------------------------------------------

    def list_entries(self) -> list[BootEntry]:
        entries, _ = self._snapshot()
        return entries

    def add_entry(self, label: str, loader_path: str) -> str:
        entries, _ = self._snapshot()
        entry_id = next_free_boot_id(e.entry_id for e in entries)
        self._create(entry_id, label, loader_path)
        return entry_id

    def update_entry(self, entry_id: str, label: str, loader_path: str) -> None:
        # efibootmgr cannot relabel; recreate under the same number and
        # restore the order, since --create moves the entry to the front
        _, order = self._snapshot()
        self._device_args()  # fail before the old entry is gone
        self._run("--bootnum", entry_id, "--delete-bootnum")
        self._create(entry_id, label, loader_path)
        if order:
            self.set_order(order)

    def remove_entry(self, entry_id: str) -> None:
        self._run("--bootnum", entry_id, "--delete-bootnum")

    def set_order(self, entry_ids: list[str]) -> None:
        if entry_ids:
            self._run("--bootorder", ",".join(entry_ids))
        else:
            self._run("--delete-bootorder")
