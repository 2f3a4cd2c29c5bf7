"""dracut image builder — produces unified kernel images with ``--uefi``."""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path

from efistubmgr.errors import BuildError

logger = logging.getLogger(__name__)

# Files whose change means the stub must be rebuilt
_FRESHNESS_INPUTS = ("vmlinuz", "modules.dep", "modules.order")

MARKER_SUFFIX = ".kver"


def marker_path(output_path: Path) -> Path:
    return output_path.with_name(output_path.name + MARKER_SUFFIX)


class DracutImageBuilder:
    """Runs ``dracut --force --uefi`` for one kernel version.

    A stub is considered stale when it is missing, was built for another
    kernel version (recorded in a ``<stub>.kver`` marker next to it) or is
    older than the kernel's modules directory or any of its key files.

    Parameters
    ----------
    dracut_binary:
        Name or path of the dracut executable.
    uefi_stub:
        systemd-boot EFI stub linked into the image.
    timeout_seconds:
        Upper bound for one dracut invocation.
    """

    def __init__(
        self,
        dracut_binary: str = "dracut",
        uefi_stub: Path = Path("/usr/lib/systemd/boot/efi/linuxx64.efi.stub"),
        *,
        timeout_seconds: int = 600,
    ) -> None:
        self.dracut_binary = dracut_binary
        self.uefi_stub = uefi_stub
        self.timeout_seconds = timeout_seconds

    def command(self, kernel_version: str, output_path: Path) -> list[str]:
        return [
            self.dracut_binary,
            "--force",
            "--uefi",
            "--uefi-stub",
            str(self.uefi_stub),
            str(output_path),
            "--kver",
            kernel_version,
        ]

    def build_stub(self, modules_path: Path, kernel_version: str, output_path: Path) -> None:
        cmd = self.command(kernel_version, output_path)
        logger.debug("Running %s", " ".join(cmd))
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=self.timeout_seconds,
            )
        except subprocess.TimeoutExpired as exc:
            raise BuildError(
                f"dracut timed out after {self.timeout_seconds}s for {kernel_version}"
            ) from exc
        except OSError as exc:
            raise BuildError(f"Cannot run {self.dracut_binary}: {exc}") from exc

        if result.returncode != 0:
            detail = (result.stderr or result.stdout).strip().splitlines()
            raise BuildError(
                f"dracut exited with status {result.returncode} for {kernel_version}"
                + (f": {detail[-1]}" if detail else "")
            )
        if not output_path.exists():
            raise BuildError(f"dracut reported success but {output_path} was not written")
        marker_path(output_path).write_text(kernel_version + "\n", encoding="utf-8")

    def needs_rebuild(self, modules_path: Path, output_path: Path) -> bool:
        try:
            stub_mtime = output_path.stat().st_mtime_ns
        except FileNotFoundError:
            return True

        try:
            built_for = marker_path(output_path).read_text(encoding="utf-8").strip()
        except FileNotFoundError:
            return True
        if built_for != modules_path.name:
            logger.debug("%s was built for %s", output_path, built_for)
            return True

        inputs = [modules_path] + [modules_path / name for name in _FRESHNESS_INPUTS]
        for path in inputs:
            try:
                if path.stat().st_mtime_ns > stub_mtime:
                    logger.debug("%s is newer than %s", path, output_path)
                    return True
            except FileNotFoundError:
                continue
        return False
