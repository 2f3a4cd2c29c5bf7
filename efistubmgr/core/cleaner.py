"""Remove stubs and module directories that no installed kernel needs.

Two kinds of leftovers are cleaned:

- stubs of configured profiles for which no kernel is installed any more;
- module directories without a kernel image, left behind by package
  upgrades, except the one of the running kernel.
"""

from __future__ import annotations

import logging
import platform
import shutil

from efistubmgr.backends.dracut import marker_path
from efistubmgr.core.discovery import select_newest
from efistubmgr.core.registry import ProfileRegistry
from efistubmgr.models.profiles import InstalledKernel
from efistubmgr.models.reports import CleanReport

logger = logging.getLogger(__name__)


class StubCleaner:
    """Deletes stale stubs and leftover kernel module directories.

    Parameters
    ----------
    running_release:
        Release of the running kernel, never removed.  Defaults to
        ``platform.release()``.
    remove_leftovers:
        Delete module directories without a kernel image.  Only meaningful
        when discovery checked for the image; otherwise every directory is
        bootable and must be kept.
    """

    def __init__(
        self,
        *,
        running_release: str | None = None,
        remove_leftovers: bool = True,
    ) -> None:
        self._running = running_release if running_release is not None else platform.release()
        self._remove_leftovers = remove_leftovers

    def clean(
        self, registry: ProfileRegistry, kernels: list[InstalledKernel]
    ) -> CleanReport:
        selected = select_newest(registry, kernels)
        removed_stubs = []
        removed_dirs = []
        errors: list[str] = []

        for profile in registry.profiles:
            if profile.name in selected:
                continue
            stub = registry.output_path(profile)
            if not stub.exists():
                continue
            logger.info("Removing stub of uninstalled profile '%s': %s", profile.name, stub)
            try:
                stub.unlink()
                marker_path(stub).unlink(missing_ok=True)
            except OSError as exc:
                errors.append(f"{stub}: {exc}")
                logger.error("Cannot remove %s: %s", stub, exc)
            else:
                removed_stubs.append(stub)

        leftovers: list[InstalledKernel] = []
        if self._remove_leftovers:
            leftovers = [
                k for k in kernels if not k.bootable and k.version != self._running
            ]
        for kernel in leftovers:
            logger.info("Removing leftover modules directory %s", kernel.modules_path)
            try:
                shutil.rmtree(kernel.modules_path)
            except OSError as exc:
                errors.append(f"{kernel.modules_path}: {exc}")
                logger.error("Cannot remove %s: %s", kernel.modules_path, exc)
            else:
                removed_dirs.append(kernel.modules_path)

        return CleanReport(
            removed_stubs=removed_stubs,
            removed_module_dirs=removed_dirs,
            errors=errors,
        )
