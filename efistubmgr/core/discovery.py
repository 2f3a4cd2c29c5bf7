"""Kernel discovery — match installed module directories to profiles.

Every immediate subdirectory of ``kernel_modules_dir`` is a candidate kernel.
A profile matches a directory when the profile name is contained in the
directory name (``lts`` matches ``6.6.30-1-lts``).  A directory matching no
profile is ignored; a directory matching several profiles is a configuration
ambiguity and aborts discovery instead of guessing.
"""

from __future__ import annotations

import logging
from pathlib import Path

from efistubmgr.core.registry import ProfileRegistry
from efistubmgr.core.versioning import version_key
from efistubmgr.errors import AmbiguousMatchError, RootUnreadableError
from efistubmgr.models.profiles import InstalledKernel

logger = logging.getLogger(__name__)

KERNEL_IMAGE_NAME = "vmlinuz"


def is_valid_installation(modules_path: Path) -> bool:
    """Return True if *modules_path* holds a kernel image.

    Package upgrades and removals leave module directories behind (for
    example ones only containing out-of-tree modules); those cannot be built.
    """
    return (modules_path / KERNEL_IMAGE_NAME).exists()


def discover(
    registry: ProfileRegistry,
    *,
    require_kernel_image: bool = True,
) -> list[InstalledKernel]:
    """List installed kernels, ordered by ascending version.

    Raises
    ------
    RootUnreadableError
        If ``kernel_modules_dir`` is missing or cannot be listed.
    AmbiguousMatchError
        If a buildable kernel matches more than one profile.
    """
    root = registry.kernel_modules_dir
    try:
        candidates = [entry for entry in root.iterdir() if entry.is_dir()]
    except FileNotFoundError as exc:
        raise RootUnreadableError(str(root), "no such directory") from exc
    except NotADirectoryError as exc:
        raise RootUnreadableError(str(root), "not a directory") from exc
    except OSError as exc:
        raise RootUnreadableError(str(root), exc.strerror or str(exc)) from exc

    kernels: list[InstalledKernel] = []
    for modules_path in sorted(candidates, key=lambda p: version_key(p.name)):
        version = modules_path.name
        bootable = not require_kernel_image or is_valid_installation(modules_path)
        if not bootable:
            logger.info("Skipping %s: no kernel image installed", version)
            kernels.append(
                InstalledKernel(version=version, modules_path=modules_path, bootable=False)
            )
            continue

        matches = [name for name in registry.names if name in version]
        if len(matches) > 1:
            raise AmbiguousMatchError(version, matches)
        if not matches:
            logger.info("Kernel %s matches no profile, ignoring", version)

        kernels.append(
            InstalledKernel(
                version=version,
                modules_path=modules_path,
                matched_profile=matches[0] if matches else None,
            )
        )
    return kernels


def select_newest(
    registry: ProfileRegistry,
    kernels: list[InstalledKernel],
) -> dict[str, InstalledKernel]:
    """Pick the highest-version kernel per profile, in profile order.

    Profiles without any matching kernel are absent from the result.
    """
    selected: dict[str, InstalledKernel] = {}
    for name in registry.names:
        matching = [k for k in kernels if k.bootable and k.matched_profile == name]
        if not matching:
            logger.info("No installed kernel for profile '%s'", name)
            continue
        chosen = max(matching, key=lambda k: version_key(k.version))
        if len(matching) > 1:
            logger.info(
                "Profile '%s': selected %s out of %s",
                name,
                chosen.version,
                ", ".join(k.version for k in matching),
            )
        selected[name] = chosen
    return selected


def unmatched(kernels: list[InstalledKernel]) -> list[str]:
    """Versions of buildable kernels that matched no profile."""
    return [k.version for k in kernels if k.bootable and k.matched_profile is None]
