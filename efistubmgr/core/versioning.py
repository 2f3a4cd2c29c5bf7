"""Kernel version ordering.

Kernel module directories carry names such as ``6.6.30-1-lts``,
``6.9.1-zen1-1-zen`` or ``5.10-lts``.  The comparison key combines the
numeric release (``X.Y`` or ``X.Y.Z``) with the first ``-N`` package revision
into a ``packaging`` version, so ``6.6.30-2-lts`` sorts above
``6.6.30-1-lts`` and ``6.10.1`` above ``6.9.12``.  Names that contain no
release sort as ``0``; ties are broken by the plain directory name.
"""

from __future__ import annotations

import re

from packaging.version import Version

_RELEASE_RE = re.compile(r"(\d+)\.(\d+)(?:\.(\d+))?")
_REVISION_RE = re.compile(r"-(\d+)")


def parse_kernel_version(name: str) -> Version:
    """Extract a comparable version from a kernel directory name."""
    release = _RELEASE_RE.search(name)
    if release is None:
        return Version("0")
    major, minor, patch = release.group(1), release.group(2), release.group(3) or "0"
    revision = _REVISION_RE.search(name, release.end())
    rev = revision.group(1) if revision else "0"
    return Version(f"{int(major)}.{int(minor)}.{int(patch)}.{int(rev)}")


def version_key(name: str) -> tuple[Version, str]:
    """Sort key for kernel directory names, highest version last."""
    return parse_kernel_version(name), name


def newest(names: list[str]) -> str:
    """Return the highest version among *names*."""
    if not names:
        raise ValueError("newest() needs at least one kernel version")
    return max(names, key=version_key)
