"""Stub build configuration model.

Loaded from ``/etc/dracut-efi-manager.toml``::

    kernel_modules_dir = "/usr/lib/modules"
    efi_dir = "/boot/efi/EFI/Linux"

    [build_mappings]
    lts = "linux-lts.efi"
    zen = "linux-zen.efi"
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class StubBuildConfig(BaseModel):
    """Declarative configuration for one run.

    ``build_mappings`` maps a profile name to the stub filename written below
    ``efi_dir``.  Key order is the profile order used for the boot menu.
    """

    model_config = ConfigDict(frozen=True)

    kernel_modules_dir: str
    efi_dir: str
    build_mappings: dict[str, str] = {}
    esp_dir: str | None = None  # ESP mount point; nearest mount above efi_dir if unset
