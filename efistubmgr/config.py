"""Runtime settings — env-driven via pydantic-settings.

The stub build configuration itself (kernel directory, EFI directory and the
profile mappings) lives in a TOML file; these settings only say where that
file is and how the external tools are driven.

Override via environment::

    export EFISTUBMGR_CONFIG_PATH=/etc/dracut-efi-manager.toml
    export EFISTUBMGR_LOG_LEVEL=DEBUG
    export EFISTUBMGR_ESP_DISK=/dev/nvme0n1
    export EFISTUBMGR_ESP_PARTITION=1
"""

from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_CONFIG_PATH = Path("/etc/dracut-efi-manager.toml")


class StubManagerSettings(BaseSettings):
    """Settings with ``EFISTUBMGR_*`` environment overrides."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="EFISTUBMGR_",
        env_file_encoding="utf-8",
    )

    config_path: Path = DEFAULT_CONFIG_PATH
    log_level: str = "INFO"

    # Boot entries whose label starts with this prefix belong to us
    label_prefix: str = "efistub:"

    # dracut
    dracut_binary: str = "dracut"
    uefi_stub: Path = Path("/usr/lib/systemd/boot/efi/linuxx64.efi.stub")
    build_jobs: int = 1
    require_kernel_image: bool = True

    # efibootmgr
    efibootmgr_binary: str = "efibootmgr"
    esp_disk: str = ""
    esp_partition: int | None = None

    command_timeout_seconds: int = 600
