"""Helpers shared by the CLI commands: settings, logging and wiring."""

from __future__ import annotations

import logging
from pathlib import Path

from efistubmgr.backends import DracutImageBuilder, EfiBootMgrStore
from efistubmgr.config import StubManagerSettings
from efistubmgr.core.coordinator import RunCoordinator
from efistubmgr.core.registry import ProfileRegistry, load_config_file
from efistubmgr.errors import ConfigError

logger = logging.getLogger(__name__)


def configure_logging(settings: StubManagerSettings, *, verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else getattr(logging, settings.log_level.upper(), logging.INFO)
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def load_settings(config_path: Path | None) -> StubManagerSettings:
    settings = StubManagerSettings()
    if config_path is not None:
        settings = settings.model_copy(update={"config_path": config_path})
    return settings


def _esp_root(settings: StubManagerSettings) -> Path | None:
    # An unusable configuration aborts the run later with a proper report
    try:
        return ProfileRegistry.load(load_config_file(settings.config_path)).esp_root()
    except ConfigError as exc:
        logger.debug("ESP device detection disabled: %s", exc)
        return None


def make_coordinator(settings: StubManagerSettings, *, force: bool = False) -> RunCoordinator:
    """Wire the coordinator to dracut and efibootmgr.

    Without an explicit ``esp_disk`` the ESP device is detected from the
    mount point of the configured ESP.
    """
    builder = DracutImageBuilder(
        settings.dracut_binary,
        settings.uefi_stub,
        timeout_seconds=settings.command_timeout_seconds,
    )
    store = EfiBootMgrStore(
        settings.efibootmgr_binary,
        disk=settings.esp_disk,
        partition=settings.esp_partition,
        esp_root=None if settings.esp_disk else _esp_root(settings),
        timeout_seconds=settings.command_timeout_seconds,
    )
    return RunCoordinator(builder, store, settings=settings, force=force)
