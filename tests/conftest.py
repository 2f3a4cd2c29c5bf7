"""Shared test fixtures for efistubmgr."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from efistubmgr.backends import InMemoryBootStore, InMemoryImageBuilder
from efistubmgr.config import StubManagerSettings
from efistubmgr.models.boot import BootEntry
from efistubmgr.models.profiles import BuildOutcome, BuildProfile, StubTarget


@pytest.fixture
def modules_dir(tmp_path: Path) -> Path:
    """Provide an empty kernel modules root."""
    path = tmp_path / "modules"
    path.mkdir()
    return path


@pytest.fixture
def esp_dir(tmp_path: Path) -> Path:
    """Provide the mount point of a fake EFI system partition."""
    path = tmp_path / "esp"
    path.mkdir()
    return path


@pytest.fixture
def efi_dir(esp_dir: Path) -> Path:
    """Provide the stub output directory on the fake ESP (not created)."""
    return esp_dir / "EFI" / "Linux"


@pytest.fixture
def install_kernel(modules_dir: Path) -> Callable[..., Path]:
    """Factory fixture: create a kernel modules directory.

    With ``image=False`` the directory has no ``vmlinuz``, like the leftovers
    package upgrades leave behind.
    """

    def _factory(version: str, *, image: bool = True) -> Path:
        path = modules_dir / version
        path.mkdir()
        if image:
            (path / "vmlinuz").write_bytes(b"MZ")
        return path

    return _factory


@pytest.fixture
def make_config(
    modules_dir: Path, efi_dir: Path, esp_dir: Path
) -> Callable[..., dict[str, Any]]:
    """Factory fixture: build a configuration mapping for the fake layout."""

    def _factory(mappings: dict[str, str] | None = None, **overrides: Any) -> dict[str, Any]:
        config: dict[str, Any] = {
            "kernel_modules_dir": str(modules_dir),
            "efi_dir": str(efi_dir),
            "esp_dir": str(esp_dir),
            "build_mappings": (
                mappings if mappings is not None else {"lts": "linux-lts.efi"}
            ),
        }
        config.update(overrides)
        return config

    return _factory


@pytest.fixture
def write_config(tmp_path: Path, modules_dir: Path, efi_dir: Path, esp_dir: Path) -> Callable[..., Path]:
    """Factory fixture: write a TOML configuration file and return its path."""

    def _factory(mappings: dict[str, str]) -> Path:
        lines = [
            f'kernel_modules_dir = "{modules_dir}"',
            f'efi_dir = "{efi_dir}"',
            f'esp_dir = "{esp_dir}"',
            "",
            "[build_mappings]",
        ]
        lines += [f'{name} = "{stub}"' for name, stub in mappings.items()]
        path = tmp_path / "dracut-efi-manager.toml"
        path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        return path

    return _factory


@pytest.fixture
def settings() -> StubManagerSettings:
    """Provide settings independent of the caller's environment."""
    return StubManagerSettings(_env_file=None)


@pytest.fixture
def image_builder() -> InMemoryImageBuilder:
    return InMemoryImageBuilder()


@pytest.fixture
def boot_store() -> InMemoryBootStore:
    return InMemoryBootStore()


# ---------------------------------------------------------------------------
# Reconciler factories: targets and entries without touching the disk
# ---------------------------------------------------------------------------


@pytest.fixture
def make_target() -> Callable[..., StubTarget]:
    """Factory fixture: build a StubTarget with sensible defaults."""

    def _factory(
        name: str = "lts",
        version: str = "6.6.30-1-lts",
        *,
        position: int = 0,
        outcome: BuildOutcome = BuildOutcome.BUILT,
        stub_exists: bool = True,
        **overrides: Any,
    ) -> StubTarget:
        stub = f"linux-{name}.efi"
        defaults: dict[str, Any] = {
            "profile": BuildProfile(name=name, stub_filename=stub, position=position),
            "kernel_version": version,
            "modules_path": Path("/usr/lib/modules") / version,
            "output_path": Path("/boot/efi/EFI/Linux") / stub,
            "loader_path": f"\\EFI\\Linux\\{stub}",
            "build_outcome": outcome,
            "error": "dracut failed" if outcome == BuildOutcome.FAILED else "",
            "stub_exists": stub_exists,
        }
        defaults.update(overrides)
        return StubTarget(**defaults)

    return _factory


@pytest.fixture
def foreign_entries() -> list[BootEntry]:
    """Boot entries the tool does not own, in boot order."""
    return [
        BootEntry(
            entry_id="0000",
            label="Windows Boot Manager",
            loader_path="\\EFI\\Microsoft\\Boot\\bootmgfw.efi",
            boot_order_position=0,
        ),
        BootEntry(
            entry_id="0003",
            label="UEFI: PXE IPv4",
            boot_order_position=1,
        ),
    ]
