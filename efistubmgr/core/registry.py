"""Profile registry — parsed and validated stub build configuration.

``ProfileRegistry.load`` is pure: it validates the configuration and builds
immutable ``BuildProfile`` records without touching the filesystem.  Reading
the TOML file is a separate step (``load_config_file``) so that callers and
tests can hand in configuration from anywhere.
"""

from __future__ import annotations

import logging
import os
import tomllib
from collections.abc import Mapping
from pathlib import Path, PurePosixPath
from typing import Any

from pydantic import ValidationError

from efistubmgr.errors import (
    DuplicateStubFilenameError,
    EmptyMappingsError,
    InvalidConfigError,
)
from efistubmgr.models.config import StubBuildConfig
from efistubmgr.models.profiles import BuildProfile

logger = logging.getLogger(__name__)


def load_config_file(path: Path) -> StubBuildConfig:
    """Read and parse the TOML configuration file at *path*.

    Raises
    ------
    InvalidConfigError
        If the file is missing, unreadable, not valid TOML or does not match
        the configuration schema.
    """
    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise InvalidConfigError(f"Build configuration not found at {path}") from exc
    except OSError as exc:
        raise InvalidConfigError(f"Cannot read build configuration {path}: {exc}") from exc
    except tomllib.TOMLDecodeError as exc:
        raise InvalidConfigError(f"Malformed build configuration {path}: {exc}") from exc

    return _parse_config(data, source=str(path))


def _parse_config(data: Mapping[str, Any], *, source: str) -> StubBuildConfig:
    try:
        return StubBuildConfig.model_validate(dict(data))
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()
        )
        raise InvalidConfigError(f"Invalid build configuration ({source}): {problems}") from exc


def loader_path_for(output_path: Path, esp_root: Path) -> str:
    """Return the firmware loader path of *output_path* on the ESP.

    >>> loader_path_for(Path("/boot/efi/EFI/Linux/lts.efi"), Path("/boot/efi"))
    '\\\\EFI\\\\Linux\\\\lts.efi'
    """
    try:
        relative = output_path.relative_to(esp_root)
    except ValueError as exc:
        raise InvalidConfigError(
            f"Stub {output_path} is not located on the EFI system partition {esp_root}"
        ) from exc
    return "\\" + "\\".join(relative.parts)


def find_mount_point(path: Path) -> Path:
    """Return the nearest mount point at or above *path*."""
    current = path.absolute()
    while not current.exists() and current != current.parent:
        current = current.parent
    while not os.path.ismount(current) and current != current.parent:
        current = current.parent
    return current


class ProfileRegistry:
    """Immutable view of the configured build profiles.

    Parameters
    ----------
    kernel_modules_dir:
        Root containing one subdirectory per installed kernel.
    efi_dir:
        Directory the stubs are written to.
    profiles:
        Profiles in configuration order.
    esp_dir:
        Mount point of the EFI system partition.  When ``None`` the nearest
        mount point above ``efi_dir`` is used.
    """

    def __init__(
        self,
        kernel_modules_dir: Path,
        efi_dir: Path,
        profiles: tuple[BuildProfile, ...],
        *,
        esp_dir: Path | None = None,
    ) -> None:
        self.kernel_modules_dir = kernel_modules_dir
        self.efi_dir = efi_dir
        self.profiles = profiles
        self._esp_dir = esp_dir
        self._by_name = {p.name: p for p in profiles}

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def load(cls, config: StubBuildConfig | Mapping[str, Any]) -> ProfileRegistry:
        """Validate *config* and build a registry.

        Raises
        ------
        EmptyMappingsError
            If ``build_mappings`` is empty.
        DuplicateStubFilenameError
            If two profiles share a stub filename.
        InvalidConfigError
            For empty paths, empty names or stub filenames escaping ``efi_dir``.
        """
        if not isinstance(config, StubBuildConfig):
            config = _parse_config(config, source="mapping")

        if not config.kernel_modules_dir.strip():
            raise InvalidConfigError("kernel_modules_dir must not be empty")
        if not config.efi_dir.strip():
            raise InvalidConfigError("efi_dir must not be empty")
        if config.esp_dir is not None and not config.esp_dir.strip():
            raise InvalidConfigError("esp_dir must not be empty when set")
        if not config.build_mappings:
            raise EmptyMappingsError("build_mappings must contain at least one profile")

        # FAT is case-insensitive, so compare stub names case-folded
        seen: dict[str, list[str]] = {}
        profiles: list[BuildProfile] = []
        for position, (name, stub_filename) in enumerate(config.build_mappings.items()):
            if not name.strip():
                raise InvalidConfigError("profile names must not be empty")
            _check_stub_filename(name, stub_filename)
            key = str(PurePosixPath(stub_filename)).casefold()
            seen.setdefault(key, []).append(name)
            profiles.append(
                BuildProfile(name=name, stub_filename=stub_filename, position=position)
            )

        for names in seen.values():
            if len(names) > 1:
                stub = config.build_mappings[names[0]]
                raise DuplicateStubFilenameError(stub, names)

        registry = cls(
            Path(config.kernel_modules_dir),
            Path(config.efi_dir),
            tuple(profiles),
            esp_dir=Path(config.esp_dir) if config.esp_dir else None,
        )
        logger.debug(
            "Loaded %d profile(s): %s", len(profiles), ", ".join(registry.names)
        )
        return registry

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def names(self) -> list[str]:
        return [p.name for p in self.profiles]

    def get(self, name: str) -> BuildProfile | None:
        return self._by_name.get(name)

    def output_path(self, profile: BuildProfile) -> Path:
        return self.efi_dir / profile.stub_filename

    def esp_root(self) -> Path:
        """Return the ESP mount point used to derive firmware loader paths."""
        if self._esp_dir is not None:
            return self._esp_dir
        return find_mount_point(self.efi_dir)

    def loader_path(self, profile: BuildProfile) -> str:
        return loader_path_for(
            self.output_path(profile).absolute(), self.esp_root().absolute()
        )


def _check_stub_filename(profile: str, stub_filename: str) -> None:
    if not stub_filename.strip():
        raise InvalidConfigError(f"Profile '{profile}' has an empty stub filename")
    path = PurePosixPath(stub_filename)
    if path.is_absolute() or ".." in path.parts:
        raise InvalidConfigError(
            f"Stub filename '{stub_filename}' of profile '{profile}' must stay inside efi_dir"
        )
