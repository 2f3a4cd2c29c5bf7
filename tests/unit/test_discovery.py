"""Tests for kernel discovery and newest-kernel selection."""

from __future__ import annotations

import pytest

from efistubmgr.core.discovery import discover, is_valid_installation, select_newest, unmatched
from efistubmgr.core.registry import ProfileRegistry
from efistubmgr.errors import AmbiguousMatchError, RootUnreadableError


class TestDiscover:
    def test_sorted_by_version(self, make_config, install_kernel):
        for version in ["6.10.2-1-lts", "6.9.12-1-lts", "6.6.30-1-lts"]:
            install_kernel(version)
        registry = ProfileRegistry.load(make_config())

        kernels = discover(registry)

        assert [k.version for k in kernels] == ["6.6.30-1-lts", "6.9.12-1-lts", "6.10.2-1-lts"]
        assert all(k.matched_profile == "lts" for k in kernels)

    def test_empty_root(self, make_config):
        registry = ProfileRegistry.load(make_config())
        assert discover(registry) == []

    def test_files_in_root_ignored(self, make_config, install_kernel, modules_dir):
        install_kernel("6.6.30-1-lts")
        (modules_dir / "README").write_text("not a kernel", encoding="utf-8")
        registry = ProfileRegistry.load(make_config())
        assert [k.version for k in discover(registry)] == ["6.6.30-1-lts"]

    def test_missing_root(self, make_config, tmp_path):
        registry = ProfileRegistry.load(make_config(kernel_modules_dir=str(tmp_path / "nope")))
        with pytest.raises(RootUnreadableError) as exc_info:
            discover(registry)
        assert exc_info.value.path == str(tmp_path / "nope")

    def test_root_is_a_file(self, make_config, tmp_path):
        path = tmp_path / "file"
        path.write_text("", encoding="utf-8")
        registry = ProfileRegistry.load(make_config(kernel_modules_dir=str(path)))
        with pytest.raises(RootUnreadableError, match="not a directory"):
            discover(registry)

    def test_ambiguous_match_aborts(self, make_config, install_kernel):
        install_kernel("5.10-lts")
        registry = ProfileRegistry.load(make_config({"lts": "a.efi", "ts": "b.efi"}))
        with pytest.raises(AmbiguousMatchError) as exc_info:
            discover(registry)
        assert exc_info.value.version == "5.10-lts"
        assert exc_info.value.profiles == ["lts", "ts"]

    def test_unmatched_kernel_is_listed_not_fatal(self, make_config, install_kernel):
        install_kernel("6.6.30-1-lts")
        install_kernel("6.8.9-arch1-2")
        registry = ProfileRegistry.load(make_config())

        kernels = discover(registry)

        assert unmatched(kernels) == ["6.8.9-arch1-2"]

    def test_leftover_without_image_is_not_bootable(self, make_config, install_kernel):
        install_kernel("6.6.29-1-lts", image=False)
        install_kernel("6.6.30-1-lts")
        registry = ProfileRegistry.load(make_config())

        kernels = discover(registry)

        leftover = kernels[0]
        assert leftover.version == "6.6.29-1-lts"
        assert leftover.bootable is False
        assert leftover.matched_profile is None
        assert unmatched(kernels) == []

    def test_image_check_can_be_disabled(self, make_config, install_kernel):
        path = install_kernel("6.6.30-1-lts", image=False)
        registry = ProfileRegistry.load(make_config())

        kernels = discover(registry, require_kernel_image=False)

        assert not is_valid_installation(path)
        assert kernels[0].bootable is True
        assert kernels[0].matched_profile == "lts"


class TestSelectNewest:
    def test_newest_per_profile(self, make_config, install_kernel):
        for version in ["5.10.1-lts", "5.15.0-lts", "6.9.1-zen1-1-zen"]:
            install_kernel(version)
        registry = ProfileRegistry.load(make_config({"lts": "a.efi", "zen": "b.efi"}))

        selected = select_newest(registry, discover(registry))

        assert list(selected) == ["lts", "zen"]
        assert selected["lts"].version == "5.15.0-lts"
        assert selected["zen"].version == "6.9.1-zen1-1-zen"

    def test_profile_without_kernel_absent(self, make_config, install_kernel):
        install_kernel("6.6.30-1-lts")
        registry = ProfileRegistry.load(make_config({"lts": "a.efi", "zen": "b.efi"}))

        selected = select_newest(registry, discover(registry))

        assert list(selected) == ["lts"]

    def test_leftover_never_selected(self, make_config, install_kernel):
        install_kernel("6.6.30-1-lts")
        install_kernel("6.6.31-1-lts", image=False)
        registry = ProfileRegistry.load(make_config())

        selected = select_newest(registry, discover(registry))

        assert selected["lts"].version == "6.6.30-1-lts"
