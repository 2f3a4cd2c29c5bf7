"""Tests for StubCleaner — stale stubs and leftover module directories."""

from __future__ import annotations

import shutil

import pytest

from efistubmgr.backends.dracut import marker_path
from efistubmgr.core.cleaner import StubCleaner
from efistubmgr.core.discovery import discover
from efistubmgr.core.registry import ProfileRegistry


@pytest.fixture
def registry(make_config, efi_dir) -> ProfileRegistry:
    efi_dir.mkdir(parents=True)
    return ProfileRegistry.load(make_config({"lts": "linux-lts.efi", "zen": "linux-zen.efi"}))


class TestStubCleaner:
    def test_removes_stub_of_uninstalled_profile(self, registry, install_kernel, efi_dir):
        install_kernel("6.6.30-1-lts")
        for name in ("linux-lts.efi", "linux-zen.efi"):
            (efi_dir / name).write_bytes(b"MZ")
        marker_path(efi_dir / "linux-zen.efi").write_text("6.9.1-zen1-1-zen\n", encoding="utf-8")

        report = StubCleaner(running_release="6.6.30-1-lts").clean(registry, discover(registry))

        assert report.removed_stubs == [efi_dir / "linux-zen.efi"]
        assert not (efi_dir / "linux-zen.efi").exists()
        assert not marker_path(efi_dir / "linux-zen.efi").exists()
        assert (efi_dir / "linux-lts.efi").exists()

    def test_removes_leftover_module_dirs(self, registry, install_kernel):
        install_kernel("6.6.30-1-lts")
        leftover = install_kernel("6.6.29-1-lts", image=False)

        report = StubCleaner(running_release="6.6.30-1-lts").clean(registry, discover(registry))

        assert report.removed_module_dirs == [leftover]
        assert not leftover.exists()

    def test_running_kernel_modules_kept(self, registry, install_kernel):
        running = install_kernel("6.6.29-1-lts", image=False)

        report = StubCleaner(running_release="6.6.29-1-lts").clean(registry, discover(registry))

        assert report.already_clean
        assert running.exists()

    def test_errors_are_collected(self, registry, install_kernel, monkeypatch):
        install_kernel("6.6.29-1-lts", image=False)
        install_kernel("6.6.28-1-lts", image=False)

        def failing_rmtree(path, *args, **kwargs):
            raise PermissionError(13, "Permission denied")

        monkeypatch.setattr(shutil, "rmtree", failing_rmtree)

        report = StubCleaner(running_release="6.6.30-1-lts").clean(registry, discover(registry))

        assert len(report.errors) == 2
        assert report.removed_module_dirs == []
        assert not report.already_clean

    def test_image_check_disabled_keeps_stub_and_module_dirs(self, registry, install_kernel, efi_dir):
        older = install_kernel("6.6.29-1-lts", image=False)
        newer = install_kernel("6.6.30-1-lts", image=False)
        (efi_dir / "linux-lts.efi").write_bytes(b"MZ")
        kernels = discover(registry, require_kernel_image=False)

        report = StubCleaner(running_release="6.1.0", remove_leftovers=False).clean(registry, kernels)

        assert report.already_clean
        assert (efi_dir / "linux-lts.efi").exists()
        assert older.exists()
        assert newer.exists()

    def test_leftover_pass_skipped_when_disabled(self, registry, install_kernel):
        leftover = install_kernel("6.6.29-1-lts", image=False)

        report = StubCleaner(running_release="6.1.0", remove_leftovers=False).clean(
            registry, discover(registry)
        )

        assert report.removed_module_dirs == []
        assert leftover.exists()
