"""Tests for OS detection and default clone directories."""

from pathlib import Path

import pytest

from gitcloner.platform_info import OSType, detect_os, default_clone_dir


class TestDetectOS:
    """Tests for detect_os."""

    @pytest.mark.parametrize("system,expected", [
        ("Linux", OSType.LINUX),
        ("Darwin", OSType.MACOS),
        ("Windows", OSType.WINDOWS),
        ("CYGWIN_NT-10.0", OSType.WINDOWS),
        ("MINGW64_NT-10.0-19045", OSType.WINDOWS),
        ("MSYS_NT-10.0", OSType.WINDOWS),
        ("SunOS", OSType.UNKNOWN),
    ])
    def test_kernel_names(self, system, expected):
        assert detect_os(system=system, release="") == expected

    def test_wsl_release_is_linux(self):
        """Test an unrecognized kernel with a Microsoft release string counts as Linux."""
        assert detect_os(system="", release="5.15.90.1-microsoft-standard-WSL2") == OSType.LINUX

    def test_defaults_come_from_platform(self, monkeypatch):
        monkeypatch.setattr("platform.system", lambda: "Darwin")
        monkeypatch.setattr("platform.release", lambda: "23.1.0")
        assert detect_os() == OSType.MACOS


class TestDefaultCloneDir:
    """Tests for default_clone_dir."""

    @pytest.mark.parametrize("os_type,parts", [
        (OSType.LINUX, ("Projects",)),
        (OSType.MACOS, ("Development",)),
        (OSType.WINDOWS, ("Documents", "Git")),
        (OSType.UNKNOWN, ("repositories",)),
    ])
    def test_per_os_directory(self, os_type, parts):
        home = Path("/home/someone")
        assert default_clone_dir(os_type, home) == home.joinpath(*parts)
