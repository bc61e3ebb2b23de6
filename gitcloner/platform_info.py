"""
Host platform detection and per-platform default clone directories.
"""

import platform
from enum import Enum
from pathlib import Path
from typing import Optional


class OSType(Enum):
    """Host platform families gitcloner distinguishes."""
    LINUX = "linux"
    MACOS = "macos"
    WINDOWS = "windows"
    UNKNOWN = "unknown"


# Kernel release markers of Linux userlands running on a Windows kernel (WSL)
_VIRTUALIZATION_MARKERS = ("microsoft",)

_WINDOWS_PREFIXES = ("CYGWIN", "MINGW", "MSYS")

_DEFAULT_DIRS = {
    OSType.LINUX: ("Projects",),
    OSType.MACOS: ("Development",),
    OSType.WINDOWS: ("Documents", "Git"),
    OSType.UNKNOWN: ("repositories",),
}


def detect_os(system: Optional[str] = None, release: Optional[str] = None) -> OSType:
    """
    Classify the host platform.

    Args:
        system: Kernel name as reported by ``uname -s`` (default: platform.system())
        release: Kernel release string (default: platform.release())

    Returns:
        OSType for the host
    """
    if system is None:
        system = platform.system()
    if release is None:
        release = platform.release()

    if system == "Linux":
        return OSType.LINUX
    if system == "Darwin":
        return OSType.MACOS
    if system == "Windows" or system.upper().startswith(_WINDOWS_PREFIXES):
        return OSType.WINDOWS

    lowered = (release or "").lower()
    if any(marker in lowered for marker in _VIRTUALIZATION_MARKERS):
        return OSType.LINUX

    return OSType.UNKNOWN


def default_clone_dir(os_type: OSType, home: Optional[Path] = None) -> Path:
    """Return the clone root used when CLONE_DIR is not configured."""
    home = Path(home) if home is not None else Path.home()
    return home.joinpath(*_DEFAULT_DIRS[os_type])
