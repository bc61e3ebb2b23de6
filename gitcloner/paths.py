"""
Path helpers that behave the same for POSIX paths and Windows drive paths.
"""

import os
import re
from pathlib import Path, PurePosixPath
from typing import Union

_DRIVE_RE = re.compile(r'^([A-Za-z]):(.*)$')
_SLASHES_RE = re.compile(r'/+')

PathLike = Union[str, Path]


def normalize_path(path: PathLike) -> str:
    """
    Normalize a path to forward-slash form.

    ``C:\\Users\\me`` becomes ``/c/Users/me``; duplicate slashes collapse.

    Args:
        path: Path to normalize

    Returns:
        Normalized path string
    """
    path = str(path).replace('\\', '/')

    match = _DRIVE_RE.match(path)
    if match:
        drive, rest = match.groups()
        path = f"/{drive.lower()}/{rest}"

    return _SLASHES_RE.sub('/', path)


def relative_parts(rel: PathLike) -> tuple:
    """
    Split a user-supplied relative path into safe components.

    Drive letters, leading slashes, ``.`` and ``..`` are dropped so the
    components can never point outside the directory they are joined to.
    """
    parts = PurePosixPath(normalize_path(rel).lstrip('/')).parts
    return tuple(p for p in parts if p not in ('.', '..'))


def join_paths(base: PathLike, rel: PathLike) -> Path:
    """
    Join a relative component under a base directory.

    Args:
        base: Base directory
        rel: Relative path, in POSIX or Windows notation

    Returns:
        Path that always lives under ``base``
    """
    return Path(base).joinpath(*relative_parts(rel))


def expand_path(value: str, base_dir: PathLike = '.') -> Path:
    """
    Expand ``~``, ``${SCRIPT_DIR}`` and environment variables in a path value.

    Args:
        value: Raw path from a config file or command line
        base_dir: Directory substituted for ``${SCRIPT_DIR}`` and used to
            anchor relative paths

    Returns:
        Absolute Path
    """
    base_dir = Path(base_dir)
    value = value.replace('${SCRIPT_DIR}', str(base_dir)).replace('$SCRIPT_DIR', str(base_dir))
    expanded = Path(os.path.expandvars(os.path.expanduser(value)))
    if not expanded.is_absolute():
        expanded = base_dir / expanded
    return expanded
