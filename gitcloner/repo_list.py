"""
Reading and creating the repository list file.

Format: one ``<repository_url> [custom_directory]`` per line; blank lines
and lines starting with ``#`` are ignored.
"""

import logging
import re
from pathlib import Path
from typing import List, Optional

from .domain import RepositoryEntry
from .exit_codes import EmptyListError, ListNotFoundError, ListReadError
from .log import SUCCESS_LEVEL

logger = logging.getLogger(__name__)

_SCHEME_RE = re.compile(r'^(https?|git|ssh)://\S+$')
# scp-like shorthand: user@host:path
_SCP_RE = re.compile(r'^[^@\s/:]+@[^@\s/:]+:\S+$')


def is_valid_repo_url(url: str) -> bool:
    """Check that a URL uses an accepted scheme or the user@host:path shorthand."""
    return bool(_SCHEME_RE.match(url) or _SCP_RE.match(url))


def parse_line(line: str, line_number: Optional[int] = None) -> Optional[RepositoryEntry]:
    """
    Parse one physical line.

    Returns:
        RepositoryEntry, None for blank/comment lines

    Raises:
        ValueError: The URL is not acceptable
    """
    line = line.strip()
    if not line or line.startswith('#'):
        return None

    parts = line.split(None, 1)
    url = parts[0]
    custom_dir = parts[1].strip() if len(parts) > 1 else None

    if not is_valid_repo_url(url):
        raise ValueError(url)

    return RepositoryEntry(url=url, custom_dir=custom_dir or None, line_number=line_number)


def parse_repo_list(path: Path) -> List[RepositoryEntry]:
    """
    Parse a repository list file, in file order.

    Invalid URLs are logged as warnings and dropped.

    Args:
        path: Repository list file

    Returns:
        Entries in file order

    Raises:
        ListNotFoundError: The file does not exist
        ListReadError: The file cannot be read or is not UTF-8
        EmptyListError: No valid entry remains
    """
    path = Path(path)
    logger.info(f"Reading repository list from: {path}")

    if not path.is_file():
        raise ListNotFoundError(str(path))

    try:
        with open(path, 'r', encoding='utf-8') as f:
            lines = f.readlines()
    except (OSError, UnicodeDecodeError) as e:
        raise ListReadError(str(path), str(e)) from e

    entries: List[RepositoryEntry] = []
    for line_number, line in enumerate(lines, 1):
        try:
            entry = parse_line(line, line_number)
        except ValueError as e:
            logger.warning(f"Invalid repository URL on line {line_number}: {e}")
            continue
        if entry is None:
            continue
        entries.append(entry)
        logger.debug(f"Valid repository {len(entries)}: {entry.url}")

    if not entries:
        raise EmptyListError(str(path))

    logger.log(SUCCESS_LEVEL, f"Successfully parsed {len(entries)} valid repositories")
    return entries


SAMPLE_REPO_LIST = """\
# Repository List File
# ====================
# Format: <repository_url> [optional_custom_directory]
# One repository per line
# Lines starting with # are comments

# Example repositories:
https://github.com/torvalds/linux.git linux-kernel
https://github.com/git/git.git git-source

# SSH format (requires SSH key setup):
# git@github.com:username/repository.git custom-folder

# More examples:
# https://github.com/docker/docker-ce.git
# https://github.com/kubernetes/kubernetes.git k8s-source
"""


def write_sample_repo_list(path: Path) -> Path:
    """Create a sample repository list with two example entries."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(SAMPLE_REPO_LIST, encoding='utf-8')
    logger.log(SUCCESS_LEVEL, f"Created sample repository list: {path}")
    logger.info("Please edit this file with your repository URLs and run again")
    return path
