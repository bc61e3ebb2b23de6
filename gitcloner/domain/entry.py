"""
Repository list entry domain object for gitcloner.
"""

from dataclasses import dataclass
from typing import Optional, Dict, Any


def repo_name_from_url(url: str) -> str:
    """
    Directory name git would pick for a URL: its basename without ``.git``.

    Works for both ``https://host/owner/repo.git`` and ``git@host:owner/repo.git``.
    """
    tail = url.rstrip('/')
    tail = tail.rsplit('/', 1)[-1]
    tail = tail.rsplit(':', 1)[-1]
    if tail.endswith('.git'):
        tail = tail[:-len('.git')]
    return tail


@dataclass(frozen=True)
class RepositoryEntry:
    """One repository to clone: a URL and an optional target directory."""
    url: str
    custom_dir: Optional[str] = None
    line_number: Optional[int] = None

    @property
    def name(self) -> str:
        """Repository name derived from the URL."""
        return repo_name_from_url(self.url)

    @property
    def target_name(self) -> str:
        """Directory (relative to the clone root) this entry clones into."""
        if self.custom_dir:
            return self.custom_dir
        return self.name

    def to_dict(self) -> Dict[str, Any]:
        result = {'url': self.url, 'name': self.name}
        if self.custom_dir:
            result['custom_dir'] = self.custom_dir
        if self.line_number is not None:
            result['line'] = self.line_number
        return result
