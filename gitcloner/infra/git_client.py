"""
Git client infrastructure for gitcloner.

Provides a clean abstraction over git command execution.
All git operations go through this client, making them:
- Easy to mock for testing
- Consistent in error handling
- Isolated from business logic
"""

import os
import shutil
import subprocess
from dataclasses import dataclass
from typing import Dict, List, Optional
from pathlib import Path
import logging

logger = logging.getLogger(__name__)


@dataclass
class GitResult:
    """Result of one git invocation."""
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def output(self) -> str:
        """Combined stdout and stderr, stripped."""
        return "\n".join(part.strip() for part in (self.stdout, self.stderr) if part and part.strip())


class GitClient:
    """
    Abstraction over git commands.

    Provides methods for the operations the clone service needs, with
    consistent error handling and return types. Command output is logged at
    DEBUG so it lands in the main log file.

    Example:
        client = GitClient()
        if client.clone("https://example.com/repo.git", Path("/tmp/repo")).ok:
            print("Cloned")
    """

    def __init__(self, timeout: Optional[int] = None, git: str = "git",
                 terminal_prompt: bool = True):
        """
        Initialize GitClient.

        Args:
            timeout: Command timeout in seconds (default: no timeout)
            git: Git executable
            terminal_prompt: Let git ask for credentials on the terminal;
                when False a private URL fails instead of waiting for input
        """
        self.timeout = timeout
        self.git = git
        self.terminal_prompt = terminal_prompt

    def _env(self) -> Optional[Dict[str, str]]:
        if self.terminal_prompt:
            return None
        env = dict(os.environ)
        env['GIT_TERMINAL_PROMPT'] = '0'
        return env

    def _run(self, args: List[str], cwd: Optional[Path] = None) -> GitResult:
        """
        Run a git command.

        Args:
            args: Arguments after ``git``
            cwd: Working directory

        Returns:
            GitResult; returncode -1 when git could not be run at all
        """
        cmd = [self.git] + list(args)
        cmd_str = ' '.join(cmd)
        logger.debug(f"Executing: {cmd_str}" + (f" (in {cwd})" if cwd else ""))

        try:
            result = subprocess.run(
                cmd,
                cwd=str(cwd) if cwd else None,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                timeout=self.timeout,
                stdin=subprocess.DEVNULL,
                env=self._env(),
            )
        except subprocess.TimeoutExpired:
            logger.warning(f"Git command timed out: {cmd_str}")
            return GitResult(-1, stderr="timed out")
        except OSError as e:
            logger.error(f"Git command failed: {cmd_str} - {e}")
            return GitResult(-1, stderr=str(e))

        git_result = GitResult(result.returncode, result.stdout or "", result.stderr or "")
        if git_result.output:
            logger.debug(f"Output: {git_result.output}")
        return git_result

    def is_available(self) -> bool:
        """Check that the git executable can be found."""
        return shutil.which(self.git) is not None

    def version(self) -> Optional[str]:
        """Return ``git --version`` output, or None."""
        result = self._run(["--version"])
        return result.stdout.strip() if result.ok else None

    def is_git_repo(self, path: Path) -> bool:
        """Check if path is a git checkout."""
        return (Path(path) / ".git").exists()

    def clone(self, url: str, target: Path) -> GitResult:
        """Clone ``url`` into ``target``."""
        return self._run(["clone", url, str(target)])

    def remote_url(self, path: Path, remote: str = "origin") -> Optional[str]:
        """
        Get remote URL.

        Args:
            path: Path to git repository
            remote: Remote name (default: "origin")

        Returns:
            Remote URL or None if not found
        """
        result = self._run(["remote", "get-url", remote], cwd=path)
        if result.ok and result.stdout.strip():
            return result.stdout.strip()
        return None

    def set_remote_url(self, path: Path, url: str, remote: str = "origin") -> bool:
        """Point ``remote`` at ``url``. Returns True if successful."""
        return self._run(["remote", "set-url", remote, url], cwd=path).ok

    def pull(self, path: Path, remote: str = "origin", branch: Optional[str] = None) -> bool:
        """
        Pull from remote.

        Returns:
            True if successful
        """
        args = ["pull", remote]
        if branch:
            args.append(branch)
        return self._run(args, cwd=path).ok

    def uncommitted_changes(self, path: Path) -> int:
        """Number of entries ``git status --porcelain`` reports."""
        result = self._run(["status", "--porcelain"], cwd=path)
        if not result.ok:
            return 0
        return len([line for line in result.stdout.splitlines() if line.strip()])

    def stash(self, path: Path) -> bool:
        """Stash local modifications. Returns True if successful."""
        return self._run(["stash"], cwd=path).ok

    def stash_pop(self, path: Path) -> bool:
        """Re-apply the most recent stash. Returns True if successful."""
        return self._run(["stash", "pop"], cwd=path).ok
