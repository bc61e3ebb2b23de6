"""
Tests for the git client and the post-clone setup hook.

Tests that need the git binary work against local bare repositories and are
skipped when git is not installed.
"""

import os
import shutil
import subprocess
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from gitcloner.infra import GitClient, GitResult, find_setup_script, run_setup_script

requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")


def git(*args, cwd=None):
    subprocess.run(["git", *args], cwd=cwd, check=True, capture_output=True, text=True)


@pytest.fixture
def origin(tmp_path):
    """A bare repository with one commit on main."""
    work = tmp_path / "work"
    work.mkdir()
    git("init", "-q", "-b", "main", cwd=work)
    git("config", "user.email", "test@example.com", cwd=work)
    git("config", "user.name", "Test", cwd=work)
    (work / "README").write_text("hello\n")
    git("add", "README", cwd=work)
    git("commit", "-q", "-m", "initial", cwd=work)

    bare = tmp_path / "origin.git"
    git("clone", "-q", "--bare", str(work), str(bare))
    return bare


class TestGitResult:
    """Tests for GitResult."""

    def test_ok(self):
        assert GitResult(0).ok
        assert not GitResult(128).ok

    def test_output_combines_streams(self):
        assert GitResult(1, " out \n", "err\n").output == "out\nerr"
        assert GitResult(1).output == ""


class TestGitClientErrors:
    """Tests for GitClient failure handling without a real git."""

    def test_missing_executable(self, tmp_path):
        client = GitClient(git="definitely-not-git-xyz")
        assert not client.is_available()
        result = client.clone("https://example.com/a.git", tmp_path / "a")
        assert result.returncode == -1

    def test_timeout(self, tmp_path):
        client = GitClient(timeout=1)
        with patch("subprocess.run", side_effect=subprocess.TimeoutExpired("git", 1)):
            result = client.clone("https://example.com/a.git", tmp_path / "a")
        assert result.returncode == -1
        assert result.stderr == "timed out"

    def test_is_git_repo(self, tmp_path):
        client = GitClient()
        assert not client.is_git_repo(tmp_path)
        (tmp_path / ".git").mkdir()
        assert client.is_git_repo(tmp_path)

    @pytest.mark.skipif(shutil.which("sh") is None, reason="no POSIX shell")
    def test_undecodable_output_replaced(self, tmp_path):
        fake_git = tmp_path / "fake-git"
        fake_git.write_text("#!/bin/sh\nprintf '\\377\\376bad'\n")
        fake_git.chmod(0o755)

        version = GitClient(git=str(fake_git)).version()

        assert version is not None
        assert version.endswith("bad")

    def test_terminal_prompt_enabled_by_default(self, tmp_path):
        with patch("subprocess.run", return_value=MagicMock(returncode=0, stdout="", stderr="")) as run:
            GitClient().clone("https://example.com/a.git", tmp_path / "a")
        assert run.call_args.kwargs['env'] is None

    def test_terminal_prompt_disabled(self, tmp_path):
        with patch("subprocess.run", return_value=MagicMock(returncode=0, stdout="", stderr="")) as run:
            GitClient(terminal_prompt=False).clone("https://example.com/a.git", tmp_path / "a")
        env = run.call_args.kwargs['env']
        assert env['GIT_TERMINAL_PROMPT'] == '0'
        assert env['PATH'] == os.environ['PATH']


@requires_git
class TestGitClientWithGit:
    """Tests for GitClient against local repositories."""

    def test_version(self):
        assert GitClient().version().startswith("git version")

    def test_clone_and_remote_url(self, origin, tmp_path):
        client = GitClient()
        target = tmp_path / "clones" / "project"
        target.parent.mkdir()

        assert client.clone(str(origin), target).ok
        assert (target / "README").read_text() == "hello\n"
        assert client.is_git_repo(target)
        assert client.remote_url(target) == str(origin)

    def test_clone_failure(self, tmp_path):
        result = GitClient().clone(str(tmp_path / "missing.git"), tmp_path / "x")
        assert not result.ok
        assert result.output

    def test_set_remote_url(self, origin, tmp_path):
        client = GitClient()
        target = tmp_path / "project"
        client.clone(str(origin), target)

        assert client.set_remote_url(target, "https://example.com/other.git")
        assert client.remote_url(target) == "https://example.com/other.git"

    def test_pull_branches(self, origin, tmp_path):
        client = GitClient()
        target = tmp_path / "project"
        client.clone(str(origin), target)

        assert client.pull(target, "origin", "main")
        assert not client.pull(target, "origin", "master")

    def test_uncommitted_changes_and_stash(self, origin, tmp_path):
        client = GitClient()
        target = tmp_path / "project"
        client.clone(str(origin), target)
        assert client.uncommitted_changes(target) == 0

        (target / "README").write_text("changed\n")
        (target / "new.txt").write_text("new\n")
        assert client.uncommitted_changes(target) == 2

        git("config", "user.email", "test@example.com", cwd=target)
        git("config", "user.name", "Test", cwd=target)
        assert client.stash(target)
        assert client.uncommitted_changes(target) == 1  # untracked files are not stashed
        assert client.stash_pop(target)
        assert (target / "README").read_text() == "changed\n"


class TestSetupScript:
    """Tests for find_setup_script and run_setup_script."""

    def test_find_setup_script(self, tmp_path):
        assert find_setup_script(tmp_path) is None
        (tmp_path / "setup.sh").write_text("exit 0\n")
        assert find_setup_script(tmp_path) == tmp_path / "setup.sh"

    def test_directory_named_setup_sh_ignored(self, tmp_path):
        (tmp_path / "setup.sh").mkdir()
        assert find_setup_script(tmp_path) is None

    @pytest.mark.skipif(shutil.which("sh") is None, reason="no POSIX shell")
    def test_runs_in_repository_directory(self, tmp_path):
        script = tmp_path / "setup.sh"
        script.write_text("pwd > ran.txt\n")
        assert run_setup_script(script)
        assert Path((tmp_path / "ran.txt").read_text().strip()).resolve() == tmp_path.resolve()

    @pytest.mark.skipif(shutil.which("sh") is None, reason="no POSIX shell")
    def test_failure_reported(self, tmp_path):
        script = tmp_path / "setup.sh"
        script.write_text("exit 3\n")
        assert not run_setup_script(script)

    def test_no_shell(self, tmp_path):
        script = tmp_path / "setup.sh"
        script.write_text("exit 0\n")
        with patch("shutil.which", return_value=None):
            assert not run_setup_script(script)

    @pytest.mark.skipif(shutil.which("sh") is None, reason="no POSIX shell")
    def test_undecodable_output_is_not_fatal(self, tmp_path):
        script = tmp_path / "setup.sh"
        script.write_text("printf '\\377\\376bad'\nprintf '\\377' >&2\nexit 0\n")
        assert run_setup_script(script)
