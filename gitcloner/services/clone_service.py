"""
Clone service for gitcloner.

Works through the repository list one entry at a time: clones new
repositories, updates existing checkouts, and backs up directories that are
in the way when the user agrees to it.
"""

import fnmatch
import logging
import shutil
import time
from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from ..config import Configuration
from ..domain import CloneOutcome, OutcomeStatus, RepositoryEntry, RunContext
from ..infra import GitClient, find_setup_script, run_setup_script
from ..log import SUCCESS_LEVEL
from ..paths import join_paths, relative_parts

logger = logging.getLogger(__name__)

Confirm = Callable[[str], bool]

# Branches tried, in order, when updating an existing checkout
UPDATE_BRANCHES = ("main", "master")


def decline(prompt: str) -> bool:
    """Answer every question with "no" (batch mode)."""
    return False


class CloneService:
    """
    Service that clones or updates every repository entry, in order.

    Questions that could destroy or rewrite local state are routed through
    the ``confirm`` callback; without one every question is declined, so a
    batch run never overwrites a directory or touches uncommitted work.

    Example:
        service = CloneService(config)
        outcomes = service.process(entries)

        result = service.last_result
        print(f"Cloned {result.successful} repos")
    """

    def __init__(
        self,
        config: Configuration,
        git_client: Optional[GitClient] = None,
        confirm: Optional[Confirm] = None,
        sleep: Callable[[float], None] = time.sleep,
        now: Callable[[], datetime] = datetime.now,
    ):
        """
        Initialize CloneService.

        Args:
            config: Run configuration
            git_client: GitClient instance (creates new if None)
            confirm: Yes/no prompt capability (declines everything if None)
            sleep: Sleep function, replaced in tests
            now: Clock used for backup names
        """
        self.config = config
        self.git = git_client or GitClient()
        self.confirm = confirm or decline
        self.sleep = sleep
        self.now = now
        self.last_result: Optional[RunContext] = None

    def target_path(self, entry: RepositoryEntry) -> Path:
        """Directory an entry clones into."""
        return join_paths(self.config.clone_dir, entry.target_name)

    def process(self, entries: Sequence[RepositoryEntry]) -> List[CloneOutcome]:
        """
        Process entries strictly in order.

        Args:
            entries: Parsed repository list

        Returns:
            One outcome per entry, in the same order
        """
        context = RunContext(dry_run=self.config.dry_run)
        self.last_result = context
        total = len(entries)

        if self.config.dry_run:
            logger.info("[DRY RUN] No repository will be cloned, updated or moved")

        for index, entry in enumerate(entries, 1):
            logger.info(f"[{index}/{total}] Processing repository: {entry.target_name}")
            logger.debug(f"  URL: {entry.url}")

            try:
                outcome = self.process_entry(entry)
            except OSError as e:
                outcome = self._outcome(entry, OutcomeStatus.FAILURE, "error", error=str(e))

            context.add_outcome(outcome)
            self._log_outcome(outcome)

            if index < total and not self.config.dry_run and self.config.entry_delay > 0:
                self.sleep(self.config.entry_delay)

        return context.outcomes

    def process_entry(self, entry: RepositoryEntry) -> CloneOutcome:
        """Decide between clone, update and conflict handling for one entry."""
        target = self.target_path(entry)
        logger.debug(f"  Target: {target}")

        if not relative_parts(entry.target_name):
            # ".", ".." or an empty name would resolve to the clone root itself
            return self._outcome(entry, OutcomeStatus.FAILURE, "invalid_target",
                                 error=f"Invalid target directory: '{entry.target_name}'",
                                 dry_run=self.config.dry_run)

        if self.is_excluded(entry):
            return self._outcome(entry, OutcomeStatus.SKIPPED, "excluded",
                                 message="Excluded by include/exclude patterns")

        if target.exists():
            logger.warning(f"Directory already exists: {target}")
            if self.git.is_git_repo(target):
                return self._update_existing(entry, target)
            return self._resolve_conflict(entry, target)

        return self._clone(entry, target)

    def is_excluded(self, entry: RepositoryEntry) -> bool:
        """Apply INCLUDE_PATTERNS / EXCLUDE_PATTERNS to the URL and target name."""
        candidates = (entry.url, entry.target_name)

        def matches(patterns) -> bool:
            return any(fnmatch.fnmatch(c, p) for p in patterns for c in candidates)

        if self.config.include_patterns and not matches(self.config.include_patterns):
            return True
        return matches(self.config.exclude_patterns)

    # ------------------------------------------------------------------
    # Existing checkout
    # ------------------------------------------------------------------

    def _update_existing(self, entry: RepositoryEntry, target: Path) -> CloneOutcome:
        logger.info("Git repository already exists, checking for updates...")

        if self.config.dry_run:
            return self._outcome(entry, OutcomeStatus.SUCCESS, "would_update", dry_run=True,
                                 message=f"[DRY RUN] Would pull latest changes into {target}")

        details = {}
        current_url = self.git.remote_url(target)
        if current_url != entry.url:
            logger.warning("Remote URL mismatch:")
            logger.warning(f"  Expected: {entry.url}")
            logger.warning(f"  Current:  {current_url}")
            if self.confirm(f"Update remote URL of {target.name} to {entry.url}?"):
                if self.git.set_remote_url(target, entry.url):
                    logger.info(f"Updated remote URL to: {entry.url}")
                    details['remote_updated'] = True
                else:
                    logger.warning(f"Could not update remote URL of {target}")

        logger.info("Pulling latest changes...")
        for branch in UPDATE_BRANCHES:
            if self.git.pull(target, "origin", branch):
                logger.log(SUCCESS_LEVEL, f"Repository updated successfully from {branch} branch")
                details['branch'] = branch
                return self._outcome(entry, OutcomeStatus.SUCCESS, "updated", details=details)

        logger.error(f"Failed to update repository from {' or '.join(UPDATE_BRANCHES)} branch")

        changes = self.git.uncommitted_changes(target)
        if changes:
            logger.warning(f"Repository has {changes} uncommitted changes")
            details['uncommitted_changes'] = changes
            if self.confirm(f"Stash {changes} local changes in {target.name} and pull?"):
                if self._stash_and_pull(target):
                    logger.info("Stashed changes, pulled, and reapplied changes")
                    return self._outcome(entry, OutcomeStatus.SUCCESS, "updated_with_stash",
                                         details=details)
            else:
                logger.warning(f"Leaving uncommitted changes in {target} untouched")

        return self._outcome(entry, OutcomeStatus.FAILURE, "update_failed", details=details,
                             error=f"git pull failed for {', '.join(UPDATE_BRANCHES)}")

    def _stash_and_pull(self, target: Path) -> bool:
        if not self.git.stash(target):
            logger.warning(f"git stash failed in {target}")
            return False

        pulled = any(self.git.pull(target, "origin", branch) for branch in UPDATE_BRANCHES)

        if not self.git.stash_pop(target):
            logger.warning(f"Stashed changes could not be re-applied in {target}; "
                           "they remain in 'git stash list'")
        return pulled

    # ------------------------------------------------------------------
    # Existing directory that is not a checkout
    # ------------------------------------------------------------------

    def backup_path(self, target: Path) -> Path:
        """``<target>.backup.<YYYYmmdd_HHMMSS>``, unique on disk."""
        stamp = self.now().strftime("%Y%m%d_%H%M%S")
        candidate = target.with_name(f"{target.name}.backup.{stamp}")
        counter = 1
        while candidate.exists():
            candidate = target.with_name(f"{target.name}.backup.{stamp}_{counter}")
            counter += 1
        return candidate

    def _resolve_conflict(self, entry: RepositoryEntry, target: Path) -> CloneOutcome:
        logger.warning("Directory exists but is not a git repository")

        if not self.confirm(f"Overwrite directory {target}?"):
            logger.info(f"Skipping repository: {entry.target_name}")
            return self._outcome(entry, OutcomeStatus.SKIPPED, "declined_overwrite",
                                 dry_run=self.config.dry_run,
                                 message=f"{target} exists and is not a git repository")

        backup = self.backup_path(target)
        if self.config.dry_run:
            return self._outcome(entry, OutcomeStatus.SUCCESS, "would_backup_and_clone",
                                 dry_run=True, details={'backup': str(backup)},
                                 message=f"[DRY RUN] Would move {target} to {backup} and clone")

        logger.info(f"Backing up existing directory to: {backup}")
        try:
            shutil.move(str(target), str(backup))
        except OSError as e:
            logger.error(f"Could not back up {target}: {e}")
            return self._outcome(entry, OutcomeStatus.FAILURE, "backup_failed", error=str(e))

        outcome = self._clone(entry, target)
        details = dict(outcome.details, backup=str(backup))
        if outcome.succeeded:
            return replace(outcome, action="backed_up_and_cloned", details=details)
        return replace(outcome, details=details)

    # ------------------------------------------------------------------
    # Fresh clone
    # ------------------------------------------------------------------

    def _clone(self, entry: RepositoryEntry, target: Path) -> CloneOutcome:
        if self.config.dry_run:
            return self._outcome(entry, OutcomeStatus.SUCCESS, "would_clone", dry_run=True,
                                 message=f"[DRY RUN] Would clone {entry.url} into {target}")

        if not target.parent.is_dir():
            target.parent.mkdir(parents=True, exist_ok=True)
            logger.debug(f"Created parent directory: {target.parent}")

        logger.info(f"Cloning repository to: {target}")
        max_attempts = self.config.max_retries
        last_error = None

        for attempt in range(1, max_attempts + 1):
            if attempt > 1:
                logger.info(f"Retry attempt {attempt} of {max_attempts} "
                            f"in {self.config.retry_delay:g} seconds...")
                self.sleep(self.config.retry_delay)

            result = self.git.clone(entry.url, target)
            if result.ok:
                logger.log(SUCCESS_LEVEL, f"Successfully cloned: {entry.target_name}")
                details = {'attempts': attempt}
                hook = self._run_setup_hook(target)
                if hook is not None:
                    details['setup_script'] = hook
                return self._outcome(entry, OutcomeStatus.SUCCESS, "cloned", details=details)

            last_error = result.output.splitlines()[-1] if result.output else \
                f"git clone exited with status {result.returncode}"
            logger.warning(f"Clone attempt {attempt} failed for: {entry.target_name}")
            self._remove_partial(target)

        logger.error(f"Failed to clone repository after {max_attempts} attempts: "
                     f"{entry.target_name}")
        return self._outcome(entry, OutcomeStatus.FAILURE, "clone_failed", error=last_error,
                             details={'attempts': max_attempts})

    def _remove_partial(self, target: Path) -> None:
        if target.exists():
            shutil.rmtree(target, ignore_errors=True)
            logger.debug(f"Cleaned up failed clone directory: {target}")

    def _run_setup_hook(self, target: Path) -> Optional[str]:
        """Run setup.sh if present; returns "succeeded", "failed" or None."""
        if not self.config.run_setup_scripts:
            return None

        script = find_setup_script(target)
        if script is None:
            return None

        logger.info(f"Found {script.name}, executing...")
        if run_setup_script(script):
            logger.log(SUCCESS_LEVEL, "Repository setup script executed successfully")
            return "succeeded"
        logger.warning("Repository setup script failed or had warnings")
        return "failed"

    # ------------------------------------------------------------------

    def _outcome(self, entry: RepositoryEntry, status: OutcomeStatus, action: str,
                 **kwargs) -> CloneOutcome:
        return CloneOutcome(entry=entry, status=status, action=action,
                            target=str(self.target_path(entry)), **kwargs)

    @staticmethod
    def _log_outcome(outcome: CloneOutcome) -> None:
        if outcome.status == OutcomeStatus.FAILURE:
            logger.error(f"{outcome.entry.target_name}: {outcome.action}"
                         + (f" ({outcome.error})" if outcome.error else ""))
        elif outcome.dry_run and outcome.message:
            logger.info(outcome.message)
        else:
            logger.debug(f"{outcome.entry.target_name}: {outcome.action}")
