"""
Clone outcome domain objects for gitcloner.

Provides the per-entry result type produced by the clone service and the
run-level counters the summary is built from.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, Any, List, Optional

from .entry import RepositoryEntry


class OutcomeStatus(Enum):
    """Final status of one repository entry."""
    SUCCESS = "success"
    FAILURE = "failure"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class CloneOutcome:
    """
    What happened to one repository entry.

    ``action`` says how the status was reached, e.g. "cloned", "updated",
    "would_clone", "declined_overwrite".
    """
    entry: RepositoryEntry
    status: OutcomeStatus
    action: str
    target: str
    message: Optional[str] = None
    error: Optional[str] = None
    dry_run: bool = False
    details: Dict[str, Any] = field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        return self.status == OutcomeStatus.SUCCESS

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result = {
            'url': self.entry.url,
            'name': self.entry.target_name,
            'path': self.target,
            'status': self.status.value,
            'action': self.action,
        }
        if self.dry_run:
            result['dry_run'] = True
        if self.message:
            result['message'] = self.message
        if self.error:
            result['error'] = self.error
        if self.details:
            result['details'] = dict(self.details)
        return result


@dataclass
class RunContext:
    """
    Counters and outcomes for one run.

    Owned by the clone service; the summary reporter only reads it.
    """
    total: int = 0
    successful: int = 0
    failed: int = 0
    skipped: int = 0
    dry_run: bool = False
    started_at: datetime = field(default_factory=datetime.now)
    outcomes: List[CloneOutcome] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        """True if no failures occurred."""
        return self.failed == 0

    def add_outcome(self, outcome: CloneOutcome) -> None:
        """Add an outcome and update counts."""
        self.outcomes.append(outcome)
        self.total += 1

        if outcome.status == OutcomeStatus.SUCCESS:
            self.successful += 1
        elif outcome.status == OutcomeStatus.SKIPPED:
            self.skipped += 1
        elif outcome.status == OutcomeStatus.FAILURE:
            self.failed += 1
            if outcome.error:
                self.errors.append(f"{outcome.entry.target_name}: {outcome.error}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            'type': 'summary',
            'total': self.total,
            'successful': self.successful,
            'skipped': self.skipped,
            'failed': self.failed,
            'dry_run': self.dry_run,
            'errors': self.errors,
        }
