"""
Domain layer for gitcloner.

Contains plain value objects with no I/O or side effects:
- RepositoryEntry: One validated line of the repository list
- CloneOutcome: What happened to one entry during a run
- RunContext: Counters and outcomes accumulated over a run

These objects are immutable where possible and provide
serialization methods for JSONL output.
"""

from .entry import RepositoryEntry
from .outcome import OutcomeStatus, CloneOutcome, RunContext

__all__ = [
    'RepositoryEntry',
    'OutcomeStatus',
    'CloneOutcome',
    'RunContext',
]
