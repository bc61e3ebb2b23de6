"""
gitcloner - Clone or update every git repository named in a list file.

gitcloner reads a plain-text repository list, clones each entry into an
OS-appropriate directory (or updates it if it is already there), and writes
rotating main and error logs plus an end-of-run summary.

Quick Start:
    from gitcloner.config import get_default_config
    from gitcloner.platform_info import detect_os
    from gitcloner.repo_list import parse_repo_list
    from gitcloner.services import CloneService

    config = get_default_config(detect_os())
    service = CloneService(config)
    for outcome in service.process(parse_repo_list("repositories.txt")):
        print(outcome.entry.target_name, outcome.status.value)

Domain Objects:
    RepositoryEntry - One line of the repository list
    CloneOutcome - What happened to one entry
    RunContext - Counters for a whole run

Services:
    CloneService - Clone, update or back up each entry, in order
"""

__version__ = "1.0.0"

from .domain import CloneOutcome, OutcomeStatus, RepositoryEntry, RunContext

__all__ = [
    '__version__',
    'CloneOutcome',
    'OutcomeStatus',
    'RepositoryEntry',
    'RunContext',
]
