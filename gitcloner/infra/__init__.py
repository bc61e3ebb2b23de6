"""
Infrastructure layer for gitcloner.

Contains abstractions for external systems:
- GitClient: Git command execution
- run_setup_script: Post-clone setup hook execution

These provide clean interfaces that can be mocked for testing.
"""

from .git_client import GitClient, GitResult
from .hooks import SETUP_SCRIPT_NAMES, find_setup_script, run_setup_script

__all__ = [
    'GitClient',
    'GitResult',
    'SETUP_SCRIPT_NAMES',
    'find_setup_script',
    'run_setup_script',
]
