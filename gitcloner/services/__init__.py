"""
Service layer for gitcloner.

Contains the logic that coordinates domain objects and infrastructure:
- CloneService: Clone, update or back up each listed repository

Services are the primary API for the CLI to use.
"""

from .clone_service import CloneService, decline

__all__ = [
    'CloneService',
    'decline',
]
