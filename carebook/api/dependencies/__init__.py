# carebook/api/dependencies/__init__.py
"""
Central export point for all dependencies.

This module re-exports all dependencies from submodules
for convenient access throughout the application.
"""

from .database import get_db
from .services import get_notification_bridge, get_profile_provider, get_scheduling_service

__all__ = [
    # Database
    "get_db",
    # Services
    "get_notification_bridge",
    "get_profile_provider",
    "get_scheduling_service",
]
