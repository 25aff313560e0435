# carebook/api/dependencies/services.py
"""
Service layer dependencies for dependency injection.

The collaborator providers are separate dependencies so deployments (and
tests) can swap them with ``app.dependency_overrides``.
"""

from functools import lru_cache
import logging

from fastapi import Depends
from sqlalchemy.orm import Session

from ...services.collaborators import (
    CaregiverProfileProvider,
    LoggingNotificationBridge,
    NotificationBridge,
    SettingsCaregiverProfileProvider,
)
from ...services.scheduling_service import SchedulingService
from .database import get_db

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_notification_bridge() -> NotificationBridge:
    """Get the process-wide notification bridge."""
    return LoggingNotificationBridge()


@lru_cache(maxsize=1)
def get_profile_provider() -> CaregiverProfileProvider:
    """Get the process-wide caregiver profile provider."""
    return SettingsCaregiverProfileProvider()


def get_scheduling_service(
    db: Session = Depends(get_db),
    notification_bridge: NotificationBridge = Depends(get_notification_bridge),
    profile_provider: CaregiverProfileProvider = Depends(get_profile_provider),
) -> SchedulingService:
    """
    Get scheduling service instance with its collaborators.

    Args:
        db: Database session
        notification_bridge: Where booking/slot notifications go
        profile_provider: Source of caregiver default rates

    Returns:
        SchedulingService instance
    """
    return SchedulingService(
        db,
        notification_bridge=notification_bridge,
        profile_provider=profile_provider,
    )
