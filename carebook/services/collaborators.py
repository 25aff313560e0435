# carebook/services/collaborators.py
"""
Contracts for systems outside the scheduling core.

Notification delivery and caregiver profiles live elsewhere; the core only
calls these two narrow interfaces. Default implementations are provided for
local runs and tests.
"""

from decimal import Decimal
import logging
from typing import Any, Dict, Mapping, Optional, Protocol, runtime_checkable

from ..core.config import settings

logger = logging.getLogger(__name__)


@runtime_checkable
class NotificationBridge(Protocol):
    """Delivers a notification to another user; transport is opaque."""

    def notify(self, event: str, recipient_id: str, payload: Dict[str, Any]) -> None:
        ...


@runtime_checkable
class CaregiverProfileProvider(Protocol):
    """Read access to caregiver profile data."""

    def get_caregiver_default_rate(self, caregiver_id: str) -> Optional[Decimal]:
        ...


class LoggingNotificationBridge:
    """Writes notifications to the log instead of sending them."""

    def __init__(self, logger_name: str = "carebook.notifications"):
        self.logger = logging.getLogger(logger_name)

    def notify(self, event: str, recipient_id: str, payload: Dict[str, Any]) -> None:
        self.logger.info("notify event=%s recipient=%s payload=%s", event, recipient_id, payload)


class SettingsCaregiverProfileProvider:
    """
    Default rates from configuration, with optional per-caregiver overrides.

    Stands in for the profile service until one is wired in.
    """

    def __init__(self, overrides: Optional[Mapping[str, Decimal]] = None):
        self._overrides = dict(overrides or {})

    def get_caregiver_default_rate(self, caregiver_id: str) -> Optional[Decimal]:
        return self._overrides.get(caregiver_id, settings.default_hourly_rate)
