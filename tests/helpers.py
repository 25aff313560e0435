# tests/helpers.py
"""Shared test doubles and constants."""

from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Tuple

# A Monday
WEEK_START = date(2030, 6, 3)


class FixedClock:
    """Controllable caregiver-local "now"."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: Any) -> None:
        self.now = self.now + timedelta(**kwargs)

    def set(self, now: datetime) -> None:
        self.now = now


class RecordingBridge:
    """Notification bridge that remembers every call."""

    def __init__(self) -> None:
        self.calls: List[Tuple[str, str, Dict[str, Any]]] = []

    def notify(self, event: str, recipient_id: str, payload: Dict[str, Any]) -> None:
        self.calls.append((event, recipient_id, payload))

    @property
    def events(self) -> List[str]:
        return [event for event, _, _ in self.calls]


class FailingBridge:
    """Notification bridge whose transport is down."""

    def __init__(self) -> None:
        self.attempts = 0

    def notify(self, event: str, recipient_id: str, payload: Dict[str, Any]) -> None:
        self.attempts += 1
        raise ConnectionError("notification transport unavailable")
