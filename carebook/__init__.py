"""CareBook scheduling core: availability slots and the booking lifecycle."""

__version__ = "0.1.0"
