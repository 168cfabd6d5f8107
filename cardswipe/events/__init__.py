"""
Event system for broadcasting scan notifications.
"""

from .event_bus import (
    EventBus,
    ScanEvent,
    ScanStartedEvent,
    ScanEndedEvent,
    ScanSucceededEvent,
    ScanFailedEvent,
    StateChangedEvent,
)

__all__ = [
    "EventBus",
    "ScanEvent",
    "ScanStartedEvent",
    "ScanEndedEvent",
    "ScanSucceededEvent",
    "ScanFailedEvent",
    "StateChangedEvent",
]
