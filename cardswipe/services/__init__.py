"""
Services - Host capabilities the detector depends on.

Each capability has a Protocol, a production implementation, and a
mock for tests.
"""

from .interfaces import ITimerService, IKeyEventSource, IConfigService, KeyListener
from .timer_service import QtTimerService, MockTimerService
from .key_source import QtKeyEventSource, MockKeyEventSource
from .config_service import SwipeConfigService, MockSwipeConfigService

__all__ = [
    # Interfaces
    "ITimerService",
    "IKeyEventSource",
    "IConfigService",
    "KeyListener",
    # Services
    "QtTimerService",
    "QtKeyEventSource",
    "SwipeConfigService",
    # Mocks for testing
    "MockTimerService",
    "MockKeyEventSource",
    "MockSwipeConfigService",
]
