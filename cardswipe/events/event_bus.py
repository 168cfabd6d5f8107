"""
EventBus - Dispatcher for scan notifications.

Every detector reports through an EventBus so several independent
observers can react to the same scan. Inject one bus into several
detectors to collect all scans in one place.
"""

from dataclasses import dataclass
from typing import Optional, List

from PyQt5.QtCore import QObject, pyqtSignal

from ..models.card import CardRecord
from ..models.scan import ScanState


# ============================================================================
# Event Data Classes
# ============================================================================


@dataclass
class ScanEvent:
    """Base class for scan-related events."""
    pass


@dataclass
class ScanStartedEvent(ScanEvent):
    """Emitted when the detector enters READING."""
    pass


@dataclass
class ScanEndedEvent(ScanEvent):
    """Emitted when the detector leaves READING, before decoding."""
    raw: str


@dataclass
class ScanSucceededEvent(ScanEvent):
    """Emitted when a decoder accepted the captured text."""
    record: CardRecord
    raw: str


@dataclass
class ScanFailedEvent(ScanEvent):
    """Emitted when every decoder declined the captured text."""
    raw: str


@dataclass
class StateChangedEvent(ScanEvent):
    """Emitted on every detector state transition."""
    old_state: ScanState
    new_state: ScanState


# ============================================================================
# Event Bus Implementation
# ============================================================================


class EventBus(QObject):
    """
    Scan event dispatcher using Qt signals.

    Usage:
        bus = EventBus()

        # Subscribe
        bus.scan_succeeded.connect(my_handler)

        # Emit
        bus.emit(ScanFailedEvent(raw="%B123?"))
    """

    # Typed signals for each event category
    scan_started = pyqtSignal(object)    # ScanStartedEvent
    scan_ended = pyqtSignal(object)      # ScanEndedEvent
    scan_succeeded = pyqtSignal(object)  # ScanSucceededEvent
    scan_failed = pyqtSignal(object)     # ScanFailedEvent
    state_changed = pyqtSignal(object)   # StateChangedEvent

    def __init__(self, parent: Optional[QObject] = None):
        super().__init__(parent)
        self._event_log: List[ScanEvent] = []
        self._log_events = False

    def enable_logging(self, enable: bool = True) -> None:
        """Enable/disable event logging for debugging."""
        self._log_events = enable

    def get_event_log(self) -> List[ScanEvent]:
        """Get logged events (for debugging/testing)."""
        return list(self._event_log)

    def clear_event_log(self) -> None:
        """Clear the event log."""
        self._event_log.clear()

    def emit(self, event: ScanEvent) -> None:
        """
        Emit an event to the appropriate signal.

        Args:
            event: Event instance to emit
        """
        if self._log_events:
            self._event_log.append(event)

        # Route to appropriate signal based on event type
        if isinstance(event, StateChangedEvent):
            self.state_changed.emit(event)
        elif isinstance(event, ScanStartedEvent):
            self.scan_started.emit(event)
        elif isinstance(event, ScanEndedEvent):
            self.scan_ended.emit(event)
        elif isinstance(event, ScanSucceededEvent):
            self.scan_succeeded.emit(event)
        elif isinstance(event, ScanFailedEvent):
            self.scan_failed.emit(event)

    # Convenience methods for common events

    def emit_success(self, record: CardRecord, raw: str) -> None:
        """Emit a scan success event."""
        self.emit(ScanSucceededEvent(record=record, raw=raw))

    def emit_failure(self, raw: str) -> None:
        """Emit a scan failure event."""
        self.emit(ScanFailedEvent(raw=raw))
