"""
ScanDetector - Tells card reader bursts apart from typing and decodes them.

This controller orchestrates:
- The scan state machine, one keystroke at a time
- The interdigit timer that ends scans without a carriage return
- Decoding the captured text with the configured decoders
- Reporting the outcome through callbacks and the EventBus

Events Emitted:
- StateChangedEvent - every state transition
- ScanStartedEvent - entering READING
- ScanEndedEvent - leaving READING
- ScanSucceededEvent - a decoder accepted the scan
- ScanFailedEvent - every decoder declined the scan
"""

import logging
from typing import Any, List, Optional, Union, TYPE_CHECKING

from ..events.event_bus import (
    EventBus,
    ScanStartedEvent,
    ScanEndedEvent,
    StateChangedEvent,
)
from ..logging import create_detector_logger, set_debug_enabled
from ..models.card import CardRecord, IssuerCardRecord
from ..models.config import SwipeConfig
from ..models.scan import KeyEvent, LINE1_START, LINE2_START, LINE_END, ScanState

if TYPE_CHECKING:
    from ..services.interfaces import ITimerService, IKeyEventSource

_LINE1_START = ord(LINE1_START)
_LINE2_START = ord(LINE2_START)
_LINE_END = ord(LINE_END)


class ScanDetector:
    """
    State machine that captures card swipes from a keystroke stream.

    Each instance owns its state, buffer, timer handle and configuration.
    Feed keystrokes with handle_key(); it returns True when the keystroke
    belongs to a scan and must not reach normal text input.
    """

    def __init__(
        self,
        config: Optional[SwipeConfig] = None,
        timer_service: Optional["ITimerService"] = None,
        event_bus: Optional[EventBus] = None,
        event_source: Optional["IKeyEventSource"] = None,
    ):
        """
        Initialize the ScanDetector.

        Args:
            config: Detector configuration (defaults to SwipeConfig())
            timer_service: Service for the interdigit timeout (QtTimerService if not provided)
            event_bus: EventBus instance (a private bus if not provided)
            event_source: Keystroke source to attach to on enable()
        """
        if timer_service is None:
            from ..services.timer_service import QtTimerService
            timer_service = QtTimerService()

        self._timers = timer_service
        self._bus = event_bus or EventBus()
        self._source = event_source
        self._log = create_detector_logger()

        self._config = SwipeConfig()
        self._state = ScanState.IDLE
        self._buffer: List[str] = []
        self._timer_handle: Any = None
        self._enabled = False

        self._handlers = {
            ScanState.IDLE: self._on_idle,
            ScanState.PENDING_FORMAT: self._on_pending_format,
            ScanState.PENDING_NUMERIC_LINE: self._on_pending_numeric_line,
            ScanState.READING: self._on_reading,
            ScanState.DISCARDING: self._on_discarding,
            ScanState.PREFIX: self._on_prefix,
        }

        self.init(config or SwipeConfig())

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def state(self) -> ScanState:
        """Get the current state."""
        return self._state

    @property
    def buffer(self) -> str:
        """Get the characters captured so far."""
        return "".join(self._buffer)

    @property
    def config(self) -> SwipeConfig:
        return self._config

    @property
    def event_bus(self) -> EventBus:
        return self._bus

    @property
    def is_enabled(self) -> bool:
        return self._enabled

    @property
    def logger(self) -> logging.Logger:
        """Logger of this detector; debug output follows config.debug."""
        return self._log

    @property
    def has_pending_timer(self) -> bool:
        return self._timer_handle is not None

    # =========================================================================
    # Control
    # =========================================================================

    def init(self, config: SwipeConfig) -> None:
        """
        Reset to IDLE and apply a new configuration.

        Any pending timer is cancelled and the buffer dropped. Listening
        resumes immediately if config.enabled is set.
        """
        self.disable()
        self._clear_timer()
        self._buffer = []
        self._state = ScanState.IDLE
        self._config = config

        set_debug_enabled(self._log, config.debug)

        self._log.debug(
            f"Initialized: timeout={config.interdigit_timeout_ms}ms "
            f"decoders={list(config.decoder_names)} "
            f"prefixes={list(config.prefix_characters)} "
            f"first_line_only={config.first_line_only}"
        )

        if config.enabled:
            self.enable()

    def enable(self) -> None:
        """Start reacting to keystrokes."""
        if self._enabled:
            return
        self._enabled = True
        if self._source is not None:
            self._source.add_listener(self.handle_key)
        self._log.debug("Enabled")

    def disable(self) -> None:
        """
        Stop reacting to keystrokes.

        State is left as is; a timer that is already armed still fires.
        """
        if not self._enabled:
            return
        self._enabled = False
        if self._source is not None:
            self._source.remove_listener(self.handle_key)
        self._log.debug("Disabled")

    # =========================================================================
    # Keystroke Handling
    # =========================================================================

    def handle_key(self, event: Union[KeyEvent, int, str]) -> bool:
        """
        Process one keystroke.

        Args:
            event: KeyEvent, character code, or single character

        Returns:
            True if the keystroke was consumed and must be suppressed
        """
        if not self._enabled:
            return False

        if isinstance(event, str):
            event = KeyEvent.from_char(event)
        elif isinstance(event, int):
            event = KeyEvent(event)

        return self._handlers[self._state](event)

    def _on_idle(self, event: KeyEvent) -> bool:
        if event.code in self._config.prefix_codes:
            self._set_state(ScanState.PREFIX)
            self._start_timer()
            return True
        return self._try_line_start(event)

    def _on_pending_format(self, event: KeyEvent) -> bool:
        # Track 1 format code, almost always B
        if event.is_format_letter:
            return self._start_reading(event)
        self._abandon()
        return False

    def _on_pending_numeric_line(self, event: KeyEvent) -> bool:
        if event.is_digit:
            return self._start_reading(event)
        self._abandon()
        return False

    def _on_reading(self, event: KeyEvent) -> bool:
        self._buffer.append(event.char)

        if event.is_terminator:
            self._clear_timer()
            self._end_reading(ScanState.IDLE)
            return True

        self._start_timer()

        if self._config.first_line_only and event.code == _LINE_END:
            # End of line 1: report now, eat the remaining lines
            self._end_reading(ScanState.DISCARDING)

        return True

    def _on_discarding(self, event: KeyEvent) -> bool:
        if event.is_terminator:
            self._clear_timer()
            self._set_state(ScanState.IDLE)
            return True

        self._start_timer()
        return True

    def _on_prefix(self, event: KeyEvent) -> bool:
        if event.code in self._config.prefix_codes:
            # A second prefix marker is typed text, not a reader preamble
            self._clear_timer()
            self._set_state(ScanState.IDLE)
            return False

        if self._try_line_start(event):
            return True

        self._start_timer()
        return True

    def _try_line_start(self, event: KeyEvent) -> bool:
        """Begin a new buffer on '%' or ';'. Returns True if consumed."""
        if event.code == _LINE1_START:
            next_state = ScanState.PENDING_FORMAT
        elif event.code == _LINE2_START:
            next_state = ScanState.PENDING_NUMERIC_LINE
        else:
            return False

        self._buffer = [event.char]
        self._set_state(next_state)
        self._start_timer()
        return True

    def _start_reading(self, event: KeyEvent) -> bool:
        self._buffer.append(event.char)
        self._set_state(ScanState.READING)
        self._start_timer()
        self._bus.emit(ScanStartedEvent())
        return True

    def _end_reading(self, next_state: ScanState) -> None:
        raw = self.buffer
        self._buffer = []
        self._set_state(next_state)
        self._bus.emit(ScanEndedEvent(raw=raw))
        self._process_scan(raw)

    def _abandon(self) -> None:
        """Drop a partial scan that never started reading."""
        self._clear_timer()
        self._log.debug(f"Discarding partial scan {self.buffer!r}")
        self._buffer = []
        self._set_state(ScanState.IDLE)

    def _set_state(self, new_state: ScanState) -> None:
        old_state = self._state
        if old_state == new_state:
            return
        self._state = new_state
        self._log.debug(f"State {old_state.value} -> {new_state.value}")
        self._bus.emit(StateChangedEvent(old_state=old_state, new_state=new_state))

    # =========================================================================
    # Interdigit Timer
    # =========================================================================

    def _start_timer(self) -> None:
        """Arm the interdigit timer, superseding any pending one."""
        self._clear_timer()
        self._timer_handle = self._timers.schedule(
            self._config.interdigit_timeout_ms, self.on_timeout
        )

    def _clear_timer(self) -> None:
        if self._timer_handle is not None:
            self._timers.cancel(self._timer_handle)
            self._timer_handle = None

    def on_timeout(self) -> None:
        """
        Called when no keystroke arrived within the interdigit timeout.

        A scan still in READING is processed with whatever was captured.
        """
        self._timer_handle = None
        self._log.debug(f"Interdigit timeout in state {self._state.value}")

        if self._state == ScanState.READING:
            # Callbacks may already have started the next scan
            self._end_reading(ScanState.IDLE)
            return

        self._buffer = []
        self._set_state(ScanState.IDLE)

    # =========================================================================
    # Decoding
    # =========================================================================

    def decode(self, raw: str) -> Optional[CardRecord]:
        """
        Run the configured decoders in order.

        Returns:
            The first record produced, or None if every decoder declined
        """
        for decoder in self._config.decoders:
            try:
                record = decoder.decode(raw)
            except Exception:
                self._log.exception(f"Decoder '{decoder.name}' raised; skipping it")
                continue
            if record is not None:
                return record
        return None

    def _process_scan(self, raw: str) -> None:
        record = self.decode(raw)

        if record is not None:
            if isinstance(record, IssuerCardRecord):
                self._log.info(f"Scan decoded as {record.type_name} {record.masked_account}")
            else:
                self._log.info(f"Scan decoded as {record.type_name}")
            if self._config.on_success is not None:
                self._config.on_success(record)
            self._bus.emit_success(record, raw)
        else:
            self._log.info(f"Scan not recognised ({len(raw)} characters)")
            if self._config.on_failure is not None:
                self._config.on_failure(raw)
            self._bus.emit_failure(raw)
