"""
Service interfaces (Protocols) for dependency injection and testing.

These protocols define the capabilities the scan detector needs from its
host, so tests can drive it with in-memory doubles instead of a real
event loop and keyboard.
"""

from typing import Any, Callable, Protocol

from ..models.config import SwipeConfig
from ..models.scan import KeyEvent

# Returns True when the listener consumed (suppressed) the keystroke
KeyListener = Callable[[KeyEvent], bool]


class ITimerService(Protocol):
    """Interface for scheduling a single delayed callback."""

    def schedule(self, delay_ms: int, callback: Callable[[], None]) -> Any:
        """
        Schedule a callback.

        Args:
            delay_ms: Delay in milliseconds
            callback: Function to invoke once the delay elapses

        Returns:
            Opaque handle accepted by cancel()
        """
        ...

    def cancel(self, handle: Any) -> None:
        """
        Cancel a scheduled callback.

        Cancelling a handle that already fired or was cancelled is a no-op.
        """
        ...


class IKeyEventSource(Protocol):
    """Interface for the host's stream of keystrokes."""

    def add_listener(self, listener: KeyListener) -> None:
        """Start delivering keystrokes to listener."""
        ...

    def remove_listener(self, listener: KeyListener) -> None:
        """Stop delivering keystrokes to listener."""
        ...


class IConfigService(Protocol):
    """Interface for detector settings persistence."""

    def load(self) -> SwipeConfig:
        """Load settings from disk."""
        ...

    def save(self, config: SwipeConfig) -> None:
        """Save settings to disk."""
        ...

    def get_config_path(self) -> str:
        """Get the path to the settings file."""
        ...
