"""
KeySource - Delivers host keystrokes to the scan detector.

QtKeyEventSource filters key presses out of a Qt application; a
listener returning True swallows the keystroke so it never reaches the
focused widget.
"""

import logging
from typing import List, Optional

from PyQt5.QtCore import QCoreApplication, QEvent, QObject, Qt

from ..models.scan import CARRIAGE_RETURN, KeyEvent
from .interfaces import KeyListener

logger = logging.getLogger(__name__)


class QtKeyEventSource(QObject):
    """
    Keystroke source backed by a Qt event filter.

    Installs itself on the target while at least one listener is
    attached. With the application as target, only deliveries to the
    focus object are forwarded, so a keystroke propagating through
    parent widgets is seen once.
    """

    def __init__(self, target: Optional[QObject] = None, parent: Optional[QObject] = None):
        """
        Initialize the key source.

        Args:
            target: Object to filter; defaults to the running QApplication
            parent: Optional QObject parent
        """
        super().__init__(parent)
        self._target = target
        self._listeners: List[KeyListener] = []
        self._installed = False

    @property
    def target(self) -> Optional[QObject]:
        return self._target or QCoreApplication.instance()

    def add_listener(self, listener: KeyListener) -> None:
        if listener in self._listeners:
            return
        self._listeners.append(listener)
        if not self._installed:
            target = self.target
            if target is None:
                raise RuntimeError("No Qt application running and no target given")
            target.installEventFilter(self)
            self._installed = True
            logger.debug(f"Key filter installed on {type(target).__name__}")

    def remove_listener(self, listener: KeyListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)
        if not self._listeners and self._installed:
            target = self.target
            if target is not None:
                target.removeEventFilter(self)
            self._installed = False
            logger.debug("Key filter removed")

    def eventFilter(self, obj: QObject, event: QEvent) -> bool:
        if event.type() != QEvent.KeyPress or not self._listeners:
            return False
        if not self._is_primary_receiver(obj):
            return False

        key_event = self.to_key_event(event)
        if key_event is None:
            return False

        consumed = False
        for listener in list(self._listeners):
            if listener(key_event):
                consumed = True
        return consumed

    @staticmethod
    def to_key_event(event) -> Optional[KeyEvent]:
        """
        Convert a QKeyEvent to a KeyEvent.

        Return/Enter become carriage return; keys without text (arrows,
        modifiers) are ignored.
        """
        if event.key() in (Qt.Key_Return, Qt.Key_Enter):
            return KeyEvent(CARRIAGE_RETURN)
        text = event.text()
        if not text:
            return None
        return KeyEvent(ord(text[0]))

    def _is_primary_receiver(self, obj: QObject) -> bool:
        app = QCoreApplication.instance()
        if self._target is not None and self._target is not app:
            return True
        focus_object = getattr(app, "focusObject", None)
        if focus_object is None:
            return True
        focused = focus_object()
        return focused is None or obj is focused


class MockKeyEventSource:
    """
    Mock keystroke source for testing.

    press() and type_text() feed characters to the listeners and record
    which ones passed through to the "host".
    """

    def __init__(self):
        self._listeners: List[KeyListener] = []
        self.passed_through: List[str] = []

    def add_listener(self, listener: KeyListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def remove_listener(self, listener: KeyListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def press(self, char: str) -> bool:
        """
        Deliver one character.

        Returns:
            True if a listener consumed it
        """
        event = KeyEvent.from_char(char)
        consumed = False
        for listener in list(self._listeners):
            if listener(event):
                consumed = True
        if not consumed:
            self.passed_through.append(char)
        return consumed

    def type_text(self, text: str) -> List[bool]:
        """Deliver each character of text in order."""
        return [self.press(ch) for ch in text]

    @property
    def passed_text(self) -> str:
        return "".join(self.passed_through)
