"""
cardswipe - Magnetic stripe card swipe detection for keyboard-emulating readers.

Typical use inside a Qt application:

    from cardswipe import ScanDetector, SwipeConfig
    from cardswipe.services import QtKeyEventSource

    detector = ScanDetector(
        SwipeConfig(on_success=show_card, on_failure=show_error),
        event_source=QtKeyEventSource(),
    )
"""

from .controllers import ScanDetector
from .decoders import (
    BuiltinDecoder,
    FunctionDecoder,
    PatternDecoder,
    luhn_checksum,
    register_decoder,
)
from .events import EventBus
from .models import (
    CardRecord,
    CardType,
    GenericCardRecord,
    IssuerCardRecord,
    KeyEvent,
    ScanState,
    SwipeConfig,
    SwipeConfigError,
)

__version__ = "1.0.0"

__all__ = [
    "ScanDetector",
    "BuiltinDecoder",
    "FunctionDecoder",
    "PatternDecoder",
    "luhn_checksum",
    "register_decoder",
    "EventBus",
    "CardRecord",
    "CardType",
    "GenericCardRecord",
    "IssuerCardRecord",
    "KeyEvent",
    "ScanState",
    "SwipeConfig",
    "SwipeConfigError",
]
