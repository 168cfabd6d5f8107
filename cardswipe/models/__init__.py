"""
Models - Pure Python dataclasses for scan events, card records and settings.

No Qt dependencies in this package.
"""

from .scan import (
    KeyEvent,
    ScanState,
    CARRIAGE_RETURN,
    LINE1_START,
    LINE2_START,
    LINE3_START,
    LINE_END,
)
from .card import CardType, CardRecord, GenericCardRecord, IssuerCardRecord
from .config import (
    SwipeConfig,
    SwipeConfigError,
    CONFIG_VERSION,
    DEFAULT_DECODERS,
    DEFAULT_INTERDIGIT_TIMEOUT_MS,
)

__all__ = [
    "KeyEvent",
    "ScanState",
    "CARRIAGE_RETURN",
    "LINE1_START",
    "LINE2_START",
    "LINE3_START",
    "LINE_END",
    "CardType",
    "CardRecord",
    "GenericCardRecord",
    "IssuerCardRecord",
    "SwipeConfig",
    "SwipeConfigError",
    "CONFIG_VERSION",
    "DEFAULT_DECODERS",
    "DEFAULT_INTERDIGIT_TIMEOUT_MS",
]
