"""
Scan models: keystroke events and detector states.
"""

import sys
from dataclasses import dataclass
from enum import Enum


# Structural characters of the stripe encoding
CARRIAGE_RETURN = 13
LINE1_START = "%"
LINE2_START = ";"
LINE3_START = "+"
LINE_END = "?"


class ScanState(Enum):
    """States of the scan detector."""
    IDLE = "idle"                                  # Waiting for a line start or prefix
    PENDING_FORMAT = "pending_format"              # Saw %, waiting for a format letter
    PENDING_NUMERIC_LINE = "pending_numeric_line"  # Saw ;, waiting for a digit
    READING = "reading"                            # Capturing until terminator or timeout
    DISCARDING = "discarding"                      # Eating characters until terminator or timeout
    PREFIX = "prefix"                              # Eating reader prefix until the real scan starts

    @property
    def is_capturing(self) -> bool:
        """Check if the detector is building a scan buffer in this state."""
        return self in (
            ScanState.PENDING_FORMAT,
            ScanState.PENDING_NUMERIC_LINE,
            ScanState.READING,
        )


@dataclass(frozen=True)
class KeyEvent:
    """
    A single keystroke as delivered by the host.

    Only the character code is needed; whether the host suppresses the
    keystroke is decided by the detector's return value.
    """
    code: int

    def __post_init__(self):
        if self.code < 0:
            raise ValueError(f"Character code must be non-negative, got {self.code}")
        if self.code > sys.maxunicode:
            raise ValueError(f"Character code out of Unicode range, got {self.code}")

    @classmethod
    def from_char(cls, char: str) -> "KeyEvent":
        """Build an event for a single character."""
        if len(char) != 1:
            raise ValueError(f"Expected a single character, got {char!r}")
        return cls(code=ord(char))

    @property
    def char(self) -> str:
        return chr(self.code)

    @property
    def is_terminator(self) -> bool:
        return self.code == CARRIAGE_RETURN

    @property
    def is_format_letter(self) -> bool:
        """Track 1 format codes are A-Z; lowercase is accepted too."""
        return 65 <= self.code <= 90 or 97 <= self.code <= 122

    @property
    def is_digit(self) -> bool:
        return "0" <= self.char <= "9"
