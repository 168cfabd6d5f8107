"""
Controllers - Coordinate between services and the event bus.

The scan detector turns keystrokes into decoded card records.
"""

from .scan_detector import ScanDetector

__all__ = [
    "ScanDetector",
]
