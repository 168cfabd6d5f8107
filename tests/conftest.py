"""
Pytest configuration and shared fixtures.
"""

import pytest
import sys
import os
import tempfile
import json

# Add project root to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))


@pytest.fixture(scope="session")
def qapp():
    """Qt core application for tests that need an event loop."""
    from PyQt5.QtCore import QCoreApplication

    app = QCoreApplication.instance() or QCoreApplication([])
    yield app


@pytest.fixture
def mock_timer():
    """Create a virtual-clock timer service."""
    from cardswipe.services.timer_service import MockTimerService
    return MockTimerService()


@pytest.fixture
def mock_key_source():
    """Create an in-memory keystroke source."""
    from cardswipe.services.key_source import MockKeyEventSource
    return MockKeyEventSource()


@pytest.fixture
def event_bus():
    """Create a fresh EventBus with event logging enabled."""
    from cardswipe.events.event_bus import EventBus

    bus = EventBus()
    bus.enable_logging(True)
    return bus


@pytest.fixture
def make_detector(mock_timer, event_bus, mock_key_source):
    """
    Factory building a ScanDetector wired to the mock services.

    Keyword arguments are passed to SwipeConfig.
    """
    from cardswipe.controllers.scan_detector import ScanDetector
    from cardswipe.models.config import SwipeConfig

    def factory(**options):
        return ScanDetector(
            SwipeConfig(**options),
            timer_service=mock_timer,
            event_bus=event_bus,
            event_source=mock_key_source,
        )

    return factory


@pytest.fixture
def clean_registry():
    """Remove custom decoders registered during a test."""
    from cardswipe.decoders import registry

    before = dict(registry._REGISTRY)
    yield registry
    registry._REGISTRY.clear()
    registry._REGISTRY.update(before)


@pytest.fixture
def temp_config_file():
    """Create a temporary settings file for testing."""
    with tempfile.NamedTemporaryFile(
        mode='w',
        suffix='.json',
        delete=False
    ) as f:
        json.dump({
            "_version": 1,
            "enabled": True,
            "interdigit_timeout_ms": 300,
            "decoders": ["visa", "generic"],
            "first_line_only": False,
            "prefix_characters": [],
            "debug": False,
        }, f)
        temp_path = f.name

    yield temp_path

    # Cleanup
    if os.path.exists(temp_path):
        os.remove(temp_path)


@pytest.fixture
def temp_config_v0():
    """Create a v0 (legacy option names) settings file for migration testing."""
    with tempfile.NamedTemporaryFile(
        mode='w',
        suffix='.json',
        delete=False
    ) as f:
        # Old format without version
        json.dump({
            "enabled": False,
            "interdigitTimeout": 100,
            "parsers": ["amex", "generic"],
            "firstLineOnly": True,
            "prefixCharacter": "!",
        }, f)
        temp_path = f.name

    yield temp_path

    if os.path.exists(temp_path):
        os.remove(temp_path)


@pytest.fixture
def corrupted_config_file():
    """Create a corrupted settings file for error handling testing."""
    with tempfile.NamedTemporaryFile(
        mode='w',
        suffix='.json',
        delete=False
    ) as f:
        f.write("{ invalid json content")
        temp_path = f.name

    yield temp_path

    # Cleanup - also check for backup files
    if os.path.exists(temp_path):
        os.remove(temp_path)
    import glob
    for backup in glob.glob(f"{temp_path}-*.broken"):
        os.remove(backup)


# Track data used across tests
VISA_TRACK = "%B4111111111111111^DOE/JANE^1805101000000000000000503000000?"
MASTERCARD_TRACK = "%B5555555555554444^DOE/JANE^1805101000000000000000503000000?"
AMEX_TRACK = "%B378282246310005^DOE/JANE^1805101000000000000000503000000?"
DISCOVER_TRACK = "%B6011111111111117^DOE/JANE^1805101000000000000000503000000?"
GENERIC_TRACK = (
    "%B6009050000000000^SIMPSON/HOMER J           ^0000000X11111111100000000000000?"
    ";6009050000000000=00000002411111111100?\n"
)


@pytest.fixture
def visa_track():
    return VISA_TRACK


@pytest.fixture
def tracks():
    return {
        "visa": VISA_TRACK,
        "mastercard": MASTERCARD_TRACK,
        "amex": AMEX_TRACK,
        "discover": DISCOVER_TRACK,
        "generic": GENERIC_TRACK,
    }
