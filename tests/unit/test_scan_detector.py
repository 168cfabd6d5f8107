"""
Tests for ScanDetector.
"""

import logging

import pytest
from unittest.mock import Mock

from cardswipe.controllers.scan_detector import ScanDetector
from cardswipe.events.event_bus import (
    ScanStartedEvent,
    ScanEndedEvent,
    ScanSucceededEvent,
    ScanFailedEvent,
    StateChangedEvent,
)
from cardswipe.models.card import CardType, GenericCardRecord, IssuerCardRecord
from cardswipe.models.config import SwipeConfig, SwipeConfigError
from cardswipe.models.scan import KeyEvent, ScanState

CR = "\r"


def feed(detector, text):
    """Feed each character, returning the consumed flags."""
    return [detector.handle_key(ch) for ch in text]


def events_of(event_bus, event_type):
    return [e for e in event_bus.get_event_log() if isinstance(e, event_type)]


class TestDetectorBasics:
    """Test basic detector functionality."""

    def test_initial_state(self, make_detector):
        detector = make_detector()

        assert detector.state == ScanState.IDLE
        assert detector.buffer == ""
        assert detector.is_enabled
        assert not detector.has_pending_timer

    def test_starts_disabled_when_configured(self, make_detector, mock_key_source):
        detector = make_detector(enabled=False)

        assert not detector.is_enabled
        assert mock_key_source.listener_count == 0
        assert detector.handle_key("%") is False
        assert detector.state == ScanState.IDLE

    def test_bad_prefix_fails_construction(self, make_detector):
        with pytest.raises(SwipeConfigError):
            make_detector(prefix_characters=["!!"])

    def test_accepts_codes_and_events(self, make_detector):
        detector = make_detector()

        assert detector.handle_key(37) is True
        assert detector.state == ScanState.PENDING_FORMAT
        assert detector.handle_key(KeyEvent.from_char("B")) is True
        assert detector.state == ScanState.READING

    def test_debug_setting_is_per_detector(self, make_detector):
        noisy = make_detector(debug=True)
        quiet = make_detector()

        assert noisy.logger.isEnabledFor(logging.DEBUG)
        assert not quiet.logger.isEnabledFor(logging.DEBUG)

        noisy.init(SwipeConfig(debug=False))
        assert not noisy.logger.isEnabledFor(logging.DEBUG)
        assert noisy.logger.level == logging.NOTSET


class TestIdleState:
    """Typing outside a scan is left alone."""

    def test_ordinary_characters_pass_through(self, make_detector, mock_timer):
        detector = make_detector(prefix_characters="!")
        skipped = {ord("%"), ord(";"), ord("!")}

        for code in range(0, 256):
            if code in skipped:
                continue
            assert detector.handle_key(code) is False
            assert detector.state == ScanState.IDLE

        assert mock_timer.pending_count == 0

    def test_plain_typing_reaches_host(self, make_detector, mock_key_source, event_bus):
        make_detector()

        mock_key_source.type_text("hello world")

        assert mock_key_source.passed_text == "hello world"
        assert event_bus.get_event_log() == []


class TestPendingStates:
    """Tests for the line-start states."""

    def test_percent_enters_pending_format(self, make_detector, mock_timer):
        detector = make_detector()

        assert detector.handle_key("%") is True
        assert detector.state == ScanState.PENDING_FORMAT
        assert detector.buffer == "%"
        assert mock_timer.pending_count == 1

    def test_lowercase_format_letter_starts_reading(self, make_detector):
        detector = make_detector()
        feed(detector, "%b")
        assert detector.state == ScanState.READING

    def test_non_letter_abandons_pending_format(self, make_detector, mock_timer, event_bus):
        detector = make_detector()

        assert detector.handle_key("%") is True
        assert detector.handle_key("5") is False

        assert detector.state == ScanState.IDLE
        assert detector.buffer == ""
        assert mock_timer.pending_count == 0
        assert events_of(event_bus, ScanStartedEvent) == []
        assert events_of(event_bus, ScanFailedEvent) == []

    def test_non_ascii_letter_abandons_pending_format(self, make_detector, mock_key_source):
        detector = make_detector()

        assert mock_key_source.type_text("%ß") == [True, False]

        assert detector.state == ScanState.IDLE
        assert detector.buffer == ""
        assert mock_key_source.passed_text == "ß"

    def test_semicolon_enters_pending_numeric_line(self, make_detector):
        detector = make_detector()

        assert detector.handle_key(";") is True
        assert detector.state == ScanState.PENDING_NUMERIC_LINE
        assert detector.handle_key("4") is True
        assert detector.state == ScanState.READING

    def test_non_digit_abandons_numeric_line(self, make_detector, mock_key_source):
        detector = make_detector()

        mock_key_source.type_text(";x")

        assert detector.state == ScanState.IDLE
        assert mock_key_source.passed_text == "x"


class TestCompleteScans:
    """End-to-end scans through the detector."""

    def test_visa_scan_with_carriage_return(self, make_detector, visa_track, event_bus):
        on_success = Mock()
        on_failure = Mock()
        detector = make_detector(on_success=on_success, on_failure=on_failure)

        consumed = feed(detector, visa_track + CR)

        assert all(consumed)
        assert detector.state == ScanState.IDLE
        assert detector.buffer == ""
        on_failure.assert_not_called()
        on_success.assert_called_once()

        record = on_success.call_args[0][0]
        assert record == IssuerCardRecord(
            card_type=CardType.VISA,
            account="4111111111111111",
            last_name="DOE",
            first_name="JANE",
            exp_year="18",
            exp_month="05",
        )

        successes = events_of(event_bus, ScanSucceededEvent)
        assert len(successes) == 1
        assert successes[0].record == record
        assert successes[0].raw == visa_track + CR

    def test_carriage_return_cancels_timer(self, make_detector, visa_track, mock_timer):
        detector = make_detector()
        feed(detector, visa_track + CR)

        assert mock_timer.pending_count == 0
        assert not detector.has_pending_timer

    def test_unrecognised_scan_reports_failure(self, make_detector, event_bus):
        on_success = Mock()
        on_failure = Mock()
        detector = make_detector(
            decoders=("visa", "mastercard"),
            on_success=on_success,
            on_failure=on_failure,
        )

        raw = "%BNOT^A^CARD?" + CR
        feed(detector, raw)

        on_success.assert_not_called()
        on_failure.assert_called_once_with(raw)
        assert [e.raw for e in events_of(event_bus, ScanFailedEvent)] == [raw]
        assert events_of(event_bus, ScanSucceededEvent) == []

    def test_decoders_tried_in_order(self, make_detector, visa_track):
        on_success = Mock()
        detector = make_detector(decoders=("generic", "visa"), on_success=on_success)

        feed(detector, visa_track + CR)

        assert isinstance(on_success.call_args[0][0], GenericCardRecord)

    def test_generic_scan_completed_by_timeout(self, make_detector, mock_timer):
        on_success = Mock()
        detector = make_detector(decoders=("generic",), on_success=on_success)

        feed(detector, "%B654321^DOE/JOHN?")
        assert detector.state == ScanState.READING

        mock_timer.advance(250)

        record = on_success.call_args[0][0]
        assert record.card_type == CardType.GENERIC
        assert record.line1 == "B654321^DOE/JOHN"
        assert detector.state == ScanState.IDLE

    def test_numeric_line_scan(self, make_detector):
        on_success = Mock()
        detector = make_detector(decoders=("generic",), on_success=on_success)

        feed(detector, ";4111111111111111=1805101?" + CR)

        assert on_success.call_args[0][0].line2 == "4111111111111111=1805101"

    def test_custom_decoder_function(self, make_detector):
        def loyalty(raw):
            if raw.startswith("%L"):
                return GenericCardRecord(card_type="loyalty", line1=raw[2:6])
            return None

        on_success = Mock()
        detector = make_detector(decoders=(loyalty, "generic"), on_success=on_success)

        feed(detector, "%L1234?" + CR)

        record = on_success.call_args[0][0]
        assert record.type_name == "loyalty"
        assert record.line1 == "1234"

    def test_raising_decoder_is_skipped(self, make_detector):
        def broken(raw):
            raise RuntimeError("boom")

        on_success = Mock()
        detector = make_detector(decoders=(broken, "generic"), on_success=on_success)

        feed(detector, "%BABC?" + CR)

        assert on_success.call_args[0][0].line1 == "BABC"
        assert detector.state == ScanState.IDLE

    def test_scan_never_reaches_host(self, make_detector, mock_key_source, visa_track):
        make_detector()

        mock_key_source.type_text("ab" + visa_track + CR + "cd")

        assert mock_key_source.passed_text == "abcd"


class TestTimeouts:
    """Tests for the interdigit timer."""

    def test_timeout_after_percent_returns_to_idle(self, make_detector, mock_timer, event_bus):
        detector = make_detector(interdigit_timeout_ms=100, decoders=())

        detector.handle_key("%")
        assert detector.state == ScanState.PENDING_FORMAT

        mock_timer.advance(101)

        assert detector.state == ScanState.IDLE
        assert detector.buffer == ""
        assert events_of(event_bus, ScanStartedEvent) == []
        assert events_of(event_bus, ScanEndedEvent) == []
        assert events_of(event_bus, ScanFailedEvent) == []

    def test_no_timeout_before_deadline(self, make_detector, mock_timer):
        detector = make_detector(interdigit_timeout_ms=100)

        detector.handle_key("%")
        mock_timer.advance(99)

        assert detector.state == ScanState.PENDING_FORMAT

    def test_timeout_while_reading_completes_scan(self, make_detector, mock_timer, event_bus):
        on_failure = Mock()
        detector = make_detector(interdigit_timeout_ms=100, decoders=(), on_failure=on_failure)

        detector.handle_key("%")
        detector.handle_key("B")
        assert detector.state == ScanState.READING

        mock_timer.advance(101)

        assert detector.state == ScanState.IDLE
        assert len(events_of(event_bus, ScanStartedEvent)) == 1
        assert len(events_of(event_bus, ScanEndedEvent)) == 1
        on_failure.assert_called_once_with("%B")

        transitions = [
            (e.old_state, e.new_state) for e in events_of(event_bus, StateChangedEvent)
        ]
        assert transitions == [
            (ScanState.IDLE, ScanState.PENDING_FORMAT),
            (ScanState.PENDING_FORMAT, ScanState.READING),
            (ScanState.READING, ScanState.IDLE),
        ]

    def test_callback_can_start_new_scan_after_timeout(self, make_detector, mock_timer):
        """A keystroke fed from the failure callback begins a fresh scan."""
        detectors = []
        on_failure = Mock(side_effect=lambda raw: detectors[0].handle_key("%"))
        detector = make_detector(interdigit_timeout_ms=100, decoders=(), on_failure=on_failure)
        detectors.append(detector)

        detector.handle_key("%")
        detector.handle_key("B")
        mock_timer.advance(101)

        on_failure.assert_called_once_with("%B")
        assert detector.state == ScanState.PENDING_FORMAT
        assert detector.buffer == "%"
        assert mock_timer.pending_count == 1

    def test_each_keystroke_rearms_single_timer(self, make_detector, mock_timer):
        detector = make_detector(interdigit_timeout_ms=100)

        for ch in "%B1234":
            detector.handle_key(ch)
            assert mock_timer.pending_count == 1
            mock_timer.advance(90)

        # 90ms gaps never reach the 100ms timeout
        assert detector.state == ScanState.READING
        assert detector.buffer == "%B1234"


class TestFirstLineOnly:
    """Tests for early termination at the end of line 1."""

    TRACKS = "%B4111111111111111^DOE/JANE^1805101?;4111111111111111=1805101?"

    def test_reports_at_line_one_end_and_discards_rest(self, make_detector, mock_key_source):
        on_success = Mock()
        detector = make_detector(first_line_only=True, on_success=on_success)

        line1_end = self.TRACKS.index("?") + 1
        mock_key_source.type_text(self.TRACKS[:line1_end])

        assert detector.state == ScanState.DISCARDING
        record = on_success.call_args[0][0]
        assert record.card_type == CardType.VISA
        assert record.account == "4111111111111111"

        mock_key_source.type_text(self.TRACKS[line1_end:])
        assert detector.state == ScanState.DISCARDING

        mock_key_source.type_text(CR)
        assert detector.state == ScanState.IDLE
        assert mock_key_source.passed_text == ""
        on_success.assert_called_once()

    def test_timer_stays_armed_while_discarding(self, make_detector, mock_timer):
        detector = make_detector(first_line_only=True)

        feed(detector, "%BABC?")

        assert detector.state == ScanState.DISCARDING
        assert mock_timer.pending_count == 1

        feed(detector, CR)
        assert mock_timer.pending_count == 0

    def test_discarding_times_out_without_second_report(self, make_detector, mock_timer):
        on_success = Mock()
        detector = make_detector(first_line_only=True, on_success=on_success)

        feed(detector, "%BABC?;123")
        mock_timer.advance(300)

        assert detector.state == ScanState.IDLE
        on_success.assert_called_once()

    def test_question_mark_ignored_without_option(self, make_detector):
        detector = make_detector()
        feed(detector, "%BABC?")
        assert detector.state == ScanState.READING


class TestPrefix:
    """Tests for reader prefix characters."""

    def test_prefix_then_scan_start(self, make_detector):
        detector = make_detector(prefix_characters="!", interdigit_timeout_ms=100, decoders=())

        consumed = feed(detector, "!PREFIX%")

        assert consumed == [True] * 8
        assert detector.state == ScanState.PENDING_FORMAT
        assert detector.buffer == "%"

    def test_prefix_state_after_marker(self, make_detector):
        detector = make_detector(prefix_characters="!")

        assert detector.handle_key("!") is True
        assert detector.state == ScanState.PREFIX

    def test_prefix_times_out(self, make_detector, mock_timer):
        detector = make_detector(prefix_characters="!", interdigit_timeout_ms=100)

        detector.handle_key("!")
        mock_timer.advance(101)

        assert detector.state == ScanState.IDLE

    def test_repeated_prefix_is_typed_text(self, make_detector, mock_key_source):
        detector = make_detector(prefix_characters="!")

        mock_key_source.type_text("!!")

        assert detector.state == ScanState.IDLE
        assert mock_key_source.passed_text == "!"

    def test_any_configured_prefix_matches(self, make_detector):
        detector = make_detector(prefix_characters=["!", "#"])

        detector.handle_key("#")
        assert detector.state == ScanState.PREFIX
        detector.handle_key("!")
        assert detector.state == ScanState.IDLE

    def test_prefix_before_numeric_line(self, make_detector):
        on_success = Mock()
        detector = make_detector(prefix_characters="!", decoders=("generic",), on_success=on_success)

        feed(detector, "!xx;123?" + CR)

        assert on_success.call_args[0][0].line2 == "123"


class TestEnableDisable:
    """Tests for enable/disable/init."""

    def test_disable_mid_scan_stops_suppression(self, make_detector, mock_key_source):
        detector = make_detector(decoders=())

        mock_key_source.press("%")
        assert detector.state == ScanState.PENDING_FORMAT

        detector.disable()
        assert mock_key_source.press("B") is False

        assert detector.state == ScanState.PENDING_FORMAT
        assert mock_key_source.passed_text == "B"
        assert detector.handle_key("B") is False

    def test_disable_leaves_timer_armed(self, make_detector, mock_timer):
        detector = make_detector()

        detector.handle_key("%")
        detector.disable()
        mock_timer.advance(300)

        assert detector.state == ScanState.IDLE

    def test_enable_after_disabled_start(self, make_detector, mock_key_source):
        detector = make_detector(enabled=False, decoders=())

        mock_key_source.press("%")
        assert detector.state == ScanState.IDLE

        detector.enable()
        mock_key_source.press("%")
        assert detector.state == ScanState.PENDING_FORMAT

    def test_enable_is_idempotent(self, make_detector, mock_key_source):
        detector = make_detector()
        detector.enable()
        assert mock_key_source.listener_count == 1

    def test_init_resets_everything(self, make_detector, mock_timer, mock_key_source):
        detector = make_detector()
        feed(detector, "%B123")

        detector.init(SwipeConfig(interdigit_timeout_ms=50, enabled=False))

        assert detector.state == ScanState.IDLE
        assert detector.buffer == ""
        assert mock_timer.pending_count == 0
        assert not detector.is_enabled
        assert mock_key_source.listener_count == 0
        assert detector.config.interdigit_timeout_ms == 50


class TestIndependentDetectors:
    """Detectors never share state."""

    def test_two_detectors_keep_separate_state(self, mock_timer):
        first = ScanDetector(SwipeConfig(), timer_service=mock_timer)
        second = ScanDetector(SwipeConfig(), timer_service=mock_timer)

        feed(first, "%B12")

        assert first.state == ScanState.READING
        assert second.state == ScanState.IDLE
        assert second.buffer == ""
        assert first.event_bus is not second.event_bus

    def test_shared_bus_broadcasts_both(self, mock_timer, event_bus):
        first = ScanDetector(SwipeConfig(decoders=()), timer_service=mock_timer, event_bus=event_bus)
        second = ScanDetector(SwipeConfig(decoders=()), timer_service=mock_timer, event_bus=event_bus)

        feed(first, "%BA" + CR)
        feed(second, "%BB" + CR)

        assert [e.raw for e in events_of(event_bus, ScanFailedEvent)] == ["%BA\r", "%BB\r"]
