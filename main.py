# main.py
import argparse
import logging
import sys

from PyQt5.QtGui import QFont
from PyQt5.QtWidgets import (
    QApplication,
    QWidget,
    QVBoxLayout,
    QLabel,
    QLineEdit,
    QTextBrowser,
    QMainWindow,
)

from cardswipe import ScanDetector
from cardswipe.events import EventBus
from cardswipe.logging import configure_logging
from cardswipe.models import IssuerCardRecord
from cardswipe.services import (
    IConfigService,
    QtKeyEventSource,
    QtTimerService,
    SwipeConfigService,
)

WIDTH_HEIGHT = [640, 420]

APP_TITLE = "Card Swipe Monitor"


class SwipeMonitorWindow(QMainWindow):
    """Shows decoded swipes while leaving a text field free for normal typing."""

    def __init__(self, config_service: IConfigService):
        super().__init__()
        self.setWindowTitle(f"{APP_TITLE} - {config_service.get_config_path()}")
        self.resize(*WIDTH_HEIGHT)

        self.layout = QVBoxLayout()
        self.central_widget = QWidget(self)
        self.central_widget.setLayout(self.layout)
        self.setCentralWidget(self.central_widget)

        self.status_label = QLabel("Swipe a card, or type below")
        self.layout.addWidget(self.status_label)

        # Swipes must never leak into this field
        self.input_field = QLineEdit()
        self.input_field.setPlaceholderText("Normal typing goes here")
        self.layout.addWidget(self.input_field)

        self.log_view = QTextBrowser()
        self.layout.addWidget(self.log_view)

        self.bus = EventBus(self)
        self.bus.scan_started.connect(lambda _: self.status_label.setText("Reading card..."))
        self.bus.scan_succeeded.connect(self.on_success)
        self.bus.scan_failed.connect(self.on_failure)

        self.config_service = config_service
        self.detector = ScanDetector(
            self.config_service.load(),
            timer_service=QtTimerService(self),
            event_bus=self.bus,
            event_source=QtKeyEventSource(),
        )

    def on_success(self, event):
        record = event.record
        if isinstance(record, IssuerCardRecord):
            summary = (
                f"{record.type_name}: {record.masked_account} "
                f"{record.full_name} exp {record.expiry}"
            )
        else:
            summary = f"{record.type_name}: {record.to_dict()}"
        self.status_label.setText("Card read")
        self.log_view.append(summary)

    def on_failure(self, event):
        self.status_label.setText("Unrecognised card")
        self.log_view.append(f"Failed to decode {len(event.raw)} characters")


def parse_args(argv):
    parser = argparse.ArgumentParser(description=APP_TITLE)
    parser.add_argument("--config", default="cardswipe.json", help="Settings file")
    parser.add_argument("--debug", action="store_true", help="Log state transitions")
    return parser.parse_args(argv)


if __name__ == "__main__":
    args = parse_args(sys.argv[1:])
    configure_logging(logging.DEBUG if args.debug else logging.INFO)

    app = QApplication(sys.argv[:1])

    font = QFont("Courier New", 10)
    app.setFont(font)

    window = SwipeMonitorWindow(SwipeConfigService(args.config))
    window.show()
    sys.exit(app.exec_())
