"""Overlay window showing the live transcript and Bella's replies."""

from __future__ import annotations

try:
    from PySide6.QtCore import Qt, QTimer
    from PySide6.QtWidgets import QApplication, QLabel, QWidget, QVBoxLayout
except Exception:  # pragma: no cover
    Qt = None  # type: ignore
    QTimer = None  # type: ignore
    QApplication = None  # type: ignore
    QLabel = object  # type: ignore
    QWidget = object  # type: ignore
    QVBoxLayout = object  # type: ignore

_DEFAULT_STYLE = (
    "color: white; font-size: 18px; padding: 16px;"
    "background: rgba(0,0,0,190); border-radius: 12px;"
)
_ERROR_STYLE = (
    "color: #FF6B6B; font-size: 18px; padding: 16px;"
    "background: rgba(0,0,0,210); border-radius: 12px;"
)
_TYPING_TEXT = "Bella is thinking..."


class OverlayWindow(QWidget):
    """Frameless top-of-screen chat surface.

    Keeps the last user line and reply, and implements the chat display
    operations (messages, typing indicator, visibility).
    """

    def __init__(self) -> None:
        if Qt is None:
            raise RuntimeError("PySide6 is not installed")
        super().__init__()
        self.setWindowFlags(
            Qt.WindowStaysOnTopHint | Qt.FramelessWindowHint | Qt.Tool
        )
        self.setAttribute(Qt.WA_TranslucentBackground, True)
        self.setFixedWidth(600)

        self._label = QLabel("")
        self._label.setWordWrap(True)
        self._label.setStyleSheet(_DEFAULT_STYLE)

        layout = QVBoxLayout()
        layout.setContentsMargins(0, 0, 0, 0)
        layout.addWidget(self._label)
        self.setLayout(layout)

        self._hide_timer: QTimer | None = None
        self._lines: list[str] = []
        self._typing = False

    def _center_top(self) -> None:
        if QApplication is None:
            return
        screen = QApplication.primaryScreen()
        if screen is None:
            return
        geom = screen.availableGeometry()
        self.adjustSize()
        x = geom.x() + (geom.width() - self.width()) // 2
        y = geom.y() + 40
        self.move(x, y)

    def set_text(self, text: str) -> None:
        """Replace the overlay contents and show it."""
        self._cancel_hide_timer()
        self._label.setStyleSheet(_DEFAULT_STYLE)
        self._lines = [text] if text else []
        self._render()

    def add_message(self, role: str, text: str) -> None:
        prefix = "You" if role == "user" else "Bella"
        self._cancel_hide_timer()
        self._label.setStyleSheet(_DEFAULT_STYLE)
        self._lines = (self._lines + [f"{prefix}: {text}"])[-2:]
        self._render()

    def show_typing_indicator(self) -> None:
        self._typing = True
        self._render()

    def hide_typing_indicator(self) -> None:
        self._typing = False
        self._render()

    def is_visible(self) -> bool:
        return self.isVisible()

    def hide_with_delay(self, delay_ms: int = 400) -> None:
        self._cancel_hide_timer()
        if QTimer is not None:
            self._hide_timer = QTimer()
            self._hide_timer.setSingleShot(True)
            self._hide_timer.timeout.connect(self.hide)
            self._hide_timer.start(delay_ms)

    def show_error(self, text: str, hide_after_ms: int = 4000) -> None:
        self._cancel_hide_timer()
        self._label.setStyleSheet(_ERROR_STYLE)
        self._lines = [f"⚠️ {text}"]
        self._render()
        self.hide_with_delay(hide_after_ms)

    def _render(self) -> None:
        lines = list(self._lines)
        if self._typing:
            lines.append(_TYPING_TEXT)
        self._label.setText("\n".join(lines))
        self._center_top()
        self.show()

    def _cancel_hide_timer(self) -> None:
        if self._hide_timer is not None:
            self._hide_timer.stop()
            self._hide_timer = None
