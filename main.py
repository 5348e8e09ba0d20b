"""Application entrypoint."""

from __future__ import annotations

import logging
import sys
import threading

from capabilities import ModelCapabilityRegistry
from cloud_client import PROVIDERS, DashscopeChatClient
from config import JsonConfigStore
from hotkey import GlobalHotkeyAdapter
from interfaces import ConfigStore
from models import ConversationMode, ListeningState
from orchestrator import LOCAL_PROVIDER, ResponseOrchestrator
from overlay import OverlayWindow
from recognizer import DashscopeRecognitionSource
from recorder import SoundDevicePermissionProbe
from speech_session import SpeechInputSession

try:
    from PySide6.QtCore import QObject, Signal, QSize
    from PySide6.QtGui import QAction, QActionGroup, QIcon, QPixmap, QPainter, QColor, QBrush
    from PySide6.QtWidgets import QApplication, QInputDialog, QMenu, QMessageBox, QSystemTrayIcon
except Exception as exc:  # pragma: no cover
    raise SystemExit(f"PySide6 is required to run the desktop app: {exc}")

logger = logging.getLogger(__name__)


def _create_icon(color: str = "#888888", size: int = 22) -> QIcon:
    """Generate a simple circular tray icon with the given color."""
    pixmap = QPixmap(QSize(size, size))
    pixmap.fill(QColor(0, 0, 0, 0))
    painter = QPainter(pixmap)
    painter.setRenderHint(QPainter.Antialiasing, True)
    painter.setBrush(QBrush(QColor(color)))
    painter.setPen(QColor(color))
    painter.drawEllipse(2, 2, size - 4, size - 4)
    painter.end()
    return QIcon(pixmap)


STATE_ICONS = {
    ListeningState.IDLE.value: ("#888888", "Bella — Ready"),
    ListeningState.REQUESTING_PERMISSION.value: ("#FFD24C", "Bella — Checking microphone..."),
    ListeningState.LISTENING.value: ("#FF6B9D", "Bella — Listening..."),
    ListeningState.PROCESSING.value: ("#4CA3FF", "Bella — Thinking..."),
    ListeningState.ERROR.value: ("#FF8800", "Bella — Error"),
}


class UIBridge(QObject):
    transcript_signal = Signal(str)
    reply_signal = Signal(str, str)  # user text, reply
    chat_reply_signal = Signal(str)
    error_signal = Signal(str)
    state_signal = Signal(str, str)  # from_state, to_state
    hide_signal = Signal()
    toggle_signal = Signal()


class App:
    def __init__(self) -> None:
        self.app = QApplication(sys.argv)
        self.app.setQuitOnLastWindowClosed(False)
        self.config_store: ConfigStore = JsonConfigStore()
        self.overlay = OverlayWindow()
        self.ui = UIBridge()
        self.ui.transcript_signal.connect(self._on_transcript_ui)
        self.ui.reply_signal.connect(self._on_reply_ui)
        self.ui.chat_reply_signal.connect(self._on_chat_reply_ui)
        self.ui.error_signal.connect(self.overlay.show_error)
        self.ui.state_signal.connect(self._on_state_change_ui)
        self.ui.hide_signal.connect(self.overlay.hide)
        self.ui.toggle_signal.connect(self._toggle_listening)

        self.registry = ModelCapabilityRegistry()
        self.cloud = DashscopeChatClient(api_keys=self.config_store.api_keys())
        self.engine = ResponseOrchestrator(cloud=self.cloud, registry=self.registry)
        self._apply_stored_settings()

        self.source = DashscopeRecognitionSource(api_key=self.config_store.get_api_key("qwen"))
        self.session = SpeechInputSession(
            source=self.source,
            permission=SoundDevicePermissionProbe(),
            responder=self.engine.respond,
            on_state_change=lambda f, t: self.ui.state_signal.emit(f.value, t.value),
            on_transcript=self.ui.transcript_signal.emit,
            on_reply=self.ui.reply_signal.emit,
            on_error=lambda code, message: self.ui.error_signal.emit(message),
            on_hide=self.ui.hide_signal.emit,
        )
        self.hotkey = GlobalHotkeyAdapter(hotkey_name=self.config_store.get_hotkey())

        self.tray = QSystemTrayIcon()
        self.tray.setIcon(_create_icon())
        self.tray.setToolTip(STATE_ICONS[ListeningState.IDLE.value][1])
        self._setup_menu()
        self.tray.show()

    def _apply_stored_settings(self) -> None:
        if not self.engine.set_mode(self.config_store.get_mode()):
            self.config_store.set_mode(ConversationMode.CASUAL.value)
        provider = self.config_store.get_provider()
        if not self.engine.switch_provider(provider):
            self.config_store.set_provider(LOCAL_PROVIDER)

    def _setup_menu(self) -> None:
        menu = QMenu()

        chat_action = QAction("Chat...", menu)
        chat_action.triggered.connect(self._ask_chat)
        menu.addAction(chat_action)

        listen_action = QAction("Start/Stop Listening", menu)
        listen_action.triggered.connect(self._toggle_listening)
        menu.addAction(listen_action)
        menu.addSeparator()

        config = self.engine.get_config()
        mode_menu = menu.addMenu("Mode")
        mode_group = QActionGroup(mode_menu)
        for mode in ConversationMode:
            action = QAction(mode.value.capitalize(), mode_menu, checkable=True)
            action.setChecked(mode == config.mode)
            action.triggered.connect(lambda _=False, m=mode.value: self._set_mode(m))
            mode_group.addAction(action)
            mode_menu.addAction(action)

        provider_menu = menu.addMenu("Provider")
        provider_group = QActionGroup(provider_menu)
        for name in (LOCAL_PROVIDER, *PROVIDERS):
            action = QAction(name, provider_menu, checkable=True)
            action.setChecked(name == config.provider.get("name"))
            action.triggered.connect(lambda _=False, n=name: self._switch_provider(n))
            provider_group.addAction(action)
            provider_menu.addAction(action)

        api_action = QAction("Set API Key", menu)
        api_action.triggered.connect(self._set_api_key)
        menu.addAction(api_action)

        clear_action = QAction("Clear History", menu)
        clear_action.triggered.connect(self.engine.clear_history)
        menu.addAction(clear_action)

        menu.addSeparator()
        quit_action = QAction("Quit", menu)
        quit_action.triggered.connect(self.quit)
        menu.addAction(quit_action)

        self._menu = menu
        self.tray.setContextMenu(menu)

    # ------------------------------------------------------------------
    # Menu handlers
    # ------------------------------------------------------------------

    def _ask_chat(self) -> None:
        text, ok = QInputDialog.getText(None, "Chat with Bella", "Message")
        if not ok or not text.strip():
            return
        self.overlay.add_message("user", text)
        self.overlay.show_typing_indicator()
        threading.Thread(
            target=lambda: self.ui.chat_reply_signal.emit(self.engine.respond(text)),
            daemon=True,
        ).start()

    def _set_mode(self, mode: str) -> None:
        if self.engine.set_mode(mode):
            self.config_store.set_mode(mode)

    def _switch_provider(self, name: str) -> None:
        if not self.engine.switch_provider(name):
            QMessageBox.warning(None, "Provider", f"Could not switch to {name}.")
            return
        self.config_store.set_provider(name)
        if not self.engine.get_config().configured:
            QMessageBox.information(
                None, "Provider", f"{name} has no API key yet; contextual replies are used."
            )

    def _set_api_key(self) -> None:
        provider = self.engine.get_config().provider.get("name", "qwen")
        if provider not in PROVIDERS:
            provider = "qwen"
        value, ok = QInputDialog.getText(None, "API Key", f"DashScope API Key ({provider})")
        if not ok:
            return
        if self.engine.set_api_key(provider, value):
            self.config_store.set_api_key(provider, value)
            if provider == "qwen":
                self.source.set_api_key(value)
            QMessageBox.information(None, "Saved", "API Key saved and applied.")

    def _toggle_listening(self) -> None:
        self.session.toggle()

    # ------------------------------------------------------------------
    # UI thread handlers (safe for Qt)
    # ------------------------------------------------------------------

    def _on_transcript_ui(self, text: str) -> None:
        if text:
            self.overlay.set_text(text)
        else:
            self.overlay.hide_with_delay(400)

    def _on_reply_ui(self, user_text: str, reply: str) -> None:
        self.overlay.set_text(f"You: {user_text}")
        self.overlay.add_message("assistant", reply)

    def _on_chat_reply_ui(self, reply: str) -> None:
        self.overlay.hide_typing_indicator()
        self.overlay.add_message("assistant", reply)
        self.overlay.hide_with_delay(6000)

    def _on_state_change_ui(self, from_state: str, to_state: str) -> None:
        color, tooltip = STATE_ICONS.get(to_state, STATE_ICONS[ListeningState.IDLE.value])
        self.tray.setIcon(_create_icon(color))
        self.tray.setToolTip(tooltip)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def _load_capabilities(self) -> None:
        degraded = self.registry.initialize()
        if degraded:
            names = ", ".join(name.value for name in degraded)
            self.ui.error_signal.emit(f"Some capabilities are disabled: {names}")

    def run(self) -> int:
        threading.Thread(target=self._load_capabilities, daemon=True).start()
        try:
            self.hotkey.start(on_toggle=self.ui.toggle_signal.emit)
        except Exception as exc:
            self.overlay.show_error(f"Hotkey disabled: {exc}")
        return self.app.exec()

    def quit(self) -> None:
        self.hotkey.stop()
        self.session.stop_listening()
        self.app.quit()


def main() -> int:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    app = App()
    return app.run()


if __name__ == "__main__":
    raise SystemExit(main())
