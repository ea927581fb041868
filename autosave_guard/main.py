# main.py
"""
Entry point and main application window for Autosave Guard.
"""
import logging
import sys
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from PySide6.QtCore import QObject, QStandardPaths, Signal
from PySide6.QtGui import QAction, QKeySequence
from PySide6.QtWidgets import (
    QApplication,
    QFileDialog,
    QInputDialog,
    QMainWindow,
    QMessageBox,
    QPlainTextEdit,
)

from . import config
from .controllers import CampaignSession, SessionMode
from .errors import CampaignFormatError, SaveAsRequiredError, SaveInProgressError
from .managers.autosave import AutosaveManager
from .managers.recovery import RecoveryManager
from .managers.save_lock import SaveLock
from .preferences import PreferenceStore

LOGGER_NAME = "autosave_guard"
LOGGER = logging.getLogger(__name__)
STATUS_TIMEOUT_MS = 5000


def configure_logging(log_path: Optional[Path] = None) -> logging.Logger:
    """Configure and return the application logger.

    The handler setup is idempotent to avoid duplicate handlers when the module
    is imported multiple times (e.g., in tests). A rotating file handler limits
    on-disk log growth while mirroring output to stdout for developer visibility.
    """

    logger = logging.getLogger(LOGGER_NAME)
    if logger.handlers:
        return logger

    logger.setLevel(logging.INFO)

    formatter = logging.Formatter(
        "%(asctime)s - %(levelname)s - %(name)s - %(message)s"
    )

    log_path = log_path or config.LOG_PATH
    log_path.parent.mkdir(parents=True, exist_ok=True)

    file_handler = RotatingFileHandler(
        log_path,
        maxBytes=config.LOG_MAX_BYTES,
        backupCount=config.LOG_BACKUP_COUNT,
        encoding="utf-8",
    )
    file_handler.setFormatter(formatter)

    stream_handler = logging.StreamHandler(sys.stdout)
    stream_handler.setFormatter(formatter)

    logger.addHandler(file_handler)
    logger.addHandler(stream_handler)
    logger.propagate = False

    return logger


def global_exception_handler(exc_type, value, tb):
    logging.getLogger(LOGGER_NAME).error("Uncaught exception", exc_info=(exc_type, value, tb))
    sys.__excepthook__(exc_type, value, tb)


class _AutosaveNotifier(QObject):
    """Carries autosave reports from worker threads to the GUI thread."""

    status = Signal(str)
    failed = Signal(str, object)


class MainWindow(QMainWindow):
    def __init__(
        self,
        preferences: Optional[PreferenceStore] = None,
        mode: SessionMode = SessionMode.PERSONAL,
    ):
        super().__init__()
        self.setWindowTitle("Autosave Guard")
        self.resize(800, 600)

        self.preferences = preferences or PreferenceStore()
        self.save_lock = SaveLock()
        self.session = CampaignSession(self.save_lock, mode=mode)

        self.editor = QPlainTextEdit(self)
        self.editor.setPlaceholderText("Campaign notes")
        self.editor.textChanged.connect(self._on_text_changed)
        self.setCentralWidget(self.editor)

        self._notifier = _AutosaveNotifier(self)
        self._notifier.status.connect(self._show_status)
        self._notifier.failed.connect(self._show_autosave_error)

        self.autosave = AutosaveManager(
            self.session.snapshot,
            self.session.is_authoritative,
            self.save_lock,
            self.preferences.autosave_interval,
            status_reporter=self._notifier.status.emit,
            error_reporter=self._notifier.failed.emit,
        )
        self.recovery = RecoveryManager(
            self.session,
            confirm=self._confirm_recovery,
            load=self._load_path,
        )

        self._create_actions()
        self.autosave.start()
        LOGGER.info("MainWindow initialized.")

    def _create_actions(self) -> None:
        file_menu = self.menuBar().addMenu("&File")
        for text, shortcut, slot in (
            ("&New", QKeySequence.StandardKey.New, self._new_campaign),
            ("&Open...", config.OPEN_SHORTCUT, self._open_campaign),
            ("&Save", config.SAVE_SHORTCUT, lambda: self._save_campaign()),
            ("Save &As...", config.SAVE_AS_SHORTCUT, self._save_campaign_as),
        ):
            action = QAction(text, self)
            action.setShortcut(QKeySequence(shortcut))
            action.triggered.connect(slot)
            file_menu.addAction(action)

        settings_menu = self.menuBar().addMenu("&Settings")
        interval_action = QAction("Autosave &Interval...", self)
        interval_action.triggered.connect(self._change_autosave_interval)
        settings_menu.addAction(interval_action)

    # ---------------------------------------------------------------- state
    def _on_text_changed(self) -> None:
        self.session.update(notes=self.editor.toPlainText())

    def _refresh_editor(self) -> None:
        self.editor.blockSignals(True)
        self.editor.setPlainText(str(self.session.state.get("notes", "")))
        self.editor.blockSignals(False)
        name = self.session.path.name if self.session.path else "Untitled"
        self.setWindowTitle(f"Autosave Guard - {name}")

    def _show_status(self, message: str) -> None:
        self.statusBar().showMessage(message, STATUS_TIMEOUT_MS)

    def _show_autosave_error(self, message: str, error: Exception) -> None:
        QMessageBox.warning(self, "Autosave", f"{message}: {error}")

    # ------------------------------------------------------------- recovery
    def check_recovery(self) -> bool:
        return self.recovery.check()

    def _confirm_recovery(self, modified: datetime) -> bool:
        answer = QMessageBox.question(
            self,
            "Recover Autosave",
            "An autosaved campaign from "
            f"{modified.strftime(config.RECOVERY_TIMESTAMP_FORMAT)} was found.\n"
            "Do you want to recover it?",
            QMessageBox.StandardButton.Yes | QMessageBox.StandardButton.No,
        )
        return answer == QMessageBox.StandardButton.Yes

    def _load_path(self, path: Path) -> None:
        try:
            self.session.load(path)
        except (OSError, CampaignFormatError) as e:
            LOGGER.error("Load failed: %s", e)
            QMessageBox.critical(self, "Error", f"Could not open campaign: {e}")
            return
        self._refresh_editor()

    # ------------------------------------------------------------ file menu
    def _new_campaign(self) -> None:
        self.session.new()
        self.recovery.tidy()
        self._refresh_editor()

    def _open_campaign(self) -> None:
        path, _ = QFileDialog.getOpenFileName(
            self,
            "Open Campaign",
            QStandardPaths.writableLocation(QStandardPaths.DocumentsLocation) or "",
            f"Campaigns (*{config.CAMPAIGN_FILE_EXTENSION})",
        )
        if path:
            self._load_path(Path(path))

    def _save_campaign(self, path: Optional[Path] = None) -> bool:
        try:
            saved = self.session.save(path)
        except SaveAsRequiredError:
            return self._save_campaign_as()
        except SaveInProgressError:
            QMessageBox.information(
                self, "Save", "An autosave is being written. Please try again in a moment."
            )
            return False
        except OSError as e:
            LOGGER.error("Save failed: %s", e)
            QMessageBox.critical(self, "Error", f"Could not save campaign: {e}")
            return False
        # The named file is now authoritative; the recovery copy is stale.
        self.recovery.tidy()
        self._refresh_editor()
        self._show_status(f"Saved {saved.name}")
        return True

    def _save_campaign_as(self) -> bool:
        path, _ = QFileDialog.getSaveFileName(
            self,
            "Save Campaign",
            QStandardPaths.writableLocation(QStandardPaths.DocumentsLocation) or "",
            f"Campaigns (*{config.CAMPAIGN_FILE_EXTENSION})",
        )
        if not path:
            return False
        target = Path(path)
        if target.suffix != config.CAMPAIGN_FILE_EXTENSION:
            target = target.with_suffix(config.CAMPAIGN_FILE_EXTENSION)
        return self._save_campaign(target)

    def _change_autosave_interval(self) -> None:
        minutes, ok = QInputDialog.getInt(
            self,
            "Autosave Interval",
            "Minutes between autosaves (0 disables):",
            self.preferences.autosave_interval(),
            0,
            24 * 60,
        )
        if ok:
            self.preferences.set_autosave_interval(minutes)
            self.autosave.restart()

    def closeEvent(self, event):
        try:
            self.autosave.shutdown()
        except TimeoutError:
            LOGGER.warning("Autosave still running at exit; leaving recovery file in place")
            super().closeEvent(event)
            return
        # A clean exit leaves nothing to recover.
        self.recovery.purge()
        super().closeEvent(event)


def main() -> int:
    configure_logging()
    sys.excepthook = global_exception_handler
    app = QApplication(sys.argv)
    window = MainWindow()
    window.show()
    window.check_recovery()
    return app.exec()


if __name__ == "__main__":
    raise SystemExit(main())
