import logging
import traceback

from PyQt6.QtCore import QObject, pyqtSignal


class EventScanWorker(QObject):
    """Worker to scan a TeslaCam folder tree for events asynchronously."""
    finished = pyqtSignal(object)  # EventScanResult
    progress = pyqtSignal(int, str)  # events_found, status_message

    def __init__(self, root_path, scanner_factory, parent=None):
        super().__init__(parent)
        self.root_path = root_path
        self.scanner_factory = scanner_factory
        self.logger = logging.getLogger(self.__class__.__name__)
        self._is_running = True

    def run(self):
        from .managers.clip import EventScanResult

        try:
            self.progress.emit(0, "Scanning for events...")
            scanner = self.scanner_factory(self._on_progress, lambda: self._is_running)
            result = scanner.scan(self.root_path)

            if not self._is_running:
                result.error = "Scan was cancelled"
            else:
                self.progress.emit(len(result.events), f"Found {len(result.events)} events")
            self.finished.emit(result)

        except Exception as e:
            self.logger.error(f"Event scan failed: {e}\n{traceback.format_exc()}")
            self.finished.emit(EventScanResult(self.root_path, error=f"Error scanning folder: {e}"))

        finally:
            self._is_running = False

    def _on_progress(self, message, event_count):
        if self._is_running:
            self.progress.emit(event_count, message)

    def stop(self):
        self._is_running = False
