import fnmatch
import logging
import os

from watchdog.observers import Observer
from watchdog.events import FileSystemEventHandler

import config

logger = logging.getLogger(__name__)


class ClientLogHandler(FileSystemEventHandler):
    """Watches the log directories and wakes the tailer when a client log is written or created."""

    def __init__(self, on_change, pattern=None):
        super().__init__()
        self.on_change = on_change
        self.pattern = pattern or config.LOG_FILE_PATTERN

    def _is_client_log(self, event):
        if event.is_directory:
            return False
        return fnmatch.fnmatch(os.path.basename(event.src_path), self.pattern)

    def on_modified(self, event):
        if self._is_client_log(event):
            self.on_change(created=False)

    def on_created(self, event):
        # Neue Datei = neue Sitzung, Locator muss neu suchen
        if self._is_client_log(event):
            self.on_change(created=True)


def start_watchdog(directories, on_change, pattern=None):
    """Starts a watchdog observer on every existing directory and returns it (or None)."""
    existing = [d for d in directories if os.path.isdir(d)]
    if not existing:
        logger.warning("Kein Log-Verzeichnis vorhanden, Watchdog wird nicht gestartet")
        return None

    observer = Observer()
    handler = ClientLogHandler(on_change, pattern)
    for directory in existing:
        try:
            observer.schedule(handler, str(directory), recursive=False)
        except OSError as e:
            logger.warning(f"Watchdog für {directory} nicht möglich: {e}")
    observer.daemon = True
    observer.start()
    return observer
