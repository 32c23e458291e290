"""
engine.py

Verbindet Prozessüberwachung, Log-Tailer und Presence-Publisher.

Threads:
- process-monitor: fragt die Prozessliste ab, schreibt nur in die Event-Queue
- log-tailer: einziger Schreiber des Spielzustands
- presence-publisher: liest Snapshots, hält die Discord-Verbindung
"""

import logging
import queue
import threading
import time

import config
from backoff import Backoff, BackoffPolicy
from game_state import GameStateMachine, StateChange, is_notable_transition
from log_reader import IncrementalLogReader, LogLocator
from presence import PresencePublisher
from process_monitor import ProcessMonitor
from state_extractor import StateExtractor, load_matchers
from watchdog_handler import start_watchdog

logger = logging.getLogger(__name__)

GAME_STARTED = "game_started"
GAME_EXITED = "game_exited"
LOG_CREATED = "log_created"

# Statusmeldungen, die nur einmal gemeldet werden
STATUS_GAME_NOT_FOUND = "game_not_found"
STATUS_LOG_DIR_MISSING = "log_dir_missing"
STATUS_LOG_UNAVAILABLE = "log_unavailable"
STATUS_UPDATE_AVAILABLE = "update_available"


class Engine:

    def __init__(self, monitor=None, locator=None, reader=None, extractor=None, machine=None,
                 publisher=None, poll_interval=None, tail_interval=1.0, relocate_policy=None,
                 max_relocate_failures=None, clock=time.monotonic, use_watchdog=True):
        self.shutdown = threading.Event()
        self.events = queue.Queue()
        self._wake = threading.Event()

        self.monitor = monitor or ProcessMonitor()
        self.locator = locator or LogLocator()
        self.reader = reader or IncrementalLogReader()
        self.extractor = extractor or StateExtractor()
        self.machine = machine or GameStateMachine()
        self.publisher = publisher or PresencePublisher(self.machine.snapshot, shutdown=self.shutdown)

        self.poll_interval = poll_interval or config.POLL_INTERVAL
        self.tail_interval = tail_interval
        self.clock = clock
        self.use_watchdog = use_watchdog
        self.max_relocate_failures = max_relocate_failures or config.MAX_RELOCATE_FAILURES
        self._relocate = Backoff(relocate_policy or BackoffPolicy.from_config())

        self.cursor = None
        self._needs_relocate = True
        self._last_scan_at = None
        self._game_running = None
        self.listeners = []
        self.status_listeners = []
        self._reported = set()
        self._threads = []
        self.observer = None

    @classmethod
    def from_config(cls):
        return cls(
            extractor=StateExtractor(load_matchers()),
            poll_interval=config.POLL_INTERVAL,
        )

    # ---------- collaborators ----------

    def add_listener(self, callback, notable_only=False):
        """Registers a callback receiving StateChange; notable_only filters same-variant transitions."""
        self.listeners.append((callback, notable_only))

    def add_status_listener(self, callback):
        self.status_listeners.append(callback)

    def report_status(self, kind, message):
        """Non-fatal status for the surrounding UI; each kind is reported once."""
        if kind in self._reported:
            return
        self._reported.add(kind)
        logger.warning(message)
        for callback in self.status_listeners:
            try:
                callback(kind, message)
            except Exception as e:
                logger.error(f"Fehler im Status-Listener: {str(e)}", exc_info=True)

    def _emit(self, previous):
        current = self.machine.state
        change = StateChange(previous, current, current.elapsed())
        logger.info(f"Zustand: {previous.label} -> {current.label}")
        self.publisher.notify()
        for callback, notable_only in self.listeners:
            if notable_only and not is_notable_transition(previous, current):
                continue
            try:
                callback(change)
            except Exception as e:
                logger.error(f"Fehler im Zustands-Listener: {str(e)}", exc_info=True)

    # ---------- process monitor thread ----------

    def poll_processes(self):
        status = self.monitor.poll()

        if status.game_running != self._game_running:
            if status.game_running:
                logger.info("Hytale Game detected")
                self.events.put(GAME_STARTED)
            elif self._game_running is not None:
                logger.info("Hytale Game closed")
                self.events.put(GAME_EXITED)
            else:
                self.report_status(STATUS_GAME_NOT_FOUND, "Hytale läuft nicht, warte auf Spielstart...")
            self._game_running = status.game_running
            self._wake.set()

        self.publisher.set_client_available(status.chat_client_running)
        return status

    def _process_loop(self):
        while not self.shutdown.is_set():
            self.poll_processes()
            self.shutdown.wait(self.poll_interval)

    # ---------- log tailer thread (single writer) ----------

    def _on_log_change(self, created=False):
        if created:
            self.events.put(LOG_CREATED)
        self._wake.set()

    def handle_pending_events(self):
        while True:
            try:
                event = self.events.get_nowait()
            except queue.Empty:
                break

            if event == GAME_STARTED:
                self.machine.game_started()
                self._needs_relocate = True
                self._relocate.reset()
            elif event == GAME_EXITED:
                previous = self.machine.state
                if self.machine.game_exited():
                    self._emit(previous)
            elif event == LOG_CREATED:
                self._needs_relocate = True

    def tail_once(self):
        """One pass of the tailer: events, relocation, reading, extraction. Returns accepted transitions."""
        self.handle_pending_events()
        if not self.machine.game_running:
            return 0

        if self._needs_relocate or self.cursor is None:
            if not self._relocate.ready(self.clock()) or not self._relocate_log():
                return 0
        else:
            self._check_for_newer_log()

        lines, self.cursor, rotated = self.reader.read_new_lines(self.cursor)
        if rotated:
            self._needs_relocate = True
            if not self._relocate_log():
                return 0
            lines, self.cursor, rotated = self.reader.read_new_lines(self.cursor)
            if rotated:
                self._needs_relocate = True
                return 0

        accepted = 0
        for line in lines:
            event = self.extractor.extract(line)
            if event is None:
                continue
            previous = self.machine.state
            if self.machine.apply(event):
                self._emit(previous)
                accepted += 1
        return accepted

    def _check_for_newer_log(self):
        """Polling fallback for the watchdog: a new session writes a new log file."""
        now = self.clock()
        if self._last_scan_at is not None and now - self._last_scan_at < self.poll_interval:
            return
        self._last_scan_at = now
        handle = self.locator.locate()
        if handle is None or handle.path == self.cursor.path:
            return
        logger.info(f"Neuere Logdatei gefunden: {handle.path}")
        self._relocate_log(handle)

    def _relocate_log(self, handle=None):
        if handle is None:
            handle = self.locator.locate()
        self._last_scan_at = self.clock()
        cursor = None
        if handle is not None:
            try:
                cursor = self.reader.open(handle, self.cursor)
            except OSError as e:
                logger.info(f"Logdatei {handle.path} nicht lesbar: {e}")

        if cursor is None:
            self._relocation_failed()
            return False

        if self.cursor is None or self.cursor.path != cursor.path or self.cursor.identity != cursor.identity:
            logger.info(f"Found log file: {cursor.path}")
        self.cursor = cursor
        self._needs_relocate = False
        self._relocate.reset()
        if not self.machine.log_available:
            logger.info("Logdatei wieder verfügbar")
            self.machine.log_became_available()
        if self._threads:
            self._ensure_watchdog()
        return True

    def _relocation_failed(self):
        delay = self._relocate.failed(self.clock())
        failures = self._relocate.failures
        logger.debug(f"Keine Logdatei gefunden ({failures}x), nächster Versuch in {delay:.0f}s")

        if not self.locator.existing_directories():
            self.report_status(STATUS_LOG_DIR_MISSING, "Kein Hytale-Log-Verzeichnis gefunden")

        if failures == self.max_relocate_failures:
            self.report_status(STATUS_LOG_UNAVAILABLE, "Hytale-Logdatei nicht verfügbar, Presence wird ausgeblendet")
            previous = self.machine.state
            if self.machine.log_unavailable():
                self._emit(previous)

    def _tail_loop(self):
        while not self.shutdown.is_set():
            try:
                self.tail_once()
            except Exception as e:
                logger.error(f"Allgemeiner Fehler beim Lesen der Logdatei: {str(e)}", exc_info=True)
                self._needs_relocate = True
            self._wake.wait(self.tail_interval)
            self._wake.clear()

    # ---------- lifecycle ----------

    def start(self):
        logger.info("Starting Hytale Discord Rich Presence")

        if not self.locator.existing_directories():
            self.report_status(STATUS_LOG_DIR_MISSING, "Kein Hytale-Log-Verzeichnis gefunden")
        self._ensure_watchdog()

        for name, target in (("process-monitor", self._process_loop),
                             ("log-tailer", self._tail_loop),
                             ("presence-publisher", self.publisher.run)):
            thread = threading.Thread(target=target, name=name, daemon=True)
            thread.start()
            self._threads.append(thread)

    def _ensure_watchdog(self):
        # Verzeichnis kann erst nach dem Start angelegt werden (erste Installation)
        if not self.use_watchdog or self.observer is not None:
            return
        directories = self.locator.existing_directories()
        if directories:
            self.observer = start_watchdog(directories, self._on_log_change, self.locator.pattern)

    def stop(self):
        """Global shutdown signal, also used for the tray's quit action."""
        if not self.shutdown.is_set():
            logger.info("Shutting down...")
        self.shutdown.set()
        self.publisher.stop()
        self._wake.set()

    def join(self, timeout=None):
        for thread in self._threads:
            thread.join(timeout)
        if self.observer is not None:
            self.observer.stop()
            self.observer.join(timeout)
            self.observer = None

    def run(self):
        """Starts all threads and blocks until stop() is called."""
        self.start()
        try:
            while not self.shutdown.wait(1.0):
                pass
        finally:
            self.stop()
            self.join(config.BACKOFF_CAP_SECONDS)
