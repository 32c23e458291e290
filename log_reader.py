"""
log_reader.py

Findet die aktuelle Client-Logdatei und liest nur neu angehängte Zeilen.

- LogLocator.locate: neueste passende Datei über alle Kandidatenverzeichnisse
- IncrementalLogReader.read_new_lines: liest ab dem gemerkten Offset, erkennt Rotation
"""

import fnmatch
import logging
import os
from dataclasses import dataclass
from typing import Optional, Tuple

import config

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LogFileHandle:
    path: str
    mtime: float


@dataclass(frozen=True)
class LogCursor:
    path: str
    identity: Optional[tuple]
    offset: int = 0


def file_identity(st):
    """
    Token distinguishing "same path, different file" from "same file, grown".
    Uses device+inode; falls back to the creation time where no inode exists.
    """
    if getattr(st, "st_ino", 0):
        return ("inode", st.st_dev, st.st_ino)
    return ("ctime", st.st_ctime_ns)


class LogLocator:
    """Selects the most recently modified log file across the candidate directories."""

    def __init__(self, directories=None, pattern=None):
        self.directories = list(directories) if directories is not None else config.get_log_directories()
        self.pattern = pattern or config.LOG_FILE_PATTERN

    def existing_directories(self):
        return [str(d) for d in self.directories if os.path.isdir(d)]

    def locate(self) -> Optional[LogFileHandle]:
        latest = None
        for directory in self.existing_directories():
            try:
                entries = list(os.scandir(directory))
            except OSError as e:
                logger.debug(f"Verzeichnis {directory} nicht lesbar: {e}")
                continue
            for entry in entries:
                if not fnmatch.fnmatch(entry.name, self.pattern):
                    continue
                try:
                    if not entry.is_file():
                        continue
                    mtime = entry.stat().st_mtime
                except OSError:
                    continue
                # Bei Gleichstand gewinnt der zuerst gefundene Kandidat
                if latest is None or mtime > latest.mtime:
                    latest = LogFileHandle(entry.path, mtime)
        return latest


def locate_log_file(directories=None, pattern=None):
    """Convenience wrapper around LogLocator.locate()."""
    return LogLocator(directories, pattern).locate()


class IncrementalLogReader:
    """Tails a log file from a remembered byte offset, yielding only complete new lines."""

    def __init__(self, max_read_bytes=None, encoding="utf-8"):
        self.max_read_bytes = max_read_bytes or config.MAX_READ_BYTES
        self.encoding = encoding

    def open(self, handle, previous=None) -> LogCursor:
        """
        Creates a cursor for `handle`. The previous cursor's offset is kept only
        if it points to the very same file and still lies within it.
        """
        st = os.stat(handle.path)
        identity = file_identity(st)
        if (previous is not None
                and previous.path == handle.path
                and previous.identity == identity
                and previous.offset <= st.st_size):
            return previous
        return LogCursor(handle.path, identity, 0)

    def read_new_lines(self, cursor) -> Tuple[list, LogCursor, bool]:
        """
        Returns (lines, updated cursor, rotation_detected).

        On rotation or an inaccessible file no lines are returned, the offset
        is reset to 0 and the caller must relocate before reading again.
        """
        try:
            st = os.stat(cursor.path)
        except OSError as e:
            logger.info(f"Logdatei nicht mehr erreichbar: {cursor.path} ({e})")
            return [], LogCursor(cursor.path, None, 0), True

        identity = file_identity(st)
        if identity != cursor.identity or st.st_size < cursor.offset:
            logger.info(f"Rotation erkannt: {cursor.path}")
            return [], LogCursor(cursor.path, identity, 0), True

        if st.st_size == cursor.offset:
            return [], cursor, False

        try:
            with open(cursor.path, "rb") as f:
                # Datei könnte zwischen stat und open ersetzt worden sein
                if file_identity(os.fstat(f.fileno())) != cursor.identity:
                    return [], LogCursor(cursor.path, None, 0), True
                f.seek(cursor.offset)
                data = f.read(min(st.st_size - cursor.offset, self.max_read_bytes))
        except OSError as e:
            logger.info(f"Logdatei nicht lesbar: {cursor.path} ({e})")
            return [], LogCursor(cursor.path, None, 0), True

        end = data.rfind(b"\n")
        if end == -1:
            if len(data) < self.max_read_bytes:
                # unvollständige Zeile, beim nächsten Mal erneut lesen
                return [], cursor, False
            # Zeile länger als das Lesefenster: als Ganzes übernehmen
            complete = data
        else:
            complete = data[:end + 1]

        lines = [raw.decode(self.encoding, errors="replace").rstrip("\r")
                 for raw in complete.split(b"\n")]
        if complete.endswith(b"\n"):
            lines.pop()

        return lines, LogCursor(cursor.path, cursor.identity, cursor.offset + len(complete)), False
