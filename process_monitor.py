import logging
from dataclasses import dataclass

import psutil

import config

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProcessStatus:
    game_running: bool = False
    chat_client_running: bool = False


def _normalize(names):
    return [n.lower() for n in names]


def name_matches(process_name, names):
    """Exact (case-insensitive) match or `name.<ext>`, e.g. HytaleClient.exe for hytaleclient."""
    process_name = process_name.lower()
    for name in names:
        if process_name == name or process_name.startswith(name + "."):
            return True
    return False


class ProcessMonitor:
    """
    Checks whether the game and the chat client are running.

    A failed scan keeps the previous result; after `max_failures` failures in a
    row both flags drop to False rather than staying on a stale "running".
    """

    def __init__(self, game_names=None, chat_client_names=None, max_failures=None):
        self.game_names = _normalize(game_names or config.GAME_PROCESS_NAMES)
        self.chat_client_names = _normalize(chat_client_names or config.DISCORD_PROCESS_NAMES)
        self.max_failures = max_failures or config.MAX_SCAN_FAILURES
        self.last_status = ProcessStatus()
        self.consecutive_failures = 0

    def _running_names(self):
        names = []
        for proc in psutil.process_iter(["name"]):
            try:
                name = proc.info.get("name")
            except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
                continue
            if name:
                names.append(name)
        return names

    def poll(self):
        try:
            names = self._running_names()
        except (psutil.Error, OSError) as e:
            self.consecutive_failures += 1
            logger.warning(f"Prozessliste konnte nicht gelesen werden ({self.consecutive_failures}x): {e}")
            if self.consecutive_failures >= self.max_failures:
                self.last_status = ProcessStatus(False, False)
            return self.last_status

        self.consecutive_failures = 0
        self.last_status = ProcessStatus(
            game_running=any(name_matches(n, self.game_names) for n in names),
            chat_client_running=any(name_matches(n, self.chat_client_names) for n in names),
        )
        return self.last_status
