"""
game_state.py

Spielzustände, Übergangsereignisse und der Zustandsautomat.

Der Automat hat genau einen Schreiber (den Log-Tailer-Thread). Andere Threads
lesen nur `snapshot()`, das ein unveränderliches Objekt zurückgibt.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Optional

import config

logger = logging.getLogger(__name__)

# Ziele, die ein Matcher erzeugen kann
MAIN_MENU = "main_menu"
LOADING_WORLD = "loading_world"
JOINING_SERVER = "joining_server"
PLAYING_SINGLEPLAYER = "playing_singleplayer"
PLAYING_MULTIPLAYER = "playing_multiplayer"
PLAYING = "playing"
# nur Metadaten, kein Zustandswechsel
SERVER_NAME = "server_name"

TARGETS = (MAIN_MENU, LOADING_WORLD, JOINING_SERVER, PLAYING_SINGLEPLAYER, PLAYING_MULTIPLAYER, PLAYING, SERVER_NAME)


class GameState:
    """Base class of the six game states."""
    label = "Unknown"

    @property
    def is_playing(self):
        return False

    def elapsed(self, now=None):
        return None


@dataclass(frozen=True)
class NotRunning(GameState):
    label = "Not running"


@dataclass(frozen=True)
class MainMenu(GameState):
    label = "Main menu"


@dataclass(frozen=True)
class LoadingWorld(GameState):
    label = "Loading world"


@dataclass(frozen=True)
class JoiningServer(GameState):
    address: str
    label = "Joining server"


@dataclass(frozen=True)
class _Playing(GameState):

    @property
    def is_playing(self):
        return True

    def elapsed(self, now=None):
        now = time.time() if now is None else now
        return max(0.0, now - self.since)


@dataclass(frozen=True)
class PlayingSingleplayer(_Playing):
    world_name: str
    # since nimmt nicht am Vergleich teil: gleiche Welt = gleicher Zustand
    since: float = field(default=0.0, compare=False)
    label = "Playing singleplayer"


@dataclass(frozen=True)
class PlayingMultiplayer(_Playing):
    address: str
    since: float = field(default=0.0, compare=False)
    # Anzeigename des Servers, wie since nicht Teil des Vergleichs
    server_name: Optional[str] = field(default=None, compare=False)
    label = "Playing multiplayer"


@dataclass(frozen=True)
class TransitionEvent:
    """Output of the state extractor: a target plus optional captured metadata."""
    target: str
    world_name: Optional[str] = None
    address: Optional[str] = None
    server_name: Optional[str] = None

@dataclass(frozen=True)
class PresenceSnapshot:
    state: GameState
    revision: int


@dataclass(frozen=True)
class StateChange:
    """Change notification handed to tray/notification listeners."""
    previous: GameState
    current: GameState
    elapsed: Optional[float]


def _has_text(value):
    return value is not None and value.strip() != ""


def is_notable_transition(previous, current):
    """True when the variant changes, e.g. MainMenu -> LoadingWorld, or the world/server changes while playing."""
    if type(previous) is not type(current):
        return True
    return previous.is_playing and previous != current


class GameStateMachine:
    """
    Holds the current GameState and applies transition events.

    Every accepted transition bumps the snapshot revision; a transition to an
    identical state (same variant, same metadata) is ignored.
    """

    def __init__(self, clock=time.time, fallback_world_name=None):
        self._clock = clock
        self._fallback_world_name = fallback_world_name if fallback_world_name is not None else config.FALLBACK_WORLD_NAME
        self._snapshot = PresenceSnapshot(NotRunning(), 0)
        self._pending_world_name = None
        self._pending_server_name = None
        self.game_running = False
        self.log_available = True

    @property
    def state(self):
        return self._snapshot.state

    @property
    def revision(self):
        return self._snapshot.revision

    def snapshot(self):
        """Non-blocking copy-on-read view for other threads."""
        return self._snapshot

    def _set(self, new_state):
        self._snapshot = PresenceSnapshot(new_state, self._snapshot.revision + 1)

    # ---------- synthetic events ----------

    def game_started(self):
        self.game_running = True

    def game_exited(self):
        """GameExited: forces NotRunning from any state."""
        self.game_running = False
        self._pending_world_name = None
        self._pending_server_name = None
        return self.force_not_running("Spiel beendet")

    def log_unavailable(self):
        """LogUnavailable: no readable log, so the presence would be stale."""
        self.log_available = False
        return self.force_not_running("Logdatei nicht verfügbar")

    def log_became_available(self):
        self.log_available = True

    def force_not_running(self, reason=""):
        if isinstance(self.state, NotRunning):
            return False
        logger.info(f"Zustand -> Not running ({reason})")
        self._set(NotRunning())
        return True

    # ---------- extractor events ----------

    def apply(self, event):
        """
        Applies an extractor event. Returns True if the state changed.
        Rejected events (invalid metadata, not allowed from NotRunning) and
        no-op transitions return False and leave the revision untouched.
        """
        current = self.state

        if event.target == SERVER_NAME:
            # Servername wird erst beim Betreten von PlayingMultiplayer angezeigt
            if not isinstance(current, NotRunning) and _has_text(event.server_name):
                self._pending_server_name = event.server_name.strip()
            return False

        if isinstance(current, NotRunning):
            if event.target not in (MAIN_MENU, LOADING_WORLD):
                return False
            if not (self.game_running and self.log_available):
                return False

        candidate = self._resolve(event, current)
        if candidate is None:
            logger.debug(f"Übergang verworfen, Metadaten fehlen: {event}")
            return False

        if event.target == MAIN_MENU:
            self._pending_world_name = None
            self._pending_server_name = None
        elif event.target == LOADING_WORLD and _has_text(event.world_name):
            self._pending_world_name = event.world_name

        if candidate == current:
            return False

        logger.debug(f"Zustand {current.label} -> {candidate.label}")
        self._set(candidate)
        return True

    def _resolve(self, event, current):
        now = self._clock()
        target = event.target

        if target == MAIN_MENU:
            return MainMenu()

        if target == LOADING_WORLD:
            return LoadingWorld()

        if target == JOINING_SERVER:
            if event.address is None and isinstance(current, JoiningServer):
                # Verbindungszeile ohne Adresse während des Beitretens
                return current
            if not _has_text(event.address):
                return None
            return JoiningServer(event.address)

        if target == PLAYING_MULTIPLAYER:
            address = event.address if _has_text(event.address) else self._context_address(current)
            if not _has_text(address):
                return None
            return self._enter(PlayingMultiplayer(address, since=now, server_name=self._pending_server_name), current)

        if target == PLAYING_SINGLEPLAYER:
            world_name = event.world_name if _has_text(event.world_name) else self._context_world_name(current)
            if not _has_text(world_name):
                return None
            return self._enter(PlayingSingleplayer(world_name, since=now), current)

        if target == PLAYING:
            address = self._context_address(current)
            if address is not None:
                return self._enter(PlayingMultiplayer(address, since=now, server_name=self._pending_server_name), current)
            if event.world_name is not None and not _has_text(event.world_name):
                return None
            world_name = event.world_name or self._context_world_name(current) or self._fallback_world_name
            if not _has_text(world_name):
                return None
            return self._enter(PlayingSingleplayer(world_name, since=now), current)

        logger.warning(f"Unbekanntes Übergangsziel: {target}")
        return None

    @staticmethod
    def _enter(candidate, current):
        # gleicher Spielzustand: alte Instanz behalten, damit since unverändert bleibt
        if candidate == current:
            return current
        return candidate

    def _context_address(self, current):
        if isinstance(current, (JoiningServer, PlayingMultiplayer)):
            return current.address
        return None

    def _context_world_name(self, current):
        if isinstance(current, PlayingSingleplayer):
            return current.world_name
        return self._pending_world_name
