"""
presence.py

Discord Rich Presence: Abbildung der Spielzustände auf Presence-Felder und
der Publisher-Thread, der die IPC-Verbindung hält, Updates drosselt und bei
Verbindungsabbrüchen mit Backoff neu verbindet.
"""

import asyncio
import logging
import threading
import time

from pypresence import Presence
from pypresence.exceptions import PyPresenceException

import config
from backoff import BackoffPolicy, retry_with_backoff
from game_state import (
    MainMenu, LoadingWorld, JoiningServer, PlayingSingleplayer, PlayingMultiplayer,
)

logger = logging.getLogger(__name__)


class PresenceError(Exception):
    """Basisklasse für Fehler der Presence-Anbindung"""
    pass


class ConnectionLostError(PresenceError):
    """Wird ausgelöst, wenn die IPC-Verbindung nicht aufgebaut werden kann oder abbricht"""
    pass


def build_payload(state, show_world_name=None, show_server_ip=None):
    """
    Maps a GameState to the keyword arguments of Presence.update().
    Returns None for NotRunning, meaning the presence must be cleared.
    """
    show_world_name = config.SHOW_WORLD_NAME if show_world_name is None else show_world_name
    show_server_ip = config.SHOW_SERVER_IP if show_server_ip is None else show_server_ip

    start = None
    if isinstance(state, MainMenu):
        details, line = "In Main Menu", "Idle"
    elif isinstance(state, LoadingWorld):
        details, line = "Loading World", "..."
    elif isinstance(state, JoiningServer):
        details = "Joining Server"
        line = f"Server: {state.address}" if show_server_ip else "..."
    elif isinstance(state, PlayingSingleplayer):
        details = "Playing Singleplayer"
        line = f"World: {state.world_name}" if show_world_name else "In Game"
        start = int(state.since)
    elif isinstance(state, PlayingMultiplayer):
        details = "Playing Multiplayer"
        line = f"Server: {state.server_name or state.address}" if show_server_ip else "Online"
        start = int(state.since)
    else:
        return None

    payload = {
        "details": details,
        "state": line,
        "large_image": config.LARGE_IMAGE,
        "large_text": config.LARGE_TEXT,
        "buttons": [{"label": "Hytale Website", "url": config.WEBSITE_URL}],
    }
    if start is not None:
        payload["start"] = start
    return payload


class DiscordIpcChannel:
    """connect/publish/clear/close over pypresence; every failure becomes ConnectionLostError."""

    ERRORS = (PyPresenceException, OSError, RuntimeError, asyncio.TimeoutError)

    def __init__(self, client_id=None):
        self.client_id = client_id or config.CLIENT_ID

    def connect(self):
        # pypresence braucht im Publisher-Thread eine eigene Event-Loop
        loop = asyncio.new_event_loop()
        try:
            rpc = Presence(self.client_id, loop=loop)
            rpc.connect()
        except self.ERRORS as e:
            loop.close()
            raise ConnectionLostError(f"Discord RPC connect failed: {e}") from e
        return rpc

    def publish(self, conn, payload):
        try:
            conn.update(**payload)
        except self.ERRORS as e:
            raise ConnectionLostError(f"Failed to update presence: {e}") from e

    def clear(self, conn):
        try:
            conn.clear()
        except self.ERRORS as e:
            raise ConnectionLostError(f"Failed to clear presence: {e}") from e

    def close(self, conn):
        try:
            conn.close()
        except self.ERRORS as e:
            raise ConnectionLostError(f"Error closing Discord RPC: {e}") from e
        finally:
            # bei abgebrochener Pipe schließt pypresence seine Loop nicht selbst
            loop = getattr(conn, "loop", None)
            if loop is not None and not loop.is_closed():
                loop.close()


class PresencePublisher:
    """
    Publishes the latest PresenceSnapshot to the chat client.

    - publishes only when the snapshot revision changed
    - at most one publish per debounce floor; only the newest revision is sent
    - reconnects with capped exponential backoff while the client runs, parks otherwise
    - a fresh connection publishes the current snapshot immediately
    """

    def __init__(self, snapshot_source, channel=None, debounce_floor=None, backoff_policy=None,
                 show_world_name=None, show_server_ip=None, clock=time.monotonic,
                 wait=None, shutdown=None, tick=1.0):
        self.snapshot_source = snapshot_source
        self.channel = channel or DiscordIpcChannel()
        self.debounce_floor = config.DEBOUNCE_FLOOR_SECONDS if debounce_floor is None else debounce_floor
        self.backoff_policy = backoff_policy or BackoffPolicy.from_config()
        self.show_world_name = show_world_name
        self.show_server_ip = show_server_ip
        self.clock = clock
        self.shutdown = shutdown or threading.Event()
        self._wait = wait or self.shutdown.wait
        self.tick = tick

        self.client_available = threading.Event()
        # beim Start einen Verbindungsversuch erlauben
        self.client_available.set()
        self._wake = threading.Event()

        self.connection = None
        self.published_revision = None
        self.last_publish_at = None
        self._force_publish = False
        self.publish_count = 0

    @property
    def connected(self):
        return self.connection is not None

    def set_client_available(self, available):
        if available and not self.client_available.is_set():
            logger.info("Discord erkannt")
            self.client_available.set()
            self._wake.set()
        elif not available and self.client_available.is_set():
            logger.info("Discord nicht mehr aktiv, Presence pausiert")
            self.client_available.clear()
            self._wake.set()

    def notify(self):
        """Called by the state writer after a revision change."""
        self._wake.set()

    def _should_retry(self):
        return self.client_available.is_set() and not self.shutdown.is_set()

    def _on_connect_failure(self, error, attempt, delay):
        logger.warning(f"Could not connect to Discord RPC (Versuch {attempt}): {error}. Neuer Versuch in {delay:.0f}s")

    def ensure_connected(self):
        """Connects (retrying with backoff) and publishes the current snapshot right away."""
        if self.connection is not None:
            return True
        if not self._should_retry():
            return False

        logger.info("Connecting to Discord RPC...")
        conn = retry_with_backoff(
            self.channel.connect,
            self.backoff_policy,
            wait=self._wait,
            should_continue=self._should_retry,
            retry_on=(ConnectionLostError,),
            on_failure=self._on_connect_failure,
        )
        if conn is None:
            return False

        logger.info("Connected to Discord RPC")
        self.connection = conn
        self.published_revision = None
        self._force_publish = True
        self.step()
        return self.connection is not None

    def drop_connection(self):
        conn, self.connection = self.connection, None
        self.published_revision = None
        if conn is None:
            return
        try:
            self.channel.close(conn)
        except ConnectionLostError as e:
            logger.debug(f"Fehler beim Schließen der Verbindung ignoriert: {e}")

    def step(self):
        """
        One publish decision. Returns True if something was sent.
        Publish errors drop the connection so run() reconnects.
        """
        if self.connection is None:
            return False

        snapshot = self.snapshot_source()
        if snapshot.revision == self.published_revision:
            return False

        now = self.clock()
        if (not self._force_publish
                and self.last_publish_at is not None
                and now - self.last_publish_at < self.debounce_floor):
            return False

        payload = build_payload(snapshot.state, self.show_world_name, self.show_server_ip)
        try:
            if payload is None:
                self.channel.clear(self.connection)
                logger.debug("Cleared Discord presence")
            else:
                self.channel.publish(self.connection, payload)
                logger.debug(f"Updating Discord presence: {payload['details']} - {payload['state']}")
        except ConnectionLostError as e:
            logger.error(f"{e}. Verbindung wird neu aufgebaut")
            self.drop_connection()
            return False

        self.published_revision = snapshot.revision
        self.last_publish_at = now
        self._force_publish = False
        self.publish_count += 1
        return True

    def run(self):
        logger.info("Presence-Publisher gestartet")
        try:
            while not self.shutdown.is_set():
                try:
                    self._run_once()
                except Exception as e:
                    logger.error(f"Allgemeiner Fehler im Presence-Publisher: {str(e)}", exc_info=True)
                    self.drop_connection()
                self._wait_for_wake()
        finally:
            self.close()
            logger.info("Presence-Publisher beendet")

    def _run_once(self):
        if not self.client_available.is_set():
            # Discord beendet: Verbindung aufgeben und parken
            if self.connection is not None:
                self.drop_connection()
            return

        if self.connection is None and not self.ensure_connected():
            return

        self.step()

    def _wait_for_wake(self):
        self._wake.wait(self.tick)
        self._wake.clear()

    def stop(self):
        self.shutdown.set()
        self._wake.set()

    def close(self):
        """Withdraws the presence and closes the connection."""
        if self.connection is None:
            return
        try:
            self.channel.clear(self.connection)
        except ConnectionLostError as e:
            logger.debug(f"Presence konnte beim Beenden nicht entfernt werden: {e}")
        self.drop_connection()
        logger.info("Disconnected from Discord RPC")
