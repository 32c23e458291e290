import json
import logging
import os
import re
from dataclasses import dataclass
from typing import List, Optional

import config
from game_state import (
    TARGETS, MAIN_MENU, LOADING_WORLD, JOINING_SERVER,
    PLAYING, PLAYING_SINGLEPLAYER, PLAYING_MULTIPLAYER, SERVER_NAME, TransitionEvent,
)

logger = logging.getLogger(__name__)

CAPTURE_FIELDS = ("world_name", "address", "server_name")

# Reihenfolge = Priorität. Spezifische Muster zuerst.
DEFAULT_MATCHERS = [
    (r"Changing Stage to MainMenu|Changing from Stage (?:Loading|GameLoading|Startup) to MainMenu",
     MAIN_MENU, None),
    (r'Connecting to singleplayer world "(?P<world_name>[^"]*)"',
     LOADING_WORLD, "world_name"),
    (r"Creating new singleplayer world in|Creating world",
     LOADING_WORLD, None),
    # Integrierter Server des Einzelspielers
    (r"Opening Quic Connection to (?:127\.0\.0\.1|localhost|::1|\[::1\]):\d+",
     LOADING_WORLD, None),
    (r"Opening Quic Connection to (?P<address>[\w.-]+:\d+)",
     JOINING_SERVER, "address"),
    # ohne Adresse: nur gültig, solange bereits ein Server betreten wird
    (r"Connecting to (?:multiplayer|dedicated) server|Server connection established",
     JOINING_SERVER, None),
    (r'(?:Server name|Joined server):?\s*"(?P<server_name>[^"]+)"',
     SERVER_NAME, "server_name"),
    (r'Singleplayer world "(?P<world_name>[^"]*)"',
     PLAYING_SINGLEPLAYER, "world_name"),
    (r"Changing from Stage (?:GameLoading|Loading) to InGame|GameInstance\.StartJoiningWorld"
     r"|GameInstance\.OnWorldJoined|World loaded|World finished loading|World ready|Loading world:",
     PLAYING, None),
    (r"Playing in multiplayer|Multiplayer mode|Multi player|dedicated server",
     PLAYING_MULTIPLAYER, None),
]


class MatcherConfigError(ValueError):
    """Raised for an invalid matcher definition."""
    pass


@dataclass(frozen=True)
class Matcher:
    pattern: re.Pattern
    target: str
    capture: Optional[str] = None

    @classmethod
    def compile(cls, pattern, target, capture=None):
        if target not in TARGETS:
            raise MatcherConfigError(f"Unknown target state: {target!r}")
        if capture is not None and capture not in CAPTURE_FIELDS:
            raise MatcherConfigError(f"Unknown capture rule: {capture!r}")
        try:
            compiled = re.compile(pattern)
        except re.error as e:
            raise MatcherConfigError(f"Invalid pattern {pattern!r}: {e}") from e
        if capture is not None and capture not in compiled.groupindex:
            raise MatcherConfigError(f"Pattern {pattern!r} has no group named {capture!r}")
        return cls(compiled, target, capture)

    def match(self, message):
        """Returns a TransitionEvent, or None if the line does not match or the capture is blank."""
        m = self.pattern.search(message)
        if not m:
            return None
        if self.capture is None:
            return TransitionEvent(self.target)
        value = m.group(self.capture)
        if value is None or not value.strip():
            return None
        return TransitionEvent(self.target, **{self.capture: value})


def build_matchers(definitions):
    """Compiles (pattern, target, capture) tuples into an ordered matcher list."""
    return [Matcher.compile(pattern, target, capture) for pattern, target, capture in definitions]


def load_matchers(path=None) -> List[Matcher]:
    """
    Loads the matcher table from a JSON list of {"pattern", "target", "capture"} objects.
    Falls back to DEFAULT_MATCHERS if the file is missing or invalid.
    """
    path = path or config.MATCHERS_FILE
    if not os.path.exists(path):
        return build_matchers(DEFAULT_MATCHERS)

    try:
        with open(path, "r", encoding="utf-8") as f:
            entries = json.load(f)
        if not isinstance(entries, list) or not entries:
            raise MatcherConfigError("matcher file must contain a non-empty list")
        definitions = [(e["pattern"], e["target"], e.get("capture")) for e in entries]
        matchers = build_matchers(definitions)
        logger.info(f"{len(matchers)} Matcher aus {path} geladen")
        return matchers
    except (OSError, ValueError, KeyError, TypeError) as e:
        logger.error(f"Matcher-Datei {path} ungültig, verwende Standardtabelle: {e}")
        return build_matchers(DEFAULT_MATCHERS)


def message_of(line):
    """
    Strips the game's `timestamp|level|source|message` prefix if present.
    Lines in any other format are returned trimmed.
    """
    line = line.strip()
    parts = line.split("|", 3)
    if len(parts) == 4:
        return parts[3].strip()
    return line


class StateExtractor:
    """Applies the ordered matcher table to log lines; the first match wins."""

    def __init__(self, matchers=None):
        self.matchers = matchers if matchers is not None else build_matchers(DEFAULT_MATCHERS)

    def extract(self, line):
        message = message_of(line)
        if not message:
            return None
        for matcher in self.matchers:
            event = matcher.match(message)
            if event is not None:
                logger.debug(f"Erkannt: {event.target} <- {message}")
                return event
        return None
