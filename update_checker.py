"""
update_checker.py

Modul zur Überprüfung, ob eine neuere Version von Hytale RPC veröffentlicht wurde.
"""

import logging

import requests
from packaging import version

import config

logger = logging.getLogger(__name__)

RELEASES_URL = "https://api.github.com/repos/{owner}/{repo}/releases/latest"

def check_for_updates(current_version, owner=None, repo=None, timeout=5):
    """
    Prüft, ob eine neue Version verfügbar ist.

    Args:
        current_version (str): Die aktuelle Versionsnummer der Anwendung

    Returns:
        tuple: (update_available, latest_version, notes)
            - update_available (bool): True wenn ein Update verfügbar ist, sonst False
            - latest_version (str): Die neueste verfügbare Version
            - notes (str): Release-Notes der neuen Version
    """
    owner = owner or config.GITHUB_REPO_OWNER
    repo = repo or config.GITHUB_REPO_NAME
    if not owner:
        logger.warning("GitHub Repository Owner nicht verfügbar. Update-Check wird übersprungen.")
        return False, current_version, ""

    try:
        response = requests.get(RELEASES_URL.format(owner=owner, repo=repo), timeout=timeout)
        response.raise_for_status()
        release_info = response.json()

        # v0.8.0 -> 0.8.0
        latest_version = release_info["tag_name"].lstrip("v")

        if version.parse(latest_version) > version.parse(current_version):
            logger.info(f"Neue Version verfügbar: {latest_version} (Aktuell: {current_version})")
            return True, latest_version, release_info.get("body") or ""

        logger.debug(f"Keine neue Version verfügbar. Aktuell: {current_version}, Server: {latest_version}")
        return False, latest_version, ""
    except (requests.RequestException, KeyError, ValueError, version.InvalidVersion) as e:
        logger.error(f"Fehler bei der Updateprüfung: {str(e)}")
        return False, current_version, ""
