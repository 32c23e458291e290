import os
import sys
from pathlib import Path

APP_NAME = "hytale-rpc"
VERSION = "0.4.0"

# Hilfsfunktion, um den richtigen Pfad für Anwendungsdaten zu bestimmen
def get_app_data_path():
    """Gibt den Pfad zum Anwendungsdatenverzeichnis des Benutzers zurück."""
    if os.name == "nt":
        base = os.environ.get('APPDATA', os.path.expanduser('~'))
    else:
        base = os.environ.get('XDG_CONFIG_HOME', os.path.join(os.path.expanduser('~'), ".config"))
    return os.path.join(base, APP_NAME)

# Discord Application
CLIENT_ID = "1461306150497550376"
LARGE_IMAGE = "hytale_logo"
LARGE_TEXT = "Hytale"
WEBSITE_URL = "https://hytale.com"

# GitHub Releases für den Update-Check
GITHUB_REPO_OWNER = os.environ.get('HYTALE_RPC_REPO_OWNER', 'MopigamesYT')
GITHUB_REPO_NAME = "hytale-rpc"

# Prozessnamen (Vergleich ohne Groß-/Kleinschreibung, "name" oder "name.<ext>")
GAME_PROCESS_NAMES = ["hytale", "hytaleclient"]
DISCORD_PROCESS_NAMES = ["discord", "discordptb", "discordcanary", "vesktop", "webcord"]

# Logdateien des Spiels
LOG_FILE_PATTERN = "*_client.log"
MATCHERS_FILENAME = "matchers.json"

# Grenzen für das Einlesen und die Fehlertoleranz
MAX_READ_BYTES = 1024 * 1024
MAX_RELOCATE_FAILURES = 5
MAX_SCAN_FAILURES = 3
FALLBACK_WORLD_NAME = "Exploring Orbis"

# Anwendungsverzeichnis für Daten
APP_DATA_PATH = get_app_data_path()

# Logging folders
LOG_FOLDER = os.path.join(APP_DATA_PATH, "Logs")
ERROR_LOG_FOLDER = os.path.join(LOG_FOLDER, "errors")
GENERAL_LOG_FOLDER = os.path.join(LOG_FOLDER, "general")
DEBUG_LOG_FOLDER = os.path.join(LOG_FOLDER, "debug")

# Config-Datei im Benutzerverzeichnis
CONFIG_FILE = os.path.join(APP_DATA_PATH, "config.txt")
MATCHERS_FILE = os.path.join(APP_DATA_PATH, MATCHERS_FILENAME)

def ensure_directories_exist():
    global APP_DATA_PATH, LOG_FOLDER, ERROR_LOG_FOLDER, GENERAL_LOG_FOLDER, DEBUG_LOG_FOLDER, CONFIG_FILE, MATCHERS_FILE

    try:
        os.makedirs(APP_DATA_PATH, exist_ok=True)
        os.makedirs(ERROR_LOG_FOLDER, exist_ok=True)
        os.makedirs(GENERAL_LOG_FOLDER, exist_ok=True)
        os.makedirs(DEBUG_LOG_FOLDER, exist_ok=True)
    except OSError as e:
        print(f"Fehler beim Erstellen der Verzeichnisse: {e}", file=sys.stderr)
        # Fallback: Verwende temporäres Verzeichnis
        import tempfile

        APP_DATA_PATH = os.path.join(tempfile.gettempdir(), APP_NAME)
        LOG_FOLDER = os.path.join(APP_DATA_PATH, "Logs")
        ERROR_LOG_FOLDER = os.path.join(LOG_FOLDER, "errors")
        GENERAL_LOG_FOLDER = os.path.join(LOG_FOLDER, "general")
        DEBUG_LOG_FOLDER = os.path.join(LOG_FOLDER, "debug")
        CONFIG_FILE = os.path.join(APP_DATA_PATH, "config.txt")
        MATCHERS_FILE = os.path.join(APP_DATA_PATH, MATCHERS_FILENAME)

        os.makedirs(APP_DATA_PATH, exist_ok=True)
        os.makedirs(ERROR_LOG_FOLDER, exist_ok=True)
        os.makedirs(GENERAL_LOG_FOLDER, exist_ok=True)
        os.makedirs(DEBUG_LOG_FOLDER, exist_ok=True)

# Default/Global values
LOGGING_ENABLED = True
LOGGING_LEVEL = "INFO"
SHOW_WORLD_NAME = True
SHOW_SERVER_IP = True
POLL_INTERVAL = 3
DEBOUNCE_FLOOR_SECONDS = 15
BACKOFF_INITIAL = 1
BACKOFF_CAP_SECONDS = 30
EXTRA_LOG_DIRS = []

def _parse_bool(value):
    return value.strip().lower() == "true"

def _parse_int(value, default, lower, upper):
    try:
        return max(lower, min(int(value), upper))
    except ValueError:
        return default

def load_config(config_file=None):
    """Loads the configuration file and sets global variables."""
    global LOGGING_ENABLED, LOGGING_LEVEL, SHOW_WORLD_NAME, SHOW_SERVER_IP, POLL_INTERVAL
    global DEBOUNCE_FLOOR_SECONDS, BACKOFF_INITIAL, BACKOFF_CAP_SECONDS, EXTRA_LOG_DIRS

    if config_file is None:
        ensure_directories_exist()
        config_file = CONFIG_FILE

    if not os.path.exists(config_file):
        save_config(config_file)
        return

    with open(config_file, "r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue
            key, value = line.split("=", 1)
            key = key.strip().upper()
            if key == "LOGGING_ENABLED":
                LOGGING_ENABLED = _parse_bool(value)
            elif key == "LOGGING_LEVEL":
                LOGGING_LEVEL = value.strip().upper()
            elif key == "SHOW_WORLD_NAME":
                SHOW_WORLD_NAME = _parse_bool(value)
            elif key == "SHOW_SERVER_IP":
                SHOW_SERVER_IP = _parse_bool(value)
            elif key == "POLL_INTERVAL":
                POLL_INTERVAL = _parse_int(value, POLL_INTERVAL, 1, 60)
            elif key == "DEBOUNCE_FLOOR_SECONDS":
                DEBOUNCE_FLOOR_SECONDS = _parse_int(value, DEBOUNCE_FLOOR_SECONDS, 0, 3600)
            elif key == "BACKOFF_INITIAL":
                BACKOFF_INITIAL = _parse_int(value, BACKOFF_INITIAL, 1, 600)
            elif key == "BACKOFF_CAP_SECONDS":
                BACKOFF_CAP_SECONDS = _parse_int(value, BACKOFF_CAP_SECONDS, 1, 3600)
            elif key == "LOG_DIRS":
                EXTRA_LOG_DIRS = [p.strip() for p in value.split(";") if p.strip()]

    # Cap darf nie kleiner als der Startwert sein
    BACKOFF_CAP_SECONDS = max(BACKOFF_CAP_SECONDS, BACKOFF_INITIAL)

def save_config(config_file=None):
    """Saves the current config settings to a file with comments for better user understanding."""
    if config_file is None:
        ensure_directories_exist()
        config_file = CONFIG_FILE

    with open(config_file, "w", encoding="utf-8") as f:
        f.write("# Aktiviert oder deaktiviert das Logging (true/false)\n")
        f.write(f"LOGGING_ENABLED={'true' if LOGGING_ENABLED else 'false'}\n\n")

        f.write("# Logging-Level: DEBUG, INFO, WARNING, ERROR, CRITICAL\n")
        f.write(f"LOGGING_LEVEL={LOGGING_LEVEL}\n\n")

        f.write("# Weltname in der Discord-Anzeige (true/false)\n")
        f.write(f"SHOW_WORLD_NAME={'true' if SHOW_WORLD_NAME else 'false'}\n\n")

        f.write("# Serveradresse in der Discord-Anzeige (true/false)\n")
        f.write(f"SHOW_SERVER_IP={'true' if SHOW_SERVER_IP else 'false'}\n\n")

        f.write("# Abfrageintervall für Prozesse und Logdatei in Sekunden\n")
        f.write(f"POLL_INTERVAL={POLL_INTERVAL}\n\n")

        f.write("# Minimaler Abstand zwischen zwei Discord-Updates in Sekunden\n")
        f.write(f"DEBOUNCE_FLOOR_SECONDS={DEBOUNCE_FLOOR_SECONDS}\n\n")

        f.write("# Wiederverbindung: erste Wartezeit und Obergrenze in Sekunden\n")
        f.write(f"BACKOFF_INITIAL={BACKOFF_INITIAL}\n")
        f.write(f"BACKOFF_CAP_SECONDS={BACKOFF_CAP_SECONDS}\n\n")

        f.write("# Zusätzliche Log-Verzeichnisse, mit ; getrennt (werden zuerst durchsucht)\n")
        f.write(f"LOG_DIRS={';'.join(EXTRA_LOG_DIRS)}\n")

def get_log_directories():
    """
    Returns the ordered list of directories that may hold the client log.
    Directories from LOG_DIRS come first, followed by the platform defaults.
    """
    home = Path.home()
    paths = [Path(p).expanduser() for p in EXTRA_LOG_DIRS]

    # Gemeinsamer Pfad auf allen Plattformen
    paths.append(home / ".hytale" / "UserData" / "Logs")

    if sys.platform == "darwin":
        paths.append(home / "Library" / "Application Support" / "Hytale" / "UserData" / "Logs")
    elif os.name == "nt":
        for var in ("APPDATA", "LOCALAPPDATA"):
            base = os.environ.get(var)
            if base:
                paths.append(Path(base) / "Hytale" / "UserData" / "Logs")
    else:
        paths.append(home / ".local" / "share" / "Hytale" / "UserData" / "Logs")
        paths.append(home / ".config" / "Hytale" / "UserData" / "Logs")

        # Flatpak
        paths.append(home / ".var" / "app" / "com.hytale.Hytale" / "data" / "Hytale" / "UserData" / "Logs")
        paths.append(home / ".var" / "app" / "com.hytale.Hytale" / "config" / "Hytale" / "UserData" / "Logs")

        # Steam/Proton
        proton_suffix = Path("steamapps/compatdata/Hytale/pfx/drive_c/users/steamuser/AppData/Roaming/Hytale/UserData/Logs")
        paths.append(home / ".steam" / "steam" / proton_suffix)
        paths.append(home / ".local" / "share" / "Steam" / proton_suffix)

    return paths

# Lade Konfiguration beim Import
try:
    load_config()
except OSError as e:
    print(f"Fehler beim Laden der Konfiguration: {e}", file=sys.stderr)
