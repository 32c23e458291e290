"""
logger.py

Logging für Hytale RPC: rotierende Dateien (allgemein, Fehler, optional Debug)
plus Ausgabe auf der Konsole. Wird einmal beim Start aus main.py aufgerufen.
"""

import logging
import os
from logging.handlers import RotatingFileHandler
from datetime import datetime

MAX_LOG_BYTES = 5 * 1024 * 1024
BACKUP_COUNT = 3

GENERAL_FORMAT = "%(asctime)s - %(levelname)s - [%(threadName)s] %(message)s"
DEBUG_FORMAT = "%(asctime)s - %(levelname)s - [%(threadName)s %(module)s:%(lineno)d] - %(message)s"

# Bibliotheken, die auf DEBUG sehr gesprächig sind
NOISY_LOGGERS = ("watchdog", "asyncio", "urllib3")

def _rotating_handler(path, level, fmt):
    handler = RotatingFileHandler(path, maxBytes=MAX_LOG_BYTES, backupCount=BACKUP_COUNT, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt))
    return handler

def setup_logging(general_log_folder, error_log_folder, debug_log_folder=None, log_level="INFO", app_logger_name=None, enable_logging=True):
    """
    Richtet die Log-Handler ein und gibt den konfigurierten Logger zurück.

    Parameter:
    - general_log_folder / error_log_folder (str): Zielordner, werden bei Bedarf angelegt.
    - debug_log_folder (str, optional): nur wenn gesetzt, wird eine Debug-Datei geschrieben.
    - log_level (str): z. B. "INFO" oder "DEBUG", unbekannte Werte fallen auf INFO zurück.
    - app_logger_name (str, optional): sonst der Root-Logger.
    - enable_logging (bool): False hängt nur einen NullHandler an und gibt None zurück.

    Ein erneuter Aufruf ersetzt die zuvor angelegten Handler.
    """
    target = logging.getLogger(app_logger_name) if app_logger_name else logging.getLogger()

    if not enable_logging:
        target.addHandler(logging.NullHandler())
        return None

    for folder in (general_log_folder, error_log_folder, debug_log_folder):
        if folder:
            os.makedirs(folder, exist_ok=True)

    for handler in list(target.handlers):
        target.removeHandler(handler)
        handler.close()

    stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    target.setLevel(getattr(logging, str(log_level).upper(), logging.INFO))

    target.addHandler(_rotating_handler(
        os.path.join(general_log_folder, f"hytale_rpc_{stamp}.log"), logging.INFO, GENERAL_FORMAT))
    target.addHandler(_rotating_handler(
        os.path.join(error_log_folder, f"hytale_rpc_errors_{stamp}.log"), logging.ERROR, GENERAL_FORMAT))
    if debug_log_folder:
        target.addHandler(_rotating_handler(
            os.path.join(debug_log_folder, f"hytale_rpc_debug_{stamp}.log"), logging.DEBUG, DEBUG_FORMAT))

    console = logging.StreamHandler()
    console.setFormatter(logging.Formatter("%(asctime)s - %(levelname)s - %(message)s"))
    target.addHandler(console)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return target
