import logging
import signal
import threading

import config
import logger
from engine import Engine, STATUS_UPDATE_AVAILABLE
from update_checker import check_for_updates

log = logging.getLogger(__name__)

def log_state_change(change):
    """Stand-in for the tray label: writes every state change to the log."""
    if change.elapsed is not None:
        minutes = int(change.elapsed // 60)
        log.info(f"{change.current.label} ({minutes} min)")
    else:
        log.info(change.current.label)

def start_update_check(engine):
    def _check():
        available, latest, _notes = check_for_updates(config.VERSION)
        if available:
            engine.report_status(STATUS_UPDATE_AVAILABLE, f"Neue Version {latest} verfügbar")

    threading.Thread(target=_check, name="update-check", daemon=True).start()

def main():
    """Entry point: config, logging, engine until SIGINT/SIGTERM."""
    config.load_config()
    debug_folder = config.DEBUG_LOG_FOLDER if config.LOGGING_LEVEL == "DEBUG" else None
    logger.setup_logging(config.GENERAL_LOG_FOLDER, config.ERROR_LOG_FOLDER, debug_folder,
                         config.LOGGING_LEVEL, enable_logging=config.LOGGING_ENABLED)

    log.info(f"Hytale Discord Rich Presence v{config.VERSION}")

    engine = Engine.from_config()
    engine.add_listener(log_state_change)

    def _shutdown(signum, frame):
        log.info(f"Signal {signum} empfangen")
        engine.stop()

    signal.signal(signal.SIGINT, _shutdown)
    signal.signal(signal.SIGTERM, _shutdown)

    start_update_check(engine)
    engine.run()
    log.info("Beendet")

if __name__ == "__main__":
    main()
