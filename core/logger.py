# core/logger.py
import logging
import os
import sys
from logging.handlers import RotatingFileHandler

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

_configured = False


def build_file_handler(
    path: str,
    max_bytes: int = 5 * 1024 * 1024,
    backups: int = 5,
    rollover_on_start: bool = True,
) -> RotatingFileHandler:
    """
    Rotating log file for one observer process. With rollover_on_start the
    previous run's log is moved to <path>.1 so every start begins a fresh file.
    """
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    existed = os.path.exists(path) and os.path.getsize(path) > 0
    handler = RotatingFileHandler(
        path,
        maxBytes=max_bytes,
        backupCount=backups,
        encoding="utf-8",
    )
    if rollover_on_start and existed and backups > 0:
        handler.doRollover()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    return handler


def setup_logging():
    global _configured
    if _configured:
        return

    level = getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO)
    log_to_stdout = os.getenv("LOG_TO_STDOUT", "true").lower() == "true"
    log_to_file = os.getenv("LOG_TO_FILE", "true").lower() == "true"

    root = logging.getLogger()
    root.setLevel(level)

    if not root.handlers:
        if log_to_stdout:
            ch = logging.StreamHandler(sys.stdout)
            ch.setFormatter(logging.Formatter(LOG_FORMAT))
            root.addHandler(ch)

        if log_to_file:
            try:
                root.addHandler(build_file_handler(
                    os.getenv("LOG_FILE", "./logs/market_observer.log"),
                    max_bytes=int(os.getenv("LOG_MAX_BYTES", str(5 * 1024 * 1024))),
                    backups=int(os.getenv("LOG_BACKUPS", "5")),
                    rollover_on_start=os.getenv("LOG_ROLLOVER_ON_START", "true").lower() == "true",
                ))
            except OSError as e:
                root.warning("Failed to initialize file logging: %s", e)

    _configured = True


def get_logger(name: str | None = None) -> logging.Logger:
    setup_logging()
    return logging.getLogger(name)
