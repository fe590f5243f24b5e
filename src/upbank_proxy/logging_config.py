"""
Logging configuration for the upbank-proxy service.

Everything under the `upbank_proxy` logger goes to a rotating file in LOG_DIR;
records at LOG_CONSOLE_LEVEL and above are echoed to the console as well.
"""

import logging
import os
from pathlib import Path
from logging.handlers import RotatingFileHandler
from typing import Optional

SERVICE_LOGGER = "upbank_proxy"
LOG_FILE_NAME = "upbank_proxy.log"

# one line per record: when, who, where, what
RECORD_FORMAT = "%(asctime)s %(levelname)-8s %(name)s (%(module)s:%(lineno)d) %(message)s"
TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S"

ROTATE_AT_BYTES = 5 * 1024 * 1024
KEEP_ROTATED_FILES = 3


def _level(name: Optional[str], fallback: int) -> int:
    return getattr(logging, (name or "").upper(), fallback)


def setup_logging(
    log_dir: Optional[str] = None,
    log_level: Optional[str] = None,
    console_level: Optional[str] = None,
) -> Path:
    """
    (Re)attach the file and console handlers to the service logger and
    return the log file path. Safe to call once per app instance.
    """
    level = _level(log_level or os.getenv("LOG_LEVEL"), logging.INFO)
    echo_level = _level(console_level or os.getenv("LOG_CONSOLE_LEVEL"), logging.WARNING)

    directory = Path(log_dir or os.getenv("LOG_DIR", "logs"))
    directory.mkdir(parents=True, exist_ok=True)
    log_file = directory / LOG_FILE_NAME

    logging.getLogger().setLevel(level)

    service_logger = logging.getLogger(SERVICE_LOGGER)
    service_logger.setLevel(level)
    for old in list(service_logger.handlers):
        service_logger.removeHandler(old)
        old.close()

    formatter = logging.Formatter(RECORD_FORMAT, TIMESTAMP_FORMAT)
    to_file = RotatingFileHandler(
        log_file,
        maxBytes=ROTATE_AT_BYTES,
        backupCount=KEEP_ROTATED_FILES,
        encoding="utf-8",
    )
    to_file.setLevel(level)
    to_file.setFormatter(formatter)
    to_console = logging.StreamHandler()
    to_console.setLevel(echo_level)
    to_console.setFormatter(formatter)
    service_logger.addHandler(to_file)
    service_logger.addHandler(to_console)

    # httpx logs every request at INFO; the client logs its own summary
    logging.getLogger("httpx").setLevel(logging.WARNING)

    service_logger.info("Logging to %s (file=%s console=%s)", log_file,
                        logging.getLevelName(level), logging.getLevelName(echo_level))
    return log_file


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
