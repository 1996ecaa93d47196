"""
SkySync Logging Configuration

Configures logging based on environment variables:
- SKYSYNC_DEBUG: Enable debug logging (default: false)
- SKYSYNC_LOG_FILE: Log file path (default: $SKYSYNC_DATA_PATH/<process>.log)

Two processes log through this module:
- gateway: timestamped lines; stderr shows warnings+ while a log file is active
- server:  the MCP tool server. stdout carries the protocol stream, so it
           never logs there. Its stderr is piped into the gateway, which
           re-logs each line under skysync.session.stderr, so stderr gets
           every record in a compact "LEVEL [logger] message" form that
           parse_relayed_line() understands.
"""

import logging
import os
import re
import sys
from pathlib import Path
from typing import Optional

from skysync.configs.paths import get_data_path

LOG_FORMAT = "%(asctime)s %(levelname)-5s [%(name)s] %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# The gateway adds its own timestamp when relaying
RELAY_FORMAT = "%(levelname)s [%(name)s] %(message)s"

LOG_PROFILES = {
    "gateway": {
        "log_name": "gateway.log",
        "stderr_format": LOG_FORMAT,
        "quiet_stderr": True,
    },
    "server": {
        "log_name": "server.log",
        "stderr_format": RELAY_FORMAT,
        "quiet_stderr": False,
    },
}

_RELAYED_LINE = re.compile(r"^(DEBUG|INFO|WARNING|ERROR|CRITICAL) (\[.+)$")


def setup_logging(
    debug: Optional[bool] = None,
    log_file: Optional[str] = None,
    process: str = "gateway",
) -> logging.Logger:
    """
    Configure logging for one SkySync process.

    Args:
        debug: Enable debug level. Defaults to SKYSYNC_DEBUG env var.
        log_file: Log file path. Defaults to SKYSYNC_LOG_FILE env var,
                  or the process's file under $SKYSYNC_DATA_PATH.
        process: "gateway" or "server" (see LOG_PROFILES)

    Returns:
        Root logger for skysync
    """
    profile = LOG_PROFILES[process]

    if debug is None:
        debug = os.environ.get("SKYSYNC_DEBUG", "").lower() in ("true", "1", "yes")
    if log_file is None:
        log_file = os.environ.get("SKYSYNC_LOG_FILE")
        if not log_file:
            log_file = str(get_data_path() / profile["log_name"])

    level = logging.DEBUG if debug else logging.INFO

    logger = logging.getLogger("skysync")
    logger.setLevel(level)
    logger.handlers.clear()

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setFormatter(logging.Formatter(profile["stderr_format"], datefmt=LOG_DATE_FORMAT))
    if log_file and profile["quiet_stderr"]:
        stderr_handler.setLevel(logging.WARNING)
    else:
        stderr_handler.setLevel(level)
    logger.addHandler(stderr_handler)

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
        file_handler.setLevel(level)
        logger.addHandler(file_handler)
        logger.info(f"Logging to file: {log_file}")

    return logger


def parse_relayed_line(text: str) -> tuple[int, str]:
    """
    Split a line from the tool server's stderr into (level, message).

    Lines written by the server's own loggers keep their level. Anything
    else (library output, tracebacks) is relayed at INFO.
    """
    match = _RELAYED_LINE.match(text)
    if match is None:
        return logging.INFO, text
    return logging.getLevelName(match.group(1)), match.group(2)


def get_logger(component: str) -> logging.Logger:
    """
    Get a logger for a specific component.

    Args:
        component: Component name (e.g., "session", "gateway", "http")

    Returns:
        Logger instance for the component
    """
    return logging.getLogger(f"skysync.{component}")
