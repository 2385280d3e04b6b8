"""
Centralized logging configuration for weavekit.

Library modules only ever call ``logging.getLogger(__name__)``; the host
application decides where records go by calling ``setup_logging()`` once.

Usage:
    from weavekit.core.logging_config import setup_logging, get_logger

    # Call once at application startup
    setup_logging()

    logger = get_logger(__name__)
    logger.info("Graph cache ready")

Debugging:
    tail -f logs/weavekit/system.log
"""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

# =============================================================================
# Configuration
# =============================================================================

LOG_DIR = Path("logs/weavekit")
SYSTEM_LOG_NAME = "system.log"
MAX_LOG_SIZE = 10 * 1024 * 1024  # 10 MB per file
BACKUP_COUNT = 5

# Default log level (can be overridden by LOG_LEVEL env var)
DEFAULT_LOG_LEVEL = "INFO"

LOG_FORMAT = "%(asctime)s | %(levelname)-5s | %(name)-30s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

CONSOLE_FORMAT = "%(asctime)s | %(levelname)-5s | %(name)-20s | %(message)s"
CONSOLE_DATE_FORMAT = "%H:%M:%S"

# =============================================================================
# Global State
# =============================================================================

_logging_configured = False
_file_handler: Optional[RotatingFileHandler] = None
_installed_handlers: list[logging.Handler] = []
_system_log_file: Path = LOG_DIR / SYSTEM_LOG_NAME


# =============================================================================
# Setup Functions
# =============================================================================


def setup_logging(
    level: Optional[str] = None,
    log_to_console: bool = True,
    log_to_file: bool = True,
    log_dir: Optional[Path] = None,
    service_name: str = "weavekit",
) -> None:
    """
    Configure logging for an application embedding weavekit.

    This should be called ONCE at application startup. Later calls are no-ops.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR). Defaults to LOG_LEVEL env var or INFO.
        log_to_console: Whether to also log to stdout (default True)
        log_to_file: Whether to log to the rotating system.log file (default True)
        log_dir: Directory for system.log (default logs/weavekit)
        service_name: Logger name used for the startup marker
    """
    global _logging_configured, _file_handler, _system_log_file

    if _logging_configured:
        return

    if level is None:
        level = os.getenv("LOG_LEVEL", DEFAULT_LOG_LEVEL)
    log_level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # Remove any existing handlers (prevents duplicates)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    if log_to_file:
        directory = log_dir or LOG_DIR
        directory.mkdir(parents=True, exist_ok=True)
        _system_log_file = directory / SYSTEM_LOG_NAME
        _file_handler = RotatingFileHandler(
            _system_log_file,
            maxBytes=MAX_LOG_SIZE,
            backupCount=BACKUP_COUNT,
            encoding="utf-8",
        )
        _file_handler.setLevel(log_level)
        _file_handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
        root_logger.addHandler(_file_handler)
        _installed_handlers.append(_file_handler)

    if log_to_console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(log_level)
        console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT, CONSOLE_DATE_FORMAT))
        root_logger.addHandler(console_handler)
        _installed_handlers.append(console_handler)

    # Reduce noise from chatty libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)

    _logging_configured = True

    logger = logging.getLogger(service_name)
    logger.info(f"LOGGING INITIALIZED - {service_name.upper()} | level={level.upper()}")
    if log_to_file:
        logger.info(f"Log file: {_system_log_file.absolute()}")


def reset_logging() -> None:
    """Drop handlers installed by setup_logging so it can run again."""
    global _logging_configured, _file_handler

    root_logger = logging.getLogger()
    while _installed_handlers:
        handler = _installed_handlers.pop()
        root_logger.removeHandler(handler)
        handler.close()
    _file_handler = None
    _logging_configured = False


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger for a module.

    Args:
        name: Usually __name__ to get the module's dotted path
    """
    return logging.getLogger(name)


def get_system_log_path() -> Path:
    """Get the path to the system log file."""
    return _system_log_file


# =============================================================================
# Convenience Functions
# =============================================================================


def log_sync_start(logger: logging.Logger, generation: int, action: str, target: Optional[str] = None):
    """Log the start of a store synchronization with standard format."""
    logger.info(f"[sync#{generation}] START | {action} | weave={target or 'aggregate'}")


def log_sync_end(logger: logging.Logger, generation: int, action: str, success: bool, elapsed_ms: float):
    """Log the end of a store synchronization with standard format."""
    status = "SUCCESS" if success else "FAILED"
    logger.info(f"[sync#{generation}] END | {action} | {status} | elapsed={elapsed_ms:.0f}ms")
