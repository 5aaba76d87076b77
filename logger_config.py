"""Centralized logging configuration for Wedding Event Planner.

Each service (API, MCP server, store client, reconciler, watcher) gets its own
rotating log file plus console output. Level and directory come from settings.
"""

import logging
from logging.handlers import RotatingFileHandler
import os

from config import settings

# Resolve and create the logs directory
LOG_DIR = settings.LOG_DIR if os.path.isabs(settings.LOG_DIR) else os.path.join(
    os.path.dirname(os.path.abspath(__file__)), settings.LOG_DIR
)
os.makedirs(LOG_DIR, exist_ok=True)


def log_level() -> int:
    """Configured level, INFO when settings.LOG_LEVEL is not a known level name."""
    level = logging.getLevelName(settings.LOG_LEVEL.upper())
    return level if isinstance(level, int) else logging.INFO


def setup_logger(name: str, log_file: str = 'planner.log') -> logging.Logger:
    """Setup logger with rotation.

    Args:
        name: Logger name (usually __name__)
        log_file: Log file name (e.g., 'api.log', 'reconciler.log')

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    # Avoid duplicate handlers
    if logger.handlers:
        return logger

    level = log_level()
    logger.setLevel(level)

    # Logger name tells which component (store, reconciler, ...) wrote the line
    formatter = logging.Formatter(
        '[%(asctime)s] %(levelname)s - %(name)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    # File handler - 10MB max, keep 5 backups
    file_handler = RotatingFileHandler(
        os.path.join(LOG_DIR, log_file),
        maxBytes=10 * 1024 * 1024,  # 10MB
        backupCount=5,
        encoding='utf-8'
    )
    file_handler.setLevel(level)
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)

    # Console handler
    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    return logger


def configure_root_logger():
    """Reduce third-party library noise (web server, ORM, HTTP client)."""
    for noisy in ('uvicorn', 'uvicorn.access', 'fastapi', 'sqlalchemy', 'httpx', 'httpcore'):
        logging.getLogger(noisy).setLevel(logging.WARNING)


# Auto-configure on import
configure_root_logger()
