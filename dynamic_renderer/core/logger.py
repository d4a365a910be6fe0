"""
Centralized logging setup for the Dynamic Renderer.

This module configures the root logger from the `logging` section of the
application settings, supporting console and rotating file handlers.

Key Functions:
- `setup_logging()`: Initializes the logging system from `RenderSettings`.
                     Should be called once at process startup (gateway app, batch driver).
- `get_logger(name)`: Returns a logger instance for the specified module name.
"""
import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Optional, Dict, Any, TYPE_CHECKING

if TYPE_CHECKING:
    from dynamic_renderer.core.config import RenderSettings

# PROJECT_ROOT: Used to resolve relative log file paths from the configuration.
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))

DEFAULT_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(module)s:%(funcName)s - %(message)s"

# Prevents handlers from being attached twice when several entry points call setup_logging().
_logging_initialized = False


def setup_logging(settings: Optional["RenderSettings"] = None, force: bool = False) -> None:
    """
    Sets up centralized logging using the `logging` section of `settings`.

    Falls back to `logging.basicConfig` when no settings (or no logging section)
    are provided.

    Args:
        settings (Optional[RenderSettings]): Application settings.
        force (bool): Reconfigure even if logging was already initialized.
    """
    global _logging_initialized
    if _logging_initialized and not force:
        logging.getLogger(__name__).debug("Logging setup_logging: Already initialized.")
        return

    log_settings: Dict[str, Any] = settings.logging if settings is not None else {}

    if not log_settings:
        logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        logging.warning("Logging setup: 'logging' section not found in configuration. Using basicConfig.")
        _logging_initialized = True
        return

    log_level_str = str(log_settings.get("level", "INFO")).upper()
    log_level = getattr(logging, log_level_str, logging.INFO)
    log_format = log_settings.get("format", DEFAULT_LOG_FORMAT)

    root_logger = logging.getLogger()

    # Drop handlers added by basicConfig or an earlier setup.
    if root_logger.hasHandlers():
        for handler in root_logger.handlers[:]:
            root_logger.removeHandler(handler)
            handler.close()

    root_logger.setLevel(log_level)
    formatter = logging.Formatter(log_format)

    handlers_settings = log_settings.get("handlers", {}) or {}

    console_handler_settings = handlers_settings.get("console", {}) or {}
    if console_handler_settings.get("enabled", False):
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

    file_handler_settings = handlers_settings.get("file", {}) or {}
    log_file_path_absolute = None
    if file_handler_settings.get("enabled", False):
        log_file_path = file_handler_settings.get("path", "logs/dynamic_renderer.log")
        log_file_path_absolute = log_file_path if os.path.isabs(log_file_path) else os.path.join(PROJECT_ROOT, log_file_path)

        max_bytes = int(file_handler_settings.get("max_bytes", 10 * 1024 * 1024))
        backup_count = int(file_handler_settings.get("backup_count", 5))

        try:
            os.makedirs(os.path.dirname(log_file_path_absolute), exist_ok=True)
            file_handler = RotatingFileHandler(
                filename=log_file_path_absolute,
                maxBytes=max_bytes,
                backupCount=backup_count,
                encoding="utf-8",
            )
            file_handler.setFormatter(formatter)
            root_logger.addHandler(file_handler)
        except OSError as e:
            # File logging is optional; keep running with whatever handlers exist.
            logging.error(f"Logging setup: Failed to configure file logging at '{log_file_path_absolute}': {e}. File logging disabled.", exc_info=True)

    _logging_initialized = True
    logging.info(f"Logging system initialized. Level: {log_level_str}.")
    if log_file_path_absolute:
        logging.debug(f"File logging handler enabled at path: {log_file_path_absolute}")


def get_logger(name: str) -> logging.Logger:
    """
    Retrieves a logger instance with the specified name.

    Modules call this at import time; handlers are attached later by
    `setup_logging()`, so no configuration happens here.

    Args:
        name (str): The name for the logger, typically `__name__` of the calling module.
    """
    return logging.getLogger(name)
