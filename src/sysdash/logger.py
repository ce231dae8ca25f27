"""
Logger setup for sysdash.

Every module logs through ``get_logger(__name__)``; ``setup_logging`` attaches
handlers to the package logger once, from the command line entry point.
"""
import logging
import logging.handlers
import os

ROOT_LOGGER_NAME = "sysdash"
DEFAULT_LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def _get_log_level(level_name: str, default_level: int = logging.INFO) -> int:
    """
    Convert a log level name to its logging constant.

    Args:
        level_name: Name of the log level, e.g. 'DEBUG'.
        default_level: Level to use if level_name is invalid.

    Returns:
        The corresponding logging level constant.
    """
    level = logging.getLevelName(str(level_name).upper())
    if isinstance(level, int):
        return level
    logging.getLogger(ROOT_LOGGER_NAME).warning(
        f"Invalid log level name '{level_name}'. Using default level {logging.getLevelName(default_level)}."
    )
    return default_level


def setup_logging(
    level_name: str = "INFO",
    log_file_path: str | None = None,
    log_format: str = DEFAULT_LOG_FORMAT,
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 5,
) -> logging.Logger:
    """
    Configure the package logger with a console handler and an optional rotating file.

    Calling it again replaces the handlers instead of stacking duplicates.

    Args:
        level_name: Logging level for all handlers.
        log_file_path: Path to the log file. If None, file logging is disabled.
        log_format: The format string for log messages.
        max_bytes: Maximum size of the log file before rotation.
        backup_count: Number of backup log files to keep.

    Returns:
        The configured package logger.
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    level = _get_log_level(level_name)
    logger.setLevel(level)
    logger.propagate = False

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(log_format)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file_path:
        log_dir = os.path.dirname(os.path.abspath(log_file_path))
        try:
            os.makedirs(log_dir, exist_ok=True)
            file_handler = logging.handlers.RotatingFileHandler(
                log_file_path,
                maxBytes=max_bytes,
                backupCount=backup_count,
                encoding='utf-8'
            )
            file_handler.setLevel(level)
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)
            logger.info(f"File logging enabled to: {log_file_path}")
        except OSError as e:
            logger.error(f"Failed to set up file logging to {log_file_path}: {e}. Logging to console only.")

    return logger


def get_logger(name: str = ROOT_LOGGER_NAME) -> logging.Logger:
    """Get a logger under the sysdash namespace, usually for ``__name__``."""
    if name != ROOT_LOGGER_NAME and not name.startswith(ROOT_LOGGER_NAME + "."):
        name = f"{ROOT_LOGGER_NAME}.{name}"
    return logging.getLogger(name)
