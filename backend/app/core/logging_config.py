# backend/app/core/logging_config.py
import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

LOG_FILE_MAX_BYTES = 5 * 1024 * 1024  # 5 MB
LOG_FILE_BACKUP_COUNT = 2

# Third-party loggers that are noisy at INFO
_QUIET_LOGGERS = ("httpx", "httpcore", "LiteLLM", "urllib3", "google.auth", "deepl")


def _clear_existing_handlers(root_logger: logging.Logger) -> None:
    for handler in root_logger.handlers[:]:
        try:
            handler.flush()
            handler.close()
        except Exception as e:
            # Logging is being torn down; stderr is all we have here
            print(f"Warning: Error closing existing log handler: {e}", file=sys.stderr)
        root_logger.removeHandler(handler)


def _build_console_handler(level: int) -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    if level <= logging.DEBUG:
        fmt = "%(asctime)s %(levelname)s: [%(name)s:%(lineno)d] %(message)s"
    else:
        fmt = "%(asctime)s %(levelname)s: [%(name)s] %(message)s"
    handler.setFormatter(logging.Formatter(fmt, datefmt="%Y-%m-%d %H:%M:%S"))
    return handler


def _build_file_handler(log_file_path: str, level: int) -> logging.Handler | None:
    try:
        Path(log_file_path).parent.mkdir(parents=True, exist_ok=True)
        handler = RotatingFileHandler(
            log_file_path,
            maxBytes=LOG_FILE_MAX_BYTES,
            backupCount=LOG_FILE_BACKUP_COUNT,
            encoding="utf-8",
        )
    except OSError as e:
        logging.error(f"Failed to configure file logging to {log_file_path}: {e}", exc_info=True)
        return None
    handler.setLevel(level)
    handler.setFormatter(
        logging.Formatter(
            "%(asctime)s - %(levelname)-8s - [%(name)s:%(lineno)d] - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    return handler


def setup_logging(level_name: str = "INFO", log_file_path: str | None = None) -> None:
    """
    Configure the root logger with a console handler and an optional rotating file handler.

    Args:
        level_name: Name of the logging level (e.g. 'DEBUG', 'INFO').
        log_file_path: Full path of the log file. File logging is skipped when None.
    """
    level = getattr(logging, level_name.upper(), None)
    if not isinstance(level, int):
        print(f"Warning: Invalid log level '{level_name}'. Using INFO.", file=sys.stderr)
        level = logging.INFO

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    _clear_existing_handlers(root_logger)

    root_logger.addHandler(_build_console_handler(level))
    if log_file_path:
        file_handler = _build_file_handler(log_file_path, level)
        if file_handler:
            root_logger.addHandler(file_handler)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    logging.getLogger(__name__).info(
        f"Logging initialized. Level: {logging.getLevelName(level)}, "
        f"File: {log_file_path or 'N/A'}"
    )
