import sys
import logging
from logging.handlers import RotatingFileHandler

from tika_server import settings

PROCESS_LOGGER_PREFIX = "proc."


class SubprocessLogFilter(logging.Filter):
    """
    This filter identifies logs coming from the subprocess logger
    and keeps them out of handlers that only want supervisor records.
    """
    def filter(self, record):
        # The 'proc.' prefix is used by log_process_output in process_utils.py
        return not record.name.startswith(PROCESS_LOGGER_PREFIX)


class MainFormatter(logging.Formatter):
    """A custom formatter to handle regular logs and raw subprocess logs."""

    DEFAULT_FORMAT = '%(asctime)s - %(levelname)-8s - [%(name)s] - %(message)s'

    def __init__(self) -> None:
        super().__init__(self.DEFAULT_FORMAT)

    def format(self, record):
        # If the log is from a subprocess, just return the raw message.
        if record.name.startswith(PROCESS_LOGGER_PREFIX):
            return record.getMessage()
        return super().format(record)


def setup_logging(console_level: int = logging.INFO) -> None:
    """
    Configures the root logger for the supervisor.
    This sets up a console handler and, when TIKA_LOG_FILE is set, a rotating
    file handler, clearing any previously configured handlers to prevent duplication.

    :param console_level: The logging level for the console output (e.g., logging.INFO).
    """
    root_logger = logging.getLogger()
    # Set root level to lowest to capture all messages for handler filtering
    root_logger.setLevel(logging.DEBUG)

    # Clear any existing handlers to prevent re-adding them on re-runs
    if root_logger.hasHandlers():
        root_logger.handlers.clear()

    # --- Console Handler ---
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(MainFormatter())
    root_logger.addHandler(console_handler)

    # --- File Handler (conditional) ---
    if settings.LOG_FILE_PATH:
        try:
            file_handler = RotatingFileHandler(
                settings.LOG_FILE_PATH,
                maxBytes=settings.LOG_FILE_MAX_BYTES,
                backupCount=settings.LOG_FILE_BACKUP_COUNT,
                encoding="utf-8",
            )
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(logging.Formatter(MainFormatter.DEFAULT_FORMAT))
            # Server output is already on the console; the file keeps supervisor records only.
            file_handler.addFilter(SubprocessLogFilter())
            root_logger.addHandler(file_handler)
        except OSError as e:
            root_logger.error(f"Failed to initialize file logging handler: {e}. Logging to file will be disabled.")
