"""Logger setup for the page i18n commands."""
import logging
import os
import sys
from typing import Optional

from tqdm import tqdm

LOGGER_NAME = "page_i18n"
LOG_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'


class TqdmLoggingHandler(logging.Handler):
    """Writes records with ``tqdm.write`` so they land above the file-scan progress bar."""

    def emit(self, record):
        try:
            tqdm.write(self.format(record), file=sys.stderr)
        except (KeyboardInterrupt, SystemExit):
            raise
        except Exception:
            self.handleError(record)


def _file_handler(log_file_path: str) -> logging.FileHandler:
    log_dir = os.path.dirname(log_file_path)
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
    return logging.FileHandler(log_file_path, encoding='utf-8')


def setup_logger(log_level_str: str, log_file_path: Optional[str], log_to_console: bool) -> logging.Logger:
    """
    (Re)configure the ``page_i18n`` logger used by every module of the tool.

    Each CLI invocation calls this once after loading the configuration, so
    previously attached handlers are dropped first.

    Args:
        log_level_str: Level name such as 'INFO' or 'debug'. Unknown names fall back to INFO.
        log_file_path: Log file to append to. Empty or None keeps the log on the console only.
        log_to_console: Whether records also go to stderr through tqdm.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(getattr(logging, log_level_str.upper(), logging.INFO))
    logger.handlers.clear()
    # Command output goes to stdout; keep log records out of the root logger.
    logger.propagate = False

    handlers = []
    if log_file_path:
        handlers.append(_file_handler(log_file_path))
    if log_to_console:
        handlers.append(TqdmLoggingHandler())

    formatter = logging.Formatter(LOG_FORMAT)
    for handler in handlers:
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger
