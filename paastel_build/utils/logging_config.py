import logging
import sys
import os
from datetime import datetime
from typing import Optional


class ColoredFormatter(logging.Formatter):
    """Custom formatter to add colors to console output."""

    blue = "\x1b[38;5;39m"
    cyan = "\x1b[36m"
    green = "\x1b[32m"
    yellow = "\x1b[33m"
    red = "\x1b[31m"
    bold_red = "\x1b[31;1m"
    reset = "\x1b[0m"

    format_str = "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d - %(message)s"

    FORMATS = {
        logging.DEBUG: cyan + format_str + reset,
        logging.INFO: green + format_str + reset,
        logging.WARNING: yellow + format_str + reset,
        logging.ERROR: red + format_str + reset,
        logging.CRITICAL: bold_red + format_str + reset
    }

    def format(self, record):
        log_fmt = self.FORMATS.get(record.levelno)
        # Handle cases where level might be outside standard range
        if not log_fmt:
            log_fmt = self.format_str
        formatter = logging.Formatter(log_fmt, datefmt="%Y-%m-%d %H:%M:%S")
        return formatter.format(record)


def setup_logging(level=logging.INFO, log_dir: Optional[str] = None):
    """
    Setup centralized logging configuration.

    Diagnostics go to stderr so they never interleave with the build/push
    progress written to stdout. A daily log file is added only when
    ``log_dir`` is given.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    root_logger = logging.getLogger()

    # Clear existing handlers to prevent duplicate logs
    if root_logger.handlers:
        for handler in root_logger.handlers[:]:
            root_logger.removeHandler(handler)

    root_logger.setLevel(level)

    # 1. Console handler, coloured only on a terminal
    console_handler = logging.StreamHandler(sys.stderr)
    if sys.stderr.isatty():
        console_handler.setFormatter(ColoredFormatter())
    else:
        console_handler.setFormatter(logging.Formatter(
            ColoredFormatter.format_str, datefmt="%Y-%m-%d %H:%M:%S"
        ))
    root_logger.addHandler(console_handler)

    # 2. Optional file handler for persistence
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        file_handler = logging.FileHandler(
            os.path.join(log_dir, f"paastel_build_{datetime.now().strftime('%Y%m%d')}.log")
        )
        file_fmt = logging.Formatter(
            "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        )
        file_handler.setFormatter(file_fmt)
        root_logger.addHandler(file_handler)

    # The docker SDK and urllib3 are chatty at DEBUG; keep them at WARNING
    # unless we are debugging ourselves.
    for logger_name in ["docker", "urllib3"]:
        l = logging.getLogger(logger_name)
        l.setLevel(level if level <= logging.DEBUG else logging.WARNING)

    logging.getLogger("paastel_build").setLevel(level)
    root_logger.debug("Logging initialized (level=%s, log_dir=%s)", logging.getLevelName(level), log_dir)
