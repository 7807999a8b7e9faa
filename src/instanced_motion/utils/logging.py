"""Session logging for instanced animation runs.

Every module logs through ``get_logger(__name__)``, which places it under the
package logger. ``setup_logger`` attaches the handlers once per run: a
DEBUG-level session log file in the run directory and an optional console
stream that colours the level name.
"""

import copy
import logging
import sys
from pathlib import Path
from typing import Callable, Optional

PACKAGE_LOGGER = 'instanced_motion'

CONSOLE_FORMAT = '%(levelname)s: %(message)s'
FILE_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

BANNER_WIDTH = 70


class ColoredFormatter(logging.Formatter):
    """Console formatter that colours the level name with ANSI codes.

    The record is copied before it is decorated, so file handlers attached to
    the same logger still see the plain level name.
    """

    LEVEL_COLORS = {
        logging.DEBUG: '\033[36m',
        logging.INFO: '\033[32m',
        logging.WARNING: '\033[33m',
        logging.ERROR: '\033[31m',
        logging.CRITICAL: '\033[35m',
    }
    RESET = '\033[0m'

    def __init__(self, fmt: str = CONSOLE_FORMAT, use_color: bool = True):
        super().__init__(fmt)
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelno)
        if not self.use_color or color is None:
            return super().format(record)

        decorated = copy.copy(record)
        decorated.levelname = f"{color}{record.levelname}{self.RESET}"
        return super().format(decorated)


def _reset_handlers(logger: logging.Logger):
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()


def setup_logger(
    name: str = PACKAGE_LOGGER,
    verbose: bool = True,
    log_file: Optional[Path] = None,
    log_level: str = "INFO"
) -> logging.Logger:
    """
    Attach the run's handlers to a logger.

    The session log file records everything from DEBUG up. The console only
    shows records at ``log_level`` and above, and only when ``verbose`` is
    set. Calling this again replaces the previous run's handlers, so a
    process can run several animations without duplicated output.

    Args:
        name: Logger to configure (normally the package logger)
        verbose: Enable the console handler
        log_file: Session log path; parent directories are created
        log_level: Console threshold: "DEBUG", "INFO", "WARNING" or "ERROR"

    Returns:
        The configured logger

    Example:
        >>> logger = setup_logger(log_file=Path('results/run/session.log'))
        >>> logger.info("Packing 1,500 instances")
        INFO: Packing 1,500 instances
    """
    logger = logging.getLogger(name)
    logger.setLevel(logging.DEBUG)
    _reset_handlers(logger)

    # Module loggers reach these handlers; the root logger must not repeat them
    logger.propagate = False

    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(log_file, mode='w', encoding='utf-8')
        fh.setLevel(logging.DEBUG)
        fh.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=DATE_FORMAT))
        logger.addHandler(fh)

    if verbose:
        stream = sys.stdout
        ch = logging.StreamHandler(stream)
        ch.setLevel(getattr(logging, log_level.upper()))
        ch.setFormatter(ColoredFormatter(use_color=stream.isatty()))
        logger.addHandler(ch)

    return logger


def log_banner(log: Callable[[str], None], title: str, width: int = BANNER_WIDTH):
    """Write a section title framed by rules of '=' characters."""
    log("=" * width)
    log(title)
    log("=" * width)


def get_logger(name: str = PACKAGE_LOGGER) -> logging.Logger:
    """
    Look up a logger.

    Pass ``__name__`` from inside the package so the logger is a child of
    the package logger configured by setup_logger().
    """
    return logging.getLogger(name)
