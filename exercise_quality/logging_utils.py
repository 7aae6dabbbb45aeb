"""
Project-wide logging setup.

Library modules log through logging.getLogger(__name__), so their records
all flow up to the "exercise_quality" package logger. Scripts call
setup_script_logging() once to give that package logger and the script's own
logger a stdout handler:

    from exercise_quality.logging_utils import setup_script_logging
    logger = setup_script_logging(__name__)
    logger.info("Loaded %d rows", n)
"""

import logging
import sys

PACKAGE_LOGGER = "exercise_quality"

_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
_DATEFMT = "%H:%M:%S"


def get_logger(name: str = PACKAGE_LOGGER, level: int = logging.INFO) -> logging.Logger:
    """
    Return a named logger that writes to stdout with the project format.

    The handler is attached on the first call for a name only. Loggers below
    the package logger don't get their own handler, since the package logger
    already prints what they propagate.
    """
    logger = logging.getLogger(name)
    below_package = name.startswith(PACKAGE_LOGGER + ".")
    if not logger.handlers and not below_package:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(fmt=_FORMAT, datefmt=_DATEFMT))
        logger.addHandler(handler)
    logger.setLevel(level)
    return logger


def setup_script_logging(script_name: str, level: int = logging.INFO) -> logging.Logger:
    """
    Route the package's stage logs to stdout and return the script's logger.

    Call once at the top of a pipeline/ script. Repeated calls don't
    duplicate handlers.
    """
    get_logger(PACKAGE_LOGGER, level)
    return get_logger(script_name, level)
