"""
Logging Configuration
=====================
Sets up the 'separationsolver' logger.

The solver modules log through `logging.getLogger(__name__)` and never
attach handlers themselves. The projection logs every merge and split at
DEBUG, a one-line summary of each pass at INFO, and a WARNING when a pass
ends with a constraint violation above tolerance. `dev.timer` reports
elapsed times at INFO. Library callers usually leave handlers to their
own application. The benchmark CLI calls `setup_logging` (`--debug`
selects DEBUG).
"""
import logging
import sys
from typing import Optional


def setup_logging(level: int = logging.INFO, log_file: Optional[str] = None) -> None:
    """
    Configures the logger for the 'separationsolver' namespace.

    Args:
        level: Logging level; logging.DEBUG traces individual merges and splits.
        log_file: Optional path for a copy of the log, overwritten on each call.
    """
    logger = logging.getLogger("separationsolver")
    logger.setLevel(level)

    # Repeated calls (CLI reruns, tests) replace handlers instead of stacking them
    if logger.hasHandlers():
        logger.handlers.clear()

    # Console handler on stdout, next to the benchmark summary
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%H:%M:%S'
    )
    console_handler.setFormatter(formatter)

    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, mode='w', encoding='utf-8')
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.info("Logging initialized.")
