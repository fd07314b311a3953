"""Logging setup for the CLI.

One format everywhere; modules just use logging.getLogger(__name__).
"""

import logging
import sys
from pathlib import Path
from typing import Optional

LOG_FORMAT = '%(asctime)s | %(levelname)-8s | %(name)s | %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

# Third-party loggers that are chatty at INFO/DEBUG
QUIET_LOGGERS = ('aiohttp', 'asyncio')


def setup_logging(log_file: Optional[Path] = None, level: int = logging.INFO):
    """Configure the root logger.

    Console output goes to stderr - stdout belongs to the progress bar and
    the end-of-run summary. A log file, if given, gets the same records.
    """
    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    # Repeated calls (tests, embedding) must not stack handlers
    root_logger.handlers.clear()

    handlers = [logging.StreamHandler(sys.stderr)]
    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding='utf-8'))

    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
