"""Root logger setup for the accounts application."""

import logging
from pythonjsonlogger import jsonlogger

LOG_FORMAT = '%(asctime)s %(levelname)s %(name)s %(message)s'


def setup_logger(level: int = logging.INFO) -> None:
    """Send records from every module logger to stderr as JSON."""
    logger = logging.getLogger()
    logger.setLevel(level)
    # The factory may run more than once in a process.
    for handler in logger.handlers:
        if isinstance(handler.formatter, jsonlogger.JsonFormatter):
            return

    logHandler = logging.StreamHandler()
    formatter = jsonlogger.JsonFormatter(
        LOG_FORMAT,
        rename_fields={'levelname': 'level', 'asctime': 'timestamp'}
    )
    logHandler.setFormatter(formatter)
    logger.addHandler(logHandler)
