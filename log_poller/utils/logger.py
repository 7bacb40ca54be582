"""
Logging configuration for the log poller
"""

import logging
import sys

# Chatty third-party loggers kept at WARNING unless the poller runs at DEBUG
QUIET_LOGGERS = ('botocore', 'boto3', 'urllib3')


def setup_logging(level: str = 'INFO') -> logging.Logger:
    """
    Set up logging for the poller process

    Args:
        level: Validated log level name from PollerConfig (DEBUG, INFO, WARNING, ERROR, CRITICAL)

    Returns:
        The 'log_poller' package logger
    """
    numeric_level = getattr(logging, level, logging.INFO)

    logging.basicConfig(
        level=numeric_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        stream=sys.stdout
    )

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.DEBUG if numeric_level <= logging.DEBUG else logging.WARNING)

    logger = logging.getLogger('log_poller')
    logger.setLevel(numeric_level)
    return logger
