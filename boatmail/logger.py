"""Logging utility for boatmail"""
import logging
import os
import sys

log_level = os.environ.get('LOG_LEVEL', 'INFO').upper()
logging.basicConfig(
    level=getattr(logging, log_level, logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(sys.stdout)
    ]
)

logger = logging.getLogger('boatmail')


def log_error(message: str, error: Exception = None):
    """Log error with optional exception"""
    if error:
        logger.error(f"{message}: {str(error)}", exc_info=error)
    else:
        logger.error(message)


def log_warning(message: str):
    logger.warning(message)


def log_info(message: str):
    logger.info(message)


def log_debug(message: str):
    logger.debug(message)
