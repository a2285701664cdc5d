import logging
import os
from logging.handlers import RotatingFileHandler
from config.config import Config

APP_LOGGER = 'casaora'
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
LOG_MAX_BYTES = 10 * 1024 * 1024
LOG_BACKUPS = 10

# Third-party loggers that are chatty at INFO
QUIET_LOGGERS = ('urllib3', 'stripe', 'python_http_client')


def setup_logger(name=APP_LOGGER, log_file=None, level=None):
    """
    Configure the application logger once per process.

    Records go to a rotating file (10MB x 10) and to the console. Module
    loggers created with get_logger(__name__) propagate here.
    """
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger

    log_file = log_file or Config.LOG_FILE
    level = level or Config.LOG_LEVEL
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    log_dir = os.path.dirname(log_file)
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)

    formatter = logging.Formatter(LOG_FORMAT, datefmt='%Y-%m-%d %H:%M:%S')

    file_handler = RotatingFileHandler(log_file, maxBytes=LOG_MAX_BYTES, backupCount=LOG_BACKUPS)
    file_handler.setLevel(logging.INFO)
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    for noisy in QUIET_LOGGERS:
        logging.getLogger(noisy).setLevel(logging.WARNING)

    return logger


def get_logger(name=None):
    """Return a logger under the casaora hierarchy"""
    if not name:
        return logging.getLogger(APP_LOGGER)
    if name != APP_LOGGER and not name.startswith(APP_LOGGER + '.'):
        # scripts and tests log under the application logger too
        name = f"{APP_LOGGER}.{name}"
    return logging.getLogger(name)


logger = setup_logger()
