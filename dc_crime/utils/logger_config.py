import logging
import os
from datetime import datetime

FILE_FORMAT = '%(levelname)s : %(name)s : %(funcName)s : %(lineno)d : %(message)s'
CONSOLE_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'


def _file_handler(log_dir):
    os.makedirs(log_dir, exist_ok=True)
    path = os.path.join(log_dir, f'dc_crime_{datetime.now().strftime("%m%d%Y")}')
    handler = logging.FileHandler(path)
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(FILE_FORMAT))
    return handler


def _console_handler():
    handler = logging.StreamHandler()
    handler.setLevel(logging.INFO)
    handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))
    return handler


def setup_logger(name, log_dir=None):
    """
    Logger with a daily debug file under the log folder and an info-level console stream

    Parameters
    name (str) : Name of the logger, usually the module __name__
    log_dir (str) : Folder for the log files. Defaults to $DC_CRIME_LOG_DIR or 'logs'

    Returns:
    logging.Logger : Configured Logger Instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(logging.DEBUG)

    # Modules call this at import time; handlers are attached once per name
    if logger.handlers:
        return logger

    logger.addHandler(_file_handler(log_dir or os.getenv('DC_CRIME_LOG_DIR', 'logs')))
    logger.addHandler(_console_handler())
    return logger
