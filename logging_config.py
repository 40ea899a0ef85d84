import logging
import os
import sys
from datetime import datetime


# Custom PRINT level (between INFO and WARNING) for console progress output
PRINT_LEVEL = 25
logging.addLevelName(PRINT_LEVEL, 'PRINT')


def print_log(self, message, *args, **kwargs):
    """
    Custom logger method for PRINT level.
    Use: logger.print("message")
    """
    if self.isEnabledFor(PRINT_LEVEL):
        self._log(PRINT_LEVEL, message, args, **kwargs)


logging.Logger.print = print_log


class LevelFilter(logging.Filter):
    """
    Filter that only lets records of exactly one level through.

    Each per-level log file receives its own level only.
    """
    def __init__(self, level):
        super().__init__()
        self.level = level

    def filter(self, record):
        return record.levelno == self.level


def _reset_root(level):
    """Drop all handlers of the root logger and set its level."""
    root = logging.getLogger()
    root.setLevel(level)
    for handler in list(root.handlers):
        root.removeHandler(handler)
    return root


def _log_file(directory, timestamp):
    os.makedirs(directory, exist_ok=True)
    return logging.FileHandler(os.path.join(directory, f"cutstock_{timestamp}.log"))


FILE_FORMAT = '%(asctime)s | %(levelname)-8s | %(name)s | %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def setup_multi_level_logging(base_log_dir=None, enable_console=True, print_all_logs=False):
    """
    Configure logging for a column generation run.

    Console output:
    - print_all_logs=False: only PRINT level (logger.print("message"))
    - print_all_logs=True: every level

    If base_log_dir is given, one file per level is written:
    - <base_log_dir>/debug/cutstock_TIMESTAMP.log
    - <base_log_dir>/info/cutstock_TIMESTAMP.log
    - <base_log_dir>/warning/cutstock_TIMESTAMP.log
    - <base_log_dir>/error/cutstock_TIMESTAMP.log

    Args:
        base_log_dir: Base directory for log files, None disables file output
        enable_console: Attach a stdout handler
        print_all_logs: Show all levels on the console instead of PRINT only

    Returns:
        root_logger: Configured root logger
    """
    root_logger = _reset_root(logging.DEBUG)

    if enable_console:
        console_handler = logging.StreamHandler(sys.stdout)
        if print_all_logs:
            console_handler.setLevel(logging.DEBUG)
            console_handler.setFormatter(logging.Formatter(fmt='%(levelname)-8s | %(name)s | %(message)s'))
        else:
            console_handler.setLevel(PRINT_LEVEL)
            console_handler.addFilter(LevelFilter(PRINT_LEVEL))
            console_handler.setFormatter(logging.Formatter(fmt='%(message)s'))
        root_logger.addHandler(console_handler)

    if base_log_dir is not None:
        timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
        file_formatter = logging.Formatter(fmt=FILE_FORMAT, datefmt=DATE_FORMAT)
        for level in (logging.DEBUG, logging.INFO, logging.WARNING, logging.ERROR):
            file_handler = _log_file(os.path.join(base_log_dir, logging.getLevelName(level).lower()), timestamp)
            file_handler.setLevel(level)
            file_handler.addFilter(LevelFilter(level))
            file_handler.setFormatter(file_formatter)
            root_logger.addHandler(file_handler)

    return root_logger


def setup_logging(log_level='INFO', log_to_file=False, log_dir='logs'):
    """
    Single-stream logging setup: every record at or above log_level goes to
    stdout and, with log_to_file, to <log_dir>/cutstock_TIMESTAMP.log.

    Args:
        log_level: 'DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'
        log_to_file: Also write to a log file
        log_dir: Directory for the log file
    """
    numeric_level = getattr(logging, log_level.upper(), None)
    if not isinstance(numeric_level, int):
        raise ValueError(f'Invalid log level: {log_level}')

    formatter = logging.Formatter(fmt=FILE_FORMAT, datefmt=DATE_FORMAT)

    root_logger = _reset_root(numeric_level)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_to_file:
        file_handler = _log_file(log_dir, datetime.now().strftime('%Y%m%d_%H%M%S'))
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    return root_logger


def get_logger(name):
    """Get a logger for a specific module."""
    return logging.getLogger(name)
