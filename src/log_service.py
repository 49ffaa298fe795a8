import logging
from datetime import datetime
from pathlib import Path

from constants import LDAP_SHARD_VERBOSITY, LOG_FILE_PREFIX

SUCCESS = 25
logging.addLevelName(SUCCESS, "SUCCESS")

LOG_FORMAT = '%(asctime)s,%(msecs)d %(levelname)s %(message)s'
LOG_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

VERBOSITY_LEVELS = {
    0: logging.ERROR,
    1: SUCCESS,
    2: logging.INFO,
    3: logging.DEBUG,
}


def log_file_path(log_dir: str, started_at: datetime) -> Path:
    """Per-run log file, named after the run's start time."""
    return Path(log_dir) / f"{LOG_FILE_PREFIX}-{started_at:%Y%m%d-%H%M%S}.log"


def configure_logging(log_dir: str, started_at: datetime, verbosity: int = LDAP_SHARD_VERBOSITY) -> logging.Logger:
    """
    Creates the logger for one run.

    Entries go to a timestamped file under log_dir and are mirrored on the
    console. The returned logger is handed to every service of the run.
    """
    Path(log_dir).mkdir(parents=True, exist_ok=True)
    level = VERBOSITY_LEVELS.get(verbosity, logging.INFO)

    logger = logging.getLogger(f"ldap_pyshard.{started_at:%Y%m%d%H%M%S%f}")
    logger.setLevel(level)
    logger.propagate = False

    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
    for handler in (logging.FileHandler(log_file_path(log_dir, started_at), encoding="utf-8"), logging.StreamHandler()):
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger


def log_success(logger: logging.Logger, message: str) -> None:
    logger.log(SUCCESS, message)


def close_logging(logger: logging.Logger) -> None:
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)
