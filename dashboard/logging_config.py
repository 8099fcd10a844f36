import logging
import sys

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# chatty below WARNING: SQL statements, Google discovery cache, HTTP pools
QUIET_LOGGERS = (
    "sqlalchemy.engine",
    "googleapiclient.discovery_cache",
    "urllib3.connectionpool",
)


def setup_logging(log_level: str = "INFO") -> None:
    """
    Configure application logging

    Third party loggers in ``QUIET_LOGGERS`` only report warnings unless the
    service runs at DEBUG.
    """
    level = getattr(logging, log_level.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[
            logging.StreamHandler(sys.stdout)
        ]
    )
    logging.getLogger("dashboard").setLevel(level)

    quiet_level = logging.DEBUG if level == logging.DEBUG else logging.WARNING
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(quiet_level)


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance"""
    return logging.getLogger(name)
