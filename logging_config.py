import logging
import sys
from typing import Optional

INFO_FMT = "%(asctime)s - %(name)s %(levelname)s: %(message)s"
DETAIL_FMT = "%(asctime)s - %(name)s %(levelname)s: %(module)s.%(funcName)s:%(lineno)d - %(message)s"
DATE_FMT = "%Y-%m-%d %H:%M:%S"


class LevelAwareFormatter(logging.Formatter):
    """Short lines for INFO, call-site details for everything else."""

    def __init__(self):
        super().__init__()
        self._info = logging.Formatter(INFO_FMT, datefmt=DATE_FMT)
        self._detail = logging.Formatter(DETAIL_FMT, datefmt=DATE_FMT)

    def format(self, record: logging.LogRecord) -> str:
        if record.levelno == logging.INFO:
            return self._info.format(record)
        return self._detail.format(record)


def setup_logging(log_level: str = "INFO", log_file: Optional[str] = None) -> logging.Logger:
    """Configure the root logger with a console handler and an optional file handler.

    Safe to call more than once; existing handlers are replaced.
    """
    root = logging.getLogger()
    root.setLevel(getattr(logging, str(log_level).upper(), logging.INFO))
    root.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(LevelAwareFormatter())
    root.addHandler(console_handler)

    if log_file:
        try:
            file_handler = logging.FileHandler(log_file)
            file_handler.setFormatter(logging.Formatter(DETAIL_FMT, datefmt=DATE_FMT))
            root.addHandler(file_handler)
        except OSError as e:
            root.warning(f"Could not create log file handler for {log_file}: {e}")

    # uvicorn's access log duplicates the request logging middleware
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    return root


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
