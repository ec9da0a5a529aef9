import logging
import sys
from pathlib import Path
from typing import Optional

from bucket import config


def setup_logger(log_dir: Optional[str] = None) -> logging.Logger:
    logger = logging.getLogger("bucket")

    # Already configured by an earlier import
    if logger.handlers:
        return logger

    logger.setLevel(logging.DEBUG)

    # Create formatters
    file_formatter = logging.Formatter(
        '%(asctime)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s'
    )
    console_formatter = logging.Formatter(
        '%(asctime)s - %(levelname)s - %(message)s'
    )

    # Console handler (for basic logging)
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(console_formatter)
    logger.addHandler(console_handler)

    # File handler (for detailed logging), disabled by an empty log dir
    log_dir = config.LOG_DIR if log_dir is None else log_dir
    if log_dir:
        logs_dir = Path(log_dir)
        logs_dir.mkdir(exist_ok=True, parents=True)

        file_handler = logging.FileHandler(logs_dir / "bucket.log")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(file_formatter)
        logger.addHandler(file_handler)

    return logger
