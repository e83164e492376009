import logging
from typing import Optional

from config import Config


def configure_logger(name: str = "VISUALIZER", log_file: Optional[str] = None) -> logging.Logger:
    # Streamlit's own loggers are chatty at DEBUG
    for noisy in ["watchdog", "urllib3", "tornado"]:
        logging.getLogger(noisy).setLevel(logging.WARNING)

    # Only configure handlers if not already set (avoids duplicate logs)
    logger = logging.getLogger(name)
    if not logger.handlers:
        logger.setLevel(Config.log_level)
        formatter = logging.Formatter(
            fmt='[%(name)s][%(levelname)s] - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

        if log_file:
            handler = logging.FileHandler(log_file, mode='w')
        else:
            handler = logging.StreamHandler()
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger


def configure_cache_logger() -> logging.Logger:
    return configure_logger(name="VISUALIZER-CACHE")


def configure_sync_logger() -> logging.Logger:
    return configure_logger(name="VISUALIZER-SYNC")
