"""Logging helpers for the catalog application."""

import logging

from locallibrary.config import LOG_LEVEL


def configure_logging(level: str = LOG_LEVEL) -> None:
    logger = logging.getLogger("locallibrary")
    if logger.handlers:
        return
    handler = logging.StreamHandler()
    handler.setFormatter(
        logging.Formatter("%(asctime)s | %(levelname)s | %(name)s | %(message)s")
    )
    logger.addHandler(handler)
    logger.setLevel(level)


def get_logger(name: str) -> logging.Logger:
    configure_logging()
    return logging.getLogger(f"locallibrary.{name}")
