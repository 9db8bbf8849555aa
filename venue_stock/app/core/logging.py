import logging
import sys

from venue_stock.app.core import config

LOGGER_NAME = "venue_stock"


def setup_logging(level: str | int | None = None) -> logging.Logger:
    """
    Installe un StreamHandler unique sur le logger "venue_stock".
    Appel répété = no-op (pas de handlers en double).
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level or config.LOG_LEVEL)

    if logger.handlers:
        return logger

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    )
    logger.addHandler(handler)
    return logger
