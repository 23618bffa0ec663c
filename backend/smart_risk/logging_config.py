"""Logging configuration for the Smart Risk Management service."""
import logging
import sys
from typing import Optional, Union

# Third-party loggers that are too chatty at INFO
NOISY_LOGGERS = ("sqlalchemy", "httpx", "httpcore", "stripe", "hpack")


def setup_logging(level: Optional[Union[str, int]] = None) -> None:
    """
    Configure logging for the API and the client SDK.

    Args:
        level: Logging level as a name ("DEBUG", "INFO", ...) or a number.
               If None, defaults to INFO.
    """
    if isinstance(level, str):
        log_level = logging.getLevelName(level.upper())
        if not isinstance(log_level, int):
            log_level = logging.INFO
    else:
        log_level = level or logging.INFO

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)]
    )

    logging.getLogger("uvicorn").setLevel(log_level)
    logging.getLogger("uvicorn.access").setLevel(log_level)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
