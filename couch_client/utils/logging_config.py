import logging
import sys


def setup_logging(level: int = logging.INFO):
    """Configures root logging for the client's entry points."""
    logger = logging.getLogger()
    logger.setLevel(level)

    # Clear existing handlers before adding a new one
    while logger.hasHandlers() and logger.handlers:
        logger.removeHandler(logger.handlers[0])

    handler = logging.StreamHandler(sys.stdout)
    formatter = logging.Formatter(
        "%(asctime)s | %(levelname).1s | %(name)-30.30s | %(message)s"
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)

    # urllib3 logs every pooled connection at DEBUG
    logging.getLogger("urllib3").setLevel(max(level, logging.INFO))

    return logger


def parse_level(value: str | None, default: int = logging.INFO) -> int:
    name = str(value or "").strip().upper()
    if not name:
        return default
    level = logging.getLevelName(name)
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level '{value}'")
    return level
