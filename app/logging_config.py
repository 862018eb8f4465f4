import logging

from .config import LOG_LEVEL


def setup_logging(log_level: str = LOG_LEVEL) -> None:
    """Configure application-wide logging.

    The format includes timestamp, log level, logger name, and message.
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )

    # Keep uvicorn loggers on the application log level
    for logger_name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        logging.getLogger(logger_name).setLevel(level)
