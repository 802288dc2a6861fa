"""Root logging setup."""

import logging

from cronjob.config import settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: int | str | None = None) -> None:
    """Configure the root logger with the project format.

    Args:
        level: Explicit level (name or number). Defaults to ``settings.log_level``.
    """
    if level is None:
        level = settings.get_log_level()
    elif isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(format=LOG_FORMAT, level=level)
