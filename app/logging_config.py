"""Logging setup shared by the API process and scripts."""

import logging
from typing import Optional

from app.config import get_settings

LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def configure_logging(level: Optional[str] = None) -> None:
    """Configure the root logger once.

    Args:
        level: Log level name. Defaults to ``settings.log_level``.
    """
    level_name = (level or get_settings().log_level).upper()
    logging.basicConfig(level=level_name, format=LOG_FORMAT)
    # SQL echo is controlled by the engine, keep the library logger quiet
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
