"""
Logging Configuration

Sets up standard library logging for the trip ledger service.
"""

import logging

from config.app_config import get_settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = None) -> None:
    """
    Configure the root logger once.

    Args:
        level: Level name; defaults to the TRIP_LEDGER_LOG_LEVEL setting.
    """
    level = (level or get_settings().log_level).upper()
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger().setLevel(level)
