"""
Logging setup for the API process and the click worker.

Modules log through ``logging.getLogger(__name__)``; this configures the
root logger once at startup.
"""

import logging

from cached_shortener.config import Settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(config: Settings) -> None:
    """Configure root logging from settings."""
    level = config.log_level.upper()
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger().setLevel(level)

    # SQL echo goes through its own logger
    if config.database_echo:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO)
