"""
Configuration - Environment-driven settings.

    CHIPGRID_ENV              deployment name (default: development)
    CHIPGRID_LOG_LEVEL        logging level name (default: INFO)
    ALLOWED_ORIGINS           comma-separated CORS origins (default: *)
    CHIPGRID_TURN_SECONDS     seconds per human turn (default: 30)
    CHIPGRID_BOT_CHAIN_LIMIT  max bot turns driven per host tick (default: 1000)
"""

from __future__ import annotations
import logging
import os

CHIPGRID_ENV = os.getenv("CHIPGRID_ENV", "development")
CHIPGRID_LOG_LEVEL = os.getenv("CHIPGRID_LOG_LEVEL", "INFO")
ALLOWED_ORIGINS = os.getenv("ALLOWED_ORIGINS", "*").split(",")
TURN_SECONDS = int(os.getenv("CHIPGRID_TURN_SECONDS", "30"))
BOT_CHAIN_LIMIT = int(os.getenv("CHIPGRID_BOT_CHAIN_LIMIT", "1000"))

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str | None = None) -> None:
    """Set up root logging once; later calls only adjust the level."""
    level_name = (level or CHIPGRID_LOG_LEVEL).upper()
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(level=level_name, format=LOG_FORMAT)
    root.setLevel(level_name)
