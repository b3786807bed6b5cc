"""
Compliance Engine - Logging Configuration

The engine itself only creates per-module loggers. Host processes (job
runners, notebooks, tests) call configure_logging() once at startup.
"""

import logging
from typing import Optional, Union

from compliance_engine.config.settings import get_settings

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def configure_logging(level: Optional[Union[str, int]] = None) -> None:
    """
    Configure root logging for a host process.

    Level defaults to the configured log level, or DEBUG when debug is on.
    """
    settings = get_settings()
    if level is None:
        level = logging.DEBUG if settings.debug else settings.log_level
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())

    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger("compliance_engine").setLevel(level)
