"""Logging helpers.

The adapter logs through the standard library with one module-level logger
per module. This module only adds a ``TRACE`` level for very chatty
diagnostics (such as skipped outbound activities) and the process-wide
basicConfig used by the server runner and CLI.
"""

import logging

TRACE = 5

logging.addLevelName(TRACE, "TRACE")

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str | int = "info") -> None:
    """Configure root logging for the process.

    Args:
        level: Level name (``"trace"``, ``"debug"``, ``"info"``, ...) or number.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    logging.basicConfig(level=level, format=LOG_FORMAT)
