"""Logging setup for applications embedding chatstream.

The library itself only creates module loggers; call
:func:`configure_logging` once from the application entry point.
"""

import logging
import os
import sys

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str | None = None) -> None:
    """Send log records to stdout.

    Args:
        level: Level name. Defaults to ``LOG_LEVEL`` from the environment,
            then INFO.
    """
    logging.basicConfig(
        level=(level or os.getenv("LOG_LEVEL", "INFO")).upper(),
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )
