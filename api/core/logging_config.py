"""
Process-wide logging setup.
"""

from __future__ import annotations

import logging
import sys

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def setup_logging(level: str = "INFO") -> None:
    """
    Configure the root logger. Safe to call more than once; later calls only
    change the level.
    """
    resolved = logging.getLevelName(level.upper())
    if not isinstance(resolved, int):
        resolved = logging.INFO

    # No-op when the root logger already has handlers (uvicorn, pytest).
    logging.basicConfig(level=resolved, format=LOG_FORMAT, stream=sys.stdout)
    logging.getLogger().setLevel(resolved)

    # Access logs come from our own request middleware.
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
