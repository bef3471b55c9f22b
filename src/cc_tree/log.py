"""Logging setup for cc-tree.

Modules log through ``logging.getLogger(__name__)``; this only configures the
package root logger.
"""

import logging
import sys
from typing import Optional, TextIO

_root_logger = logging.getLogger("cc_tree")

DEFAULT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logging(
    level: str | int = "WARNING",
    format: Optional[str] = None,
    stream: Optional[TextIO] = None,
) -> None:
    """Configure the ``cc_tree`` logger.

    Args:
        level: Level name (DEBUG, INFO, ...) or numeric level
        format: Custom format string
        stream: Output stream (defaults to stderr)
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.WARNING)

    _root_logger.setLevel(level)
    _root_logger.handlers.clear()

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(logging.Formatter(format or DEFAULT_FORMAT))
    _root_logger.addHandler(handler)
