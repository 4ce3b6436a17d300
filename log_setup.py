"""
Logging setup shared by the web app and the command-line entry points.

Library modules only call logging.getLogger(__name__); the entry point calls
setup_logging() once.
"""

import logging
import os
import sys

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

_configured = False


def setup_logging(level: str = LOG_LEVEL) -> None:
    """Configure root logging. Subsequent calls are no-ops."""
    global _configured
    if _configured:
        return

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stdout,
        force=True,
    )
    # urllib3 logs every connection at DEBUG
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    _configured = True
