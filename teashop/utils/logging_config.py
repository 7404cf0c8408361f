"""
Logging setup for the tea shop backend.

Call setup_logging() once at startup (create_app does this); modules then use
logging.getLogger(__name__).
"""
import logging
import os
import sys

LOG_FORMAT = '%(asctime)s | %(levelname)-8s | %(name)s | %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

_configured = False


def setup_logging(level: str = None) -> None:
    """
    Configure the root 'teashop' logger.

    Args:
        level: Log level name; defaults to LOG_LEVEL env var or INFO
    """
    global _configured
    if _configured:
        return

    level_name = (level or os.getenv('LOG_LEVEL', 'INFO')).upper()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT))

    root = logging.getLogger('teashop')
    root.setLevel(getattr(logging, level_name, logging.INFO))
    root.addHandler(handler)
    # Gunicorn/Flask also attach handlers to the root logger
    root.propagate = False

    _configured = True

