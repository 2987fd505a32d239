"""
Logging setup for the rewards service.

Everything logs through the standard library; modules use
logging.getLogger(__name__) and services running inside a request use
current_app.logger, which propagates to the same root handler.
"""
import logging
import os
import sys

LOG_FORMAT = '%(asctime)s [%(levelname)s] %(name)s: %(message)s'

_configured = False


def setup_logging(level: str = None) -> None:
    """Configure the root logger once per process."""
    global _configured
    if _configured:
        return

    level_name = (level or os.getenv('LOG_LEVEL', 'INFO')).upper()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))

    root = logging.getLogger()
    root.setLevel(getattr(logging, level_name, logging.INFO))
    root.addHandler(handler)

    # SQL echo is too noisy outside of explicit debugging
    logging.getLogger('sqlalchemy.engine').setLevel(logging.WARNING)

    _configured = True
