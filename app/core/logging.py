import logging
from logging import Logger
from typing import Optional

from .config import get_settings

LOG_FORMAT = "[%(levelname)s] %(asctime)s | %(name)s | %(message)s"


def configure_logging(component: Optional[str] = None) -> Logger:
    """Return the application logger (or a child of it for ``component``).

    The handler is attached once to the root application logger; children
    propagate to it so every tool shares one stream and one format.
    """
    settings = get_settings()

    root = logging.getLogger(settings.app_name)
    if not root.handlers:
        root.setLevel(logging.getLevelName(settings.log_level.upper()))

        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))

        root.addHandler(handler)
        root.propagate = False

    return root.getChild(component) if component else root
