import logging
import sys

from shopcore.config import settings

ROOT_LOGGER = "shopcore"


def _configure_root() -> logging.Logger:
    root = logging.getLogger(ROOT_LOGGER)
    root.setLevel(settings.LOG_LEVEL.upper())
    if not root.handlers:
        h = logging.StreamHandler(sys.stdout)
        h.setFormatter(logging.Formatter("[SHOPCORE] %(levelname)s %(name)s: %(message)s"))
        root.addHandler(h)
    return root


def get_logger(name: str) -> logging.Logger:
    """
    Return a logger under the ``shopcore`` hierarchy. The stdout handler is
    attached once to the package root so module loggers just propagate.
    """
    _configure_root()
    if name == ROOT_LOGGER or name.startswith(ROOT_LOGGER + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")
