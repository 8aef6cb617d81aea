"""Central logging configuration for the converter."""
from __future__ import annotations

import logging
from typing import Optional

_DEFAULT_LEVEL = logging.INFO
_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return a module-level logger, installing the default handler on first use."""
    logger = logging.getLogger(name)
    if not logging.getLogger().handlers:
        logging.basicConfig(level=_DEFAULT_LEVEL, format=_FORMAT)
    return logger


def set_verbosity(verbose: bool) -> None:
    """Switch the root logger between INFO and DEBUG output."""
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(level=_DEFAULT_LEVEL, format=_FORMAT)
    root.setLevel(logging.DEBUG if verbose else _DEFAULT_LEVEL)
