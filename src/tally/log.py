"""Logger setup: everything under the ``tally`` logger, rendered by rich."""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

from tally.config import settings

ROOT_LOGGER = "tally"


def _configure_root() -> logging.Logger:
    root = logging.getLogger(ROOT_LOGGER)
    if not root.handlers:
        root.setLevel(getattr(logging, settings.LOG_LEVEL, logging.WARNING))
        handler = RichHandler(
            console=Console(stderr=True),
            show_path=False,
            rich_tracebacks=True,
        )
        handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
        root.addHandler(handler)
    return root


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a logger under the ``tally`` namespace."""
    root = _configure_root()
    if not name or name == ROOT_LOGGER:
        return root
    if not name.startswith(ROOT_LOGGER + "."):
        name = f"{ROOT_LOGGER}.{name}"
    return logging.getLogger(name)
