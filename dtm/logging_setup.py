"""Logging setup shared by the CLI and the web app."""

from __future__ import annotations

import logging

from rich.logging import RichHandler

_configured = False


def configure_logging(level: str = "INFO") -> None:
    """Route the ``dtm`` logger hierarchy through a rich console handler.

    Safe to call more than once; only the level changes on repeat calls.
    """
    global _configured
    root = logging.getLogger("dtm")
    root.setLevel(level.upper())
    if _configured:
        return
    handler = RichHandler(rich_tracebacks=True, show_path=False)
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    root.addHandler(handler)
    _configured = True
