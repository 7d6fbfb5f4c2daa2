"""FastAPI dependencies.

The governance core is created once per app (see ``create_app``) and stored
on ``app.state``; routers receive it through :func:`get_core` instead of
building their own store instances.
"""

from __future__ import annotations

import threading

from fastapi import Request

from dtm.config import GovernanceConfig
from dtm.core import GovernanceCore
from dtm.logging_setup import configure_logging

_init_lock = threading.Lock()


def get_core(request: Request) -> GovernanceCore:
    """Return the app's GovernanceCore, building it from config on first use."""
    state = request.app.state
    core = getattr(state, "core", None)
    if core is None:
        with _init_lock:
            core = getattr(state, "core", None)
            if core is None:
                config = GovernanceConfig.load()
                configure_logging(config.log_level)
                core = GovernanceCore.from_config(config)
                state.core = core
    return core
