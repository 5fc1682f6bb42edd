# gamestream/common/logging_config.py
from __future__ import annotations
import logging
import sys
from dataclasses import dataclass
from typing import Optional, TextIO

@dataclass(frozen=True)
class LogDefaults:
    fmt:      str = "%(asctime)s %(levelname)s %(name)s %(message)s"
    datefmt:  str = "%H:%M:%S"
    level:    int = logging.INFO
    debug_level: int = logging.DEBUG
    handler_name: str = "gamestream"

DEFAULTS = LogDefaults()

def configure_logging(debug: int = 0, *, stream: Optional[TextIO] = None) -> logging.Logger:
    """
    Install one stdout handler on the root logger (idempotent).

    debug > 0 switches to DEBUG, which also enables the server info dump
    and per-request traces.
    """
    root = logging.getLogger()
    level = DEFAULTS.debug_level if debug > 0 else DEFAULTS.level

    for h in root.handlers:
        if h.get_name() == DEFAULTS.handler_name:
            h.setLevel(level)
            break
    else:
        handler = logging.StreamHandler(stream or sys.stdout)
        handler.set_name(DEFAULTS.handler_name)
        handler.setLevel(level)
        handler.setFormatter(logging.Formatter(DEFAULTS.fmt, DEFAULTS.datefmt))
        root.addHandler(handler)

    root.setLevel(level)
    return root
