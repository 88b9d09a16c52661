"""
thruster: Logging Setup
=========================

What:  Configures the root logger for a process running a thruster Server.
When:  Called by ``Server.run()`` before the listener starts, only when
       ``THRUSTER_CONFIGURE_LOGGING=true``. Otherwise the embedding process
       owns the root logger; library code only uses ``logging.getLogger(__name__)``.
"""

import logging
import sys

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"


def setup_logging(level: str = "INFO") -> None:
    """
    Configure stdout logging for the whole process.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s

    uvicorn's own access log is turned down to WARNING; per-request lines come
    from ``RequestLoggingMiddleware`` instead.
    """
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt=DATE_FORMAT,
        handlers=[
            logging.StreamHandler(sys.stdout),
        ],
        force=True,
    )

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
