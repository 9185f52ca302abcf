"""Logging setup for voxgate.

The core modules only log through LOGGER; handlers are installed by the
CLI via configure_logging() so that library users keep control.
"""

import logging
import os

LOGGER = logging.getLogger("voxgate")


def configure_logging(level: str | None = None) -> None:
    """Install a Rich stderr handler on the root logger."""
    from rich.console import Console
    from rich.logging import RichHandler

    log_level = (level or os.environ.get("LOG_LEVEL", "INFO")).upper()
    logging.basicConfig(
        level=log_level,
        format="%(message)s",
        handlers=[
            RichHandler(
                console=Console(stderr=True),
                show_time=False,
                show_path=False,
                rich_tracebacks=False,
            )
        ],
    )
