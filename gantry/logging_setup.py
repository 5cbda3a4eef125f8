"""Root logger initialization for the CLI."""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler


def init_logging(level: str = "INFO") -> None:
    """Install a single stderr :class:`RichHandler` on the root logger.

    Safe to call more than once: the handler is replaced, not stacked.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(level.upper())

    for handler in list(root_logger.handlers):
        if getattr(handler, "_gantry_handler", False):
            root_logger.removeHandler(handler)

    handler = RichHandler(
        console=Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
    )
    handler._gantry_handler = True  # type: ignore[attr-defined]
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    root_logger.addHandler(handler)
