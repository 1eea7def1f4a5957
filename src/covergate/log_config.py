"""Logging configuration for the command line."""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

_HANDLER_NAME = "covergate"


def configure_logging(*, verbose: bool = False, no_color: bool = False) -> None:
    """Route log records to stderr through rich.

    DEBUG with *verbose*, WARNING otherwise. Calling it again replaces the
    handler installed by a previous call.
    """
    level = logging.DEBUG if verbose else logging.WARNING

    handler = RichHandler(
        console=Console(stderr=True, no_color=no_color),
        show_path=verbose,
        rich_tracebacks=verbose,
    )
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))

    root = logging.getLogger()
    for existing in list(root.handlers):
        if existing.get_name() == _HANDLER_NAME:
            root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level)
