"""Shared logging helpers for reposync."""

from __future__ import annotations

import logging


def configure_logging(*, level: int = logging.INFO, force: bool = False) -> None:
    """Initialise the root logger once with terse CLI defaults.

    Mirrors ``logging.basicConfig``; pass ``force=True`` to reconfigure from tests
    or when the CLI switches to verbose output.
    """

    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
        force=force,
    )
