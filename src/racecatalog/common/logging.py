"""Root logger setup for the apply CLI."""

from __future__ import annotations

import logging
from typing import Final

# Client libraries that log one line per HTTP request at INFO.
CHATTY_LOGGERS: Final[tuple[str, ...]] = ("httpx", "httpcore", "hishel")


def configure_logging(*, verbose: bool = False, force: bool = False) -> None:
    """Log to stderr at INFO, or DEBUG with ``verbose``.

    Outside verbose mode the HTTP client loggers are held at WARNING so that
    geocoding lookups do not drown the per-proposal lines.
    """

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
        force=force,
    )
    for name in CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(logging.NOTSET if verbose else logging.WARNING)
