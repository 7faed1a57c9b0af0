from __future__ import annotations

import logging

LIBRARY_LOGGER = "serhas_deploy"
# HTTP client loggers used for artifact and script downloads.
TRANSPORT_LOGGERS = ("httpx", "httpcore")


def setup_logging(verbose: bool) -> int:
    """Configure logging for one CLI run and return the level applied.

    Verbose runs show every external command the library executes.
    """
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s", datefmt="%H:%M:%S")
    logging.getLogger(LIBRARY_LOGGER).setLevel(level)
    for name in TRANSPORT_LOGGERS:
        logging.getLogger(name).setLevel(level)
    return level
