from __future__ import annotations

import logging
from typing import Protocol


class Reporter(Protocol):
    def info(self, msg: str) -> None: ...

    def ok(self, msg: str) -> None: ...

    def warn(self, msg: str) -> None: ...


class LogReporter:
    """Reporter used when no console is attached."""

    def __init__(self, logger: logging.Logger | None = None):
        self._logger = logger or logging.getLogger("serhas_deploy")

    def info(self, msg: str) -> None:
        self._logger.info(msg)

    def ok(self, msg: str) -> None:
        self._logger.info(msg)

    def warn(self, msg: str) -> None:
        self._logger.warning(msg)
