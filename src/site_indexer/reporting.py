"""
Run Reporting

The reindex core never formats or prints anything itself. It reports through
a small leveled interface that the host (CLI, webhook, or an embedding build
pipeline) supplies. LoggingReporter adapts that interface onto the standard
library logging module, which is the default everywhere in this package.
"""

from __future__ import annotations

import logging
from typing import Optional, Protocol, runtime_checkable

PREFIX = "[Typesense]"


@runtime_checkable
class Reporter(Protocol):
    """Leveled reporting sink for a reindex run."""

    def verbose(self, message: str) -> None: ...

    def info(self, message: str) -> None: ...

    def warn(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...

    def fatal(self, message: str) -> None: ...


class LoggingReporter:
    """
    Reporter backed by a stdlib logger.

    Levels map as verbose=DEBUG, info=INFO, warn=WARNING, error=ERROR,
    fatal=CRITICAL. Reporting a fatal message does not raise; aborting the
    run is the orchestrator's decision.
    """

    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        self._logger = logger or logging.getLogger("indexer.reindex")

    def _log(self, level: int, message: str) -> None:
        self._logger.log(level, "%s %s", PREFIX, message)

    def verbose(self, message: str) -> None:
        self._log(logging.DEBUG, message)

    def info(self, message: str) -> None:
        self._log(logging.INFO, message)

    def warn(self, message: str) -> None:
        self._log(logging.WARNING, message)

    def error(self, message: str) -> None:
        self._log(logging.ERROR, message)

    def fatal(self, message: str) -> None:
        self._log(logging.CRITICAL, message)
