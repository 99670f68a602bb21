import asyncio
from functools import lru_cache
from typing import AsyncIterator, Optional

from fastapi import Depends

from ..config import ReindexConfig, Settings, settings
from ..core.errors import ReindexAbortedError
from ..indexing.orchestrator import ReindexResult, reindex
from ..reporting import LoggingReporter
from ..typesense import TypesenseClient


class ReindexBusyError(RuntimeError):
    """Raised when a reindex is requested while another one is running."""


class ReindexRunner:
    """
    Serializes reindex runs within this process and remembers the last result.

    Runs from other processes or hosts are not visible here; the build
    pipeline still has to avoid overlapping runs across hosts.
    """

    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self.last_result: Optional[ReindexResult] = None

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    async def run(self, config: ReindexConfig) -> ReindexResult:
        if self._lock.locked():
            raise ReindexBusyError(
                f"A reindex of '{config.collection_schema.name}' is already running"
            )

        async with self._lock:
            try:
                result = await reindex(config, reporter=LoggingReporter())
            except ReindexAbortedError as exc:
                self.last_result = exc.result
                raise
            self.last_result = result
            return result


def get_settings() -> Settings:
    return settings


@lru_cache
def get_reindex_runner() -> ReindexRunner:
    return ReindexRunner()


async def get_typesense_client(
    current: Settings = Depends(get_settings),
) -> AsyncIterator[TypesenseClient]:
    """Short-lived client for request-scoped engine checks."""
    async with TypesenseClient(current.server_config()) as client:
        yield client
