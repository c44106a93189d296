"""
Serialized access to a repository facade.

JjRepository issues every call as an independent process, so concurrent
status() and commit() calls may race inside jj. SerializedRepository puts a
single asyncio.Lock in front of one facade so that calls run one at a time
in arrival order.
"""

import asyncio
from pathlib import Path
from typing import List, Optional, Union

from ..models.config import Configuration
from ..models.status import StatusSummary
from .process_runner import ProcessRunner
from .repository import JjRepository


class SerializedRepository:
    """Wraps a JjRepository so that its operations never overlap."""

    def __init__(self, repository: JjRepository):
        self.repository = repository
        self._lock = asyncio.Lock()

    @property
    def root_path(self) -> str:
        return self.repository.root_path

    @property
    def busy(self) -> bool:
        """True while an operation holds the lock."""
        return self._lock.locked()

    async def verify(self) -> str:
        async with self._lock:
            return await self.repository.verify()

    async def status(self) -> StatusSummary:
        async with self._lock:
            return await self.repository.status()

    async def commit(self, message: str) -> None:
        async with self._lock:
            await self.repository.commit(message)

    async def diff(self) -> str:
        async with self._lock:
            return await self.repository.diff()

    async def log(self, limit: Optional[int] = None) -> List[str]:
        async with self._lock:
            return await self.repository.log(limit)

    async def list_branches(self) -> List[str]:
        async with self._lock:
            return await self.repository.list_branches()

    async def merge_branch(self, name: str) -> None:
        async with self._lock:
            await self.repository.merge_branch(name)

    async def get_previous_file_content(self, path: str) -> str:
        async with self._lock:
            return await self.repository.get_previous_file_content(path)


def create_repository(
    config: Configuration, root: Union[str, Path]
) -> Union[JjRepository, SerializedRepository]:
    """
    Build a repository facade from configuration.

    Returns a SerializedRepository when ``serialize_operations`` is set.
    """
    runner = ProcessRunner(binary=config.binary, timeout_ms=config.timeout_ms)
    repository = JjRepository(root, runner=runner, log_limit=config.log_limit)
    if config.serialize_operations:
        return SerializedRepository(repository)
    return repository
