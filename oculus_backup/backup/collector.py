"""Reads every registered collection into an in-memory snapshot."""

import asyncio
from typing import List, Union

from .._utils import logger
from ..base import BaseDocumentStorage
from .errors import CollectionError
from .models import CollectionSnapshot, SnapshotSet
from .registry import CollectionRegistry


class Collector:
    """Materialize a SnapshotSet from the live document store.

    Collections may be read concurrently (bounded by max_concurrency); the
    resulting set is always ordered like the registry.
    """

    def __init__(
        self,
        storage: BaseDocumentStorage,
        registry: CollectionRegistry,
        max_concurrency: int = 4,
    ):
        if max_concurrency <= 0:
            raise ValueError(f"max_concurrency must be positive, got {max_concurrency}")
        self.storage = storage
        self.registry = registry
        self.max_concurrency = max_concurrency

    async def _collect_one(self, name: str, semaphore: asyncio.Semaphore) -> CollectionSnapshot:
        async with semaphore:
            records = await self.storage.list_all(name)
        logger.debug(f"Collected {name}: {len(records)} documents")
        return CollectionSnapshot(name=name, records=records)

    async def collect(self) -> SnapshotSet:
        """Capture every registered collection; all-or-nothing.

        Raises:
            CollectionError: naming the first failing collection in registry order
        """
        semaphore = asyncio.Semaphore(self.max_concurrency)
        results: List[Union[CollectionSnapshot, BaseException]] = await asyncio.gather(
            *(self._collect_one(name, semaphore) for name in self.registry),
            return_exceptions=True,
        )

        snapshots = []
        for name, result in zip(self.registry, results):
            if isinstance(result, Exception):
                logger.error(f"Failed to collect {name}: {result}")
                raise CollectionError(name, result) from result
            if isinstance(result, BaseException):
                # cancellation and interpreter exits pass through unchanged
                raise result
            snapshots.append(result)

        snapshot = SnapshotSet.from_snapshots(snapshots)
        logger.info(f"Collected {len(snapshots)} collections, {sum(snapshot.stats().values())} documents")
        return snapshot
