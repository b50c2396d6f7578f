"""Replace-all restore of a snapshot into the document store."""

import asyncio
from typing import Awaitable, Callable, Dict, List, Optional

from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from .._utils import logger, chunked
from ..base import BaseDocumentStorage, TransientStorageError
from ..schemas import BatchOperation
from .errors import RestorePartialFailure
from .models import BackupStats, ChunkFailure, CollectionSnapshot, RestoreProgress, SnapshotSet

ProgressCallback = Callable[[RestoreProgress], Awaitable[None]]


class Restorer:
    """Make each archived collection equal to its snapshot.

    Every collection present in the snapshot is emptied and rewritten: first a
    delete phase over the live identifiers, then a write phase over the
    archived records. Both phases are split into batches no larger than the
    store's per-batch limit and every batch commits on its own, so a failure
    can leave a collection partially restored. Re-running the same restore
    converges to the same state.
    """

    def __init__(
        self,
        storage: BaseDocumentStorage,
        batch_size: Optional[int] = None,
        max_concurrency: int = 4,
        chunk_concurrency: int = 2,
        retry_attempts: int = 3,
        retry_max_wait: float = 2.0,
        progress_callback: Optional[ProgressCallback] = None,
    ):
        self.storage = storage
        self.batch_size = batch_size or storage.max_batch_operations
        if self.batch_size > storage.max_batch_operations:
            raise ValueError(
                f"batch_size {self.batch_size} exceeds store limit {storage.max_batch_operations}"
            )
        if max_concurrency <= 0 or chunk_concurrency <= 0:
            raise ValueError("Concurrency limits must be positive")
        if retry_attempts <= 0:
            raise ValueError(f"retry_attempts must be positive, got {retry_attempts}")
        self.max_concurrency = max_concurrency
        self.chunk_concurrency = chunk_concurrency
        self.retry_attempts = retry_attempts
        self.retry_max_wait = retry_max_wait
        self.progress_callback = progress_callback

    async def _commit(self, collection: str, operations: List[BatchOperation]) -> None:
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.retry_attempts),
            wait=wait_exponential(multiplier=0.1, max=self.retry_max_wait),
            retry=retry_if_exception_type(TransientStorageError),
            reraise=True,
        ):
            with attempt:
                if attempt.retry_state.attempt_number > 1:
                    logger.warning(
                        f"Retrying batch of {len(operations)} on {collection} "
                        f"(attempt {attempt.retry_state.attempt_number})"
                    )
                await self.storage.commit_batch(collection, operations)

    async def _report(self, phase: str, collection: str, processed: int, total: int) -> None:
        if self.progress_callback is None:
            return
        try:
            await self.progress_callback(
                RestoreProgress(phase=phase, collection=collection, processed=processed, total=total)
            )
        except Exception as e:
            logger.warning(f"Progress callback failed: {e}")

    async def _run_phase(
        self,
        phase: str,
        collection: str,
        operations: List[BatchOperation],
        failures: List[ChunkFailure],
    ) -> int:
        """Commit operations in batches; returns how many operations landed."""
        chunks = list(chunked(operations, self.batch_size))
        semaphore = asyncio.Semaphore(self.chunk_concurrency)
        total = len(operations)
        done = 0

        async def run_chunk(index: int, chunk: List[BatchOperation]) -> int:
            nonlocal done
            async with semaphore:
                try:
                    await self._commit(collection, chunk)
                except Exception as e:
                    logger.error(f"{phase} batch {index} of {collection} failed: {e}")
                    failures.append(ChunkFailure(
                        collection=collection,
                        phase=phase,
                        chunk_index=index,
                        size=len(chunk),
                        error=str(e),
                    ))
                    return 0
            done += len(chunk)
            logger.debug(f"{phase} {collection}: {done}/{total}")
            await self._report(phase, collection, done, total)
            return len(chunk)

        committed = await asyncio.gather(*(run_chunk(i, c) for i, c in enumerate(chunks)))
        return sum(committed)

    async def _restore_collection(
        self,
        snapshot: CollectionSnapshot,
        failures: List[ChunkFailure],
    ) -> int:
        name = snapshot.name
        try:
            live = await self.storage.list_all(name)
        except Exception as e:
            logger.error(f"Cannot enumerate {name}; skipping its restore: {e}")
            failures.append(ChunkFailure(
                collection=name, phase="enumerate", chunk_index=0, size=0, error=str(e)
            ))
            return 0

        deletes = [BatchOperation.delete(record.id) for record in live]
        await self._run_phase("delete", name, deletes, failures)

        writes = [BatchOperation.set(record.id, record.fields) for record in snapshot.records]
        written = await self._run_phase("write", name, writes, failures)
        logger.info(f"Restored {name}: deleted {len(deletes)}, wrote {written}/{len(writes)}")
        return written

    async def replace_all(self, snapshot: SnapshotSet) -> BackupStats:
        """Restore every collection of the snapshot.

        Returns:
            Written document count per collection

        Raises:
            RestorePartialFailure: some batches failed after retries
        """
        semaphore = asyncio.Semaphore(self.max_concurrency)
        failures: List[ChunkFailure] = []

        async def restore_one(collection: CollectionSnapshot) -> int:
            async with semaphore:
                return await self._restore_collection(collection, failures)

        names = snapshot.names()
        written = await asyncio.gather(*(restore_one(snapshot[name]) for name in names))
        stats: Dict[str, int] = dict(zip(names, written))

        if failures:
            raise RestorePartialFailure(stats, failures)
        logger.info(f"Restore complete: {sum(stats.values())} documents in {len(stats)} collections")
        return stats
