from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .schemas import BatchOperation, Record

# Upper bound on operations per atomic batch in the portal's document store.
DEFAULT_MAX_BATCH_OPERATIONS = 500


class StorageError(Exception):
    """Base class for document storage failures."""


class TransientStorageError(StorageError):
    """The backend is temporarily unreachable; the operation may be retried."""


class BatchLimitExceeded(StorageError, ValueError):
    """A batch holds more operations than the backend accepts atomically."""

    def __init__(self, size: int, limit: int):
        self.size = size
        self.limit = limit
        super().__init__(f"Batch of {size} operations exceeds limit of {limit}")


@dataclass
class BaseDocumentStorage:
    """Document store boundary consumed by the backup engine.

    A store holds named collections of documents keyed by identifier. Writes go
    through commit_batch, which applies a bounded group of operations atomically.
    """

    global_config: dict = field(default_factory=dict)
    max_batch_operations: int = field(init=False, default=DEFAULT_MAX_BATCH_OPERATIONS)

    def __post_init__(self):
        self.max_batch_operations = int(
            self.global_config.get("max_batch_operations", DEFAULT_MAX_BATCH_OPERATIONS)
        )
        if self.max_batch_operations <= 0:
            raise ValueError(
                f"max_batch_operations must be positive, got {self.max_batch_operations}"
            )

    def _check_batch(self, operations: List[BatchOperation]) -> None:
        if len(operations) > self.max_batch_operations:
            raise BatchLimitExceeded(len(operations), self.max_batch_operations)

    async def list_all(self, collection: str) -> List[Record]:
        """Return every document of a collection."""
        raise NotImplementedError

    async def count(self, collection: str) -> int:
        return len(await self.list_all(collection))

    async def commit_batch(self, collection: str, operations: List[BatchOperation]) -> None:
        """Apply all operations atomically or none of them."""
        raise NotImplementedError

    async def get_doc(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        raise NotImplementedError

    async def set_doc(self, collection: str, doc_id: str, fields: Dict[str, Any]) -> None:
        await self.commit_batch(collection, [BatchOperation.set(doc_id, fields)])

    async def delete_doc(self, collection: str, doc_id: str) -> None:
        await self.commit_batch(collection, [BatchOperation.delete(doc_id)])

    async def health_check(self) -> bool:
        return True

    async def close(self) -> None:
        """Release backend resources."""
        pass
