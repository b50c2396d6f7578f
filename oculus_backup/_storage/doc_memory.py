"""In-process document storage, used for local runs and tests."""

import asyncio
import copy
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..base import BaseDocumentStorage
from ..schemas import BatchOperation, Record
from .._utils import logger


@dataclass
class MemoryDocumentStorage(BaseDocumentStorage):
    _data: Dict[str, Dict[str, Dict[str, Any]]] = field(init=False, default_factory=dict)
    _lock: asyncio.Lock = field(init=False, default_factory=asyncio.Lock)

    def __post_init__(self):
        super().__post_init__()
        seed = self.global_config.get("memory_seed_data") or {}
        for collection, docs in seed.items():
            self._data[collection] = {doc_id: copy.deepcopy(fields) for doc_id, fields in docs.items()}

    async def list_all(self, collection: str) -> List[Record]:
        docs = self._data.get(collection, {})
        return [Record(id=doc_id, fields=copy.deepcopy(fields)) for doc_id, fields in docs.items()]

    async def count(self, collection: str) -> int:
        return len(self._data.get(collection, {}))

    async def get_doc(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        fields = self._data.get(collection, {}).get(doc_id)
        return copy.deepcopy(fields) if fields is not None else None

    async def commit_batch(self, collection: str, operations: List[BatchOperation]) -> None:
        self._check_batch(operations)
        if not operations:
            return

        async with self._lock:
            # Stage on a copy so a failure leaves the collection untouched
            docs = dict(self._data.get(collection, {}))
            for operation in operations:
                if operation.op == "delete":
                    docs.pop(operation.doc_id, None)
                else:
                    docs[operation.doc_id] = copy.deepcopy(operation.fields or {})
            self._data[collection] = docs

        logger.debug(f"Committed {len(operations)} operations to memory collection: {collection}")

    def collections(self) -> List[str]:
        return list(self._data.keys())
