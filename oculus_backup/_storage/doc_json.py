"""JSON file document storage: one file per collection under the working dir."""

import asyncio
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..base import BaseDocumentStorage
from ..schemas import BatchOperation, Record
from .._utils import logger, load_json, write_json, encode_value, decode_value


@dataclass
class JsonDocumentStorage(BaseDocumentStorage):
    _cache: Dict[str, Dict[str, Any]] = field(init=False, default_factory=dict)
    _lock: asyncio.Lock = field(init=False, default_factory=asyncio.Lock)

    def __post_init__(self):
        super().__post_init__()
        self.working_dir = self.global_config.get("working_dir", "./oculus_data")
        os.makedirs(self.working_dir, exist_ok=True)

    def _file_name(self, collection: str) -> str:
        if not collection or "/" in collection or "\\" in collection:
            raise ValueError(f"Invalid collection name for file storage: {collection!r}")
        return os.path.join(self.working_dir, f"docs_{collection}.json")

    def _load(self, collection: str) -> Dict[str, Any]:
        if collection not in self._cache:
            data = load_json(self._file_name(collection)) or {}
            self._cache[collection] = data
            logger.debug(f"Loaded collection {collection} with {len(data)} documents")
        return self._cache[collection]

    async def list_all(self, collection: str) -> List[Record]:
        docs = self._load(collection)
        return [Record(id=doc_id, fields=decode_value(raw)) for doc_id, raw in docs.items()]

    async def count(self, collection: str) -> int:
        return len(self._load(collection))

    async def get_doc(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        raw = self._load(collection).get(doc_id)
        return decode_value(raw) if raw is not None else None

    async def commit_batch(self, collection: str, operations: List[BatchOperation]) -> None:
        self._check_batch(operations)
        if not operations:
            return

        async with self._lock:
            docs = dict(self._load(collection))
            for operation in operations:
                if operation.op == "delete":
                    docs.pop(operation.doc_id, None)
                else:
                    docs[operation.doc_id] = encode_value(operation.fields or {})

            # The file is rewritten atomically; the cache only moves on success
            write_json(docs, self._file_name(collection))
            self._cache[collection] = docs

        logger.debug(f"Committed {len(operations)} operations to {self._file_name(collection)}")
