"""Redis-based document storage backend for production deployments."""

import json
import asyncio
from dataclasses import dataclass, field
from typing import Optional, Dict, Any, List

try:
    import redis.asyncio as aioredis
    from redis.backoff import ExponentialBackoff
    from redis.retry import Retry
    from redis.exceptions import RedisError, ConnectionError as RedisConnectionError
    REDIS_AVAILABLE = True
except ImportError:
    REDIS_AVAILABLE = False
    aioredis = None

from ..base import BaseDocumentStorage, TransientStorageError
from ..schemas import BatchOperation, Record
from .._utils import logger, encode_value, decode_value


@dataclass
class RedisDocumentStorage(BaseDocumentStorage):
    """Redis document storage. Each document is one key; batches run as MULTI/EXEC."""

    _redis_client: Optional[Any] = field(init=False, default=None)
    _connection_pool: Optional[Any] = field(init=False, default=None)
    _initialized: bool = field(init=False, default=False)

    def __post_init__(self):
        """Read Redis configuration; the connection is opened lazily."""
        super().__post_init__()
        if not REDIS_AVAILABLE:
            raise ImportError(
                "Redis support not available. Install with: pip install redis[hiredis]"
            )

        self.key_prefix = self.global_config.get("redis_key_prefix", "oculus")
        self.redis_url = self.global_config.get("redis_url", "redis://localhost:6379")
        self.redis_password = self.global_config.get("redis_password", None)
        self.max_connections = self.global_config.get("redis_max_connections", 50)
        self.socket_timeout = self.global_config.get("redis_socket_timeout", 5.0)
        self.connection_timeout = self.global_config.get("redis_connection_timeout", 5.0)
        self.health_check_interval = self.global_config.get("redis_health_check_interval", 30)

    async def _ensure_initialized(self):
        """Ensure Redis connection is initialized."""
        if self._initialized:
            return

        retry = Retry(
            ExponentialBackoff(cap=10, base=1),
            retries=3,
            supported_errors=(RedisConnectionError, TimeoutError, ConnectionError)
        )

        self._connection_pool = aioredis.ConnectionPool.from_url(
            self.redis_url,
            password=self.redis_password,
            max_connections=self.max_connections,
            socket_timeout=self.socket_timeout,
            socket_connect_timeout=self.connection_timeout,
            decode_responses=False,
            retry=retry,
            health_check_interval=self.health_check_interval
        )

        self._redis_client = aioredis.Redis(
            connection_pool=self._connection_pool,
            auto_close_connection_pool=False
        )

        try:
            await self._redis_client.ping()
            logger.info(f"Connected to Redis document store at {self.redis_url}")
        except RedisConnectionError as e:
            logger.error(f"Redis connection failed: {e}")
            raise TransientStorageError(str(e)) from e

        self._initialized = True

    def _collection_prefix(self, collection: str) -> str:
        return f"{self.key_prefix}:{collection}:"

    def _get_key(self, collection: str, doc_id: str) -> str:
        return f"{self._collection_prefix(collection)}{doc_id}"

    def _serialize(self, fields: Dict[str, Any]) -> bytes:
        return json.dumps(encode_value(fields), ensure_ascii=False).encode("utf-8")

    def _deserialize(self, data: Optional[bytes]) -> Optional[Dict[str, Any]]:
        if data is None:
            return None
        return decode_value(json.loads(data.decode("utf-8")))

    async def _scan_keys(self, collection: str) -> List[bytes]:
        pattern = f"{self._collection_prefix(collection)}*"
        keys = []
        # SCAN keeps large collections from blocking the server
        async for key in self._redis_client.scan_iter(match=pattern, count=1000):
            keys.append(key)
        return keys

    async def list_all(self, collection: str) -> List[Record]:
        await self._ensure_initialized()
        prefix = self._collection_prefix(collection)

        try:
            keys = await self._scan_keys(collection)
            if not keys:
                return []

            async with self._redis_client.pipeline(transaction=False) as pipe:
                for key in keys:
                    pipe.get(key)
                values = await pipe.execute()
        except RedisConnectionError as e:
            raise TransientStorageError(str(e)) from e

        records = []
        for key, value in zip(keys, values):
            # A key can vanish between SCAN and GET
            if value is None:
                continue
            raw_key = key.decode("utf-8") if isinstance(key, bytes) else key
            records.append(Record(id=raw_key[len(prefix):], fields=self._deserialize(value)))
        return records

    async def count(self, collection: str) -> int:
        await self._ensure_initialized()
        try:
            return len(await self._scan_keys(collection))
        except RedisConnectionError as e:
            raise TransientStorageError(str(e)) from e

    async def get_doc(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        await self._ensure_initialized()
        try:
            data = await self._redis_client.get(self._get_key(collection, doc_id))
        except RedisConnectionError as e:
            raise TransientStorageError(str(e)) from e
        except RedisError as e:
            logger.error(f"Redis get error for {collection}/{doc_id}: {e}")
            raise
        return self._deserialize(data)

    async def commit_batch(self, collection: str, operations: List[BatchOperation]) -> None:
        self._check_batch(operations)
        if not operations:
            return

        await self._ensure_initialized()

        try:
            async with self._redis_client.pipeline(transaction=True) as pipe:
                for operation in operations:
                    key = self._get_key(collection, operation.doc_id)
                    if operation.op == "delete":
                        pipe.delete(key)
                    else:
                        pipe.set(key, self._serialize(operation.fields or {}))
                await pipe.execute()
        except RedisConnectionError as e:
            raise TransientStorageError(str(e)) from e

        logger.debug(f"Committed {len(operations)} operations to Redis collection: {collection}")

    async def health_check(self) -> bool:
        try:
            await self._ensure_initialized()
            return bool(await self._redis_client.ping())
        except (TransientStorageError, RedisError):
            return False

    async def close(self) -> None:
        """Async cleanup of Redis connections."""
        if self._redis_client:
            await self._redis_client.close()
        if self._connection_pool:
            await self._connection_pool.disconnect()
        self._initialized = False

    def __del__(self):
        """Cleanup Redis connection on deletion."""
        if self._initialized and self._redis_client:
            try:
                loop = asyncio.get_running_loop()
                loop.create_task(self.close())
            except RuntimeError:
                # No running loop, nothing to schedule on
                pass
