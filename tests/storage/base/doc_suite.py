"""Base test suite for document storage implementations."""

import pytest
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from oculus_backup.base import BatchLimitExceeded
from oculus_backup.schemas import BatchOperation


@dataclass
class DocumentStorageContract:
    """Contract that all document storages must fulfill."""

    supports_persistence: bool = True
    supports_timestamps: bool = True


class BaseDocumentStorageTestSuite(ABC):
    """Abstract test suite all document storage implementations must pass."""

    @pytest.fixture
    @abstractmethod
    async def storage(self) -> Any:
        """Provide storage instance for testing."""
        pass

    @pytest.fixture
    @abstractmethod
    def contract(self) -> DocumentStorageContract:
        """Define storage capabilities contract."""
        pass

    @pytest.mark.asyncio
    async def test_empty_collection(self, storage):
        assert await storage.list_all("students") == []
        assert await storage.count("students") == 0
        assert await storage.get_doc("students", "missing") is None

    @pytest.mark.asyncio
    async def test_set_and_get(self, storage):
        """Single document set, read back, overwrite."""
        await storage.set_doc("students", "s-1", {"name": "Ana", "year": 2})
        assert await storage.get_doc("students", "s-1") == {"name": "Ana", "year": 2}

        await storage.set_doc("students", "s-1", {"name": "Ana", "year": 3})
        assert await storage.get_doc("students", "s-1") == {"name": "Ana", "year": 3}
        assert await storage.count("students") == 1

    @pytest.mark.asyncio
    async def test_commit_batch_mixed(self, storage):
        """Deletes and sets in one batch."""
        await storage.commit_batch("courses", [
            BatchOperation.set("c-1", {"code": "1"}),
            BatchOperation.set("c-2", {"code": "2"}),
            BatchOperation.set("c-3", {"code": "3"}),
        ])
        await storage.commit_batch("courses", [
            BatchOperation.delete("c-1"),
            BatchOperation.set("c-4", {"code": "4"}),
        ])

        records = await storage.list_all("courses")
        assert sorted(r.id for r in records) == ["c-2", "c-3", "c-4"]
        by_id = {r.id: r.fields for r in records}
        assert by_id["c-4"] == {"code": "4"}

    @pytest.mark.asyncio
    async def test_delete_missing_is_noop(self, storage):
        await storage.delete_doc("students", "never-existed")
        assert await storage.count("students") == 0

    @pytest.mark.asyncio
    async def test_empty_batch(self, storage):
        await storage.commit_batch("students", [])
        assert await storage.count("students") == 0

    @pytest.mark.asyncio
    async def test_batch_limit_enforced(self, storage):
        """A batch above the per-batch limit is rejected and nothing is written."""
        limit = storage.max_batch_operations
        operations = [BatchOperation.set(f"d-{i}", {"i": i}) for i in range(limit + 1)]

        with pytest.raises(BatchLimitExceeded):
            await storage.commit_batch("students", operations)
        assert await storage.count("students") == 0

        # Exactly at the limit is fine
        await storage.commit_batch("students", operations[:limit])
        assert await storage.count("students") == limit

    @pytest.mark.asyncio
    async def test_collections_are_isolated(self, storage):
        await storage.set_doc("users", "u-1", {"role": "admin"})
        await storage.set_doc("system", "u-1", {"role": "other"})

        assert await storage.get_doc("users", "u-1") == {"role": "admin"}
        assert await storage.get_doc("system", "u-1") == {"role": "other"}
        await storage.delete_doc("users", "u-1")
        assert await storage.get_doc("system", "u-1") == {"role": "other"}

    @pytest.mark.asyncio
    async def test_nested_fields(self, storage):
        fields = {
            "staff": {"lead": "u-9", "tutors": ["u-4", "u-5"]},
            "weights": [0.5, 0.25, 0.25],
            "notes": None,
            "$weird": {"$ts": "not a timestamp"},
        }
        await storage.set_doc("courses", "c-1", fields)
        assert await storage.get_doc("courses", "c-1") == fields

    @pytest.mark.asyncio
    async def test_timestamp_fields(self, storage, contract):
        if not contract.supports_timestamps:
            pytest.skip("Storage doesn't keep timestamp values")

        moment = datetime(2024, 5, 1, 12, 0, 30, 250000, tzinfo=timezone.utc)
        await storage.set_doc("calendar", "e-1", {"startsAt": moment, "reminders": [moment]})

        doc = await storage.get_doc("calendar", "e-1")
        assert doc["startsAt"] == moment
        assert doc["reminders"] == [moment]

    @pytest.mark.asyncio
    async def test_returned_documents_are_copies(self, storage):
        await storage.set_doc("students", "s-1", {"tags": ["a"]})

        doc = await storage.get_doc("students", "s-1")
        doc["tags"].append("b")

        assert await storage.get_doc("students", "s-1") == {"tags": ["a"]}

    @pytest.mark.asyncio
    async def test_health_check(self, storage):
        assert await storage.health_check() is True
