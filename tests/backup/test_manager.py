"""Tests for BackupManager."""

import asyncio
import pytest
from datetime import datetime, timezone
from unittest.mock import AsyncMock, patch

from oculus_backup._storage.doc_json import JsonDocumentStorage
from oculus_backup._storage.doc_memory import MemoryDocumentStorage
from oculus_backup.backup.errors import (
    AuthenticationFailed,
    InvalidArchiveName,
    InvalidPasswordError,
    OperationInProgressError,
    RestoreNotConfirmed,
    UserCancelled,
)
from oculus_backup.backup.manager import BackupManager
from oculus_backup.backup.models import OperationState
from oculus_backup.backup.registry import CollectionRegistry
from oculus_backup.backup.transport import DirectoryShareTarget, NoShareTarget
from oculus_backup.config import BackupConfig
from oculus_backup.schemas import BatchOperation


def seed_students(count):
    return {"students": {f"s-{i:05d}": {"name": f"Student {i}", "year": i % 4 + 1} for i in range(count)}}


@pytest.mark.asyncio
async def test_backup_manager_initialization(memory_storage, backup_config):
    manager = BackupManager(memory_storage, backup_config)

    assert manager.storage is memory_storage
    assert list(manager.registry) == list(backup_config.collections)
    assert manager.state == OperationState.IDLE
    assert manager.busy is False
    assert isinstance(manager.exporter.share_target, NoShareTarget)


def test_share_dir_enables_directory_share(memory_storage, tmp_path):
    config = BackupConfig(backup_dir=str(tmp_path / "b"), share_dir=str(tmp_path / "outbox"))
    manager = BackupManager(memory_storage, config)

    assert isinstance(manager.exporter.share_target, DirectoryShareTarget)


@pytest.mark.asyncio
@pytest.mark.parametrize("password", ["", "12345"])
async def test_short_password_rejected_before_work(memory_storage, backup_config, password):
    manager = BackupManager(memory_storage, backup_config)

    with patch.object(manager.exporter, "export", AsyncMock()) as export:
        with pytest.raises(InvalidPasswordError, match="at least 6 characters"):
            await manager.create_backup(password)

    export.assert_not_called()
    assert manager.state == OperationState.IDLE


@pytest.mark.asyncio
@pytest.mark.parametrize("count", [0, 1, 1000])
async def test_end_to_end_round_trip(backup_config, count):
    """Export, wipe and restore brings back exactly the original documents."""
    source = MemoryDocumentStorage(global_config={"memory_seed_data": seed_students(count)})
    manager = BackupManager(source, backup_config, registry=CollectionRegistry(["students", "courses"]))

    result = await manager.create_backup("secret1")
    assert result.stats == {"students": count, "courses": 0}
    original = await source.list_all("students")

    # Drift after the backup: extra and modified documents
    await source.commit_batch("students", [
        BatchOperation.set("s-extra", {"name": "Late enrolment"}),
        BatchOperation.set("s-00000", {"name": "Renamed"}),
    ])

    stats = await manager.restore_backup(result.path, "secret1", confirmed=True)

    assert stats == {"students": count, "courses": 0}
    restored = await source.list_all("students")
    assert sorted(restored, key=lambda r: r.id) == sorted(original, key=lambda r: r.id)
    assert manager.state == OperationState.IDLE
    assert (await manager.last_restore()).stats == stats


@pytest.mark.asyncio
async def test_mixed_sizes_restore_into_empty_store(backup_config):
    """One archive holding 0, 1 and 1000 records restores into empty collections."""
    registry = CollectionRegistry(["students", "announcements", "courses"])
    source = MemoryDocumentStorage(global_config={"memory_seed_data": {
        "announcements": {"a-1": {"title": "Welcome week"}},
        "courses": {f"c-{i:05d}": {"code": str(30000 + i), "credits": 6} for i in range(1000)},
    }})
    result = await BackupManager(source, backup_config, registry=registry).create_backup("secret1")
    assert result.stats == {"students": 0, "announcements": 1, "courses": 1000}

    target = MemoryDocumentStorage(global_config={"max_batch_operations": 10})
    target_manager = BackupManager(target, backup_config, registry=registry)
    stats = await target_manager.restore_backup(result.path, "secret1", confirmed=True)

    assert stats == {"students": 0, "announcements": 1, "courses": 1000}
    for name in registry:
        restored = sorted(await target.list_all(name), key=lambda r: r.id)
        assert restored == sorted(await source.list_all(name), key=lambda r: r.id)


@pytest.mark.asyncio
async def test_restore_into_fresh_json_store(memory_storage, backup_config, mock_global_config):
    manager = BackupManager(memory_storage, backup_config)
    result = await manager.create_backup("secret1")

    target = JsonDocumentStorage(global_config=mock_global_config)
    target_manager = BackupManager(target, backup_config)
    handle = target_manager.select_archive(result.path)
    snapshot = await target_manager.load_archive(handle, "secret1")
    await target_manager.restore_snapshot(snapshot, confirmed=True)

    for name in ("students", "announcements", "courses"):
        assert await target.list_all(name) == await memory_storage.list_all(name)
    enrolled = (await target.get_doc("students", "s-001"))["enrolledAt"]
    assert enrolled == datetime(2024, 2, 1, 9, 30, tzinfo=timezone.utc)


@pytest.mark.asyncio
async def test_backup_metadata_is_part_of_next_snapshot(memory_storage, backup_config):
    manager = BackupManager(memory_storage, backup_config)
    await manager.create_backup("secret1")
    second = await manager.create_backup("secret1")

    assert second.stats["system"] == 1
    assert (await manager.last_backup()).timestamp == second.created_at


@pytest.mark.asyncio
async def test_unconfirmed_restore_mutates_nothing(memory_storage, backup_config):
    manager = BackupManager(memory_storage, backup_config)
    result = await manager.create_backup("secret1")
    await memory_storage.set_doc("students", "s-new", {"name": "New"})

    snapshot = await manager.load_archive(manager.select_archive(result.path), "secret1")
    with pytest.raises(RestoreNotConfirmed):
        await manager.restore_snapshot(snapshot, confirmed=False)
    with pytest.raises(RestoreNotConfirmed):
        await manager.restore_backup(result.path, "secret1")

    assert await memory_storage.get_doc("students", "s-new") == {"name": "New"}
    assert await manager.last_restore() is None


@pytest.mark.asyncio
async def test_preview(memory_storage, backup_config):
    manager = BackupManager(memory_storage, backup_config)
    result = await manager.create_backup("secret1")

    preview = await manager.preview(manager.select_archive(result.path), "secret1")

    assert preview.archive_name == result.archive_name
    assert preview.stats == result.stats
    assert preview.total_records == 4


@pytest.mark.asyncio
async def test_wrong_password_restore_leaves_data(memory_storage, backup_config):
    manager = BackupManager(memory_storage, backup_config)
    result = await manager.create_backup("secret1")
    before = await memory_storage.list_all("students")

    with pytest.raises(AuthenticationFailed):
        await manager.restore_backup(result.path, "wrong-password", confirmed=True)

    assert await memory_storage.list_all("students") == before
    assert manager.state == OperationState.FAILED
    assert manager.busy is False


@pytest.mark.asyncio
async def test_selection_errors(memory_storage, backup_config, tmp_path):
    manager = BackupManager(memory_storage, backup_config)

    with pytest.raises(UserCancelled):
        await manager.restore_backup(None, "secret1", confirmed=True)
    with pytest.raises(InvalidArchiveName):
        await manager.restore_backup(tmp_path / "export.json", "secret1", confirmed=True)


@pytest.mark.asyncio
async def test_second_operation_while_busy(memory_storage, backup_config):
    manager = BackupManager(memory_storage, backup_config)
    started = asyncio.Event()
    release = asyncio.Event()
    original = memory_storage.list_all

    async def slow_list_all(collection):
        started.set()
        await release.wait()
        return await original(collection)

    with patch.object(memory_storage, "list_all", AsyncMock(side_effect=slow_list_all)):
        first = asyncio.create_task(manager.create_backup("secret1"))
        await started.wait()

        assert manager.busy is True
        assert manager.state == OperationState.COLLECTING
        with pytest.raises(OperationInProgressError):
            await manager.create_backup("secret1")

        release.set()
        result = await first

    assert result.path.exists()
    assert manager.busy is False
    assert manager.state == OperationState.IDLE


@pytest.mark.asyncio
async def test_list_get_and_delete_backups(memory_storage, backup_config):
    manager = BackupManager(memory_storage, backup_config)
    result = await manager.create_backup("secret1")

    backups = await manager.list_backups()
    assert [b.name for b in backups] == [result.archive_name]
    assert await manager.get_backup_path(result.archive_name) == result.path
    assert await manager.get_backup_path("missing.utsbackup") is None

    assert await manager.delete_backup(result.archive_name) is True
    assert await manager.list_backups() == []
    assert await manager.delete_backup(result.archive_name) is False
