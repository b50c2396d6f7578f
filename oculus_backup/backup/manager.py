"""Backup and restore orchestration for the portal document store."""

import asyncio
from contextlib import asynccontextmanager
from datetime import datetime
from pathlib import Path
from typing import AsyncIterator, Callable, List, Optional, Union

from .._utils import logger, now_utc
from ..base import BaseDocumentStorage
from ..config import BackupConfig
from .codec import SnapshotCodec
from .collector import Collector
from .errors import (
    InvalidPasswordError,
    OperationInProgressError,
    RestoreNotConfirmed,
)
from .exporter import Exporter
from .importer import ArchiveHandle, Importer
from .metadata import MetadataStore
from .models import (
    ArchiveInfo,
    BackupStats,
    ExportResult,
    LastBackupRecord,
    OperationState,
    RestorePreview,
    SnapshotSet,
)
from .registry import CollectionRegistry
from .restorer import ProgressCallback, Restorer
from .transport import DirectoryShareTarget, LocalArchiveFiles, NoShareTarget, ShareTarget


class BackupManager:
    """Orchestrate export and replace-all restore of every registered collection."""

    def __init__(
        self,
        storage: BaseDocumentStorage,
        config: Optional[BackupConfig] = None,
        share_target: Optional[ShareTarget] = None,
        registry: Optional[CollectionRegistry] = None,
        clock: Callable[[], datetime] = now_utc,
    ):
        """Initialize backup manager.

        Args:
            storage: Document store holding the portal collections
            config: Backup settings; defaults to BackupConfig()
            share_target: Where finished archives are forwarded. Defaults to
                a DirectoryShareTarget when config.share_dir is set, otherwise
                sharing is unavailable.
            registry: Collections to export; defaults to config.collections
            clock: Source of UTC timestamps
        """
        self.storage = storage
        self.config = config or BackupConfig()
        self.registry = registry or CollectionRegistry(self.config.collections)
        self.clock = clock

        if share_target is None:
            share_target = (
                DirectoryShareTarget(self.config.share_dir)
                if self.config.share_dir else NoShareTarget()
            )

        self.files = LocalArchiveFiles(self.config.backup_dir, self.config.archive_suffix)
        self.codec = SnapshotCodec(self.config.kdf_iterations)
        self.metadata = MetadataStore(storage)
        self.collector = Collector(storage, self.registry, self.config.max_concurrency)
        self.exporter = Exporter(
            self.collector,
            self.codec,
            self.files,
            self.metadata,
            share_target=share_target,
            archive_prefix=self.config.archive_prefix,
            clock=clock,
            state_callback=self._set_state,
        )
        self.importer = Importer(self.files, self.codec)

        self._lock = asyncio.Lock()
        self._state = OperationState.IDLE

    @property
    def state(self) -> OperationState:
        return self._state

    @property
    def busy(self) -> bool:
        """True while an export or restore holds the manager."""
        return self._lock.locked()

    def _set_state(self, state: OperationState) -> None:
        if state != self._state:
            logger.debug(f"Backup state: {self._state.value} -> {state.value}")
        self._state = state

    @asynccontextmanager
    async def _exclusive(self) -> AsyncIterator[None]:
        if self._lock.locked():
            raise OperationInProgressError("A backup or restore is already running")
        async with self._lock:
            try:
                yield
            except BaseException:
                self._set_state(OperationState.FAILED)
                raise
            else:
                self._set_state(OperationState.IDLE)

    async def create_backup(self, password: str) -> ExportResult:
        """Create an encrypted archive of all registered collections.

        Args:
            password: Archive password, at least min_password_length characters

        Returns:
            ExportResult with the archive name, stats and share outcome
        """
        if not password or len(password) < self.config.min_password_length:
            raise InvalidPasswordError(
                f"Password must be at least {self.config.min_password_length} characters"
            )

        async with self._exclusive():
            logger.info(f"Starting backup of {len(self.registry)} collections")
            return await self.exporter.export(password)

    def select_archive(self, path: Optional[Union[str, Path]]) -> ArchiveHandle:
        return self.importer.select_archive(path)

    async def load_archive(self, handle: ArchiveHandle, password: str) -> SnapshotSet:
        """Decode an archive without touching the document store."""
        return await self.importer.load(handle, password)

    def decode_upload(self, name: Optional[str], data: bytes, password: str) -> SnapshotSet:
        """Validate an uploaded file name and decode its bytes.

        CPU bound (key derivation); callers on the event loop should run it
        in a worker thread.
        """
        handle = self.select_archive(name)
        return self.importer.decode(handle, data, password)

    async def preview(self, handle: ArchiveHandle, password: str) -> RestorePreview:
        """Decode an archive and describe what a restore would write."""
        snapshot = await self.load_archive(handle, password)
        return self.describe(handle.name, snapshot)

    @staticmethod
    def describe(archive_name: str, snapshot: SnapshotSet) -> RestorePreview:
        stats = snapshot.stats()
        return RestorePreview(
            archive_name=archive_name,
            stats=stats,
            total_records=sum(stats.values()),
        )

    async def restore_snapshot(
        self,
        snapshot: SnapshotSet,
        confirmed: bool = False,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> BackupStats:
        """Replace every collection in the snapshot with its archived records.

        Destructive: live documents of those collections are deleted first.
        Nothing happens unless ``confirmed`` is True.
        """
        if not confirmed:
            raise RestoreNotConfirmed(
                "Restore replaces all current data in "
                f"{', '.join(snapshot.names()) or 'no collections'}; confirmation required"
            )

        async with self._exclusive():
            return await self._replace_all(snapshot, progress_callback)

    async def _replace_all(
        self,
        snapshot: SnapshotSet,
        progress_callback: Optional[ProgressCallback],
    ) -> BackupStats:
        async def track(progress) -> None:
            self._set_state(
                OperationState.DELETING if progress.phase == "delete"
                else OperationState.WRITING_RECORDS
            )
            if progress_callback is not None:
                await progress_callback(progress)

        restorer = Restorer(
            self.storage,
            max_concurrency=self.config.max_concurrency,
            chunk_concurrency=self.config.chunk_concurrency,
            retry_attempts=self.config.retry_attempts,
            progress_callback=track,
        )

        logger.info(f"Starting restore of {len(snapshot.names())} collections")
        self._set_state(OperationState.DELETING)
        stats = await restorer.replace_all(snapshot)
        await self.metadata.record_restore(self.clock(), stats)
        return stats

    async def restore_backup(
        self,
        path: Optional[Union[str, Path]],
        password: str,
        confirmed: bool = False,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> BackupStats:
        """Select, decode and restore an archive in one call."""
        handle = self.select_archive(path)
        if not confirmed:
            raise RestoreNotConfirmed("Restore replaces all current data; confirmation required")

        async with self._exclusive():
            self._set_state(OperationState.READING)
            logger.info(f"Reading archive {handle.name}")
            self._set_state(OperationState.DECODING)
            snapshot = await self.importer.load(handle, password)
            self._set_state(OperationState.AWAITING_CONFIRMATION)
            return await self._replace_all(snapshot, progress_callback)

    async def last_backup(self) -> Optional[LastBackupRecord]:
        return await self.metadata.last_backup()

    async def last_restore(self) -> Optional[LastBackupRecord]:
        return await self.metadata.last_restore()

    async def list_backups(self) -> List[ArchiveInfo]:
        """List archives in the backup directory, newest first."""
        return self.files.list_archives()

    async def get_backup_path(self, name: str) -> Optional[Path]:
        return self.files.archive_path(name)

    async def delete_backup(self, name: str) -> bool:
        """Delete an archive file. Returns False if it does not exist."""
        return self.files.delete_archive(name)
