"""Persisted last-backup and last-restore records."""

from datetime import datetime
from typing import Optional

from pydantic import ValidationError as PydanticValidationError

from .._utils import logger
from ..base import BaseDocumentStorage
from .models import BackupStats, LastBackupRecord

METADATA_COLLECTION = "system"
BACKUP_DOC_ID = "backup"
RESTORE_DOC_ID = "restore"


class MetadataStore:
    """Keeps only the most recent record of each kind."""

    def __init__(
        self,
        storage: BaseDocumentStorage,
        collection: str = METADATA_COLLECTION,
    ):
        self.storage = storage
        self.collection = collection

    async def _write(self, doc_id: str, timestamp: datetime, stats: BackupStats) -> None:
        await self.storage.set_doc(
            self.collection,
            doc_id,
            {"lastBackup": timestamp, "stats": dict(stats)},
        )

    async def _read(self, doc_id: str) -> Optional[LastBackupRecord]:
        doc = await self.storage.get_doc(self.collection, doc_id)
        if not doc or "lastBackup" not in doc:
            return None
        try:
            return LastBackupRecord(timestamp=doc["lastBackup"], stats=doc.get("stats") or {})
        except PydanticValidationError as e:
            logger.warning(f"Ignoring unreadable {self.collection}/{doc_id} record: {e}")
            return None

    async def record(self, timestamp: datetime, stats: BackupStats) -> None:
        await self._write(BACKUP_DOC_ID, timestamp, stats)
        logger.info(f"Recorded last backup at {timestamp.isoformat()}")

    async def last_backup(self) -> Optional[LastBackupRecord]:
        return await self._read(BACKUP_DOC_ID)

    async def record_restore(self, timestamp: datetime, stats: BackupStats) -> None:
        await self._write(RESTORE_DOC_ID, timestamp, stats)
        logger.info(f"Recorded last restore at {timestamp.isoformat()}")

    async def last_restore(self) -> Optional[LastBackupRecord]:
        return await self._read(RESTORE_DOC_ID)
