"""Data models for backup/restore operations."""

from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional
from pydantic import BaseModel, Field

from ..schemas import Record

BackupStats = Dict[str, int]


class CollectionSnapshot(BaseModel):
    """Records of one collection in capture order."""

    name: str = Field(..., min_length=1)
    records: List[Record] = Field(default_factory=list)


class SnapshotSet(BaseModel):
    """Point-in-time capture of collections, keyed and ordered by collection name."""

    collections: Dict[str, CollectionSnapshot] = Field(default_factory=dict)

    @classmethod
    def from_snapshots(cls, snapshots: List[CollectionSnapshot]) -> "SnapshotSet":
        collections = {}
        for snapshot in snapshots:
            if snapshot.name in collections:
                raise ValueError(f"Duplicate collection in snapshot: {snapshot.name}")
            collections[snapshot.name] = snapshot
        return cls(collections=collections)

    def names(self) -> List[str]:
        return list(self.collections.keys())

    def stats(self) -> BackupStats:
        return {name: len(snapshot.records) for name, snapshot in self.collections.items()}

    def __getitem__(self, name: str) -> CollectionSnapshot:
        return self.collections[name]


class LastBackupRecord(BaseModel):
    """Most recent export (or restore): when it happened and what it held."""

    timestamp: datetime
    stats: BackupStats = Field(default_factory=dict)


class ExportResult(BaseModel):
    """Outcome of a successful export."""

    archive_name: str
    path: Path
    size_bytes: int
    checksum: str = Field(..., description="SHA-256 checksum of the archive file")
    created_at: datetime
    stats: BackupStats
    shared: bool = Field(False, description="Whether the archive was forwarded by the share target")
    share_error: Optional[str] = None


class ArchiveInfo(BaseModel):
    """Archive file found in the backup directory."""

    name: str
    path: Path
    size_bytes: int
    modified_at: datetime


class ChunkFailure(BaseModel):
    """One batch that could not be committed during a restore."""

    collection: str
    phase: str  # "enumerate", "delete" or "write"
    chunk_index: int
    size: int
    error: str


class RestorePreview(BaseModel):
    """What an archive holds, shown before the destructive confirmation."""

    archive_name: str
    stats: BackupStats
    total_records: int


class OperationState(str, Enum):
    """States of the export and restore state machines."""
    IDLE = "idle"
    COLLECTING = "collecting"
    ENCODING = "encoding"
    WRITING_ARCHIVE = "writing_archive"
    SHARING = "sharing"
    READING = "reading"
    DECODING = "decoding"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    DELETING = "deleting"
    WRITING_RECORDS = "writing_records"
    FAILED = "failed"


class RestoreProgress(BaseModel):
    """Progress notification emitted by the restorer."""

    phase: str
    collection: str
    processed: int
    total: int
