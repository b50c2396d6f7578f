"""Snapshot export and replace-all restore."""

from .errors import (
    ArchiveIOError,
    ArchiveSelectionError,
    AuthenticationFailed,
    BackupError,
    CollectionError,
    EncodingError,
    ExportError,
    InvalidArchiveName,
    InvalidPasswordError,
    MalformedPayload,
    MetadataUpdateError,
    OperationInProgressError,
    RestoreError,
    RestoreNotConfirmed,
    RestorePartialFailure,
    UserCancelled,
    ValidationError,
)
from .manager import BackupManager
from .models import (
    ArchiveInfo,
    BackupStats,
    CollectionSnapshot,
    ExportResult,
    LastBackupRecord,
    OperationState,
    RestorePreview,
    SnapshotSet,
)
from .registry import CollectionRegistry

__all__ = [
    "ArchiveIOError",
    "ArchiveInfo",
    "ArchiveSelectionError",
    "AuthenticationFailed",
    "BackupError",
    "BackupManager",
    "BackupStats",
    "CollectionError",
    "CollectionRegistry",
    "CollectionSnapshot",
    "EncodingError",
    "ExportError",
    "ExportResult",
    "InvalidArchiveName",
    "InvalidPasswordError",
    "LastBackupRecord",
    "MalformedPayload",
    "MetadataUpdateError",
    "OperationInProgressError",
    "OperationState",
    "RestoreError",
    "RestoreNotConfirmed",
    "RestorePartialFailure",
    "RestorePreview",
    "SnapshotSet",
    "UserCancelled",
    "ValidationError",
]
