"""Error taxonomy for backup and restore operations."""

from pathlib import Path
from typing import Dict, List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .models import ChunkFailure


class BackupError(Exception):
    """Base class for all backup/restore errors."""


class CollectionError(BackupError):
    """A source collection could not be fully read; export aborted."""

    def __init__(self, collection: str, cause: Optional[BaseException] = None):
        self.collection = collection
        self.cause = cause
        detail = f": {cause}" if cause else ""
        super().__init__(f"Failed to read collection '{collection}'{detail}")


class ExportError(BackupError):
    """Export failed before producing a usable archive."""


class EncodingError(ExportError):
    """A snapshot could not be serialized."""


class InvalidPasswordError(BackupError, ValueError):
    """Password rejected before any work was done."""


class MetadataUpdateError(ExportError):
    """Archive was written but the last-backup record could not be saved."""

    def __init__(self, path: Path, cause: BaseException):
        self.path = path
        self.cause = cause
        super().__init__(f"Archive written to {path} but backup metadata was not saved: {cause}")


class ValidationError(BackupError):
    """An archive could not be turned back into a snapshot."""


class AuthenticationFailed(ValidationError):
    """Wrong password or corrupted archive bytes."""


class MalformedPayload(ValidationError):
    """Archive authenticated but its content is not a valid snapshot."""


class ArchiveSelectionError(BackupError):
    """The selected file cannot be used as an archive."""


class UserCancelled(ArchiveSelectionError):
    """No file was selected."""


class InvalidArchiveName(ArchiveSelectionError, ValueError):
    """The selected file does not carry the archive suffix."""

    def __init__(self, name: str, suffix: str):
        self.name = name
        self.suffix = suffix
        super().__init__(f"Please select a valid {suffix} file (got '{name}')")


class ArchiveIOError(BackupError, OSError):
    """Reading or writing an archive failed at the OS boundary."""


class RestoreError(BackupError):
    """Base class for restore failures."""


class RestoreNotConfirmed(RestoreError):
    """A destructive restore was requested without confirmation."""


class RestorePartialFailure(RestoreError):
    """Some delete/write chunks failed; collections may be partially restored."""

    def __init__(self, stats: Dict[str, int], failures: List["ChunkFailure"]):
        self.stats = stats
        self.failures = failures
        collections = sorted({f.collection for f in failures})
        super().__init__(
            f"Restore incomplete: {len(failures)} chunk(s) failed in {', '.join(collections)}"
        )


class OperationInProgressError(BackupError):
    """Another backup or restore is already running."""
