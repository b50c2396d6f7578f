"""Export pipeline: collect, encode, write, share, record."""

import asyncio
from datetime import datetime
from typing import Callable, Optional

from .._utils import logger, now_utc
from .codec import SnapshotCodec
from .collector import Collector
from .errors import MetadataUpdateError
from .metadata import MetadataStore
from .models import ExportResult, OperationState
from .transport import LocalArchiveFiles, NoShareTarget, ShareTarget
from .utils import compute_checksum, generate_archive_name

StateCallback = Callable[[OperationState], None]


class Exporter:
    """Produce one encrypted archive of every registered collection."""

    def __init__(
        self,
        collector: Collector,
        codec: SnapshotCodec,
        files: LocalArchiveFiles,
        metadata: MetadataStore,
        share_target: Optional[ShareTarget] = None,
        archive_prefix: str = "uts_oculus_backup_",
        clock: Callable[[], datetime] = now_utc,
        state_callback: Optional[StateCallback] = None,
    ):
        self.collector = collector
        self.codec = codec
        self.files = files
        self.metadata = metadata
        self.share_target = share_target or NoShareTarget()
        self.archive_prefix = archive_prefix
        self.clock = clock
        self._state_callback = state_callback

    def _set_state(self, state: OperationState) -> None:
        if self._state_callback is not None:
            self._state_callback(state)

    async def export(self, password: str) -> ExportResult:
        """Run the full export.

        Nothing is written unless collection and encoding both succeed. A
        failed share still returns a result, with ``shared=False``.

        Args:
            password: Archive password (validated by the caller)

        Returns:
            ExportResult describing the written archive

        Raises:
            CollectionError: a collection could not be read
            EncodingError: the snapshot could not be serialized
            ArchiveIOError: the archive file could not be written
            MetadataUpdateError: archive written but last-backup record not saved
        """
        self._set_state(OperationState.COLLECTING)
        snapshot = await self.collector.collect()
        stats = snapshot.stats()

        self._set_state(OperationState.ENCODING)
        # key derivation is CPU bound
        archive = await asyncio.to_thread(self.codec.encode, snapshot, password)

        self._set_state(OperationState.WRITING_ARCHIVE)
        created_at = self.clock()
        name = generate_archive_name(self.archive_prefix, self.files.suffix, created_at)
        path = await self.files.write_file(name, archive)

        self._set_state(OperationState.SHARING)
        shared = False
        share_error = None
        try:
            shared = await self.share_target.share(path)
            if not shared:
                share_error = "Sharing is not available"
        except Exception as e:
            share_error = str(e)
        if not shared:
            logger.warning(f"Archive {path.name} saved but not shared: {share_error}")

        try:
            await self.metadata.record(created_at, stats)
        except Exception as e:
            logger.error(f"Failed to record backup metadata for {path.name}: {e}")
            raise MetadataUpdateError(path, e) from e

        result = ExportResult(
            archive_name=path.name,
            path=path,
            size_bytes=len(archive),
            checksum=compute_checksum(path),
            created_at=created_at,
            stats=stats,
            shared=shared,
            share_error=share_error,
        )
        logger.info(
            f"Backup complete: {result.archive_name} ({result.size_bytes:,} bytes, "
            f"{sum(stats.values())} documents)"
        )
        return result
