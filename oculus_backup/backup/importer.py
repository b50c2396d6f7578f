"""Archive selection and decoding; never touches persistent state."""

import asyncio
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from .._utils import logger
from .codec import SnapshotCodec
from .errors import InvalidArchiveName, InvalidPasswordError
from .models import SnapshotSet
from .transport import LocalArchiveFiles
from .utils import has_archive_suffix


@dataclass(frozen=True)
class ArchiveHandle:
    """A selected file that carries the archive suffix."""
    name: str
    path: Path


class Importer:
    def __init__(self, files: LocalArchiveFiles, codec: SnapshotCodec):
        self.files = files
        self.codec = codec

    @property
    def suffix(self) -> str:
        return self.files.suffix

    def select_archive(self, path: Optional[Union[str, Path]]) -> ArchiveHandle:
        """Validate the chosen file by name only.

        Raises:
            UserCancelled: nothing was selected
            InvalidArchiveName: the name lacks the archive suffix
        """
        resolved = self.files.pick_file(path)
        if not has_archive_suffix(resolved.name, self.suffix):
            raise InvalidArchiveName(resolved.name, self.suffix)
        return ArchiveHandle(name=resolved.name, path=resolved)

    async def load(self, handle: ArchiveHandle, password: str) -> SnapshotSet:
        """Read and decode a selected archive.

        Raises:
            InvalidPasswordError: empty password
            ArchiveIOError: the file could not be read
            AuthenticationFailed: wrong password or corrupted bytes
            MalformedPayload: authenticated content is not a snapshot
        """
        if not password:
            raise InvalidPasswordError("Password is required to open a backup")
        archive = await self.files.read_file(handle.path)
        return await asyncio.to_thread(self.decode, handle, archive, password)

    def decode(self, handle: ArchiveHandle, archive: bytes, password: str) -> SnapshotSet:
        """Decode archive bytes that were already read, e.g. from an upload."""
        if not password:
            raise InvalidPasswordError("Password is required to open a backup")
        snapshot = self.codec.decode(archive, password)
        logger.info(f"Loaded archive {handle.name}: {snapshot.stats()}")
        return snapshot
