"""File system and share boundary for archive files."""

import os
import shutil
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Protocol, Union, runtime_checkable

from .._utils import logger
from .errors import ArchiveIOError, UserCancelled
from .models import ArchiveInfo


class LocalArchiveFiles:
    """Archive files kept in a local backup directory."""

    def __init__(self, backup_dir: Union[str, Path], suffix: str = ".utsbackup"):
        self.backup_dir = Path(backup_dir)
        self.suffix = suffix

    def _unique_path(self, name: str) -> Path:
        path = self.backup_dir / name
        counter = 1
        while path.exists():
            stem = name[: -len(self.suffix)] if name.endswith(self.suffix) else name
            path = self.backup_dir / f"{stem}-{counter}{self.suffix}"
            counter += 1
        return path

    async def write_file(self, name: str, data: bytes) -> Path:
        """Write archive bytes under a name that does not collide.

        The bytes land in a hidden temporary file first and are renamed into
        place, so a failed write never leaves a partial archive behind.
        """
        try:
            self.backup_dir.mkdir(parents=True, exist_ok=True)
            path = self._unique_path(name)
            tmp_path = self.backup_dir / f".{path.name}.partial"
            try:
                with open(tmp_path, "wb") as f:
                    f.write(data)
                os.replace(tmp_path, path)
            finally:
                if tmp_path.exists():
                    tmp_path.unlink()
        except OSError as e:
            raise ArchiveIOError(f"Failed to write archive {name}: {e}") from e

        logger.info(f"Archive written: {path} ({len(data):,} bytes)")
        return path

    async def read_file(self, path: Union[str, Path]) -> bytes:
        try:
            with open(path, "rb") as f:
                return f.read()
        except OSError as e:
            raise ArchiveIOError(f"Failed to read archive {path}: {e}") from e

    def pick_file(self, path: Optional[Union[str, Path]]) -> Path:
        """Resolve the administrator's choice; no choice means cancelled."""
        if path is None or str(path).strip() == "":
            raise UserCancelled("No backup file selected")
        candidate = Path(path)
        if not candidate.is_absolute() and not candidate.exists():
            candidate = self.backup_dir / candidate
        return candidate

    def list_archives(self) -> List[ArchiveInfo]:
        """Archives in the backup directory, newest first."""
        if not self.backup_dir.exists():
            return []
        archives = []
        for path in self.backup_dir.glob(f"*{self.suffix}"):
            if not path.is_file():
                continue
            stat = path.stat()
            archives.append(ArchiveInfo(
                name=path.name,
                path=path,
                size_bytes=stat.st_size,
                modified_at=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
            ))
        archives.sort(key=lambda a: (a.modified_at, a.name), reverse=True)
        return archives

    def archive_path(self, name: str) -> Optional[Path]:
        """Path of a named archive inside the backup directory, if present."""
        # Names only; anything that walks out of the directory is rejected
        if Path(name).name != name or not name.endswith(self.suffix):
            return None
        path = self.backup_dir / name
        return path if path.is_file() else None

    def delete_archive(self, name: str) -> bool:
        path = self.archive_path(name)
        if path is None:
            return False
        path.unlink()
        logger.info(f"Deleted archive: {name}")
        return True


@runtime_checkable
class ShareTarget(Protocol):
    """Hands a finished archive to something outside the service."""

    async def share(self, path: Path) -> bool:
        """Forward the archive. Returns False when sharing is unavailable."""
        ...


class NoShareTarget:
    """Sharing is not available on this deployment."""

    async def share(self, path: Path) -> bool:
        return False


class DirectoryShareTarget:
    """Forward archives by copying them into an outbox directory."""

    def __init__(self, outbox_dir: Union[str, Path]):
        self.outbox_dir = Path(outbox_dir)

    async def share(self, path: Path) -> bool:
        try:
            self.outbox_dir.mkdir(parents=True, exist_ok=True)
            shutil.copy2(path, self.outbox_dir / path.name)
        except OSError as e:
            raise ArchiveIOError(f"Failed to share archive {path.name}: {e}") from e
        logger.info(f"Shared archive {path.name} to {self.outbox_dir}")
        return True
