"""Tests for backup utility functions and archive files."""

import os
import pytest
import tempfile
from pathlib import Path
from datetime import datetime, timezone, timedelta

from oculus_backup.backup.transport import LocalArchiveFiles
from oculus_backup.backup.utils import (
    compute_checksum,
    verify_checksum,
    generate_archive_name,
    has_archive_suffix,
)


def test_compute_and_verify_checksum():
    """Test checksum computation and verification."""
    with tempfile.NamedTemporaryFile(mode='w', delete=False) as f:
        f.write("Test content for checksum")
        filepath = Path(f.name)

    try:
        checksum = compute_checksum(filepath)
        assert checksum.startswith("sha256:")
        assert len(checksum) == len("sha256:") + 64

        assert verify_checksum(filepath, checksum)
        assert not verify_checksum(filepath, "sha256:invalid")
    finally:
        filepath.unlink()


def test_generate_archive_name():
    """Colons and dots of the ISO timestamp are replaced."""
    timestamp = datetime(2025, 3, 14, 9, 26, 53, 589793, tzinfo=timezone.utc)

    name = generate_archive_name("uts_oculus_backup_", ".utsbackup", timestamp)

    assert name == "uts_oculus_backup_2025-03-14T09-26-53-589Z.utsbackup"


def test_generate_archive_name_converts_to_utc():
    sydney = timezone(timedelta(hours=11))
    timestamp = datetime(2025, 3, 14, 20, 0, 0, tzinfo=sydney)

    name = generate_archive_name("b_", ".utsbackup", timestamp)

    assert name == "b_2025-03-14T09-00-00-000Z.utsbackup"


def test_has_archive_suffix():
    assert has_archive_suffix("a.utsbackup", ".utsbackup")
    assert not has_archive_suffix(".utsbackup", ".utsbackup")
    assert not has_archive_suffix("a.utsbackup.bak", ".utsbackup")
    assert not has_archive_suffix("", ".utsbackup")


@pytest.mark.asyncio
async def test_list_and_delete_archives(tmp_path):
    files = LocalArchiveFiles(tmp_path)
    older = await files.write_file("a.utsbackup", b"one")
    newer = await files.write_file("b.utsbackup", b"two")
    (tmp_path / "notes.txt").write_text("ignored")
    os.utime(older, (1_000_000, 1_000_000))

    archives = files.list_archives()
    assert [a.name for a in archives] == ["b.utsbackup", "a.utsbackup"]
    assert archives[0].size_bytes == 3
    assert archives[0].path == newer

    assert files.delete_archive("a.utsbackup") is True
    assert files.delete_archive("a.utsbackup") is False
    assert [a.name for a in files.list_archives()] == ["b.utsbackup"]


def test_list_archives_missing_dir(tmp_path):
    assert LocalArchiveFiles(tmp_path / "nope").list_archives() == []


@pytest.mark.parametrize("name", ["../escape.utsbackup", "sub/x.utsbackup", "notes.txt"])
def test_archive_path_rejects_foreign_names(tmp_path, name):
    assert LocalArchiveFiles(tmp_path).archive_path(name) is None
