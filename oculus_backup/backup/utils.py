"""Utility functions for backup/restore operations."""

import hashlib
from pathlib import Path
from datetime import datetime, timezone
from typing import Optional


def compute_checksum(file_path: Path) -> str:
    """Compute SHA-256 checksum of file.

    Args:
        file_path: Path to file

    Returns:
        SHA-256 checksum as hex string with 'sha256:' prefix
    """
    sha256 = hashlib.sha256()

    with open(file_path, "rb") as f:
        for chunk in iter(lambda: f.read(8192), b""):
            sha256.update(chunk)

    return f"sha256:{sha256.hexdigest()}"


def verify_checksum(file_path: Path, expected_checksum: str) -> bool:
    """Verify file checksum.

    Args:
        file_path: Path to file
        expected_checksum: Expected checksum (with 'sha256:' prefix)

    Returns:
        True if checksum matches, False otherwise
    """
    return compute_checksum(file_path) == expected_checksum


def generate_archive_name(
    prefix: str,
    suffix: str,
    timestamp: Optional[datetime] = None,
) -> str:
    """Generate an archive file name from a timestamp.

    Colons and dots of the ISO timestamp are replaced so the name is safe on
    every file system, e.g. ``uts_oculus_backup_2026-10-19T08-30-00-123Z.utsbackup``.
    """
    timestamp = timestamp or datetime.now(timezone.utc)
    iso = timestamp.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z"
    safe = iso.replace(":", "-").replace(".", "-")
    return f"{prefix}{safe}{suffix}"


def has_archive_suffix(name: str, suffix: str) -> bool:
    return bool(name) and name.endswith(suffix) and len(name) > len(suffix)
