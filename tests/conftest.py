"""Global pytest configuration and fixtures."""

import pytest
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

# Import fixtures from storage base to make them globally available
from tests.storage.base.fixtures import (
    temp_storage_dir,
    mock_global_config,
    standard_test_dataset,
)
from oculus_backup._storage.doc_memory import MemoryDocumentStorage
from oculus_backup.config import BackupConfig


@pytest.fixture
def memory_storage(standard_test_dataset):
    """Memory storage seeded with the standard dataset; batch limit 10."""
    return MemoryDocumentStorage(global_config={
        "max_batch_operations": 10,
        "memory_seed_data": standard_test_dataset,
    })


@pytest.fixture
def backup_config(tmp_path):
    """Fast backup settings writing archives under tmp_path."""
    return BackupConfig(
        backup_dir=str(tmp_path / "backups"),
        kdf_iterations=1_000,
        retry_attempts=2,
    )


# Re-export fixtures for global use
__all__ = [
    "temp_storage_dir",
    "mock_global_config",
    "standard_test_dataset",
    "memory_storage",
    "backup_config",
]
