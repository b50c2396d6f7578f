"""Base test suites for document storages."""

from .doc_suite import BaseDocumentStorageTestSuite, DocumentStorageContract
from .fixtures import (
    make_dataset,
    standard_test_dataset,
    temp_storage_dir,
    mock_global_config
)

__all__ = [
    "BaseDocumentStorageTestSuite",
    "DocumentStorageContract",
    "make_dataset",
    "standard_test_dataset",
    "temp_storage_dir",
    "mock_global_config"
]
