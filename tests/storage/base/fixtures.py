"""Shared fixtures and test data for storage testing."""

import pytest
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict


@pytest.fixture
def temp_storage_dir():
    """Temporary directory for storage files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def mock_global_config(temp_storage_dir):
    """Minimal global_config handed to document storages."""
    return {
        "working_dir": str(temp_storage_dir),
        "max_batch_operations": 10,
    }


def make_dataset() -> Dict[str, Dict[str, Dict[str, Any]]]:
    """Small portal-like dataset: collection -> doc id -> fields."""
    enrolled = datetime(2024, 2, 1, 9, 30, tzinfo=timezone.utc)
    return {
        "students": {
            "s-001": {"name": "Ana Silva", "year": 2, "active": True, "enrolledAt": enrolled},
            "s-002": {"name": "Ben Okafor", "year": 3, "active": False, "tags": ["honours", "exchange"]},
        },
        "announcements": {
            "a-100": {"title": "Exam timetable", "body": "Posted.", "pinned": True},
        },
        "courses": {
            "c-31251": {"code": "31251", "credits": 6, "staff": {"lead": "u-9", "tutors": ["u-4", "u-5"]}},
        },
    }


@pytest.fixture
def standard_test_dataset():
    return make_dataset()
