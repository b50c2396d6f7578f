"""Dependency injection for FastAPI."""

from fastapi import Request
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from oculus_backup.backup import BackupManager
    from oculus_backup.base import BaseDocumentStorage
    from .jobs import JobManager
    import redis.asyncio as redis


async def get_storage(request: Request) -> "BaseDocumentStorage":
    """Get document storage from app state."""
    return request.app.state.storage


async def get_backup_manager(request: Request) -> "BackupManager":
    """Get the shared BackupManager from app state."""
    return request.app.state.backup_manager


async def get_job_manager(request: Request) -> "JobManager":
    return request.app.state.job_manager


async def get_redis(request: Request) -> Optional["redis.Redis"]:
    """Get Redis client from app state if available."""
    return getattr(request.app.state, "redis_client", None)
