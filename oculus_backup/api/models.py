"""Pydantic models for API requests and responses."""

from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any
from enum import Enum
from datetime import datetime, timezone

from ..backup.models import LastBackupRecord, OperationState


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BackupRequest(BaseModel):
    password: str = Field(..., min_length=1, description="Archive password")


class HealthStatus(BaseModel):
    status: str  # "healthy", "degraded", "unhealthy"
    storage: bool
    redis: bool
    timestamp: datetime = Field(default_factory=_utcnow)


class BackupStatusResponse(BaseModel):
    """Current engine state; busy doubles as the maintenance flag."""
    state: OperationState
    busy: bool
    last_backup: Optional[LastBackupRecord] = None
    last_restore: Optional[LastBackupRecord] = None


class JobStatus(str, Enum):
    """Job status enum."""
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class JobProgress(BaseModel):
    """Job progress tracking."""
    current: int = 0
    total: int = 0
    phase: str = "initializing"


class JobResponse(BaseModel):
    """Job response model."""
    job_id: str
    job_type: str
    status: JobStatus
    created_at: datetime
    completed_at: Optional[datetime] = None
    collections: List[str] = Field(default_factory=list)
    progress: JobProgress
    error: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
