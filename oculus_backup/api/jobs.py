"""Job tracking for background backup and restore runs."""
import os
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import redis.asyncio as redis

from oculus_backup._utils import logger
from oculus_backup.api.models import JobProgress, JobResponse, JobStatus


class JobManager:
    """Manages job lifecycle and tracking.

    Jobs live in Redis when a client is configured; otherwise they are kept in
    this process only and disappear on restart. The in-process store holds at
    most max_local_jobs entries; the oldest finished jobs are evicted first.
    """

    def __init__(
        self,
        redis_client: Optional[redis.Redis] = None,
        max_local_jobs: Optional[int] = None
    ):
        self.redis = redis_client
        # Configurable TTL via environment variable (default: 7 days)
        self.job_ttl = int(os.getenv("REDIS_JOB_TTL", "604800"))
        self.max_local_jobs = max_local_jobs or int(os.getenv("LOCAL_JOB_LIMIT", "1000"))
        self._local: Dict[str, str] = {}
        # Finished job ids in completion order
        self._finished: Dict[str, None] = {}

    async def _save(self, job: JobResponse) -> None:
        payload = job.model_dump_json()
        if self.redis:
            await self.redis.setex(f"job:{job.job_id}", self.job_ttl, payload)
        else:
            self._local[job.job_id] = payload
            if job.status in (JobStatus.COMPLETED, JobStatus.FAILED):
                self._finished[job.job_id] = None
            self._evict_local()

    def _evict_local(self) -> None:
        while len(self._local) > self.max_local_jobs and self._finished:
            job_id = next(iter(self._finished))
            del self._finished[job_id]
            self._local.pop(job_id, None)
            logger.debug(f"Evicted finished job {job_id}")

    async def create_job(
        self,
        job_type: str,
        collections: List[str],
        total: int = 0,
        metadata: Optional[Dict] = None
    ) -> str:
        """Create a new job and store it."""
        job_id = str(uuid.uuid4())

        job_data = JobResponse(
            job_id=job_id,
            job_type=job_type,
            status=JobStatus.PENDING,
            created_at=datetime.now(timezone.utc),
            collections=collections,
            progress=JobProgress(
                current=0,
                total=total,
                phase="initializing"
            ),
            metadata=metadata or {}
        )
        await self._save(job_data)

        logger.info(f"Created {job_type} job {job_id} for {len(collections)} collections")
        return job_id

    async def get_job(self, job_id: str) -> Optional[JobResponse]:
        """Retrieve job details."""
        if self.redis:
            job_data = await self.redis.get(f"job:{job_id}")
        else:
            job_data = self._local.get(job_id)
        if job_data:
            return JobResponse.model_validate_json(job_data)
        return None

    async def update_job_status(
        self,
        job_id: str,
        status: JobStatus,
        error: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None
    ) -> bool:
        """Update job status, merging any extra metadata."""
        job = await self.get_job(job_id)
        if not job:
            return False

        job.status = status
        if metadata:
            job.metadata.update(metadata)
        if status == JobStatus.COMPLETED:
            job.completed_at = datetime.now(timezone.utc)
        elif status == JobStatus.FAILED:
            job.error = error
            job.completed_at = datetime.now(timezone.utc)

        await self._save(job)

        logger.info(f"Updated job {job_id} status to {status.value}")
        return True

    async def update_job_progress(
        self,
        job_id: str,
        current: int,
        phase: str
    ) -> bool:
        """Update job progress."""
        job = await self.get_job(job_id)
        if not job:
            return False

        job.progress.current = current
        job.progress.phase = phase
        await self._save(job)
        return True

    async def list_jobs(
        self,
        status: Optional[JobStatus] = None,
        limit: int = 100
    ) -> List[JobResponse]:
        """List all jobs, optionally filtered by status."""
        if self.redis:
            # Use SCAN instead of KEYS to avoid blocking Redis
            cursor = 0
            job_keys = []

            while True:
                cursor, keys = await self.redis.scan(
                    cursor, match="job:*", count=100
                )
                job_keys.extend(keys)

                # Stop if we have enough keys or finished scanning
                if cursor == 0 or len(job_keys) >= limit * 2:  # Get extra to account for filtering
                    break
            raw_jobs = [await self.redis.get(key) for key in job_keys]
        else:
            raw_jobs = list(self._local.values())

        jobs = []
        for job_data in raw_jobs:
            if not job_data:
                continue
            try:
                job = JobResponse.model_validate_json(job_data)
            except ValueError as e:
                logger.warning(f"Failed to parse job data: {e}")
                continue
            if status is None or job.status == status:
                jobs.append(job)

        # Sort by created_at descending
        jobs.sort(key=lambda x: x.created_at, reverse=True)
        return jobs[:limit]
