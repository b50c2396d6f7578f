"""Job tracking router."""
import asyncio
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import StreamingResponse

from oculus_backup.api.dependencies import get_job_manager
from oculus_backup.api.jobs import JobManager
from oculus_backup.api.models import JobResponse, JobStatus

router = APIRouter(prefix="/jobs", tags=["jobs"])


@router.get("/", response_model=List[JobResponse])
async def list_jobs(
    status: Optional[JobStatus] = None,
    limit: int = 100,
    job_manager: JobManager = Depends(get_job_manager),
):
    """List all jobs with optional status filter."""
    return await job_manager.list_jobs(status=status, limit=limit)


@router.get("/{job_id}", response_model=JobResponse)
async def get_job(
    job_id: str,
    job_manager: JobManager = Depends(get_job_manager),
):
    """Get specific job details."""
    job = await job_manager.get_job(job_id)

    if not job:
        raise HTTPException(status_code=404, detail=f"Job {job_id} not found")

    return job


@router.get("/{job_id}/stream")
async def stream_job_progress(
    job_id: str,
    job_manager: JobManager = Depends(get_job_manager),
):
    """Stream job progress updates via Server-Sent Events."""
    async def event_generator():
        last_status = None
        last_progress = None

        while True:
            job = await job_manager.get_job(job_id)

            if not job:
                yield 'data: {"error": "Job not found"}\n\n'
                break

            # Send update if status or progress changed
            if job.status != last_status or job.progress != last_progress:
                yield f"data: {job.model_dump_json()}\n\n"
                last_status = job.status
                last_progress = job.progress

            # Stop streaming if job is complete or failed
            if job.status in [JobStatus.COMPLETED, JobStatus.FAILED]:
                break

            await asyncio.sleep(1)  # Poll every second

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "X-Accel-Buffering": "no",
        },
    )
