"""Backup and restore API endpoints."""

import asyncio
from typing import Dict, List, Optional, Union

from fastapi import APIRouter, BackgroundTasks, Depends, File, Form, UploadFile
from fastapi.responses import FileResponse

from ..config import settings
from ..dependencies import get_backup_manager, get_job_manager
from ..exceptions import (
    ArchiveTooLargeError,
    BackupInProgressError,
    BackupNotFoundError,
    InvalidPasswordHTTPError,
    to_http_error,
)
from ..jobs import JobManager
from ..models import BackupRequest, BackupStatusResponse, JobResponse, JobStatus
from oculus_backup._utils import logger
from oculus_backup.backup import (
    ArchiveInfo,
    BackupError,
    BackupManager,
    LastBackupRecord,
    RestorePartialFailure,
    RestorePreview,
    SnapshotSet,
)
from oculus_backup.backup.models import RestoreProgress
from oculus_backup.base import TransientStorageError

router = APIRouter(prefix="/backup", tags=["backup"])


async def _create_backup_task(
    backup_manager: BackupManager,
    job_manager: JobManager,
    job_id: str,
    password: str
):
    """Background task to create backup."""
    try:
        await job_manager.update_job_status(job_id, JobStatus.PROCESSING)

        result = await backup_manager.create_backup(password)

        await job_manager.update_job_status(
            job_id,
            JobStatus.COMPLETED,
            metadata={
                "archive_name": result.archive_name,
                "size_bytes": result.size_bytes,
                "checksum": result.checksum,
                "stats": result.stats,
                "shared": result.shared,
                "share_error": result.share_error,
            },
        )
        logger.info(f"Backup job {job_id} completed: {result.archive_name}")

    except Exception as e:
        logger.error(f"Backup job {job_id} failed: {e}")
        await job_manager.update_job_status(job_id, JobStatus.FAILED, str(e))


@router.post("", response_model=JobResponse)
async def create_backup(
    request: BackupRequest,
    background_tasks: BackgroundTasks,
    backup_manager: BackupManager = Depends(get_backup_manager),
    job_manager: JobManager = Depends(get_job_manager),
) -> JobResponse:
    """Create new backup asynchronously.

    Returns job ID for tracking backup progress.
    """
    min_length = backup_manager.config.min_password_length
    if len(request.password) < min_length:
        raise InvalidPasswordHTTPError(f"Password must be at least {min_length} characters")
    if backup_manager.busy:
        raise BackupInProgressError()

    job_id = await job_manager.create_job(
        job_type="backup",
        collections=list(backup_manager.registry),
        metadata={"operation": "backup"}
    )

    background_tasks.add_task(
        _create_backup_task,
        backup_manager,
        job_manager,
        job_id,
        request.password
    )

    return await job_manager.get_job(job_id)


@router.get("", response_model=List[ArchiveInfo])
async def list_backups(
    backup_manager: BackupManager = Depends(get_backup_manager)
) -> List[ArchiveInfo]:
    """List all available backups, newest first."""
    return await backup_manager.list_backups()


@router.get("/last", response_model=LastBackupRecord)
async def last_backup(
    backup_manager: BackupManager = Depends(get_backup_manager)
) -> LastBackupRecord:
    """When the last backup ran and how many documents it held."""
    try:
        record = await backup_manager.last_backup()
    except TransientStorageError as e:
        raise to_http_error(e)
    if record is None:
        raise BackupNotFoundError("no backup has been recorded")
    return record


@router.get("/status", response_model=BackupStatusResponse)
async def backup_status(
    backup_manager: BackupManager = Depends(get_backup_manager)
) -> BackupStatusResponse:
    try:
        backup_record = await backup_manager.last_backup()
        restore_record = await backup_manager.last_restore()
    except TransientStorageError as e:
        raise to_http_error(e)
    return BackupStatusResponse(
        state=backup_manager.state,
        busy=backup_manager.busy,
        last_backup=backup_record,
        last_restore=restore_record,
    )


@router.get("/{name}/download")
async def download_backup(
    name: str,
    backup_manager: BackupManager = Depends(get_backup_manager)
) -> FileResponse:
    """Download an archive file."""
    backup_path = await backup_manager.get_backup_path(name)

    if not backup_path:
        raise BackupNotFoundError(name)

    return FileResponse(
        path=backup_path,
        media_type="application/octet-stream",
        filename=name,
        headers={"Content-Disposition": f"attachment; filename={name}"}
    )


async def _restore_backup_task(
    backup_manager: BackupManager,
    job_manager: JobManager,
    job_id: str,
    snapshot: SnapshotSet
):
    """Background task to restore an uploaded archive."""
    written: Dict[str, int] = {}

    async def on_progress(progress: RestoreProgress) -> None:
        if progress.phase == "write":
            written[progress.collection] = progress.processed
        await job_manager.update_job_progress(
            job_id, sum(written.values()), f"{progress.phase} {progress.collection}"
        )

    try:
        await job_manager.update_job_status(job_id, JobStatus.PROCESSING)

        stats = await backup_manager.restore_snapshot(
            snapshot, confirmed=True, progress_callback=on_progress
        )

        await job_manager.update_job_status(job_id, JobStatus.COMPLETED, metadata={"stats": stats})
        logger.info(f"Restore job {job_id} completed")

    except RestorePartialFailure as e:
        logger.error(f"Restore job {job_id} incomplete: {e}")
        await job_manager.update_job_status(
            job_id,
            JobStatus.FAILED,
            str(e),
            metadata={
                "stats": e.stats,
                "failures": [failure.model_dump() for failure in e.failures],
            },
        )
    except Exception as e:
        logger.error(f"Restore job {job_id} failed: {e}")
        await job_manager.update_job_status(job_id, JobStatus.FAILED, str(e))


@router.post("/restore", response_model=Union[JobResponse, RestorePreview])
async def restore_backup(
    background_tasks: BackgroundTasks,
    file: UploadFile = File(...),
    password: str = Form(...),
    confirm: bool = Form(False),
    backup_manager: BackupManager = Depends(get_backup_manager),
    job_manager: JobManager = Depends(get_job_manager),
) -> Union[JobResponse, RestorePreview]:
    """Restore from an uploaded archive.

    Without ``confirm`` the archive is only decoded and its contents are
    described; nothing is changed. With ``confirm`` every collection in the
    archive is replaced in a background job.
    """
    filename: Optional[str] = file.filename
    try:
        # Reject by name before reading the upload
        backup_manager.select_archive(filename)
    except BackupError as e:
        raise to_http_error(e)

    content = await file.read()
    if len(content) > settings.max_upload_bytes:
        raise ArchiveTooLargeError(settings.max_upload_bytes)

    try:
        snapshot = await asyncio.to_thread(
            backup_manager.decode_upload, filename, content, password
        )
    except BackupError as e:
        raise to_http_error(e)

    logger.info(f"Uploaded archive {filename} ({len(content):,} bytes) decoded")
    preview = backup_manager.describe(filename, snapshot)
    if not confirm:
        return preview

    if backup_manager.busy:
        raise BackupInProgressError()

    job_id = await job_manager.create_job(
        job_type="restore",
        collections=snapshot.names(),
        total=preview.total_records,
        metadata={"operation": "restore", "archive_name": filename}
    )

    background_tasks.add_task(
        _restore_backup_task,
        backup_manager,
        job_manager,
        job_id,
        snapshot
    )

    return await job_manager.get_job(job_id)


@router.delete("/{name}")
async def delete_backup(
    name: str,
    backup_manager: BackupManager = Depends(get_backup_manager)
) -> dict:
    """Delete a backup archive."""
    deleted = await backup_manager.delete_backup(name)

    if not deleted:
        raise BackupNotFoundError(name)

    return {"message": f"Backup deleted: {name}"}
