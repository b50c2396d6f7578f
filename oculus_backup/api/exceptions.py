"""Custom exceptions for FastAPI application."""

from typing import Union

from fastapi import HTTPException
from starlette.status import (
    HTTP_400_BAD_REQUEST,
    HTTP_401_UNAUTHORIZED,
    HTTP_404_NOT_FOUND,
    HTTP_409_CONFLICT,
    HTTP_503_SERVICE_UNAVAILABLE,
)

from ..base import TransientStorageError
from ..backup.errors import (
    ArchiveSelectionError,
    AuthenticationFailed,
    BackupError,
    InvalidPasswordError,
    MalformedPayload,
    OperationInProgressError,
)


class OculusAPIError(HTTPException):
    """Base exception for oculus-backup API errors."""
    pass


class BackupNotFoundError(OculusAPIError):
    def __init__(self, name: str):
        super().__init__(HTTP_404_NOT_FOUND, f"Backup not found: {name}")


class InvalidArchiveError(OculusAPIError):
    def __init__(self, detail: str):
        super().__init__(HTTP_400_BAD_REQUEST, detail)


class InvalidPasswordHTTPError(OculusAPIError):
    def __init__(self, detail: str):
        super().__init__(HTTP_400_BAD_REQUEST, detail)


class ArchiveAuthenticationError(OculusAPIError):
    def __init__(self):
        super().__init__(HTTP_401_UNAUTHORIZED, "Invalid password or corrupted backup file")


class MalformedArchiveError(OculusAPIError):
    def __init__(self, detail: str):
        super().__init__(422, detail)


class ArchiveTooLargeError(OculusAPIError):
    def __init__(self, limit: int):
        super().__init__(413, f"Archive exceeds {limit:,} bytes")


class BackupInProgressError(OculusAPIError):
    def __init__(self):
        super().__init__(HTTP_409_CONFLICT, "A backup or restore is already running")


class StorageUnavailableError(OculusAPIError):
    def __init__(self, backend: str):
        super().__init__(HTTP_503_SERVICE_UNAVAILABLE, f"{backend.capitalize()} temporarily unavailable")


def to_http_error(error: Union[BackupError, TransientStorageError]) -> OculusAPIError:
    """Map an engine or storage error raised inside a request to its HTTP form."""
    if isinstance(error, TransientStorageError):
        return StorageUnavailableError("document storage")
    if isinstance(error, AuthenticationFailed):
        return ArchiveAuthenticationError()
    if isinstance(error, MalformedPayload):
        return MalformedArchiveError(str(error))
    if isinstance(error, ArchiveSelectionError):
        return InvalidArchiveError(str(error))
    if isinstance(error, InvalidPasswordError):
        return InvalidPasswordHTTPError(str(error))
    if isinstance(error, OperationInProgressError):
        return BackupInProgressError()
    return OculusAPIError(HTTP_400_BAD_REQUEST, str(error))
