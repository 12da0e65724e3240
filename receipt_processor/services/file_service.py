"""Blob storage facade and stored-name generation for uploaded receipts."""

from datetime import datetime
from pathlib import PurePath
from typing import Protocol

from receipt_processor.core.settings import Settings
from receipt_processor.core.utils import get_logger

logger = get_logger("receipt-processor.storage")

STORED_NAME_TIME_FORMAT = "%Y%m%d_%H%M%S"


class StorageBackend(Protocol):
    """Interface shared by LocalFileService and S3FileService."""

    def upload_fileobj(self, key: str, data: bytes) -> str: ...

    def download_fileobj(self, key: str) -> bytes: ...

    def file_exists(self, key: str) -> bool: ...


class FileService:
    """Service for blob operations on top of a storage backend."""

    def __init__(self, backend: StorageBackend) -> None:
        """Initialize FileService with a storage backend."""
        self.backend = backend

    def save_file(self, key: str, data: bytes) -> str:
        """Save bytes under the given key and return where they were written."""
        location = self.backend.upload_fileobj(key, data)
        logger.info(f"Stored {len(data)} bytes at {location}")
        return location

    def get_file(self, key: str) -> bytes:
        """Retrieve bytes by key."""
        return self.backend.download_fileobj(key)

    def file_exists(self, key: str) -> bool:
        """Check if a blob exists by key."""
        return self.backend.file_exists(key)


def build_stored_name(receipt_uuid: str, original_name: str, now: datetime) -> str:
    """Combine the receipt uuid, a timestamp and the original extension into a stored file name."""
    ext = PurePath(original_name or "").suffix
    return f"{receipt_uuid}_{now.strftime(STORED_NAME_TIME_FORMAT)}{ext}"


def build_file_service(settings: Settings) -> FileService:
    """Create the FileService for the configured storage backend."""
    if settings.storage_backend == "s3":
        from .s3_file_service import S3FileService

        return FileService(S3FileService(settings))
    if settings.storage_backend == "local":
        from .local_file_service import LocalFileService

        return FileService(LocalFileService(settings.upload_dir))
    msg = f"Unknown storage backend: {settings.storage_backend!r}"
    raise ValueError(msg)
