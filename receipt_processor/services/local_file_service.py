"""LocalFileService stores uploaded receipts on the local filesystem."""

from pathlib import Path

from receipt_processor.core.exceptions import StorageError
from receipt_processor.core.utils import ensure_dir


class LocalFileService:
    """Disk-backed counterpart of S3FileService, rooted at a single directory."""

    def __init__(self, base_dir: str | Path) -> None:
        """Initialize LocalFileService and ensure the base directory exists."""
        self.base_dir = Path(base_dir)
        ensure_dir(self.base_dir)

    def _path(self, key: str) -> Path:
        path = (self.base_dir / key).resolve()
        if self.base_dir.resolve() not in path.parents:
            msg = f"Refusing to access {key!r} outside {self.base_dir}"
            raise StorageError(msg)
        return path

    def upload_fileobj(self, key: str, data: bytes) -> str:
        """Write bytes under the given key and return the file path."""
        path = self._path(key)
        try:
            ensure_dir(path.parent)
            path.write_bytes(data)
        except OSError as exc:
            msg = f"Failed to write {path}: {exc}"
            raise StorageError(msg) from exc
        return str(self.base_dir / key)

    def download_fileobj(self, key: str) -> bytes:
        """Read the bytes stored under the given key."""
        path = self._path(key)
        try:
            return path.read_bytes()
        except OSError as exc:
            msg = f"Failed to read {path}: {exc}"
            raise StorageError(msg) from exc

    def file_exists(self, key: str) -> bool:
        """Check if a file exists under the given key."""
        return self._path(key).is_file()
