import logging
from pathlib import Path
from typing import Optional, Protocol

from config import get_settings

logger = logging.getLogger(__name__)


class StorageBackend(Protocol):
    """Protocol for storage backends."""

    async def upload_bytes(self, data: bytes, key: str, content_type: str) -> str:
        """Upload bytes and return URL."""
        ...

    async def download_bytes(self, url_or_path: str) -> bytes:
        """Download file and return bytes."""
        ...

    async def delete_bytes(self, url_or_path: str) -> None:
        """Remove a stored file; missing files are ignored."""
        ...


class LocalStorage:
    """Local filesystem storage for generated mockups."""

    _instance: Optional["LocalStorage"] = None

    def __new__(cls) -> "LocalStorage":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialize()
        return cls._instance

    @classmethod
    def get_instance(cls) -> "LocalStorage":
        return cls()

    def _initialize(self) -> None:
        settings = get_settings()
        base_dir = Path(settings.STORAGE_DIR)
        if not base_dir.is_absolute():
            # Relative paths resolve against the backend folder
            base_dir = Path(__file__).parent.parent / base_dir
        self.base_dir = base_dir
        self.base_dir.mkdir(parents=True, exist_ok=True)
        logger.info("Local storage initialized at %s", self.base_dir)

    def _validate_within_base_dir(self, file_path: Path) -> None:
        base_dir_resolved = self.base_dir.resolve()
        resolved_path = file_path.resolve()
        try:
            resolved_path.relative_to(base_dir_resolved)
        except ValueError:
            raise ValueError("Invalid path: path traversal attempt detected")

    def _path_for(self, url_or_path: str) -> Path:
        path = url_or_path.lstrip("/")
        if path.startswith("storage/"):
            path = path[8:]
        file_path = self.base_dir / path
        # SECURITY: Validate path to prevent directory traversal attacks
        self._validate_within_base_dir(file_path)
        return file_path

    async def upload_bytes(self, data: bytes, key: str, content_type: str) -> str:
        """Write bytes under the storage root and return the public URL."""
        key = key.lstrip("/")
        file_path = self._path_for(key)

        file_path.parent.mkdir(parents=True, exist_ok=True)
        file_path.write_bytes(data)

        logger.info("Saved file locally: %s (%s, %d bytes)", file_path, content_type, len(data))
        # Served by the /storage static mount
        return f"/storage/{key}"

    async def download_bytes(self, url_or_path: str) -> bytes:
        """Read a previously stored file by URL or key."""
        file_path = self._path_for(url_or_path)
        if not file_path.exists():
            raise FileNotFoundError(f"File not found: {url_or_path}")
        return file_path.read_bytes()

    async def delete_bytes(self, url_or_path: str) -> None:
        """Remove a stored file by URL or key. Missing files are ignored."""
        file_path = self._path_for(url_or_path)
        file_path.unlink(missing_ok=True)
        logger.info("Deleted local file: %s", file_path)


def get_storage() -> StorageBackend:
    """Get the storage backend."""
    return LocalStorage.get_instance()
