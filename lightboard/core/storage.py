"""
Local filesystem blob store for uploaded marketing media.

Files are written under MEDIA_ROOT/<folder>/<millis>-<nonce>.<ext> and served from
MEDIA_BASE_URL. Keys are never overwritten.
"""

import re
import time
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from uuid import uuid4

from lightboard.core.config import settings
from lightboard.core.errors import StorageError
from lightboard.core.logging import get_logger

logger = get_logger(__name__)

SAFE_EXT_RE = re.compile(r"[a-z0-9]{1,8}")


@dataclass(frozen=True)
class StoredFile:
    path: str
    url: str
    size: int


class LocalBlobStore:
    def __init__(self, root: str | Path, base_url: str, max_bytes: int) -> None:
        self.root = Path(root)
        self.base_url = base_url.rstrip("/")
        self.max_bytes = max_bytes

    def public_url(self, path: str) -> str:
        return f"{self.base_url}/{path}"

    def _resolve(self, key: str) -> Path:
        # Reject traversal outside the media root
        parts = PurePosixPath(key).parts
        if not parts or ".." in parts or PurePosixPath(key).is_absolute():
            raise StorageError(f"Invalid storage key: {key}")
        return self.root.joinpath(*parts)

    def put(self, folder: str, filename: str, data: bytes) -> StoredFile:
        if not data:
            raise StorageError("Refusing to store an empty file")
        if len(data) > self.max_bytes:
            raise StorageError(f"File exceeds {self.max_bytes} bytes")

        ext = filename.rsplit(".", 1)[-1].lower() if "." in filename else ""
        if not SAFE_EXT_RE.fullmatch(ext):
            ext = "bin"
        key = f"{folder}/{time.time_ns() // 1_000_000}-{uuid4().hex[:8]}.{ext}"
        target = self._resolve(key)
        if target.exists():
            raise StorageError(f"Storage key already exists: {key}")

        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as e:
            logger.error("storage.write_failed", key=key, error=str(e))
            raise StorageError(f"Could not write {key}") from e

        logger.info("storage.file_stored", key=key, size=len(data))
        return StoredFile(path=key, url=self.public_url(key), size=len(data))

    def is_writable(self) -> bool:
        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError:
            return False
        return self.root.is_dir()


def get_blob_store() -> LocalBlobStore:
    """FastAPI dependency; overridden in tests to point at a temp dir."""
    return LocalBlobStore(settings.MEDIA_ROOT, settings.MEDIA_BASE_URL, settings.MAX_UPLOAD_BYTES)
