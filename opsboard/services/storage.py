"""
File storage provider - uploads documents and hands back public URLs.

Handlers depend on the ``FileStorage`` interface through ``get_storage`` so
another backend (or a temp directory in tests) can be swapped in.
"""
import logging
import os
import uuid
from typing import Protocol

from opsboard.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()

ALLOWED_EXTENSIONS = {
    ".txt", ".csv", ".json", ".md",
    ".pdf", ".xlsx", ".xls", ".docx", ".doc",
    ".jpg", ".jpeg", ".png", ".gif", ".webp",
}


class StorageError(Exception):
    """Raised when a file cannot be stored or removed"""


class FileStorage(Protocol):
    def upload(self, content: bytes, filename: str, folder: str) -> dict: ...

    def delete(self, url: str) -> bool: ...


class LocalFileStorage:
    """Stores files under ``root`` and serves them under ``url_prefix``"""

    def __init__(self, root: str, url_prefix: str):
        self.root = root
        self.url_prefix = url_prefix.rstrip("/")

    def upload(self, content: bytes, filename: str, folder: str) -> dict:
        ext = os.path.splitext(filename or "file")[1].lower()
        if ext and ext not in ALLOWED_EXTENSIONS:
            raise StorageError(f"File type '{ext}' not allowed.")

        target_dir = os.path.join(self.root, folder)
        os.makedirs(target_dir, exist_ok=True)

        unique_name = f"{uuid.uuid4().hex}{ext}"
        with open(os.path.join(target_dir, unique_name), "wb") as f:
            f.write(content)

        url = f"{self.url_prefix}/{folder}/{unique_name}"
        logger.info(f"Stored '{filename}' as {url} ({len(content)} bytes)")
        return {"url": url}

    def delete(self, url: str) -> bool:
        """Remove the file behind ``url``; False when it was already gone"""
        path = self._path_for(url)
        if not os.path.exists(path):
            logger.warning(f"File already deleted: {url}")
            return False
        os.remove(path)
        return True

    def _path_for(self, url: str) -> str:
        if not url.startswith(self.url_prefix + "/"):
            raise StorageError(f"URL is not managed by this storage: {url}")
        relative = url[len(self.url_prefix) + 1:]
        path = os.path.realpath(os.path.join(self.root, relative))
        # Prevent path traversal outside the upload root
        if not path.startswith(os.path.realpath(self.root) + os.sep):
            raise StorageError(f"Invalid file URL: {url}")
        return path


def get_storage() -> FileStorage:
    """Dependency for the configured file storage"""
    return LocalFileStorage(settings.UPLOAD_DIR, settings.UPLOAD_URL_PREFIX)
