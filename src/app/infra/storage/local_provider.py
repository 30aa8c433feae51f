# src/app/infra/storage/local_provider.py
"""
Filesystem storage provider.
Objects live under a single root directory that the API serves as static files.
"""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

from src.app.domain.errors import StorageError
from src.app.infra.storage.base import StorageProvider

logger = logging.getLogger(__name__)


class LocalStorageProvider(StorageProvider):
    """
    Stores media on local disk.

    Environment variables:
    - IMAGE_STORAGE_PATH: root directory (default ./data/uploads)
    - MEDIA_URL_PREFIX: URL prefix the root is mounted at (default /uploads)
    """

    def __init__(
        self,
        root_dir: Optional[str | Path] = None,
        url_prefix: Optional[str] = None,
    ):
        self.root_dir = Path(root_dir or os.getenv("IMAGE_STORAGE_PATH", "./data/uploads"))
        self.url_prefix = (url_prefix or os.getenv("MEDIA_URL_PREFIX", "/uploads")).rstrip("/")

        logger.info("LocalStorageProvider initialized: root=%s", self.root_dir)

    def _path_for(self, object_key: str) -> Path:
        return self.root_dir / self.normalize_key(object_key)

    def put_object(
        self,
        object_key: str,
        data: bytes,
        content_type: str = "image/jpeg",
    ) -> str:
        key = self.normalize_key(object_key)
        target = self.root_dir / key
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as e:
            logger.error("Failed to write object: key=%s error=%s", key, e)
            raise StorageError(f"Failed to write {key}: {e}") from e

        logger.debug("Stored object: key=%s, size=%d bytes", key, len(data))
        return key

    def delete_object(self, object_key: str) -> bool:
        target = self._path_for(object_key)
        try:
            target.unlink()
        except FileNotFoundError:
            logger.debug("Object already absent: %s", target)
            return False
        except OSError as e:
            logger.error("Failed to delete object: path=%s error=%s", target, e)
            raise StorageError(f"Failed to delete {object_key}: {e}") from e

        logger.info("Deleted object: %s", target)
        return True

    def object_exists(self, object_key: str) -> bool:
        return self._path_for(object_key).is_file()

    def public_url(self, object_key: str) -> str:
        return f"{self.url_prefix}/{self.normalize_key(object_key)}"
