# src/app/infra/storage/base.py
"""
Abstract base class for storage providers.
This interface allows easy swapping between different storage backends (local disk, R2, S3, etc.)
"""
from __future__ import annotations

import re
from abc import ABC, abstractmethod
from pathlib import PurePosixPath

from src.app.domain.errors import StorageError


class StorageProvider(ABC):
    """
    Abstract interface for recipe media storage.

    Keys are storage-relative POSIX paths such as ``images/full/<id>.jpg``.

    Implementations:
    - LocalStorageProvider: filesystem directory served under /uploads
    - R2StorageProvider: Cloudflare R2 (S3-compatible)
    """

    @abstractmethod
    def put_object(
        self,
        object_key: str,
        data: bytes,
        content_type: str = "image/jpeg",
    ) -> str:
        """
        Store bytes under a key, replacing any existing object.

        Args:
            object_key: The key/path where the object will be stored
            data: Raw bytes to store
            content_type: MIME type of the content

        Returns:
            The key the object was stored under
        """
        pass

    @abstractmethod
    def delete_object(self, object_key: str) -> bool:
        """
        Delete an object from storage.

        Args:
            object_key: The key/path of the object to delete

        Returns:
            True if the object was deleted, False if it was already absent

        Raises:
            StorageError: If the object exists but could not be removed
        """
        pass

    @abstractmethod
    def object_exists(self, object_key: str) -> bool:
        """
        Check if an object exists in storage.

        Args:
            object_key: The key/path of the object

        Returns:
            True if the object exists
        """
        pass

    @abstractmethod
    def public_url(self, object_key: str) -> str:
        """Map a storage key to the URL clients fetch it from."""
        pass

    def normalize_key(self, object_key: str) -> str:
        """
        Turn a stored path or served URL path into a safe storage key.

        Accepts ``/uploads/images/full/a.jpg`` as well as ``images/full/a.jpg``.
        """
        if not object_key or not object_key.strip():
            raise StorageError("Object key cannot be empty")

        key = object_key.strip().lstrip("/")
        key = re.sub(r"^uploads/", "", key)

        if ".." in PurePosixPath(key).parts:
            raise StorageError(f"Object key cannot contain path traversal: {object_key}")

        return key
