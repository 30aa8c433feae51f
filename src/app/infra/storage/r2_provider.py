# src/app/infra/storage/r2_provider.py
"""
Cloudflare R2 storage provider implementation.
R2 is S3-compatible, so we use boto3 with custom endpoint.
"""
from __future__ import annotations

import logging
import os
from typing import Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from src.app.domain.errors import StorageError
from src.app.infra.storage.base import StorageProvider

logger = logging.getLogger(__name__)

_NOT_FOUND_CODES = {"404", "NoSuchKey", "NotFound"}


def _is_not_found(error: ClientError) -> bool:
    return error.response.get("Error", {}).get("Code", "Unknown") in _NOT_FOUND_CODES


class R2StorageProvider(StorageProvider):
    """
    Cloudflare R2 storage provider using boto3 (S3-compatible).

    Environment variables required:
    - R2_ACCOUNT_ID: Cloudflare account ID
    - R2_ACCESS_KEY_ID: R2 access key ID
    - R2_SECRET_ACCESS_KEY: R2 secret access key
    - R2_BUCKET_NAME: Name of the R2 bucket
    - R2_PUBLIC_URL: (Optional) Public URL for the bucket
    """

    def __init__(
        self,
        account_id: Optional[str] = None,
        access_key_id: Optional[str] = None,
        secret_access_key: Optional[str] = None,
        bucket_name: Optional[str] = None,
        public_url: Optional[str] = None,
        client=None,
    ):
        self.account_id = account_id or os.getenv("R2_ACCOUNT_ID")
        self.access_key_id = access_key_id or os.getenv("R2_ACCESS_KEY_ID")
        self.secret_access_key = secret_access_key or os.getenv("R2_SECRET_ACCESS_KEY")
        self.bucket_name = bucket_name or os.getenv("R2_BUCKET_NAME")
        self.public_base_url = (public_url or os.getenv("R2_PUBLIC_URL") or "").rstrip("/")

        if client is not None:
            self._client = client
            return

        if not all([self.account_id, self.access_key_id, self.secret_access_key, self.bucket_name]):
            raise StorageError(
                "Missing R2 configuration. Required: R2_ACCOUNT_ID, R2_ACCESS_KEY_ID, "
                "R2_SECRET_ACCESS_KEY, R2_BUCKET_NAME"
            )

        self.endpoint_url = f"https://{self.account_id}.r2.cloudflarestorage.com"

        self._client = boto3.client(
            "s3",
            endpoint_url=self.endpoint_url,
            aws_access_key_id=self.access_key_id,
            aws_secret_access_key=self.secret_access_key,
            config=Config(
                signature_version="s3v4",
                retries={"max_attempts": 3, "mode": "adaptive"},
            ),
            region_name="auto",  # R2 uses 'auto' as region
        )

        logger.info(
            "R2StorageProvider initialized: bucket=%s, endpoint=%s",
            self.bucket_name,
            self.endpoint_url,
        )

    def put_object(
        self,
        object_key: str,
        data: bytes,
        content_type: str = "image/jpeg",
    ) -> str:
        key = self.normalize_key(object_key)
        try:
            self._client.put_object(
                Bucket=self.bucket_name,
                Key=key,
                Body=data,
                ContentType=content_type,
                CacheControl="public, max-age=31536000",
            )
        except (ClientError, BotoCoreError) as e:
            logger.error("Failed to upload object to R2: key=%s error=%s", key, e)
            raise StorageError(f"Failed to upload {key}: {e}") from e

        logger.debug("Uploaded object to R2: key=%s, size=%d bytes", key, len(data))
        return key

    def delete_object(self, object_key: str) -> bool:
        """Delete an object from R2. S3 deletes are silent on missing keys, so check first."""
        key = self.normalize_key(object_key)
        if not self.object_exists(key):
            logger.debug("Object already absent in R2: key=%s", key)
            return False

        try:
            self._client.delete_object(
                Bucket=self.bucket_name,
                Key=key,
            )
        except (ClientError, BotoCoreError) as e:
            logger.error("Failed to delete object from R2: %s", e)
            raise StorageError(f"Failed to delete {key}: {e}") from e

        logger.info("Deleted object from R2: key=%s", key)
        return True

    def object_exists(self, object_key: str) -> bool:
        """Check if an object exists in R2."""
        key = self.normalize_key(object_key)
        try:
            self._client.head_object(
                Bucket=self.bucket_name,
                Key=key,
            )
            return True
        except ClientError as e:
            if _is_not_found(e):
                return False
            logger.error("Error checking object existence: %s", e)
            raise StorageError(f"Failed to check object existence: {e}") from e
        except BotoCoreError as e:
            logger.error("Error reaching R2 for key=%s: %s", key, e)
            raise StorageError(f"Failed to check object existence: {e}") from e

    def public_url(self, object_key: str) -> str:
        key = self.normalize_key(object_key)
        if self.public_base_url:
            return f"{self.public_base_url}/{key}"
        return f"/{key}"
