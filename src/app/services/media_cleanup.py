# src/app/services/media_cleanup.py
"""
Removes stored recipe image variants when a recipe or an account is deleted.

Cleanup never raises. Every path ends up in exactly one of the report's
buckets: deleted, absent (already gone, benign) or failed. Repeating a cleanup
on the same paths is therefore harmless.
"""
from __future__ import annotations

import logging
from typing import Iterable, Optional, Sequence

from src.app.domain.errors import StorageError
from src.app.domain.models import CleanupReport, RecipeMediaRecord
from src.app.infra.storage.base import StorageProvider
from src.app.services import audit as events
from src.app.services.audit import AuditLogger

logger = logging.getLogger(__name__)

INLINE_PREFIX = "data:"


def _is_stored_path(path: Optional[str]) -> bool:
    return bool(path) and not path.startswith(INLINE_PREFIX)


class MediaCleanupService:
    def __init__(self, storage: StorageProvider, audit: Optional[AuditLogger] = None) -> None:
        self.storage = storage
        self.audit = audit

    def _delete_paths(self, paths: Iterable[Optional[str]]) -> CleanupReport:
        report = CleanupReport()
        for path in paths:
            if not _is_stored_path(path):
                continue
            try:
                removed = self.storage.delete_object(path)
            except StorageError as error:
                logger.warning("Failed to delete media %s: %s", path, error)
                report.failed.append(path)
                continue
            except Exception:
                logger.exception("Unexpected error deleting media %s", path)
                report.failed.append(path)
                continue

            if removed:
                report.deleted.append(path)
            else:
                report.absent.append(path)
        return report

    def delete_variants(
        self,
        paths: Sequence[Optional[str]],
        recipe_id: Optional[str] = None,
        user_id: Optional[str] = None,
        request_id: Optional[str] = None,
    ) -> CleanupReport:
        """
        Delete the stored variants of one recipe.

        Args:
            paths: Storage-relative variant paths; empty and inline data paths are skipped
            recipe_id: Owning recipe, for the audit trail

        Returns:
            CleanupReport; never raises
        """
        report = self._delete_paths(paths)
        metadata = {
            "recipe_id": recipe_id,
            "deleted_files": report.deleted,
            "deleted_count": len(report.deleted),
            "absent_files": report.absent,
            "failed_files": report.failed,
            "cleanup_success": report.success,
        }

        if report.failed and not report.deleted:
            logger.error("Media cleanup failed: recipe=%s, failed=%s", recipe_id, report.failed)
            self._audit("warn", events.IMAGE_CLEANUP_FAILED, "Failed to delete recipe images",
                        user_id, request_id, metadata)
        elif report.failed:
            logger.warning(
                "Media cleanup partially failed: recipe=%s, deleted=%s, failed=%s",
                recipe_id,
                report.deleted,
                report.failed,
            )
            self._audit("warn", events.IMAGE_CLEANUP_FAILED, "Some recipe images could not be deleted",
                        user_id, request_id, metadata)
        elif report.deleted:
            logger.info("Media cleanup done: recipe=%s, deleted=%d", recipe_id, len(report.deleted))
            self._audit("info", events.IMAGE_CLEANUP, "Recipe images deleted",
                        user_id, request_id, metadata)
        elif report.absent:
            logger.info("Media already absent, nothing to delete: recipe=%s, paths=%s", recipe_id, report.absent)

        return report

    def delete_user_media(
        self,
        records: Sequence[RecipeMediaRecord],
        user_id: Optional[str] = None,
        request_id: Optional[str] = None,
    ) -> CleanupReport:
        """Bulk cleanup for account deletion; logs one summary event."""
        report = CleanupReport()
        for record in records:
            report.merge(self._delete_paths([record.image_path, record.thumbnail_path]))

        metadata = {
            "deleted_user_id": user_id,
            "recipe_count": len(records),
            "files_deleted": len(report.deleted),
            "files_absent": len(report.absent),
            "files_failed": len(report.failed),
            "cleanup_success": report.success,
        }

        if report.failed:
            logger.warning(
                "User media cleanup finished with failures: user=%s, deleted=%d, failed=%d",
                user_id,
                len(report.deleted),
                len(report.failed),
            )
            self._audit("warn", events.USER_IMAGES_CLEANUP, "User images cleanup completed with failures",
                        user_id, request_id, metadata)
        elif report.deleted:
            logger.info("User media cleanup done: user=%s, deleted=%d", user_id, len(report.deleted))
            self._audit("info", events.USER_IMAGES_CLEANUP, "All user images deleted",
                        user_id, request_id, metadata)

        return report

    def _audit(self, severity, event_type, message, user_id, request_id, metadata) -> None:
        if self.audit is None:
            return
        emit = self.audit.warn if severity == "warn" else self.audit.info
        emit(event_type, message, user_id=user_id, request_id=request_id, metadata=metadata)
