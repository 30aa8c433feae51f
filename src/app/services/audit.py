# src/app/services/audit.py
"""
Structured audit trail for recipe generation and media lifecycle events.

Events go to the dedicated ``audit`` logger, one record per event. The json
format emits the whole event as a single JSON line; the pretty format emits
``key=value`` pairs for local development.
"""
from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

AUDIT_LOGGER_NAME = "audit"

GENERATE_START = "recipe.generate_start"
GENERATE_DENIED = "recipe.generate_denied"
GENERATE_FAILURE = "recipe.generate_failure"
GENERATE_SUCCESS = "recipe.generate_success"
IMAGE_SKIPPED = "recipe.image_skipped"
RECIPE_DELETE = "recipe.delete"
IMAGE_CLEANUP = "recipe.image_cleanup"
IMAGE_CLEANUP_FAILED = "recipe.image_cleanup_failed"
USER_IMAGES_CLEANUP = "user.images_cleanup"

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


class AuditLogger:
    def __init__(
        self,
        enabled: bool = True,
        level: str = "info",
        log_format: str = "json",
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.enabled = enabled
        self.format = "pretty" if (log_format or "").lower() == "pretty" else "json"
        self._logger = logger or logging.getLogger(AUDIT_LOGGER_NAME)
        self._logger.setLevel(_LEVELS.get((level or "").lower(), logging.INFO))

    def info(self, event_type: str, message: str, **context: Any) -> None:
        self._emit(logging.INFO, event_type, message, **context)

    def warn(self, event_type: str, message: str, **context: Any) -> None:
        self._emit(logging.WARNING, event_type, message, **context)

    def error(
        self,
        event_type: str,
        message: str,
        error: Optional[BaseException] = None,
        **context: Any,
    ) -> None:
        self._emit(logging.ERROR, event_type, message, error=error, **context)

    def _emit(
        self,
        level: int,
        event_type: str,
        message: str,
        request_id: Optional[str] = None,
        user_id: Optional[str] = None,
        ip_address: Optional[str] = None,
        error: Optional[BaseException] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        if not self.enabled or not self._logger.isEnabledFor(level):
            return

        event: Dict[str, Any] = {
            "time": datetime.now(timezone.utc).isoformat(),
            "level": logging.getLevelName(level).lower(),
            "event_type": event_type,
            "message": message,
        }
        if request_id:
            event["request_id"] = request_id
        if user_id:
            event["user_id"] = user_id
        if ip_address:
            event["ip_address"] = ip_address
        if error is not None:
            event["error"] = str(error)
        if metadata:
            event["metadata"] = metadata

        self._logger.log(level, self.render(event))

    def render(self, event: Dict[str, Any]) -> str:
        if self.format == "pretty":
            return " ".join(f"{key}={_pretty_value(value)}" for key, value in event.items())
        return json.dumps(event, default=str, ensure_ascii=False)


def _pretty_value(value: Any) -> str:
    if isinstance(value, (dict, list)):
        return json.dumps(value, default=str, ensure_ascii=False)
    return str(value)
