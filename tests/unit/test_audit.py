from __future__ import annotations

import json
import logging

from src.app.services.audit import AuditLogger


class ListHandler(logging.Handler):
    def __init__(self) -> None:
        super().__init__()
        self.records: list[logging.LogRecord] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.records.append(record)


def _logger(name: str) -> tuple[logging.Logger, ListHandler]:
    logger = logging.getLogger(name)
    logger.propagate = False
    handler = ListHandler()
    logger.handlers = [handler]
    return logger, handler


class TestAuditLogger:
    def test_json_event(self) -> None:
        logger, handler = _logger("audit.test.json")
        audit = AuditLogger(logger=logger)

        audit.info(
            "recipe.generate_success",
            "Recipe generated successfully",
            request_id="req-1",
            user_id="u1",
            metadata={"recipe_id": "r1"},
        )

        record = handler.records[0]
        assert record.levelno == logging.INFO
        event = json.loads(record.getMessage())
        assert event["event_type"] == "recipe.generate_success"
        assert event["request_id"] == "req-1"
        assert event["user_id"] == "u1"
        assert event["metadata"] == {"recipe_id": "r1"}
        assert "ip_address" not in event

    def test_error_carries_error_text(self) -> None:
        logger, handler = _logger("audit.test.error")
        AuditLogger(logger=logger).error("recipe.generate_failure", "failed", error=ValueError("bad json"))

        record = handler.records[0]
        assert record.levelno == logging.ERROR
        assert json.loads(record.getMessage())["error"] == "bad json"

    def test_pretty_format(self) -> None:
        logger, handler = _logger("audit.test.pretty")
        AuditLogger(log_format="pretty", logger=logger).warn("recipe.image_skipped", "no image", user_id="u1")

        message = handler.records[0].getMessage()
        assert "event_type=recipe.image_skipped" in message
        assert "user_id=u1" in message

    def test_disabled_is_noop(self) -> None:
        logger, handler = _logger("audit.test.disabled")
        AuditLogger(enabled=False, logger=logger).info("recipe.delete", "deleted")
        assert handler.records == []

    def test_level_filters_events(self) -> None:
        logger, handler = _logger("audit.test.level")
        audit = AuditLogger(level="warn", logger=logger)

        audit.info("recipe.generate_start", "started")
        audit.warn("recipe.generate_denied", "denied")

        assert [r.levelno for r in handler.records] == [logging.WARNING]
