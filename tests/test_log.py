"""
Logging context tests

Module under test: unified_kms.log
"""

import logging

from unified_kms.log import bind_log_context, get_log_context, setup_logging
from unified_kms.log.context import ContextFilter


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord("unified_kms.test", logging.INFO, __file__, 1, "message", None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestLogContext:
    def test_bind_is_scoped(self):
        with bind_log_context(operation="store", owner_id="coach-1"):
            with bind_log_context(backend="graph-backend"):
                assert get_log_context() == {
                    "operation": "store",
                    "owner_id": "coach-1",
                    "backend": "graph-backend",
                }
            assert "backend" not in get_log_context()

        assert get_log_context() == {}

    def test_unknown_fields_are_dropped(self):
        with bind_log_context(operation="search", color="blue"):
            assert get_log_context() == {"operation": "search"}


class TestContextFilter:
    def test_fills_context_and_defaults(self):
        record = _record()

        with bind_log_context(operation="search"):
            assert ContextFilter().filter(record) is True

        assert record.operation == "search"
        assert record.backend is None
        assert record.event == "log"
        assert record.data is None

    def test_explicit_extra_wins(self):
        record = _record(event="store.completed", backend="document-backend", data=3)

        with bind_log_context(backend="semantic-memory"):
            ContextFilter().filter(record)

        assert record.backend == "document-backend"
        assert record.data == {"value": 3}

    def test_setup_logging_is_idempotent(self):
        logger = setup_logging("DEBUG")
        setup_logging("INFO")

        flagged = [h for h in logger.handlers if getattr(h, "_unified_kms_log_handler", False)]
        assert len(flagged) == 1
        assert logger.level == logging.INFO
        assert logger.propagate is False

    def test_package_exports(self):
        import unified_kms.log as log

        assert sorted(log.__all__) == ["bind_log_context", "get_log_context", "setup_logging"]
