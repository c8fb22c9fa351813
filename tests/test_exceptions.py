"""
Exception tests

Module under test: unified_kms.exception
"""

import pytest

from unified_kms.exception import (
    BackendSearchError,
    BackendTimeoutError,
    ConfigurationError,
    FailureSeverity,
    InvalidContentError,
    KMSException,
    PrimaryWriteError,
    RoutingConfigurationError,
    SecondaryWriteError,
    SharedCacheError,
    UnknownBackendError,
)


class TestKMSException:
    def test_str_includes_origin(self):
        error = PrimaryWriteError("write refused", backend="graph-backend", stage="primary_write")

        assert str(error) == "[primary_write/graph-backend] write refused"

    def test_str_without_origin(self):
        assert str(KMSException("plain")) == "plain"
        assert str(KMSException("staged", stage="routing")) == "[routing] staged"

    def test_carries_cause_and_metadata(self):
        cause = ConnectionError("refused")
        error = BackendSearchError("search failed", cause=cause, metadata={"attempt": 1})

        assert error.cause is cause
        assert error.metadata == {"attempt": 1}
        assert KMSException("x").metadata == {}

    @pytest.mark.parametrize(
        ("error_cls", "severity"),
        [
            (PrimaryWriteError, FailureSeverity.FATAL),
            (UnknownBackendError, FailureSeverity.FATAL),
            (InvalidContentError, FailureSeverity.FATAL),
            (SecondaryWriteError, FailureSeverity.DEGRADED),
            (BackendSearchError, FailureSeverity.DEGRADED),
            (BackendTimeoutError, FailureSeverity.DEGRADED),
            (SharedCacheError, FailureSeverity.DEGRADED),
            (RoutingConfigurationError, FailureSeverity.CONFIGURATION),
            (ConfigurationError, FailureSeverity.CONFIGURATION),
        ],
    )
    def test_severity(self, error_cls, severity):
        error = error_cls("boom")

        assert isinstance(error, KMSException)
        assert error.severity == severity
