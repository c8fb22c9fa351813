# -*- coding: utf-8 -*-
"""
Exception base types.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class FailureSeverity(str, Enum):
    """How an error affects the operation that raised it."""

    FATAL = "fatal"
    DEGRADED = "degraded"
    CONFIGURATION = "configuration"


class KMSException(Exception):
    """Base exception for the knowledge orchestrator."""

    severity: FailureSeverity = FailureSeverity.FATAL

    def __init__(
        self,
        message: str,
        *,
        backend: str | None = None,
        stage: str | None = None,
        cause: Exception | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.backend = backend
        self.stage = stage
        self.cause = cause
        self.metadata = metadata or {}

    def __str__(self) -> str:
        message = super().__str__()
        origin = [part for part in (self.stage, self.backend) if part]
        if not origin:
            return message
        return f"[{'/'.join(origin)}] {message}"
