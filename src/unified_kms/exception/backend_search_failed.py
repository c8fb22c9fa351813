# -*- coding: utf-8 -*-
"""A single backend failed during a fan-out search."""

from unified_kms.exception.base import FailureSeverity, KMSException


class BackendSearchError(KMSException):
    """A single backend failed during a fan-out search."""

    severity = FailureSeverity.DEGRADED
