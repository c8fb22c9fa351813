# -*- coding: utf-8 -*-
"""A backend call exceeded its timeout."""

from unified_kms.exception.base import FailureSeverity, KMSException


class BackendTimeoutError(KMSException):
    """A backend call exceeded its timeout."""

    severity = FailureSeverity.DEGRADED
