# -*- coding: utf-8 -*-
"""Best-effort secondary write failed."""

from unified_kms.exception.base import FailureSeverity, KMSException


class SecondaryWriteError(KMSException):
    """Best-effort secondary write failed."""

    severity = FailureSeverity.DEGRADED
