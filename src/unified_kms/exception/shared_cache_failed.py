# -*- coding: utf-8 -*-
"""The shared cache tier is unreachable or returned an error."""

from unified_kms.exception.base import FailureSeverity, KMSException


class SharedCacheError(KMSException):
    """The shared cache tier is unreachable or returned an error."""

    severity = FailureSeverity.DEGRADED
