# -*- coding: utf-8 -*-
"""Invalid or missing configuration."""

from unified_kms.exception.base import FailureSeverity, KMSException


class ConfigurationError(KMSException):
    """Invalid or missing configuration."""

    severity = FailureSeverity.CONFIGURATION
