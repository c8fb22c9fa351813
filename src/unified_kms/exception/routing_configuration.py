# -*- coding: utf-8 -*-
"""Routing rules or the default decision are invalid."""

from unified_kms.exception.base import FailureSeverity, KMSException


class RoutingConfigurationError(KMSException):
    """Routing rules or the default decision are invalid."""

    severity = FailureSeverity.CONFIGURATION
