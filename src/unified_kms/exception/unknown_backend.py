# -*- coding: utf-8 -*-
"""A routing decision or request named a backend that is not registered."""

from unified_kms.exception.base import KMSException


class UnknownBackendError(KMSException):
    """A routing decision or request named a backend that is not registered."""
