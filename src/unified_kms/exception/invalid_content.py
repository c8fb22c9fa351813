# -*- coding: utf-8 -*-
"""Content is empty or malformed at classification time."""

from unified_kms.exception.base import KMSException


class InvalidContentError(KMSException):
    """Content is empty or malformed at classification time."""
