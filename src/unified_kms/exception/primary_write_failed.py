# -*- coding: utf-8 -*-
"""Primary backend write failed; the store operation is aborted."""

from unified_kms.exception.base import KMSException


class PrimaryWriteError(KMSException):
    """Primary backend write failed; the store operation is aborted."""
