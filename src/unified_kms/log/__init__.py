# -*- coding: utf-8 -*-
from unified_kms.log.config import setup_logging
from unified_kms.log.context import bind_log_context, get_log_context

__all__ = [
    "setup_logging",
    "bind_log_context",
    "get_log_context",
]
