from __future__ import annotations

import logging

from unified_kms.log.context import ContextFilter

_LOGGER_NAME = "unified_kms"
_HANDLER_FLAG = "_unified_kms_log_handler"

_LOG_FORMAT = (
    "%(asctime)s.%(msecs)03d %(levelname)-5s %(name)s - "
    "[event=%(event)s operation=%(operation)s backend=%(backend)s "
    "owner_id=%(owner_id)s group_id=%(group_id)s request_id=%(request_id)s] "
    "%(message)s"
)
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _parse_level(level: str | int) -> int:
    if isinstance(level, int):
        return level
    return getattr(logging, str(level).upper(), logging.INFO)


def _build_formatter() -> logging.Formatter:
    return logging.Formatter(fmt=_LOG_FORMAT, datefmt=_DATE_FORMAT)


def _ensure_handler(logger: logging.Logger, level: int) -> None:
    for handler in logger.handlers:
        if getattr(handler, _HANDLER_FLAG, False):
            handler.setLevel(level)
            return

    handler = logging.StreamHandler()
    handler.setLevel(level)
    handler.setFormatter(_build_formatter())
    handler.addFilter(ContextFilter())
    setattr(handler, _HANDLER_FLAG, True)
    logger.addHandler(handler)


def setup_logging(level: str | int = "INFO") -> logging.Logger:
    """Attach the package handler to the ``unified_kms`` logger (idempotent)."""
    logger = logging.getLogger(_LOGGER_NAME)
    parsed_level = _parse_level(level)
    logger.setLevel(parsed_level)
    logger.propagate = False
    _ensure_handler(logger, parsed_level)
    return logger
