# timewise_auth/core/logging.py
from __future__ import annotations

import logging
import sys
from typing import Any, Dict

import structlog

_SECRET_KEYS = ("password", "secret", "token", "authorization")


def _redact_secrets(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Nunca deixa token/senha em claro no log."""
    for key in list(event_dict.keys()):
        if key == "event":
            continue
        if any(s in key.lower() for s in _SECRET_KEYS) and isinstance(event_dict[key], str):
            value = event_dict[key]
            event_dict[key] = value[:4] + "***" if len(value) > 8 else "***"
    return event_dict


def setup_logging(level: str = "INFO", json_output: bool = True) -> None:
    log_level = getattr(logging, level.upper(), logging.INFO)

    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        _redact_secrets,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]
    if json_output:
        renderer = [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        renderer = [structlog.dev.ConsoleRenderer(colors=False)]

    # uvicorn/sqlalchemy continuam no logging da stdlib, mesmo nível
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=log_level)

    structlog.configure(
        processors=shared_processors + renderer,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
