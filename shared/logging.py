"""
Structured logging for the Partner Signing Proxy.

Every event is rendered as one JSON line on stdout, enriched with the request
id and, once identity resolution has run, the partner user id.
"""

import logging
import sys
import uuid
from contextvars import ContextVar
from typing import Any, Dict, List, Optional

import structlog

request_id_var: ContextVar[Optional[str]] = ContextVar("proxy_request_id", default=None)
user_id_var: ContextVar[Optional[str]] = ContextVar("proxy_user_id", default=None)

# Never rendered, whatever a caller binds.
REDACTED_KEYS = frozenset({"api_secret", "secret", "jwt_secret", "session_secret", "authorization"})
REDACTED_VALUE = "***"

EventDict = Dict[str, Any]


def add_service_name(service_name: str):
    """Processor factory stamping the owning service on every event."""

    def processor(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
        event_dict.setdefault("service", service_name)
        return event_dict

    return processor


def add_correlation_context(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Attach the current request id and user id, when set."""
    for key, var in (("request_id", request_id_var), ("user_id", user_id_var)):
        value = var.get()
        if value:
            event_dict[key] = value
    return event_dict


def redact_secrets(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Mask credential-bearing keys."""
    for key in event_dict:
        if key.lower() in REDACTED_KEYS:
            event_dict[key] = REDACTED_VALUE
    return event_dict


def _processors(service_name: str) -> List[Any]:
    return [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        add_service_name(service_name),
        add_correlation_context,
        redact_secrets,
        structlog.processors.JSONRenderer(),
    ]


def configure_logging(service_name: str, log_level: str = "info") -> None:
    """Route structlog through stdlib logging and render JSON."""
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    structlog.configure(
        processors=_processors(service_name),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)


def set_request_id(request_id: Optional[str] = None) -> str:
    """Bind the request id for this request, generating one if absent."""
    request_id = request_id or str(uuid.uuid4())
    request_id_var.set(request_id)
    return request_id


def set_user_context(user_id: Optional[str] = None) -> None:
    if user_id:
        user_id_var.set(user_id)


def clear_context() -> None:
    request_id_var.set(None)
    user_id_var.set(None)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
