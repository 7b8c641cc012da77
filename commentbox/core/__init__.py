# Core infrastructure
from commentbox.core.context import (
    clear_context,
    get_client_ip,
    get_context,
    get_request_id,
    get_trace_id,
    set_client_ip,
    set_request_id,
    set_trace_id,
)
from commentbox.core.logging import configure_structlog, get_logger


__all__ = [
    "clear_context",
    "configure_structlog",
    "get_client_ip",
    "get_context",
    "get_logger",
    "get_request_id",
    "get_trace_id",
    "set_client_ip",
    "set_request_id",
    "set_trace_id",
]
