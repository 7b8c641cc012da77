"""Request middleware for context management, logging and body limits."""

import time
from collections.abc import Awaitable, Callable, Collection

import structlog
from fastapi import Request, Response, status
from fastapi.responses import ORJSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from commentbox.core.context import (
    clear_context,
    set_client_ip,
    set_request_id,
    set_trace_id,
)


logger = structlog.get_logger(__name__)


def resolve_client_ip(
    request: Request,
    trusted_proxies: Collection[str] = (),
) -> str:
    """Originating address of a request, safe against spoofed headers.

    ``X-Forwarded-For`` is only believed when the transport peer is one of
    ``trusted_proxies``; the first hop in the chain that is not itself a
    trusted proxy is the client. Any other peer is taken at its word.
    Empty string when the address is unknown.
    """
    direct_ip = request.client.host if request.client else ""

    if direct_ip and direct_ip in trusted_proxies:
        forwarded_for = request.headers.get("x-forwarded-for", "")
        hops = [hop.strip() for hop in forwarded_for.split(",")]
        client_hops = [hop for hop in hops if hop and hop not in trusted_proxies]
        if client_hops:
            return client_hops[0]

    return direct_ip


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Sets up per-request logging context and logs request timing.

    The request ID is taken from ``X-Request-ID`` when the caller sent one and
    echoed back on the response.
    """

    REQUEST_ID_HEADER = "X-Request-ID"
    TRACE_ID_HEADER = "X-Trace-ID"
    TRACEPARENT_HEADER = "traceparent"

    def __init__(
        self,
        app: ASGIApp,
        log_requests: bool = True,
        exclude_paths: list[str] | None = None,
        trusted_proxies: list[str] | None = None,
    ) -> None:
        super().__init__(app)
        self.trusted_proxies = frozenset(trusted_proxies or ())
        self.log_requests = log_requests
        self.exclude_paths = exclude_paths or ["/health"]

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        start_time = time.perf_counter()

        request_id = set_request_id(request.headers.get(self.REQUEST_ID_HEADER))
        trace_id = request.headers.get(self.TRACE_ID_HEADER) or self._extract_traceparent(
            request.headers.get(self.TRACEPARENT_HEADER)
        )
        if trace_id:
            set_trace_id(trace_id)
        set_client_ip(resolve_client_ip(request, self.trusted_proxies))

        request.state.request_id = request_id
        should_log = self.log_requests and not self._should_exclude(request.url.path)

        if should_log:
            logger.info(
                "request_started",
                method=request.method,
                path=request.url.path,
                query=str(request.query_params) if request.query_params else None,
                user_agent=request.headers.get("user-agent"),
            )

        try:
            response = await call_next(request)
            duration_ms = (time.perf_counter() - start_time) * 1000

            if should_log:
                log_method = (
                    logger.warning
                    if response.status_code >= status.HTTP_400_BAD_REQUEST
                    else logger.info
                )
                log_method(
                    "request_completed",
                    method=request.method,
                    path=request.url.path,
                    status_code=response.status_code,
                    duration_ms=round(duration_ms, 2),
                )

            response.headers[self.REQUEST_ID_HEADER] = request_id
            return response

        except Exception as e:
            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.exception(
                "request_failed",
                method=request.method,
                path=request.url.path,
                error_type=type(e).__name__,
                duration_ms=round(duration_ms, 2),
            )
            raise

        finally:
            clear_context()

    def _should_exclude(self, path: str) -> bool:
        return any(path.startswith(excluded) for excluded in self.exclude_paths)

    def _extract_traceparent(self, traceparent: str | None) -> str | None:
        """Extract the trace ID from a W3C ``traceparent`` header.

        Format: {version}-{trace-id}-{parent-id}-{trace-flags}
        """
        if not traceparent:
            return None

        parts = traceparent.split("-")
        if len(parts) >= 2:
            return parts[1]

        return None


class BodySizeLimitMiddleware(BaseHTTPMiddleware):
    """Rejects requests whose declared body exceeds ``max_bytes``."""

    def __init__(self, app: ASGIApp, max_bytes: int) -> None:
        super().__init__(app)
        self.max_bytes = max_bytes

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        content_length = request.headers.get("content-length")
        if content_length is not None:
            try:
                declared = int(content_length)
            except ValueError:
                return ORJSONResponse(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    content={"error": "Invalid Content-Length"},
                )
            if declared > self.max_bytes:
                logger.warning(
                    "request_body_too_large",
                    path=request.url.path,
                    content_length=declared,
                    max_bytes=self.max_bytes,
                )
                return ORJSONResponse(
                    status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                    content={"error": "Payload too large"},
                )

        return await call_next(request)


__all__ = [
    "BodySizeLimitMiddleware",
    "RequestContextMiddleware",
    "resolve_client_ip",
]
