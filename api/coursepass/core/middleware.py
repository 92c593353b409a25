"""Per-request context and access logging."""

import time
from collections.abc import Awaitable, Callable

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from coursepass.core.context import (
    clear_context,
    set_correlation_id,
    set_request_id,
    set_trace_id,
    set_wallet,
)


logger = structlog.get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
TRACE_ID_HEADER = "X-Trace-ID"
CORRELATION_ID_HEADER = "X-Correlation-ID"
WALLET_HEADER = "X-Wallet-Address"
TRACEPARENT_HEADER = "traceparent"


def trace_id_from_traceparent(traceparent: str | None) -> str | None:
    """Return the trace id field of a W3C ``traceparent`` header.

    Format: {version}-{trace-id}-{parent-id}-{trace-flags}
    """
    if not traceparent:
        return None
    parts = traceparent.split("-")
    return parts[1] if len(parts) >= 2 and parts[1] else None


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Binds request, trace and wallet ids to the logging context.

    The request id is echoed back in ``X-Request-ID`` so clients can quote it
    when reporting an error envelope.
    """

    def __init__(
        self,
        app: ASGIApp,
        log_requests: bool = True,
        exclude_paths: list[str] | None = None,
    ) -> None:
        super().__init__(app)
        self.log_requests = log_requests
        self.exclude_paths = tuple(exclude_paths or ["/health"])

    def _bind_context(self, request: Request) -> str:
        headers = request.headers
        request_id = set_request_id(headers.get(REQUEST_ID_HEADER))

        trace_id = headers.get(TRACE_ID_HEADER) or trace_id_from_traceparent(
            headers.get(TRACEPARENT_HEADER)
        )
        if trace_id:
            set_trace_id(trace_id)
        if correlation_id := headers.get(CORRELATION_ID_HEADER):
            set_correlation_id(correlation_id)
        # Only tags log lines; access decisions never read this header
        if wallet := headers.get(WALLET_HEADER):
            set_wallet(wallet.strip().lower())

        request.state.request_id = request_id
        return request_id

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        started = time.perf_counter()
        request_id = self._bind_context(request)
        path = request.url.path
        should_log = self.log_requests and not path.startswith(self.exclude_paths)

        if should_log:
            logger.info("request_started", method=request.method, path=path)

        try:
            response = await call_next(request)
        except Exception as e:
            logger.exception(
                "request_failed",
                method=request.method,
                path=path,
                error_type=type(e).__name__,
                duration_ms=round((time.perf_counter() - started) * 1000, 2),
            )
            raise
        finally:
            clear_context()

        if should_log:
            log = logger.warning if response.status_code >= 400 else logger.info
            log(
                "request_completed",
                method=request.method,
                path=path,
                status_code=response.status_code,
                duration_ms=round((time.perf_counter() - started) * 1000, 2),
                request_id=request_id,
            )

        response.headers[REQUEST_ID_HEADER] = request_id
        return response


__all__ = ["RequestContextMiddleware", "trace_id_from_traceparent"]
