"""
Request log middleware — one structured entry per request with request id,
method, path, status, duration and the calling operator (if any).

Public view recording is frequent and anonymous, so it is logged at debug.
"""

import time
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from lightboard.core.logging import get_logger

logger = get_logger(__name__)

SKIP_PATHS = {"/health", "/health/live", "/health/ready", "/docs", "/redoc", "/openapi.json"}
QUIET_PATHS = {"/api/v1/public/views"}


class AuditLogMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id
        structlog.contextvars.bind_contextvars(request_id=request_id)

        start_time = time.perf_counter()
        try:
            response = await call_next(request)
        finally:
            structlog.contextvars.unbind_contextvars("request_id")
        duration_ms = round((time.perf_counter() - start_time) * 1000, 2)

        response.headers["X-Request-ID"] = request_id

        path = request.url.path
        if path in SKIP_PATHS:
            return response

        if path in QUIET_PATHS and response.status_code < 400:
            log_fn = logger.debug
        elif response.status_code >= 400:
            log_fn = logger.warning
        else:
            log_fn = logger.info

        log_fn(
            "http.request",
            request_id=request_id,
            method=request.method,
            path=path,
            query=str(request.query_params) or None,
            status_code=response.status_code,
            duration_ms=duration_ms,
            operator_id=getattr(request.state, "operator_id", None),
            operator_role=getattr(request.state, "operator_role", None),
            client_ip=request.client.host if request.client else None,
        )
        return response
