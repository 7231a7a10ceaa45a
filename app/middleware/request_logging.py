# app/middleware/request_logging.py
from __future__ import annotations

import logging
import time
import uuid
from typing import Iterable, Tuple

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from app.core.access import EXEMPT_PREFIXES
from app.services.audit import ip_from_request

logger = logging.getLogger("app.request")


DEFAULT_IGNORED_PREFIXES: Tuple[str, ...] = EXEMPT_PREFIXES


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    One log line per request (method, path, status, ip, ua, duration, trace_id).
    Adds X-Request-ID to every response; health/docs paths are not logged.
    """

    def __init__(self, app, ignored_prefixes: Iterable[str] = DEFAULT_IGNORED_PREFIXES):
        super().__init__(app)
        self.ignored_prefixes = tuple(ignored_prefixes)

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        path = request.url.path
        method = request.method.upper()

        trace_id = request.headers.get("x-request-id") or uuid.uuid4().hex
        request.state.trace_id = trace_id

        skip = method == "OPTIONS" or any(path.startswith(p) for p in self.ignored_prefixes)

        start = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            if not skip:
                logger.exception(
                    "request CRASH %s %s ip=%s dur_ms=%s trace_id=%s",
                    method,
                    path,
                    ip_from_request(request) or "unknown",
                    int((time.perf_counter() - start) * 1000),
                    trace_id,
                )
            raise

        response.headers["X-Request-ID"] = trace_id
        if skip:
            return response

        duration_ms = int((time.perf_counter() - start) * 1000)
        status = response.status_code
        if status >= 500:
            level = logging.ERROR
        elif status >= 400:
            level = logging.WARNING
        else:
            level = logging.INFO

        logger.log(
            level,
            "request %s %s -> %s ip=%s ua=%r user_id=%s dur_ms=%s trace_id=%s",
            method,
            path,
            status,
            ip_from_request(request) or "unknown",
            request.headers.get("user-agent", "-"),
            getattr(request.state, "user_id", None),
            duration_ms,
            trace_id,
        )
        return response
