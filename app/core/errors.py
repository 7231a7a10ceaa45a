# app/core/errors.py
from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError

log = logging.getLogger("app.errors")

GENERIC_ERROR = "Si è verificato un errore. Riprova più tardi."
VALIDATION_ERROR = "Ci sono errori di validazione nel form"


# -----------------------------
# Trace / request id helpers
# -----------------------------
def _ensure_trace_id(request: Request) -> str:
    """
    Stable trace_id for this request: request.state (set by the logging
    middleware), then the inbound X-Request-ID header, else a new one.
    """
    val = getattr(request.state, "trace_id", None)
    if val:
        return str(val)
    new_id = request.headers.get("x-request-id") or uuid.uuid4().hex
    request.state.trace_id = new_id
    return new_id


def field_errors_from(errors: List[Dict[str, Any]]) -> Dict[str, str]:
    """
    pydantic error list -> {field: message}; first message per field wins.
    "Value error, " prefixes from custom validators are dropped.
    """
    out: Dict[str, str] = {}
    for err in errors:
        loc = [str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path", "form")]
        key = ".".join(loc) or "__all__"
        msg = str(err.get("msg", ""))
        if msg.startswith("Value error, "):
            msg = msg[len("Value error, "):]
        out.setdefault(key, msg)
    return out


def _payload(
    *,
    message: str,
    typ: str,
    status: int,
    trace_id: str,
    details: Optional[Any] = None,
) -> Dict[str, Any]:
    body: Dict[str, Any] = {
        "ok": False,
        "error": {
            "type": typ,
            "message": message,
            "status": status,
            "trace_id": trace_id,
        },
    }
    if details is not None:
        body["error"]["details"] = details
    return body


# -----------------------------
# Install / register handlers
# -----------------------------
def register_exception_handlers(app: FastAPI) -> None:
    """
    Registers consistent JSON error handlers.
    Also ensures X-Request-ID header is present on error responses.
    """

    @app.exception_handler(HTTPException)
    async def http_exc_handler(request: Request, exc: HTTPException):
        trace_id = _ensure_trace_id(request)
        status_code = int(exc.status_code)
        message = exc.detail if isinstance(exc.detail, str) else "HTTP error"
        details = exc.detail if isinstance(exc.detail, dict) else None

        headers = dict(exc.headers or {})
        headers["X-Request-ID"] = trace_id

        level = logging.ERROR if status_code >= 500 else logging.WARNING
        log.log(
            level,
            "HTTPException %s %s -> %s | trace_id=%s | detail=%r",
            request.method,
            request.url.path,
            status_code,
            trace_id,
            exc.detail,
        )

        return JSONResponse(
            status_code=status_code,
            headers=headers,
            content=_payload(
                message=message,
                typ="http_error",
                status=status_code,
                trace_id=trace_id,
                details=details,
            ),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exc_handler(request: Request, exc: RequestValidationError):
        trace_id = _ensure_trace_id(request)
        errors = exc.errors()
        log.warning(
            "ValidationError %s %s -> 422 | trace_id=%s | errors=%s",
            request.method,
            request.url.path,
            trace_id,
            errors,
        )
        return JSONResponse(
            status_code=422,
            headers={"X-Request-ID": trace_id},
            content=_payload(
                message=VALIDATION_ERROR,
                typ="validation_error",
                status=422,
                trace_id=trace_id,
                details={"field_errors": field_errors_from(errors)},
            ),
        )

    @app.exception_handler(ValidationError)
    async def model_validation_exc_handler(request: Request, exc: ValidationError):
        # pydantic models built by hand inside routes (form payloads)
        trace_id = _ensure_trace_id(request)
        return JSONResponse(
            status_code=422,
            headers={"X-Request-ID": trace_id},
            content=_payload(
                message=VALIDATION_ERROR,
                typ="validation_error",
                status=422,
                trace_id=trace_id,
                details={"field_errors": field_errors_from(exc.errors())},
            ),
        )

    @app.exception_handler(Exception)
    async def unhandled_exc_handler(request: Request, exc: Exception):
        trace_id = _ensure_trace_id(request)
        # Full traceback to server logs; generic message to client
        log.exception(
            "Unhandled exception %s %s -> 500 | trace_id=%s",
            request.method,
            request.url.path,
            trace_id,
        )
        return JSONResponse(
            status_code=500,
            headers={"X-Request-ID": trace_id},
            content=_payload(
                message=GENERIC_ERROR,
                typ="internal_error",
                status=500,
                trace_id=trace_id,
            ),
        )
