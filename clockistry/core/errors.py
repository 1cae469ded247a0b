"""Domain error taxonomy and its HTTP rendering.

Services raise these; routers never build error responses by hand. Every
error leaves the API as ``{"success": false, "error": <kind>, "message": ...}``.
"""

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

logger = logging.getLogger(__name__)


class DomainError(Exception):
    kind = "error"
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class Unauthenticated(DomainError):
    kind = "unauthenticated"
    status_code = 401


class Forbidden(DomainError):
    kind = "forbidden"
    status_code = 403


class NotFound(DomainError):
    kind = "not_found"
    status_code = 404


class Conflict(DomainError):
    kind = "conflict"
    status_code = 409

    ALREADY_RUNNING = "already_running"
    ALREADY_STOPPED = "already_stopped"
    PLAN_LIMIT = "plan_limit"
    DUPLICATE = "duplicate"

    def __init__(self, message: str, reason: str):
        super().__init__(message)
        self.reason = reason


class Invalid(DomainError):
    kind = "invalid"
    status_code = 422


_STATUS_KINDS = {
    400: "invalid",
    401: "unauthenticated",
    403: "forbidden",
    404: "not_found",
    405: "method_not_allowed",
    409: "conflict",
    422: "invalid",
}


def error_body(kind: str, message: Optional[str], reason: Optional[str] = None) -> dict:
    body = {"success": False, "error": kind}
    if message:
        body["message"] = message
    if reason:
        body["reason"] = reason
    return body


async def _domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    reason = getattr(exc, "reason", None)
    if isinstance(exc, Conflict):
        logger.warning(
            "Conflict",
            extra={"reason": reason, "path": request.url.path},
        )
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, Unauthenticated) else None
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.kind, exc.message, reason),
        headers=headers,
    )


async def _http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    kind = _STATUS_KINDS.get(exc.status_code, "error")
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(kind, str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    messages = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        messages.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return JSONResponse(
        status_code=422,
        content=error_body(Invalid.kind, "; ".join(messages) or "Invalid request"),
    )


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DomainError, _domain_error_handler)
    app.add_exception_handler(HTTPException, _http_exception_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
