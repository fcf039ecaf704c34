# app/core/errors.py
"""
Error taxonomy and the single HTTP boundary translator.

Services raise the typed errors below; `register_error_handlers` maps them to
responses with a stable shape. Frontend should key on `detail.code` for i18n
and behavior. Stack traces and internal identifiers never reach the client.
"""
from __future__ import annotations
from enum import Enum
from typing import Any, Dict, Optional
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from core.logger import get_logger

logger = get_logger(__name__)


class ErrorCode(str, Enum):
    BAD_REQUEST = "bad_request"          # 400
    VALIDATION_ERROR = "validation_error"# 400
    INVALID_TABLE = "invalid_table"      # 400
    UNAUTHORIZED = "unauthorized"        # 401
    FORBIDDEN = "forbidden"              # 403
    NOT_FOUND = "not_found"              # 404
    CONFLICT = "conflict"                # 409
    INTERNAL_ERROR = "internal_error"    # 500


class AppError(Exception):
    """Base class for errors raised by the domain layer."""
    status_code: int = 500
    code: ErrorCode = ErrorCode.INTERNAL_ERROR

    def __init__(self, message: str, *, meta: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.meta = meta

    def to_detail(self) -> Dict[str, Any]:
        detail: Dict[str, Any] = {"code": self.code.value, "message": self.message}
        if self.meta:
            detail["meta"] = self.meta
        return detail


class BadRequest(AppError):
    status_code = 400
    code = ErrorCode.BAD_REQUEST


class InvalidTable(BadRequest):
    code = ErrorCode.INVALID_TABLE

    def __init__(self, table_name: str) -> None:
        super().__init__(f"Invalid table name: {table_name}")
        self.table_name = table_name


class Unauthorized(AppError):
    status_code = 401
    code = ErrorCode.UNAUTHORIZED


class TokenInvalid(Unauthorized):
    """Token could not be accepted."""


class TokenExpired(TokenInvalid):
    def __init__(self, message: str = "Token has expired") -> None:
        super().__init__(message)


class TokenMalformed(TokenInvalid):
    def __init__(self, message: str = "Invalid token") -> None:
        super().__init__(message)


class Forbidden(AppError):
    status_code = 403
    code = ErrorCode.FORBIDDEN


class NotFound(AppError):
    status_code = 404
    code = ErrorCode.NOT_FOUND


class Conflict(AppError):
    status_code = 409
    code = ErrorCode.CONFLICT


_STATUS_CODES = {
    400: ErrorCode.BAD_REQUEST,
    401: ErrorCode.UNAUTHORIZED,
    403: ErrorCode.FORBIDDEN,
    404: ErrorCode.NOT_FOUND,
    409: ErrorCode.CONFLICT,
}


def _error_body(code: ErrorCode, message: str, meta: Optional[Dict[str, Any]] = None) -> dict:
    detail: Dict[str, Any] = {"code": code.value, "message": message}
    if meta:
        detail["meta"] = meta
    return {"detail": detail}


async def _app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.to_detail()}, headers=headers)


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    fields = [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg", "")}
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content=_error_body(ErrorCode.VALIDATION_ERROR, "Invalid request", {"errors": fields}),
    )


async def _http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    # Framework-raised errors (404 unknown route, 405 method) get the same shape.
    code = _STATUS_CODES.get(exc.status_code, ErrorCode.BAD_REQUEST if exc.status_code < 500 else ErrorCode.INTERNAL_ERROR)
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(code, message),
        headers=getattr(exc, "headers", None),
    )


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content=_error_body(ErrorCode.INTERNAL_ERROR, "Internal server error"))


def register_error_handlers(app: FastAPI) -> None:
    """Install the boundary translator on `app`."""
    app.add_exception_handler(AppError, _app_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)
