"""
Application error type and the terminal exception handlers that turn
errors into the `{success: false, message}` envelope.
"""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pymongo.errors import DuplicateKeyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from tourship.core.config import DEBUG


class AppError(Exception):
    """Error raised from handlers and services, carrying an HTTP status."""

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def error_body(message: str, **extra) -> dict:
    return {"success": False, "message": message, **extra}


def _field_name(loc) -> str:
    # ("body", "address", "pincode") -> "address.pincode"
    parts = [str(p) for p in loc if p not in ("body", "query", "path")]
    return ".".join(parts) or "body"


def _duplicate_field(exc: DuplicateKeyError) -> str:
    details = exc.details or {}
    key_value = details.get("keyValue") or details.get("keyPattern") or {}
    if key_value:
        return next(iter(key_value))
    return "field"


async def app_error_handler(request: Request, exc: AppError):
    return JSONResponse(status_code=exc.status_code, content=error_body(exc.message))


async def http_error_handler(request: Request, exc: StarletteHTTPException):
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(message),
        headers=getattr(exc, "headers", None),
    )


async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = [
        {"field": _field_name(err.get("loc", ())), "message": err.get("msg", "Invalid value")}
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=400, content=error_body("Validation failed", errors=errors)
    )


async def duplicate_key_handler(request: Request, exc: DuplicateKeyError):
    field = _duplicate_field(exc)
    return JSONResponse(
        status_code=400, content=error_body(f"Duplicate value for {field}")
    )


async def unhandled_error_handler(request: Request, exc: Exception):
    print(f"[error_handler] {request.method} {request.url.path} failed: {type(exc).__name__}: {exc}")
    message = f"Server Error: {exc}" if DEBUG else "Server Error"
    return JSONResponse(status_code=500, content=error_body(message))


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(DuplicateKeyError, duplicate_key_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
