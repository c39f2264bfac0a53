"""
Response envelopes and exception handlers

Envelopes:
- {success, message, data}                  interactions, search
- {success, message, data, server_time}     auth
- {success, data[, metadata]}               catalog
- {success: false, message[, retry]}        errors
- {success: false, error: {code, message}}  catalog errors
"""

from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger

from src.core.exceptions import AppError, TransientStoreError
from src.utils.dates import utcnow


def server_time() -> str:
    """Current UTC time, ISO 8601 with milliseconds"""
    return utcnow().isoformat(timespec="milliseconds").replace("+00:00", "Z")


def success_response(data: Any = None, message: str = "Success") -> dict[str, Any]:
    return {"success": True, "message": message, "data": data}


def auth_response(data: Any = None, message: str = "Success") -> dict[str, Any]:
    return {**success_response(data, message), "server_time": server_time()}


def catalog_response(data: Any, metadata: Optional[dict[str, Any]] = None) -> dict[str, Any]:
    response = {"success": True, "data": data}
    if metadata:
        response["metadata"] = metadata
    return response


def error_content(exc: AppError) -> dict[str, Any]:
    content: dict[str, Any] = {"success": False, "message": exc.message}
    if isinstance(exc, TransientStoreError):
        content["retry"] = True
    return content


def catalog_error(exc: AppError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "error": {"code": exc.status_code, "message": exc.message},
        },
    )


def bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Token from an `Authorization: Bearer <token>` header, or None"""
    if not authorization or not authorization.startswith("Bearer "):
        return None
    token = authorization[len("Bearer "):].strip()
    return token or None


# ===========================
# EXCEPTION HANDLERS
# ===========================


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Render application errors with their status code"""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.message}")
    else:
        logger.warning(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.message}")

    return JSONResponse(status_code=exc.status_code, content=error_content(exc))


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"

    first = errors[0]
    field = ".".join(str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path"))
    if first.get("type") == "missing":
        return f"{field} is required"
    return f"Invalid {field}: {first.get('msg')}" if field else str(first.get("msg"))


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Request validation failures are client errors (400), not 422"""
    message = _validation_message(exc)
    logger.warning(f"{request.method} {request.url.path} -> 400: {message}")

    return JSONResponse(
        status_code=400,
        content=jsonable_encoder({"success": False, "message": message}),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Global handler for unexpected errors"""
    logger.exception(f"Unhandled exception on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=500,
        content={"success": False, "message": "Internal Server Error"},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
