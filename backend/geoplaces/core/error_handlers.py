"""
Exception handlers that render every failure as the same error envelope:
{"success": false, "error": {"code", "message", "details"}}.
"""
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from geoplaces.core.exceptions import ErrorCode, PlacesServiceError
from geoplaces.core.logger import logs
from geoplaces.models.base_model import ErrorBody, ErrorResponse


def _error_response(status_code: int, code: str, message: str, details: dict | None = None) -> JSONResponse:
    body = ErrorResponse(error=ErrorBody(code=code, message=message, details=details or {}))
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json", exclude_none=True))


async def handle_places_error(request: Request, exc: PlacesServiceError) -> JSONResponse:
    level = logging.ERROR if exc.status_code >= 500 else logging.WARNING
    logs.log(
        level,
        f"{exc.error_code.value} on {request.method} {request.url.path}: {exc.message}",
        extra=exc.details,
    )
    return _error_response(exc.status_code, exc.error_code.value, exc.message, exc.details)


async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {"field": ".".join(str(part) for part in err.get("loc", ())), "message": err.get("msg", "")}
        for err in exc.errors()
    ]
    logs.log(logging.WARNING, f"Invalid request on {request.url.path}", extra={"errors": errors})
    return _error_response(400, ErrorCode.INVALID_ARGUMENT.value, "Request validation failed", {"errors": errors})


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logs.log(logging.ERROR, f"Unhandled error on {request.method} {request.url.path}: {exc!r}", exc_info=True)
    return _error_response(500, ErrorCode.INTERNAL.value, "Internal server error")


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(PlacesServiceError, handle_places_error)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(Exception, handle_unexpected_error)
