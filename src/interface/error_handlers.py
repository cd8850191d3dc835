"""Exception handlers converting errors to `{message}` JSON bodies."""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from src.core.config import Constants
from src.core.errors import InternalError, TaskAppError


logger = logging.getLogger(__name__)

_VALUE_ERROR_PREFIX = "Value error, "


def _message_body(message: str) -> dict[str, str]:
    return {"message": message}


def validation_message(exc: RequestValidationError) -> str:
    """First validation error as a readable message."""
    errors = exc.errors()
    if not errors:
        return "Invalid request data"

    first = errors[0]
    message = str(first.get("msg", "Invalid request data")).removeprefix(_VALUE_ERROR_PREFIX)
    location = [str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path")]
    if first.get("type") == "missing" and location:
        return f"{location[-1]} is required"
    return message


async def handle_app_error(request: Request, exc: TaskAppError) -> JSONResponse:
    if exc.status_code >= Constants.HTTP_SERVER_ERROR:
        logger.error("Request failed", extra={"path": request.url.path, "error": exc.message})
        return JSONResponse(status_code=exc.status_code, content=_message_body(InternalError.default_message))

    logger.info(
        "Request rejected",
        extra={"path": request.url.path, "status_code": exc.status_code, "error": exc.message},
    )
    return JSONResponse(status_code=exc.status_code, content=_message_body(exc.message))


async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    message = validation_message(exc)
    logger.info("Request validation failed", extra={"path": request.url.path, "error": message})
    return JSONResponse(status_code=Constants.HTTP_BAD_REQUEST, content=_message_body(message))


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error", extra={"path": request.url.path, "error": str(exc)})
    return JSONResponse(
        status_code=Constants.HTTP_SERVER_ERROR,
        content=_message_body(InternalError.default_message),
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(TaskAppError, handle_app_error)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, handle_validation_error)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, handle_unexpected_error)
