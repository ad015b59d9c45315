import structlog
from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from defi_advisor.exceptions import AppError, NotFoundError, ValidationError

logger = structlog.get_logger()


def _error_body(message: str, code: str) -> dict:
    return {"success": False, "error": message, "code": code}


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    logger.error("app_error", path=request.url.path, code=exc.code, error=exc.message)
    return JSONResponse(
        status_code=500,
        content=_error_body("Server error", exc.code),
    )


async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
    return JSONResponse(
        status_code=404,
        content=_error_body(exc.message, exc.code),
    )


async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content=_error_body(exc.message, exc.code),
    )


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Turn pydantic body errors into the same 400 shape as domain validation errors."""
    messages = []
    for error in exc.errors():
        msg = error.get("msg", "Invalid value")
        if error.get("type") == "value_error":
            messages.append(msg.removeprefix("Value error, "))
            continue
        loc = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        messages.append(f"{loc}: {msg}" if loc else msg)
    return JSONResponse(
        status_code=400,
        content=_error_body("; ".join(messages) or "Invalid request", "VALIDATION_ERROR"),
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled_error", path=request.url.path, error=str(exc))
    return JSONResponse(
        status_code=500,
        content=_error_body("Server error", "INTERNAL_ERROR"),
    )


def register_exception_handlers(app):
    app.add_exception_handler(NotFoundError, not_found_handler)
    app.add_exception_handler(ValidationError, validation_error_handler)
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
