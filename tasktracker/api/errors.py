import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from ..errors import AppError, ValidationFailed

logger = logging.getLogger("tasktracker.errors")


def _error_body(request: Request, status_code: int, message: str) -> dict:
    return {"error": message, "status": status_code, "path": request.url.path}


def register_exception_handlers(app: FastAPI) -> None:
    """Attach simple, consistent JSON error handlers."""

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        content = _error_body(request, exc.status_code, exc.message)
        if isinstance(exc, ValidationFailed) and exc.errors:
            content["details"] = exc.errors
        return JSONResponse(status_code=exc.status_code, content=content, headers=exc.headers)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        message = exc.detail if isinstance(exc.detail, str) else "HTTPError"
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(request, exc.status_code, message),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        # Transport-level decoding failures (bad JSON, bad path params) are 400 as well.
        details = [
            {"field": ".".join(str(p) for p in err.get("loc", ())), "message": err.get("msg", "")}
            for err in exc.errors()
        ]
        content = _error_body(request, 400, "Invalid request")
        content["details"] = details
        return JSONResponse(status_code=400, content=content)

    @app.exception_handler(SQLAlchemyError)
    async def storage_exception_handler(request: Request, exc: SQLAlchemyError):
        logger.error("unhandled storage error path=%s error=%s", request.url.path, exc.__class__.__name__)
        return JSONResponse(status_code=500, content=_error_body(request, 500, "Database error"))
