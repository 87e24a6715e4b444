"""Standard error handler: consistent error responses across all routes."""

from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ..errors import DiscoveryError, LanguageServerRequestError
from ..utils.logging import get_logger

logger = get_logger("middleware.error_handler")


def _error_body(status_code: int, detail, **extra) -> dict:
    body = {
        "error": True,
        "status_code": status_code,
        "detail": detail,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    body.update(extra)
    return body


def register_error_handlers(app: FastAPI) -> None:
    """Register standard error handlers on the app."""

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(status_code=exc.status_code, content=_error_body(exc.status_code, exc.detail))

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=422,
            content=_error_body(422, "Validation error", errors=exc.errors()),
        )

    @app.exception_handler(DiscoveryError)
    async def discovery_exception_handler(request: Request, exc: DiscoveryError):
        logger.warning("discovery_failed", kind=exc.kind, detail=str(exc), path=str(request.url.path))
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(exc.status_code, str(exc), kind=exc.kind),
        )

    @app.exception_handler(LanguageServerRequestError)
    async def language_server_exception_handler(request: Request, exc: LanguageServerRequestError):
        return JSONResponse(
            status_code=502,
            content=_error_body(502, str(exc), kind="language_server_request_failed", upstream_status=exc.status_code),
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.error(
            "unhandled_exception",
            error=str(exc),
            path=str(request.url.path),
            exc_info=True,
        )
        return JSONResponse(status_code=500, content=_error_body(500, "Internal server error"))
