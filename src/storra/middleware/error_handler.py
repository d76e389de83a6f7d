"""Global error handlers: every failure renders as ``{"detail", "error"}``."""

import structlog
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from storra.exceptions import InvalidInput, StorraError

logger = structlog.get_logger()

_HTTP_KINDS = {
    401: "authentication_required",
    404: "not_found",
    405: "method_not_allowed",
    429: "rate_limited",
}


def error_body(detail: str, kind: str) -> dict[str, str]:
    return {"detail": detail, "error": kind}


def setup_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers."""

    @app.exception_handler(StorraError)
    async def storra_error_handler(request: Request, exc: StorraError) -> JSONResponse:
        """Domain rejections: stable kind plus message."""
        logger.info(
            "request_rejected",
            path=request.url.path,
            error=exc.kind,
            detail=exc.detail,
        )
        return JSONResponse(status_code=exc.status_code, content=error_body(exc.detail, exc.kind))

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(str(exc.detail), _HTTP_KINDS.get(exc.status_code, "http_error")),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(_request: Request, exc: RequestValidationError) -> JSONResponse:
        """Body/query validation failures map to invalid_input."""
        body = error_body(InvalidInput.default_detail, InvalidInput.kind)
        body["errors"] = exc.errors()
        return JSONResponse(status_code=InvalidInput.status_code, content=jsonable(body))

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Catch-all for unhandled exceptions; always JSON."""
        logger.error(
            "unhandled_exception",
            path=request.url.path,
            method=request.method,
            error=str(exc),
            exc_info=exc,
        )
        return JSONResponse(status_code=500, content=error_body("Internal server error", "internal_error"))


def jsonable(body: dict) -> dict:
    # Validation error contexts can hold exception instances
    return jsonable_encoder(body, custom_encoder={Exception: str})
