"""HTTP middleware and exception handlers for the rewards API."""

from fastapi import FastAPI

from storra.config import Settings
from storra.middleware.cors import setup_cors
from storra.middleware.error_handler import setup_error_handlers
from storra.middleware.rate_limit import RateLimitMiddleware
from storra.middleware.request_id import RequestIdMiddleware


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    # Last added runs first: CORS wraps request-id, which wraps the limiter,
    # so 429 responses still carry CORS and request-id headers.
    setup_error_handlers(app)
    app.add_middleware(
        RateLimitMiddleware,
        requests_per_window=settings.rate_limit_requests,
        window_seconds=settings.rate_limit_window_seconds,
    )
    app.add_middleware(RequestIdMiddleware)
    setup_cors(app, settings)
