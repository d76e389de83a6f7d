"""CORS for the Storra web app and the Expo dev client."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from storra.config import Settings


def setup_cors(app: FastAPI, settings: Settings) -> None:
    # Expo tunnels get random hostnames, so debug builds accept any origin.
    # Credentials cannot be combined with a wildcard origin.
    if settings.debug:
        origins, credentials = ["*"], False
    else:
        origins, credentials = settings.cors_origins, True

    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=credentials,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "X-Request-Id"],
        expose_headers=["X-Request-Id", "X-RateLimit-Remaining", "X-RateLimit-Limit"],
    )
