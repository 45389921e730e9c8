"""CORS configuration for the SiteChat API."""

import logging
import os
from typing import List, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

logger = logging.getLogger(__name__)

# Local web frontend dev servers
DEFAULT_ORIGINS = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]


def get_allowed_origins() -> List[str]:
    """Allowed origins from ALLOWED_ORIGINS (comma separated), else the dev defaults."""
    env_origins = os.getenv("ALLOWED_ORIGINS", "")
    origins = [origin.strip() for origin in env_origins.split(",") if origin.strip()]
    if origins:
        return origins

    if os.getenv("ENVIRONMENT", "development") == "production":
        logger.warning("Using default CORS origins in production. Set ALLOWED_ORIGINS environment variable.")
    return list(DEFAULT_ORIGINS)


def setup_cors(app: FastAPI, origins: Optional[List[str]] = None) -> None:
    """Install CORS middleware so the web frontend can call the API."""
    allow_origins = origins or get_allowed_origins()
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allow_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["Accept", "Content-Type", "Authorization", "X-Requested-With"],
        max_age=600,
    )
    logger.info(f"CORS configured with origins: {allow_origins}")
