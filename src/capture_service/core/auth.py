"""Internal service authentication middleware."""

from __future__ import annotations

import logging
import secrets

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette import status

logger = logging.getLogger(__name__)

INTERNAL_TOKEN_HEADER = "x-internal-token"

_PUBLIC_PATHS = frozenset({"/health", "/build-info", "/openapi.json"})
_PUBLIC_PREFIXES = ("/docs", "/redoc")


def is_public_path(path: str) -> bool:
    return path in _PUBLIC_PATHS or path.startswith(_PUBLIC_PREFIXES)


def validate_internal_token(provided: str | None, expected: str) -> bool:
    if not expected:
        return True
    if not provided:
        return False
    return secrets.compare_digest(provided, expected)


def mask_ip(ip: str) -> str:
    """Keep only the network part of a client address for logs."""
    if not ip:
        return "unknown"
    if ":" in ip:
        return ":".join(ip.split(":")[:3]) + ":x"
    parts = ip.split(".")
    if len(parts) == 4:
        return f"{parts[0]}.{parts[1]}.x.x"
    return "unknown"


def add_internal_auth_middleware(app: FastAPI, *, token: str) -> None:
    """Attach auth middleware when a token is configured."""
    if not token:
        return

    @app.middleware("http")
    async def internal_auth_middleware(request: Request, call_next):
        if is_public_path(request.url.path):
            return await call_next(request)

        provided = request.headers.get(INTERNAL_TOKEN_HEADER)
        if not validate_internal_token(provided, token):
            client_host = request.client.host if request.client else ""
            logger.warning(
                "Unauthorized access attempt to %s from %s",
                request.url.path,
                mask_ip(client_host),
            )
            return JSONResponse(
                status_code=status.HTTP_401_UNAUTHORIZED,
                content={"error": "Unauthorized"},
            )

        return await call_next(request)
