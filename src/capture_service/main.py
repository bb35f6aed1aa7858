"""
Capture Service - FastAPI Application.

Provides REST endpoints for MRZ parsing, capture quality checks and
active liveness challenge sessions.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette import status

from .api import health, liveness, mrz, quality
from .core.auth import add_internal_auth_middleware
from .core.exceptions import (
    CaptureServiceError,
    InvalidImageError,
    LivenessStateError,
    SessionNotFoundError,
)
from .core.logging import configure_logging, get_request_id, set_request_id
from .services.quality import QualityValidator
from .services.sessions import SessionRegistry
from .settings import Settings
from .telemetry import instrument_app

logger = logging.getLogger(__name__)

ERROR_STATUS_CODES: dict[type[CaptureServiceError], int] = {
    InvalidImageError: status.HTTP_400_BAD_REQUEST,
    SessionNotFoundError: status.HTTP_404_NOT_FOUND,
    LivenessStateError: status.HTTP_409_CONFLICT,
}


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or Settings.from_env()
    settings.validate()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Capture Service",
        description="MRZ parsing, capture quality and liveness challenges for identity verification",
        version=settings.version,
    )

    instrument_app(app)

    registry = SessionRegistry(ttl_seconds=settings.session_ttl_seconds)
    validator = QualityValidator(thresholds=settings.quality_thresholds)
    app.state.sessions = registry

    @app.middleware("http")
    async def request_id_middleware(request: Request, call_next):
        request_id = request.headers.get("x-request-id") or request.headers.get("x-correlation-id")
        set_request_id(request_id)
        response = await call_next(request)
        response.headers["X-Request-Id"] = get_request_id()
        return response

    # Privacy: Avoid echoing request bodies (e.g., base64 images, MRZ text) back in 422 responses.
    @app.exception_handler(RequestValidationError)
    async def request_validation_exception_handler(_request: Request, _exc: RequestValidationError):
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={"error": "Invalid request"},
        )

    @app.exception_handler(CaptureServiceError)
    async def capture_service_exception_handler(request: Request, exc: CaptureServiceError):
        status_code = ERROR_STATUS_CODES.get(type(exc), status.HTTP_500_INTERNAL_SERVER_ERROR)
        if status_code >= 500:
            logger.error("Unhandled service error on %s: %s", request.url.path, exc.error_code)
        else:
            logger.info("Request to %s rejected: %s", request.url.path, exc.error_code)
        return JSONResponse(status_code=status_code, content=exc.to_dict())

    add_internal_auth_middleware(app, token=settings.internal_service_token)

    app.include_router(health.get_router(settings))
    app.include_router(mrz.get_router())
    app.include_router(quality.get_router(validator))
    app.include_router(liveness.get_router(registry))

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=Settings.from_env().port)
