"""Application settings and environment parsing."""

from __future__ import annotations

import os
import subprocess
from dataclasses import dataclass, field
from datetime import UTC, datetime

from .services.quality import QualityThresholds
from .services.sessions import DEFAULT_SESSION_TTL_SECONDS

TRUTHY_VALUES = frozenset({"1", "true", "yes"})

DEFAULT_PORT = "5005"


def _env(name: str, default: str = "") -> str:
    return os.getenv(name, default).strip()


def _is_truthy(value: str) -> bool:
    return value.strip().lower() in TRUTHY_VALUES


def _env_float(name: str, default: float) -> float:
    raw = _env(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise SystemExit(f"{name} must be a number, got {raw!r}") from e


def _get_git_sha() -> str:
    """Resolve git SHA from env or git command."""
    if sha := _env("GIT_SHA"):
        return sha
    try:
        result = subprocess.run(
            ["git", "rev-parse", "HEAD"],
            capture_output=True,
            text=True,
            timeout=5,
        )
        if result.returncode == 0:
            return result.stdout.strip()
    except (subprocess.SubprocessError, FileNotFoundError, OSError):
        pass
    return "unknown"


def _get_build_time() -> str:
    """Resolve build time from env or current time."""
    if build_time := _env("BUILD_TIME"):
        return build_time
    return datetime.now(UTC).isoformat()


def _quality_thresholds_from_env() -> QualityThresholds:
    defaults = QualityThresholds()
    return QualityThresholds(
        min_blur_score=_env_float("QUALITY_MIN_BLUR_SCORE", defaults.min_blur_score),
        min_brightness=_env_float("QUALITY_MIN_BRIGHTNESS", defaults.min_brightness),
        max_brightness=_env_float("QUALITY_MAX_BRIGHTNESS", defaults.max_brightness),
        max_glare_percentage=_env_float("QUALITY_MAX_GLARE", defaults.max_glare_percentage),
        min_face_size_percentage=_env_float(
            "QUALITY_MIN_FACE_SIZE", defaults.min_face_size_percentage
        ),
        min_face_confidence=_env_float(
            "QUALITY_MIN_FACE_CONFIDENCE", defaults.min_face_confidence
        ),
    )


@dataclass(frozen=True)
class Settings:
    port: int
    internal_service_token: str
    internal_service_token_required: bool
    node_env: str
    app_env: str
    version: str
    git_sha: str
    build_time: str
    log_level: str = "INFO"
    session_ttl_seconds: int = DEFAULT_SESSION_TTL_SECONDS
    quality_thresholds: QualityThresholds = field(default_factory=QualityThresholds)

    @property
    def is_production(self) -> bool:
        return any(env == "production" for env in (self.node_env, self.app_env))

    def validate(self) -> None:
        requires_token = self.is_production or self.internal_service_token_required
        if requires_token and not self.internal_service_token:
            raise SystemExit(
                "INTERNAL_SERVICE_TOKEN is required in production. "
                "Set INTERNAL_SERVICE_TOKEN or INTERNAL_SERVICE_TOKEN_REQUIRED=0."
            )
        thresholds = self.quality_thresholds
        if thresholds.min_brightness > thresholds.max_brightness:
            raise SystemExit("QUALITY_MIN_BRIGHTNESS must not exceed QUALITY_MAX_BRIGHTNESS.")
        if self.session_ttl_seconds <= 0:
            raise SystemExit("LIVENESS_SESSION_TTL_SECONDS must be positive.")

    @classmethod
    def from_env(cls) -> Settings:
        return cls(
            port=int(_env("PORT", DEFAULT_PORT)),
            internal_service_token=_env("INTERNAL_SERVICE_TOKEN"),
            internal_service_token_required=_is_truthy(_env("INTERNAL_SERVICE_TOKEN_REQUIRED")),
            node_env=_env("NODE_ENV").lower(),
            app_env=_env("APP_ENV").lower(),
            version="1.0.0",
            git_sha=_get_git_sha(),
            build_time=_get_build_time(),
            log_level=_env("LOG_LEVEL", "INFO").upper(),
            session_ttl_seconds=int(
                _env("LIVENESS_SESSION_TTL_SECONDS", str(DEFAULT_SESSION_TTL_SECONDS))
            ),
            quality_thresholds=_quality_thresholds_from_env(),
        )
