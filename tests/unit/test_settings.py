"""
Tests for environment-driven settings.
"""

import pytest

from capture_service.services.quality import QualityThresholds
from capture_service.settings import Settings

ENV_VARS = (
    "PORT",
    "INTERNAL_SERVICE_TOKEN",
    "INTERNAL_SERVICE_TOKEN_REQUIRED",
    "NODE_ENV",
    "APP_ENV",
    "LOG_LEVEL",
    "LIVENESS_SESSION_TTL_SECONDS",
    "QUALITY_MIN_BLUR_SCORE",
    "QUALITY_MIN_BRIGHTNESS",
    "QUALITY_MAX_BRIGHTNESS",
    "QUALITY_MAX_GLARE",
    "QUALITY_MIN_FACE_SIZE",
    "QUALITY_MIN_FACE_CONFIDENCE",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("GIT_SHA", "abc123")
    monkeypatch.setenv("BUILD_TIME", "2026-01-01T00:00:00Z")


class TestFromEnv:
    def test_defaults(self):
        settings = Settings.from_env()

        assert settings.port == 5005
        assert settings.internal_service_token == ""
        assert settings.log_level == "INFO"
        assert settings.session_ttl_seconds == 600
        assert settings.quality_thresholds == QualityThresholds()
        assert settings.git_sha == "abc123"
        assert settings.build_time == "2026-01-01T00:00:00Z"

    def test_overrides(self, monkeypatch):
        monkeypatch.setenv("PORT", "8080")
        monkeypatch.setenv("LOG_LEVEL", "debug")
        monkeypatch.setenv("LIVENESS_SESSION_TTL_SECONDS", "120")
        monkeypatch.setenv("QUALITY_MIN_BLUR_SCORE", "50")
        monkeypatch.setenv("QUALITY_MAX_GLARE", "0.1")

        settings = Settings.from_env()

        assert settings.port == 8080
        assert settings.log_level == "DEBUG"
        assert settings.session_ttl_seconds == 120
        assert settings.quality_thresholds.min_blur_score == 50.0
        assert settings.quality_thresholds.max_glare_percentage == 0.1

    def test_non_numeric_threshold_exits(self, monkeypatch):
        monkeypatch.setenv("QUALITY_MIN_BRIGHTNESS", "dim")
        with pytest.raises(SystemExit):
            Settings.from_env()


class TestValidate:
    def test_token_required_in_production(self, monkeypatch):
        monkeypatch.setenv("NODE_ENV", "production")
        with pytest.raises(SystemExit):
            Settings.from_env().validate()

    def test_token_required_when_flagged(self, monkeypatch):
        monkeypatch.setenv("INTERNAL_SERVICE_TOKEN_REQUIRED", "1")
        with pytest.raises(SystemExit):
            Settings.from_env().validate()

    def test_production_with_token(self, monkeypatch):
        monkeypatch.setenv("APP_ENV", "production")
        monkeypatch.setenv("INTERNAL_SERVICE_TOKEN", "secret")
        Settings.from_env().validate()

    def test_brightness_bounds(self, monkeypatch):
        monkeypatch.setenv("QUALITY_MIN_BRIGHTNESS", "0.9")
        monkeypatch.setenv("QUALITY_MAX_BRIGHTNESS", "0.5")
        with pytest.raises(SystemExit):
            Settings.from_env().validate()

    def test_ttl_must_be_positive(self, monkeypatch):
        monkeypatch.setenv("LIVENESS_SESSION_TTL_SECONDS", "0")
        with pytest.raises(SystemExit):
            Settings.from_env().validate()

    def test_only_node_and_app_env_mark_production(self, monkeypatch):
        monkeypatch.setenv("RUST_ENV", "production")
        settings = Settings.from_env()

        assert settings.is_production is False
        settings.validate()
