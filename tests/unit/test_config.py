"""Unit tests for environment-driven configuration."""

from pathlib import Path

from storefront.config import (
    DEFAULT_JWT_SECRET,
    AuthConfig,
    DatabaseConfig,
    LogFormat,
    LoggingConfig,
    LogLevel,
    ServerConfig,
    UploadConfig,
)


class TestDatabaseConfig:
    def test_plain_postgres_url_gets_async_driver(self, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "postgresql://shop:pw@db:5432/shop")

        config = DatabaseConfig.from_env()

        assert config.url == "postgresql+asyncpg://shop:pw@db:5432/shop"

    def test_pool_settings(self, monkeypatch):
        monkeypatch.setenv("DATABASE_POOL_SIZE", "12")
        monkeypatch.setenv("DATABASE_MAX_OVERFLOW", "not-a-number")
        monkeypatch.setenv("DATABASE_ECHO", "yes")

        config = DatabaseConfig.from_env()

        assert config.pool_size == 12
        assert config.max_overflow == 10
        assert config.echo is True


class TestAuthConfig:
    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("JWT_SECRET", raising=False)
        monkeypatch.delenv("JWT_EXPIRES_HOURS", raising=False)

        config = AuthConfig.from_env()

        assert config.jwt_secret == DEFAULT_JWT_SECRET
        assert config.jwt_expires_hours == 4
        assert config.jwt_algorithm == "HS256"


def test_upload_config_strips_trailing_slash(monkeypatch, tmp_path):
    monkeypatch.setenv("UPLOAD_DIR", str(tmp_path))
    monkeypatch.setenv("BASE_URL", "https://shop.example.com/")

    config = UploadConfig.from_env()

    assert config.upload_dir == Path(tmp_path)
    assert config.base_url == "https://shop.example.com"
    assert "image/avif" in config.allowed_content_types


def test_logging_config_falls_back_on_unknown_values(monkeypatch):
    monkeypatch.setenv("LOG_LEVEL", "chatty")
    monkeypatch.setenv("LOG_FORMAT", "JSON")

    config = LoggingConfig.from_env()

    assert config.level == LogLevel.INFO
    assert config.format == LogFormat.JSON


def test_server_config(monkeypatch):
    monkeypatch.setenv("CORS_ORIGINS", "https://a.example.com, ,https://b.example.com")
    monkeypatch.setenv("ENVIRONMENT", "production")
    monkeypatch.setenv("RATE_LIMIT_ENABLED", "false")

    config = ServerConfig.from_env()

    assert config.cors_origins == ["https://a.example.com", "https://b.example.com"]
    assert config.is_production
    assert config.rate_limit_enabled is False
