from core.config import Settings


class TestSettings:
    """Test environment-driven settings."""

    def test_defaults(self, monkeypatch):
        for name in ("DATABASE_URL", "PORT", "CORS_ORIGINS", "ENVIRONMENT", "LOG_LEVEL"):
            monkeypatch.delenv(name, raising=False)

        settings = Settings.from_env()

        assert settings.database_url == "sqlite+aiosqlite:///./sapien.db"
        assert settings.port == 8009
        assert settings.cors_origins == ["*"]
        assert settings.max_upload_bytes == 5 * 1024 * 1024
        assert settings.is_production is False

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "postgresql+asyncpg://u:p@db/sapien")
        monkeypatch.setenv("PORT", "9000")
        monkeypatch.setenv("CORS_ORIGINS", "https://a.example, https://b.example")
        monkeypatch.setenv("ENVIRONMENT", "Production")
        monkeypatch.setenv("LOG_LEVEL", "debug")
        monkeypatch.setenv("UPLOAD_DIR", "/srv/uploads")

        settings = Settings.from_env()

        assert settings.database_url.startswith("postgresql+asyncpg://")
        assert settings.port == 9000
        assert settings.cors_origins == ["https://a.example", "https://b.example"]
        assert settings.is_production is True
        assert settings.log_level == "DEBUG"
        assert settings.cover_image_dir == "/srv/uploads/cover-images"
