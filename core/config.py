"""
Application Settings.

All runtime configuration for the Sapien API comes from environment variables
and is read once into a `Settings` instance. The application factory accepts an
explicit `Settings` so tests and scripts can build an app against their own
database and upload directory without touching the process environment.
"""

import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import List


def _split_csv(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


@dataclass
class Settings:
    """Environment-driven configuration"""

    database_url: str = "sqlite+aiosqlite:///./sapien.db"
    host: str = "0.0.0.0"
    port: int = 8009
    cors_origins: List[str] = field(default_factory=lambda: ["*"])
    upload_dir: str = "./uploads"
    max_upload_bytes: int = 5 * 1024 * 1024
    environment: str = "development"
    log_level: str = "INFO"

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def cover_image_dir(self) -> str:
        return os.path.join(self.upload_dir, "cover-images")

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            database_url=os.getenv("DATABASE_URL", cls.database_url),
            host=os.getenv("HOST", cls.host),
            port=int(os.getenv("PORT", str(cls.port))),
            cors_origins=_split_csv(os.getenv("CORS_ORIGINS", "*")),
            upload_dir=os.getenv("UPLOAD_DIR", cls.upload_dir),
            max_upload_bytes=int(
                os.getenv("MAX_UPLOAD_BYTES", str(cls.max_upload_bytes))
            ),
            environment=os.getenv("ENVIRONMENT", cls.environment),
            log_level=os.getenv("LOG_LEVEL", cls.log_level).upper(),
        )


@lru_cache()
def get_settings() -> Settings:
    """Settings read from the process environment, cached for the process"""
    return Settings.from_env()
